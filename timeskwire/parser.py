"""Parsing of the Timewarrior extension protocol.

Timewarrior feeds an extension its configuration as ``key: value`` lines, a
blank line, and then the intervals of the report. Intervals come either as the
native JSON export or as blank-line separated records::

    start: 20240101T090000Z
    end: 20240101T100000Z
    tags: work "deep focus"
    annotation: planning

Every problem is reported as a :class:`ParseError` carrying the offending
line number; nothing is skipped or repaired.
"""

from __future__ import annotations

import json
import logging
import re
import shlex
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from .errors import ParseError
from .models import Interval
from .timestamps import parse_timestamp

logger = logging.getLogger(__name__)

RECORD_KEYS = frozenset({"start", "end", "tags", "annotation"})
# ``key: value`` with whitespace after the colon; ``client:acme`` is a tag.
FIELD_LINE = re.compile(r"^\s*([A-Za-z_][\w.-]*):(\s|$)")


@dataclass(frozen=True, slots=True)
class ExtensionInput:
    header: dict[str, str] = field(default_factory=dict)
    body_lines: list[str] = field(default_factory=list)
    body_first_line: int = 1


def split_extension_input(text: str) -> ExtensionInput:
    """Split the configuration header from the interval body."""
    lines = text.splitlines()

    first = next((line.strip() for line in lines if line.strip()), "")
    if first.startswith("[") or first.startswith("start:"):
        return ExtensionInput(header={}, body_lines=lines, body_first_line=1)

    header: dict[str, str] = {}
    for index, line in enumerate(lines):
        if not line.strip():
            # Body numbering continues from the absolute line after the separator.
            return ExtensionInput(header=header, body_lines=lines[index + 1 :], body_first_line=index + 2)

        key, sep, value = line.partition(":")
        if not sep or not key.strip():
            raise ParseError(index + 1, f"expected 'key: value' in configuration header, got {line!r}")
        header[key.strip()] = value.strip()

    return ExtensionInput(header=header, body_lines=[], body_first_line=len(lines) + 1)


def parse_intervals(lines: Iterable[str], first_line: int = 1) -> list[Interval]:
    """Parse the interval body into intervals, preserving input order."""
    numbered = list(enumerate(lines, start=first_line))

    first = next((line.strip() for _, line in numbered if line.strip()), "")
    if not first:
        return []
    if first.startswith("["):
        intervals = _parse_json_body(numbered)
    else:
        intervals = _parse_record_body(numbered)

    logger.debug("Parsed %d intervals", len(intervals))
    return intervals


def _parse_record_body(numbered: list[tuple[int, str]]) -> list[Interval]:
    intervals: list[Interval] = []
    block: list[tuple[int, str]] = []

    for number, line in numbered:
        if line.strip():
            block.append((number, line))
            continue
        if block:
            intervals.append(_record_to_interval(block))
            block = []

    if block:
        intervals.append(_record_to_interval(block))
    return intervals


def _record_to_interval(block: list[tuple[int, str]]) -> Interval:
    fields: dict[str, tuple[int, str]] = {}
    tags: set[str] = set()

    for number, line in block:
        key, sep, value = line.partition(":")
        key = key.strip()

        if not sep or key not in RECORD_KEYS:
            field_line = FIELD_LINE.match(line)
            if field_line:
                raise ParseError(number, f"unknown field '{field_line.group(1)}:' in record")
            tags.update(_split_tags(line, number))
            continue

        if key == "tags":
            tags.update(_split_tags(value, number))
            continue

        if key in fields:
            if key == "start":
                raise ParseError(number, "unterminated record: second 'start:' without a blank line before it")
            raise ParseError(number, f"duplicate '{key}:' in record")
        fields[key] = (number, value.strip())

    if "start" not in fields:
        raise ParseError(block[0][0], "record has no 'start:' line")

    start = _timestamp(*fields["start"])
    end = None
    if "end" in fields:
        end_line, end_value = fields["end"]
        end = _timestamp(end_line, end_value)
        if start > end:
            raise ParseError(end_line, f"end {end.isoformat()} is before start {start.isoformat()}")

    annotation = None
    if "annotation" in fields:
        annotation = fields["annotation"][1] or None

    return Interval(
        start=start,
        end=end,
        tags=frozenset(tags),
        annotation=annotation,
        line=block[0][0],
    )


def _split_tags(text: str, number: int) -> list[str]:
    try:
        return shlex.split(text)
    except ValueError as exc:
        raise ParseError(number, f"malformed tags: {exc}") from exc


def _timestamp(number: int, value: str) -> datetime:
    try:
        return parse_timestamp(value)
    except ValueError as exc:
        raise ParseError(number, f"malformed timestamp {value!r}") from exc


def _parse_json_body(numbered: list[tuple[int, str]]) -> list[Interval]:
    first_line = numbered[0][0]
    text = "\n".join(line for _, line in numbered)

    try:
        values = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(first_line + exc.lineno - 1, f"invalid interval export: {exc.msg}") from exc

    array_line = next(number for number, line in numbered if line.strip())
    if not isinstance(values, list):
        raise ParseError(array_line, "interval export must be a JSON array")

    # timew writes one object per line; fall back to the array line otherwise.
    object_lines = [number for number, line in numbered if line.lstrip().lstrip("[").lstrip().startswith("{")]
    if len(object_lines) != len(values):
        object_lines = [array_line] * len(values)

    return [_json_to_interval(value, number) for value, number in zip(values, object_lines)]


def _json_to_interval(value, number: int) -> Interval:
    if not isinstance(value, dict):
        raise ParseError(number, "interval must be a JSON object")

    raw_start = value.get("start")
    if not isinstance(raw_start, str):
        raise ParseError(number, "interval has no 'start'")
    start = _timestamp(number, raw_start)

    # No "end" key while time logging is still in progress.
    end = None
    raw_end = value.get("end")
    if raw_end is not None:
        if not isinstance(raw_end, str):
            raise ParseError(number, "interval 'end' must be a string")
        end = _timestamp(number, raw_end)
        if start > end:
            raise ParseError(number, f"end {end.isoformat()} is before start {start.isoformat()}")

    raw_tags = value.get("tags", [])
    if not isinstance(raw_tags, list) or not all(isinstance(tag, str) for tag in raw_tags):
        raise ParseError(number, "interval 'tags' must be a list of strings")

    annotation = value.get("annotation")
    if annotation is not None and not isinstance(annotation, str):
        raise ParseError(number, "interval 'annotation' must be a string")

    return Interval(
        start=start,
        end=end,
        tags=frozenset(raw_tags),
        annotation=annotation or None,
        line=number,
    )
