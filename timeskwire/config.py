from __future__ import annotations

import logging
import os
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from .errors import ConfigError
from .layout import PAGE_PRESETS
from .models import DateRange, ReportConfig
from .timestamps import parse_timestamp, utc_now

logger = logging.getLogger(__name__)

NAMESPACE = "timeskwire."
KIND_KEY = "timeskwire.report.kind"
FILENAME_KEY = "timeskwire.report.filename"
TITLE_KEY = "timeskwire.report.title"
PAGESIZE_KEY = "timeskwire.report.pagesize"
ENTRIES_KEY = "timeskwire.report.entries"
KNOWN_KEYS = frozenset({KIND_KEY, FILENAME_KEY, TITLE_KEY, PAGESIZE_KEY, ENTRIES_KEY})

RANGE_START_KEY = "temp.report.start"
RANGE_END_KEY = "temp.report.end"
VERSION_KEY = "temp.version"

KIND_ENV = "TIMESKWIRE_REPORT"

DEFAULT_REPORT_KIND = "default"
DEFAULT_REPORT_FILENAME = "report.pdf"
DEFAULT_PAGE_SIZE = "a4"
# An empty temp.report.start means the report is unbounded to the past.
UNBOUNDED_START = datetime(1970, 1, 1, tzinfo=timezone.utc)

_TRUE_VALUES = {"1", "true", "yes", "on", "y"}
_FALSE_VALUES = {"0", "false", "no", "off", "n"}


def resolve_config(
    header: Mapping[str, str],
    environ: Mapping[str, str] | None = None,
    *,
    now: datetime | None = None,
) -> ReportConfig:
    """Resolve the report settings from the extension header and the environment."""
    environ = os.environ if environ is None else environ
    now = now or utc_now()

    unknown = sorted(key for key in header if key.startswith(NAMESPACE) and key not in KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown option(s): {', '.join(unknown)}")

    kind = _resolve_kind(header, environ)
    date_range = DateRange(
        start=_range_bound(header, RANGE_START_KEY, UNBOUNDED_START),
        end=_range_bound(header, RANGE_END_KEY, now),
    )

    page_size = _optional(header, PAGESIZE_KEY) or DEFAULT_PAGE_SIZE
    page_size = page_size.lower()
    if page_size not in PAGE_PRESETS:
        raise ConfigError(
            f"{PAGESIZE_KEY} must be one of {', '.join(sorted(PAGE_PRESETS))}, got {page_size!r}"
        )
    show_entries = _parse_bool(header, ENTRIES_KEY, default=True)

    filename = _optional(header, FILENAME_KEY)
    if filename is None:
        logger.info("No report filename defined, falling back to %s", DEFAULT_REPORT_FILENAME)
        filename = DEFAULT_REPORT_FILENAME

    title = _optional(header, TITLE_KEY)

    options = {
        "kind": kind,
        "filename": filename,
        "pagesize": page_size,
        "entries": show_entries,
    }
    if title is not None:
        options["title"] = title

    return ReportConfig(
        kind=kind,
        range=date_range,
        output_path=Path(filename).expanduser(),
        page_options=replace(PAGE_PRESETS[page_size], show_entries=show_entries),
        options=MappingProxyType(options),
        title=title,
        timewarrior_version=_optional(header, VERSION_KEY),
    )


def _resolve_kind(header: Mapping[str, str], environ: Mapping[str, str]) -> str:
    override = environ.get(KIND_ENV, "").strip()
    if override:
        logger.debug("Report kind %r taken from %s", override, KIND_ENV)
        return override

    if KIND_KEY not in header:
        logger.warning('No report choice made, using "%s"', DEFAULT_REPORT_KIND)
        return DEFAULT_REPORT_KIND

    value = header[KIND_KEY].strip()
    if not value:
        raise ConfigError(f"{KIND_KEY} is set but empty")
    return value


def _range_bound(header: Mapping[str, str], key: str, default: datetime) -> datetime:
    value = _optional(header, key)
    if value is None:
        return default
    try:
        return parse_timestamp(value)
    except ValueError as exc:
        raise ConfigError(f"{key} is not a valid timestamp: {value!r}") from exc


def _optional(header: Mapping[str, str], key: str) -> str | None:
    value = header.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_bool(header: Mapping[str, str], key: str, *, default: bool) -> bool:
    value = _optional(header, key)
    if value is None:
        return default

    lower = value.lower()
    if lower in _TRUE_VALUES:
        return True
    if lower in _FALSE_VALUES:
        return False
    raise ConfigError(f"{key} must be a boolean, got {value!r}")
