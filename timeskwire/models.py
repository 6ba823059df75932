from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:
    from .layout import PageOptions


OptionValue = str | int | bool
GroupKey = tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Interval:
    start: datetime
    end: datetime | None
    tags: frozenset[str] = frozenset()
    annotation: str | None = None
    line: int = 0

    @property
    def is_open(self) -> bool:
        return self.end is None


@dataclass(frozen=True, slots=True)
class DateRange:
    """Half-open span ``[start, end)`` in UTC."""

    start: datetime
    end: datetime

    @property
    def is_empty(self) -> bool:
        return self.start >= self.end

    def overlaps(self, interval: Interval, now: datetime | None = None) -> bool:
        """Open intervals overlap up to ``now``; without it only their start is checked."""
        end = interval.end if interval.end is not None else now
        return interval.start < self.end and (end is None or end > self.start)

    def clamped_seconds(self, start: datetime, end: datetime) -> int:
        seconds = int((min(end, self.end) - max(start, self.start)).total_seconds())
        return max(0, seconds)


@dataclass(frozen=True, slots=True)
class ReportConfig:
    kind: str
    range: DateRange
    output_path: Path
    page_options: PageOptions
    options: Mapping[str, OptionValue] = field(default_factory=lambda: MappingProxyType({}))
    title: str | None = None
    timewarrior_version: str | None = None


@dataclass(frozen=True, slots=True)
class GroupEntry:
    interval: Interval
    seconds: int


@dataclass(frozen=True, slots=True)
class AggregatedGroup:
    key: GroupKey
    label: str
    total_seconds: int
    entries: tuple[GroupEntry, ...]

    @property
    def intervals(self) -> tuple[Interval, ...]:
        return tuple(entry.interval for entry in self.entries)


@dataclass(frozen=True, slots=True)
class ReportModel:
    title: str
    kind: str
    range: DateRange
    groups: tuple[AggregatedGroup, ...]
    grand_total_seconds: int
    generated_at: datetime
    subtitle: str = ""

    def share(self, group: AggregatedGroup) -> float:
        if self.grand_total_seconds <= 0:
            return 0.0
        return group.total_seconds / self.grand_total_seconds * 100.0
