"""Report kinds: named grouping strategies selected by configuration.

A kind decides how intervals are bucketed, whether intervals that are still
running count, and how the resulting groups are ordered. Kinds are looked up
by name in :data:`REPORT_KINDS`, which is built once from a static list.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Iterable, Mapping, Protocol

from .errors import UnknownKindError
from .models import AggregatedGroup, DateRange, GroupKey, Interval

UNTAGGED_LABEL = "(untagged)"


class ReportKind(Protocol):
    name: str
    description: str
    includes_open: bool

    def group_key(self, interval: Interval, date_range: DateRange) -> GroupKey: ...

    def label(self, key: GroupKey) -> str: ...

    def include(self, interval: Interval, date_range: DateRange, now: datetime) -> bool: ...

    def sort_order(self, groups: Iterable[AggregatedGroup]) -> list[AggregatedGroup]: ...


def by_total_desc(groups: Iterable[AggregatedGroup]) -> list[AggregatedGroup]:
    # Keys are unique per run, so this is a total order.
    return sorted(groups, key=lambda group: (-group.total_seconds, group.key))


@dataclass(frozen=True, slots=True)
class TagSetKind:
    """Time spent per unique tag combination. Running intervals count up to now."""

    name: str = "default"
    description: str = "Time spent by tags"
    includes_open: bool = True

    def group_key(self, interval: Interval, date_range: DateRange) -> GroupKey:
        return tuple(sorted(interval.tags))

    def label(self, key: GroupKey) -> str:
        return ", ".join(key) if key else UNTAGGED_LABEL

    def include(self, interval: Interval, date_range: DateRange, now: datetime) -> bool:
        if interval.is_open and not self.includes_open:
            return False
        return date_range.overlaps(interval, now)

    def sort_order(self, groups: Iterable[AggregatedGroup]) -> list[AggregatedGroup]:
        return by_total_desc(groups)


@dataclass(frozen=True, slots=True)
class DailyKind:
    """Time spent per UTC day of the interval start. Only finished intervals count."""

    name: str = "daily"
    description: str = "Time spent by day"
    includes_open: bool = False

    def group_key(self, interval: Interval, date_range: DateRange) -> GroupKey:
        # Time clamped into the range belongs to the first day of the range.
        return (max(interval.start, date_range.start).date().isoformat(),)

    def label(self, key: GroupKey) -> str:
        return key[0]

    def include(self, interval: Interval, date_range: DateRange, now: datetime) -> bool:
        if interval.is_open and not self.includes_open:
            return False
        return date_range.overlaps(interval, now)

    def sort_order(self, groups: Iterable[AggregatedGroup]) -> list[AggregatedGroup]:
        return sorted(groups, key=lambda group: group.key)


REPORT_KINDS: Mapping[str, ReportKind] = MappingProxyType(
    {kind.name: kind for kind in (TagSetKind(), DailyKind())}
)


def get_kind(name: str, registry: Mapping[str, ReportKind] = REPORT_KINDS) -> ReportKind:
    try:
        return registry[name]
    except KeyError:
        raise UnknownKindError(name, sorted(registry)) from None
