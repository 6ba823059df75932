from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Mapping

from .errors import EmptyRangeError
from .kinds import REPORT_KINDS, ReportKind, get_kind
from .models import AggregatedGroup, GroupEntry, GroupKey, Interval, ReportConfig, ReportModel
from .timestamps import utc_now

logger = logging.getLogger(__name__)


def aggregate(
    intervals: Iterable[Interval],
    config: ReportConfig,
    *,
    now: datetime | None = None,
    registry: Mapping[str, ReportKind] = REPORT_KINDS,
) -> ReportModel:
    """Group intervals per the configured kind and total them inside the range."""
    date_range = config.range
    if date_range.is_empty:
        raise EmptyRangeError(date_range.start, date_range.end)

    kind = get_kind(config.kind, registry)
    now = now or utc_now()

    # dicts keep insertion order, so entries stay in input order per group.
    buckets: dict[GroupKey, list[GroupEntry]] = {}
    for interval in intervals:
        if not kind.include(interval, date_range, now):
            continue

        if interval.end is None:
            logger.info("Time logging still in progress, using now (%s) as end", now.isoformat())
        end = interval.end if interval.end is not None else now

        seconds = date_range.clamped_seconds(interval.start, end)
        key = kind.group_key(interval, date_range)
        buckets.setdefault(key, []).append(GroupEntry(interval=interval, seconds=seconds))

    groups = [
        AggregatedGroup(
            key=key,
            label=kind.label(key),
            total_seconds=sum(entry.seconds for entry in entries),
            entries=tuple(entries),
        )
        for key, entries in buckets.items()
    ]
    ordered = tuple(kind.sort_order(groups))

    # Summed from the groups so the total always matches the visible breakdown.
    grand_total = sum(group.total_seconds for group in ordered)
    logger.debug("Aggregated %d groups, %d seconds total", len(ordered), grand_total)

    return ReportModel(
        title=config.title or default_title(config),
        kind=kind.name,
        range=date_range,
        groups=ordered,
        grand_total_seconds=grand_total,
        generated_at=now,
        subtitle=kind.description,
    )


def default_title(config: ReportConfig) -> str:
    return f"{config.range.start:%Y-%m-%d} - {config.range.end:%Y-%m-%d}"
