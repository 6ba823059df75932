from datetime import datetime, timedelta, timezone
from types import MappingProxyType

import pytest

from timeskwire.aggregator import aggregate
from timeskwire.errors import EmptyRangeError, UnknownKindError
from timeskwire.kinds import REPORT_KINDS, TagSetKind, get_kind

DAY_START = datetime(2024, 1, 1, tzinfo=timezone.utc)
DAY_END = datetime(2024, 1, 2, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0, day: int = 1) -> datetime:
    return datetime(2024, 1, day, hour, minute, tzinfo=timezone.utc)


def test_two_intervals_end_to_end(make_interval, make_config) -> None:
    intervals = [
        make_interval(at(9), at(10), "work"),
        make_interval(at(10), at(10, 30), "meeting"),
    ]

    model = aggregate(intervals, make_config(DAY_START, DAY_END), now=at(12))

    assert [group.label for group in model.groups] == ["work", "meeting"]
    assert [group.total_seconds for group in model.groups] == [3600, 1800]
    assert model.grand_total_seconds == 5400
    assert model.title == "2024-01-01 - 2024-01-02"
    assert model.subtitle == "Time spent by tags"


def test_grand_total_matches_groups(make_interval, make_config) -> None:
    intervals = [
        make_interval(at(8), at(8, 7), "a"),
        make_interval(at(9), at(9, 13), "b", "a"),
        make_interval(at(23, 50), at(1, 5, day=2), "c"),
        make_interval(at(11), at(11, 1)),
    ]

    model = aggregate(intervals, make_config(DAY_START, DAY_END), now=at(12))

    assert model.grand_total_seconds == sum(group.total_seconds for group in model.groups)
    assert model.grand_total_seconds == (7 + 13 + 10 + 1) * 60


def test_grouping_ignores_input_order(make_interval, make_config) -> None:
    intervals = [
        make_interval(at(9), at(10), "work"),
        make_interval(at(10), at(10, 30), "meeting"),
        make_interval(at(11), at(11, 45), "work"),
        make_interval(at(13), at(13, 10), "meeting"),
    ]
    config = make_config(DAY_START, DAY_END)

    forward = aggregate(intervals, config, now=at(14))
    backward = aggregate(list(reversed(intervals)), config, now=at(14))

    assert [(g.key, g.total_seconds) for g in forward.groups] == [(g.key, g.total_seconds) for g in backward.groups]
    work = forward.groups[0]
    assert work.intervals == (intervals[0], intervals[2])
    assert backward.groups[0].intervals == (intervals[2], intervals[0])


def test_ties_are_broken_by_key(make_interval, make_config) -> None:
    intervals = [
        make_interval(at(9), at(10), "beta"),
        make_interval(at(10), at(11), "alpha"),
        make_interval(at(11), at(11, 30), "gamma"),
    ]
    config = make_config(DAY_START, DAY_END)

    first = aggregate(intervals, config, now=at(12))
    second = aggregate(intervals, config, now=at(12))

    assert [group.label for group in first.groups] == ["alpha", "beta", "gamma"]
    assert first.groups == second.groups


def test_intervals_outside_range_are_dropped(make_interval, make_config) -> None:
    intervals = [
        make_interval(at(9, day=2), at(10, day=2), "tomorrow"),
        make_interval(datetime(2023, 12, 31, 9, tzinfo=timezone.utc), DAY_START, "yesterday"),
        make_interval(at(9), at(9, 30), "today"),
    ]

    model = aggregate(intervals, make_config(DAY_START, DAY_END), now=at(12, day=3))

    assert [group.label for group in model.groups] == ["today"]
    assert model.grand_total_seconds == 1800


def test_partial_overlap_is_clamped(make_interval, make_config) -> None:
    interval = make_interval(datetime(2023, 12, 31, 23, 0, tzinfo=timezone.utc), at(0, 30), "night")

    model = aggregate([interval], make_config(DAY_START, DAY_END), now=at(12))

    assert model.groups[0].total_seconds == 1800
    assert model.groups[0].entries[0].seconds == 1800


def test_open_interval_counts_until_now(make_interval, make_config) -> None:
    interval = make_interval(at(9), None, "work")

    model = aggregate([interval], make_config(DAY_START, DAY_END), now=at(9, 45))

    assert model.grand_total_seconds == 45 * 60


def test_open_interval_is_clamped_to_range_end(make_interval, make_config) -> None:
    interval = make_interval(at(23), None, "work")

    model = aggregate([interval], make_config(DAY_START, DAY_END), now=at(5, day=2))

    assert model.grand_total_seconds == 3600


def test_daily_kind_excludes_open_intervals(make_interval, make_config) -> None:
    intervals = [
        make_interval(at(9, day=2), at(10, day=2), "work"),
        make_interval(at(9), at(9, 30), "work"),
        make_interval(at(11, day=2), None, "work"),
    ]
    config = make_config(DAY_START, DAY_START + timedelta(days=3), kind="daily")

    model = aggregate(intervals, config, now=at(12, day=2))

    assert get_kind("daily").includes_open is False
    assert [group.label for group in model.groups] == ["2024-01-01", "2024-01-02"]
    assert [group.total_seconds for group in model.groups] == [1800, 3600]


def test_untagged_group_label(make_interval, make_config) -> None:
    model = aggregate([make_interval(at(9), at(10))], make_config(DAY_START, DAY_END), now=at(12))

    assert model.groups[0].key == ()
    assert model.groups[0].label == "(untagged)"


def test_empty_range_is_rejected(make_interval, make_config) -> None:
    with pytest.raises(EmptyRangeError):
        aggregate([], make_config(DAY_END, DAY_START))
    with pytest.raises(EmptyRangeError):
        aggregate([], make_config(DAY_START, DAY_START))


def test_unknown_kind_is_rejected(make_config) -> None:
    with pytest.raises(UnknownKindError) as excinfo:
        aggregate([], make_config(DAY_START, DAY_END, kind="weekly"))

    assert excinfo.value.known == ["daily", "default"]


def test_custom_registry(make_interval, make_config) -> None:
    registry = MappingProxyType({"strict": TagSetKind(name="strict", includes_open=False)})
    intervals = [make_interval(at(9), at(10), "work"), make_interval(at(11), None, "work")]

    model = aggregate(intervals, make_config(DAY_START, DAY_END, kind="strict"), now=at(12), registry=registry)

    assert model.kind == "strict"
    assert model.grand_total_seconds == 3600


def test_registry_is_read_only() -> None:
    with pytest.raises(TypeError):
        REPORT_KINDS["other"] = TagSetKind(name="other")


def test_open_interval_ending_before_range_is_dropped(make_interval, make_config) -> None:
    interval = make_interval(at(9), None, "work")
    config = make_config(at(0, day=2), at(0, day=3))

    model = aggregate([interval], config, now=at(12))

    assert model.groups == ()
    assert model.grand_total_seconds == 0


def test_daily_key_uses_the_clamped_start(make_interval, make_config) -> None:
    interval = make_interval(datetime(2023, 12, 31, 23, 0, tzinfo=timezone.utc), at(0, 30), "night")

    model = aggregate([interval], make_config(DAY_START, DAY_END, kind="daily"), now=at(12))

    assert [(group.label, group.total_seconds) for group in model.groups] == [("2024-01-01", 1800)]
