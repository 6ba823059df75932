from datetime import datetime
from pathlib import Path

import pytest

from timeskwire.layout import PageOptions
from timeskwire.models import DateRange, Interval, ReportConfig


@pytest.fixture
def make_interval():
    def factory(start: datetime, end: datetime | None, *tags: str, annotation: str | None = None, line: int = 0):
        return Interval(start=start, end=end, tags=frozenset(tags), annotation=annotation, line=line)

    return factory


@pytest.fixture
def make_config():
    def factory(start: datetime, end: datetime, kind: str = "default", **page_overrides) -> ReportConfig:
        return ReportConfig(
            kind=kind,
            range=DateRange(start=start, end=end),
            output_path=Path("report.pdf"),
            page_options=PageOptions(**page_overrides),
        )

    return factory
