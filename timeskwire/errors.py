from __future__ import annotations


class TimeskwireError(Exception):
    """Base class for every failure that aborts a report run."""

    kind = "Error"


class ParseError(TimeskwireError):
    kind = "ParseError"

    def __init__(self, line: int, reason: str) -> None:
        super().__init__(f"line {line}: {reason}")
        self.line = line
        self.reason = reason


class ConfigError(TimeskwireError):
    kind = "ConfigError"


class AggregationError(TimeskwireError):
    kind = "AggregationError"


class EmptyRangeError(AggregationError):
    def __init__(self, start, end) -> None:
        super().__init__(f"report range is empty: {start.isoformat()} >= {end.isoformat()}")
        self.start = start
        self.end = end


class UnknownKindError(AggregationError):
    def __init__(self, name: str, known: list[str]) -> None:
        super().__init__(f"unknown report kind {name!r} (known: {', '.join(known)})")
        self.name = name
        self.known = known


class RenderError(TimeskwireError):
    kind = "RenderError"


class SinkFailureError(RenderError):
    pass


class InstallError(TimeskwireError):
    kind = "InstallError"
