from __future__ import annotations

from datetime import datetime, timezone

TIMEW_DATETIME_FORMAT = "%Y%m%dT%H%M%SZ"


def utc_now() -> datetime:
    # Whole seconds keep every duration sum exact.
    return datetime.now(timezone.utc).replace(microsecond=0)


def parse_timestamp(value: str) -> datetime:
    """Parse a Timewarrior or ISO-8601 timestamp and normalize to UTC.

    Raises ValueError for anything unparsable.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty timestamp")

    try:
        parsed = datetime.strptime(text, TIMEW_DATETIME_FORMAT)
    except ValueError:
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is None:
        # Exported values are already UTC; the compact form carries no offset object.
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError as exc:
        # Offsets that push year 1 or 9999 past the datetime bounds.
        raise ValueError(f"timestamp out of range: {text!r}") from exc


def format_seconds(total_seconds: int) -> str:
    """Render a duration as HH:MM:SS for consistent report output."""
    safe_seconds = max(0, int(total_seconds))
    hours, remainder = divmod(safe_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02}:{minutes:02}:{seconds:02}"
