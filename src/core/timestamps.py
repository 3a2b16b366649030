"""Timestamp parsing, formatting, and day arithmetic.

Timestamps are naive UTC datetimes inside the process and
``YYYY-MM-DD HH:MM:SS`` strings in storage, which keeps SQL
ordering on text columns chronological.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
import math

from core.constants import SECONDS_PER_DAY, STORAGE_DATE_FORMAT, STORAGE_TIMESTAMP_FORMAT

_ZERO_DATE_PREFIX = "0000-00-00"


def parse_timestamp(raw_value: str | None) -> datetime | None:
    """Parse a loosely formatted timestamp into naive UTC.

    Accepts ``YYYY-MM-DD``, ``YYYY-MM-DD HH:MM:SS`` and ISO 8601 values
    with ``T`` separators, fractional seconds, ``Z`` or numeric offsets.

    Args:
        raw_value: Raw timestamp text.

    Returns:
        Parsed datetime, or None for empty and zero-date values.

    Raises:
        ValueError: If the value is not a recognizable timestamp.
    """
    if raw_value is None:
        return None
    text = raw_value.strip()
    if not text or text.startswith(_ZERO_DATE_PREFIX):
        return None
    if len(text) == 10:
        return datetime.strptime(text, STORAGE_DATE_FORMAT)
    parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed.replace(microsecond=0)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp in storage format."""
    return value.strftime(STORAGE_TIMESTAMP_FORMAT)


def format_optional_timestamp(value: datetime | None) -> str | None:
    return format_timestamp(value) if value is not None else None


def parse_storage_timestamp(raw_value: str | None) -> datetime | None:
    """Parse a storage-format timestamp, tolerating date-only values."""
    if not raw_value:
        return None
    if len(raw_value) == 10:
        return datetime.strptime(raw_value, STORAGE_DATE_FORMAT)
    return datetime.strptime(raw_value, STORAGE_TIMESTAMP_FORMAT)


def format_date(value: date) -> str:
    return value.strftime(STORAGE_DATE_FORMAT)


def parse_date(raw_value: str | None) -> date | None:
    if not raw_value:
        return None
    return datetime.strptime(raw_value[:10], STORAGE_DATE_FORMAT).date()


def start_of_day(value: date) -> datetime:
    """Return midnight of a calendar date as a naive datetime."""
    return datetime.combine(value, time.min)


def days_between(earlier: datetime, later: datetime) -> float:
    """Return fractional days from earlier to later."""
    return (later - earlier).total_seconds() / SECONDS_PER_DAY


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """Return whole days between timestamps, rounded half-up and floored at zero.

    Args:
        earlier: Start timestamp.
        later: End timestamp.

    Returns:
        Non-negative whole day count.
    """
    return max(0, math.floor(days_between(earlier, later) + 0.5))


def utc_now() -> datetime:
    """Return the current naive UTC time truncated to seconds."""
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def from_epoch(seconds: float) -> datetime:
    """Convert epoch seconds to a naive UTC datetime truncated to seconds."""
    return datetime.fromtimestamp(seconds, timezone.utc).replace(tzinfo=None, microsecond=0)
