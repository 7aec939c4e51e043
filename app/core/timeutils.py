"""Date and wall-clock helpers shared by availability, booking and waitlist code."""

import re
from datetime import UTC, date, datetime, time
from typing import Any

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(:[0-5]\d)?$")

MINUTES_PER_DAY = 24 * 60


def normalize_time(value: str) -> str:
    """
    Normalize an ``HH:MM`` or ``HH:MM:SS`` string to ``HH:MM:SS``.

    Raises:
        ValueError: If the value is not a valid 24h wall-clock time
    """
    if not isinstance(value, str):
        raise ValueError("time must be a string in HH:MM or HH:MM:SS format")
    trimmed = value.strip()
    if not TIME_PATTERN.match(trimmed):
        raise ValueError("time must be in HH:MM or HH:MM:SS format")
    if len(trimmed) == 5:
        return f"{trimmed}:00"
    return trimmed


def parse_time(value: Any) -> time:
    """Parse a wall-clock value into a ``time`` (seconds kept, microseconds dropped)."""
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)
    return time.fromisoformat(normalize_time(value))


def parse_date(value: Any) -> date:
    """
    Parse a ``YYYY-MM-DD`` calendar date.

    Raises:
        ValueError: If the format is wrong or the date does not exist
    """
    if isinstance(value, datetime):
        raise ValueError("expected a calendar date, not a timestamp")
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value.strip()):
        raise ValueError("date must be in YYYY-MM-DD format")
    return date.fromisoformat(value.strip())


def format_time(value: time) -> str:
    """Render a time as ``HH:MM:SS``."""
    return value.strftime("%H:%M:%S")


def time_to_minutes(value: time) -> int:
    """Minutes since midnight; seconds are ignored."""
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    """Inverse of ``time_to_minutes`` for values inside one day."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"minutes out of range for a single day: {minutes}")
    return time(minutes // 60, minutes % 60)


def duration_minutes(start: time, end: time) -> int:
    """Length of the ``[start, end)`` window in whole minutes."""
    return time_to_minutes(end) - time_to_minutes(start)


def ranges_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """Half-open interval intersection test: ``a_start < b_end and a_end > b_start``."""
    return start_a < end_b and end_a > start_b


def day_of_week(value: date) -> int:
    """Weekday with 0 = Sunday … 6 = Saturday, as stored on availability patterns."""
    return (value.weekday() + 1) % 7


def today_utc() -> date:
    """Current calendar date in UTC."""
    return datetime.now(UTC).date()
