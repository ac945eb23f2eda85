"""
Clock-time and datetime utilities.

The scheduler works in minutes since midnight internally; these helpers
convert between that representation, ``datetime.time`` and "HH:MM" strings.
"""

from datetime import datetime, time, timezone
from typing import Optional, Union

# UTC timezone constant
UTC = timezone.utc

MINUTES_PER_DAY = 24 * 60


def now_utc() -> datetime:
    """
    Get current UTC datetime (timezone-aware).

    Replaces datetime.utcnow() which is deprecated in Python 3.12+.

    Returns:
        datetime: Current UTC time with tzinfo set to UTC
    """
    return datetime.now(UTC)


def parse_clock(value: Union[str, time]) -> Optional[int]:
    """
    Parse "HH:MM" (or a time) into minutes since midnight.

    Returns:
        Minutes since midnight, or None if the value is not a valid clock time
    """
    if isinstance(value, time):
        return time_to_minutes(value)
    parts = value.split(":")
    if len(parts) != 2:
        return None
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError:
        return None
    if hours < 0 or hours > 23 or minutes < 0 or minutes > 59:
        return None
    return hours * 60 + minutes


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    """
    Convert minutes since midnight to a time.

    1440 (end of day) is clamped to 23:59 since ``time`` cannot express 24:00.
    """
    if minutes >= MINUTES_PER_DAY:
        return time(23, 59)
    return time(minutes // 60, minutes % 60)


def format_clock(value: time) -> str:
    """Format a time as "HH:MM"."""
    return value.strftime("%H:%M")


def round_up(minutes: int, step: int) -> int:
    return -(-minutes // step) * step


def round_down(minutes: int, step: int) -> int:
    return (minutes // step) * step
