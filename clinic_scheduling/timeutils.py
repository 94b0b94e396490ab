"""HH:MM helpers shared by the models, slot engine and mutation API.

Appointment times are carried as zero-padded 24h strings. Appointments
never cross midnight, so arithmetic that would roll past 24:00 is an error
rather than a wrap-around.
"""
from datetime import datetime, time
from typing import Union

MINUTES_PER_DAY = 24 * 60

TimeLike = Union[str, time]


def parse_time(value: TimeLike) -> time:
    """Parse "HH:MM" (or pass a time through). Raises ValueError on bad input."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    return datetime.strptime(value.strip(), "%H:%M").time()


def format_time(value: TimeLike) -> str:
    """Normalise to zero-padded "HH:MM"."""
    return parse_time(value).strftime("%H:%M")


def to_minutes(value: TimeLike) -> int:
    """Minutes since midnight."""
    parsed = parse_time(value)
    return parsed.hour * 60 + parsed.minute


def from_minutes(total: int) -> time:
    """Inverse of to_minutes for 0 <= total < 24h."""
    if not 0 <= total < MINUTES_PER_DAY:
        raise ValueError(f"{total} minutes is outside a single day")
    return time(hour=total // 60, minute=total % 60)


def minutes_between(start: TimeLike, end: TimeLike) -> int:
    """Signed number of minutes from start to end."""
    return to_minutes(end) - to_minutes(start)


def add_minutes(start: TimeLike, minutes: int) -> str:
    """
    Add minutes to a start time, rolling minutes over into hours.

    Args:
        start: "HH:MM" or time
        minutes: Minutes to add (e.g. a service duration)

    Returns:
        Zero-padded "HH:MM" string

    Raises:
        ValueError: If the result would fall on the next day

    Example:
        >>> add_minutes("08:50", 45)
        '09:35'
    """
    return from_minutes(to_minutes(start) + minutes).strftime("%H:%M")
