"""Candidate slot generation and time-of-day filtering.

Slots are fixed-size steps through a working day. A step is dropped only
if its start time falls inside a break; the service duration is not
checked against breaks or closing time.
"""
from datetime import datetime, time, timedelta
from enum import Enum
from typing import List, Sequence

from clinic_scheduling import config
from clinic_scheduling.models import DaySchedule, TimeSlot
from clinic_scheduling.timeutils import parse_time
from clinic_scheduling.working_hours import in_break


def generate_candidate_slots(
    day: DaySchedule,
    granularity_minutes: int = config.SLOT_GRANULARITY_MINUTES
) -> List[time]:
    """
    Generate ordered candidate start times for one working day.

    Args:
        day: Working-hours entry of a staff member at a centre for one day
        granularity_minutes: Step size (default 30)

    Returns:
        Ascending start times in [start, end) outside break windows;
        empty if the day is inactive

    Example:
        08:00-10:00 with a 09:00-09:30 break and 30 minute steps
        -> [08:00, 08:30, 09:30]
    """
    if granularity_minutes <= 0:
        raise ValueError("granularity_minutes must be positive")
    if day is None or not day.is_active:
        return []

    step = timedelta(minutes=granularity_minutes)
    anchor = datetime.combine(datetime.min.date(), day.start)
    end = datetime.combine(datetime.min.date(), day.end)

    slots = []
    current = anchor
    while current < end:
        moment = current.time()
        if not in_break(day, moment):
            slots.append(moment)
        current += step

    return slots


class TimeOfDay(str, Enum):
    """Time of day preferences."""
    MORNING = "morning"  # Before 12:00
    AFTERNOON = "afternoon"  # 12:00 and after
    ANY = "any"


def filter_by_time_of_day(
    slots: Sequence[TimeSlot],
    preference: TimeOfDay
) -> List[TimeSlot]:
    """
    Filter slots by time of day preference.

    Args:
        slots: Marked slots
        preference: Morning, afternoon, or any

    Returns:
        Filtered slots, order preserved
    """
    if preference == TimeOfDay.ANY:
        return list(slots)

    cutoff = time(hour=config.MORNING_CUTOFF_HOUR)
    if preference == TimeOfDay.MORNING:
        return [slot for slot in slots if parse_time(slot.time) < cutoff]
    return [slot for slot in slots if parse_time(slot.time) >= cutoff]
