"""Working-hours queries for centres and staff.

Weekday lookup goes through date.weekday(), never through a locale
formatting call, so schedules keyed by English day names resolve the same
way on every host.
"""
from datetime import date

from clinic_scheduling.models import DaySchedule, WeeklySchedule, Weekday
from clinic_scheduling.timeutils import TimeLike, parse_time

_WEEKDAYS = list(Weekday)


def weekday_of(day: date) -> Weekday:
    """Canonical schedule key for a calendar date."""
    return _WEEKDAYS[day.weekday()]


def day_schedule_for(schedule: WeeklySchedule, day: date) -> DaySchedule:
    """The DaySchedule that applies on a calendar date (closed if absent)."""
    if schedule is None:
        return DaySchedule()
    return schedule.for_day(weekday_of(day))


def in_break(day: DaySchedule, moment: TimeLike) -> bool:
    """True if moment falls inside any break window of the day."""
    moment = parse_time(moment)
    return any(window.contains(moment) for window in day.breaks)


def is_within_hours(day: DaySchedule, moment: TimeLike) -> bool:
    """
    True if the day is active, start <= moment < end, and moment is not
    inside a break.
    """
    if not day.is_active:
        return False
    moment = parse_time(moment)
    if not (day.start <= moment < day.end):
        return False
    return not in_break(day, moment)


def is_open_at(schedule: WeeklySchedule, day: date, moment: TimeLike) -> bool:
    """
    Check whether a centre is open (or a staff member working) at a moment.

    Missing days and inactive days are closed; malformed schedules never
    raise.

    Args:
        schedule: Weekly schedule of a centre or of a staff member at a centre
        day: Calendar date
        moment: Local time ("HH:MM" or time)

    Returns:
        True if open at that instant, excluding breaks
    """
    return is_within_hours(day_schedule_for(schedule, day), moment)

