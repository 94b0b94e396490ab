"""Tests for working-hours lookup and HH:MM arithmetic."""
from datetime import date, time

import pytest

from clinic_scheduling.models import DaySchedule, WeeklySchedule, Weekday
from clinic_scheduling.timeutils import add_minutes, format_time, minutes_between, parse_time
from clinic_scheduling.working_hours import in_break, is_open_at, weekday_of


MONDAY = date(2025, 6, 2)
SATURDAY = date(2025, 6, 7)
SUNDAY = date(2025, 6, 8)


@pytest.fixture
def clinic_week():
    """Weekday hours with a lunch break, short Saturday, closed Sunday."""
    weekday = {
        "is_active": True,
        "start": "08:00",
        "end": "17:00",
        "breaks": [{"start": "12:00", "end": "13:00", "description": "Lunch Break"}],
    }
    return WeeklySchedule.model_validate({
        "Monday": weekday,
        "TUESDAY": weekday,
        "wednesday": weekday,
        "thursday": weekday,
        "friday": weekday,
        "saturday": {"is_active": True, "start": "09:00", "end": "13:00"},
        "sunday": {"is_active": False, "start": "", "end": ""},
    })


class TestWeekdayLookup:
    """Weekday keys come from date.weekday(), not locale formatting."""

    def test_known_dates(self):
        assert weekday_of(MONDAY) == Weekday.MONDAY
        assert weekday_of(SATURDAY) == Weekday.SATURDAY
        assert weekday_of(SUNDAY) == Weekday.SUNDAY

    def test_every_day_of_a_week(self):
        days = [weekday_of(date(2025, 6, 2 + offset)) for offset in range(7)]
        assert days == list(Weekday)


class TestWeeklySchedule:
    """Schedule normalisation."""

    def test_keys_are_case_insensitive(self, clinic_week):
        assert clinic_week[Weekday.MONDAY].is_active
        assert clinic_week["tuesday"].start == time(8, 0)

    def test_missing_days_are_closed(self):
        schedule = WeeklySchedule.model_validate({
            "monday": {"is_active": True, "start": "09:00", "end": "10:00"},
        })

        assert len(schedule) == 7
        assert schedule.active_days() == [Weekday.MONDAY]
        assert not schedule[Weekday.FRIDAY].is_active

    def test_unknown_day_name_rejected(self):
        with pytest.raises(ValueError):
            WeeklySchedule.model_validate({"funday": {"is_active": False}})

    def test_active_day_needs_ordered_times(self):
        with pytest.raises(ValueError):
            DaySchedule(is_active=True, start="17:00", end="08:00")

    def test_inactive_day_ignores_blank_times(self):
        day = DaySchedule(is_active=False, start="", end="")
        assert day.start is None


class TestIsOpenAt:
    """Open/closed predicate."""

    def test_open_inside_hours(self, clinic_week):
        assert is_open_at(clinic_week, MONDAY, "08:00")
        assert is_open_at(clinic_week, MONDAY, "16:59")

    def test_end_is_exclusive(self, clinic_week):
        assert not is_open_at(clinic_week, MONDAY, "17:00")

    def test_closed_during_break(self, clinic_week):
        assert not is_open_at(clinic_week, MONDAY, "12:00")
        assert not is_open_at(clinic_week, MONDAY, "12:30")
        assert is_open_at(clinic_week, MONDAY, "13:00")

    def test_closed_on_inactive_day(self, clinic_week):
        assert not is_open_at(clinic_week, SUNDAY, "10:00")

    def test_short_saturday(self, clinic_week):
        assert is_open_at(clinic_week, SATURDAY, "12:30")
        assert not is_open_at(clinic_week, SATURDAY, "13:00")

    def test_missing_schedule_is_closed(self):
        assert not is_open_at(None, MONDAY, "10:00")

    def test_overlapping_breaks(self):
        day = DaySchedule.model_validate({
            "is_active": True,
            "start": "08:00",
            "end": "12:00",
            "breaks": [
                {"start": "10:00", "end": "10:45"},
                {"start": "09:30", "end": "10:15"},
            ],
        })

        assert in_break(day, "09:30")
        assert in_break(day, "10:30")
        assert not in_break(day, "10:45")


class TestTimeArithmetic:
    """HH:MM helpers."""

    def test_end_time_rolls_minutes_into_hours(self):
        assert add_minutes("08:50", 45) == "09:35"

    def test_zero_padding(self):
        assert add_minutes("7:05", 5) == "07:10"
        assert format_time(time(9, 0)) == "09:00"

    def test_long_service(self):
        assert add_minutes("09:00", 120) == "11:00"

    def test_crossing_midnight_rejected(self):
        with pytest.raises(ValueError):
            add_minutes("23:30", 45)

    def test_minutes_between(self):
        assert minutes_between("09:15", "10:00") == 45

    def test_invalid_time_rejected(self):
        with pytest.raises(ValueError):
            parse_time("25:00")
