"""Data model for the scheduling core.

Catalog records (centres, services, staff, clients) are owned by the
surrounding dashboard and only read here. Appointments are owned by the
mutation API and are immutable values: every change produces a new record.
"""
from datetime import date, datetime, time
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator, model_validator

from clinic_scheduling import config
from clinic_scheduling.timeutils import add_minutes, format_time, minutes_between


class Weekday(str, Enum):
    """Canonical schedule keys, Monday first (matches date.weekday())."""
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class LocationMode(str, Enum):
    IN_PERSON = "in-person"
    VIRTUAL = "virtual"


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class StaffRole(str, Enum):
    ADMIN = "admin"
    PRACTITIONER = "practitioner"
    CONSULTANT = "consultant"


class StaffStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on-leave"


class CentreStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class ServiceCategory(str, Enum):
    CONSULTATION = "consultation"
    SCAN = "scan"
    THERAPY = "therapy"
    ASSESSMENT = "assessment"


def _blank_to_none(value):
    # Closed days arrive with empty start/end strings
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ---------------------------------------------------------------------------
# Working hours
# ---------------------------------------------------------------------------

class BreakWindow(BaseModel):
    """A pause inside a working day; [start, end)."""
    model_config = ConfigDict(frozen=True)

    start: time
    end: time
    description: Optional[str] = None

    @model_validator(mode="after")
    def check_order(self):
        if self.start >= self.end:
            raise ValueError("Break start must be before break end")
        return self

    def contains(self, moment: time) -> bool:
        return self.start <= moment < self.end


class DaySchedule(BaseModel):
    """
    Open/close (centre) or start/end (staff) times for one weekday.

    start/end are ignored when is_active is False. Breaks may be unsorted
    or overlapping.
    """
    model_config = ConfigDict(frozen=True)

    is_active: bool = False
    start: Optional[time] = None
    end: Optional[time] = None
    breaks: List[BreakWindow] = Field(default_factory=list)

    @field_validator("start", "end", mode="before")
    @classmethod
    def blank_times(cls, v):
        return _blank_to_none(v)

    @model_validator(mode="after")
    def check_open_interval(self):
        if self.is_active:
            if self.start is None or self.end is None:
                raise ValueError("Active days need both a start and an end time")
            if self.start >= self.end:
                raise ValueError("Day start must be before day end")
        return self


class WeeklySchedule(RootModel[Dict[Weekday, DaySchedule]]):
    """
    Weekday -> DaySchedule with exactly seven entries.

    Day names are matched case-insensitively; omitted days are closed.
    """
    root: Dict[Weekday, DaySchedule] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def normalise_day_names(cls, data):
        if isinstance(data, dict):
            normalised = {}
            for key, value in data.items():
                name = key.value if isinstance(key, Weekday) else str(key)
                normalised[name.strip().lower()] = value
            return normalised
        return data

    @model_validator(mode="after")
    def fill_missing_days(self):
        for day in Weekday:
            self.root.setdefault(day, DaySchedule())
        return self

    def for_day(self, day: Weekday) -> DaySchedule:
        return self.root.get(day) or DaySchedule()

    def __getitem__(self, day) -> DaySchedule:
        return self.for_day(Weekday(day))

    def __len__(self) -> int:
        return len(self.root)

    def active_days(self) -> List[Weekday]:
        return [day for day in Weekday if self.for_day(day).is_active]


# ---------------------------------------------------------------------------
# Catalog records (read-only to the scheduling core)
# ---------------------------------------------------------------------------

class Client(BaseModel):
    """Client as returned by the client lookup."""
    id: str
    name: str = Field(..., min_length=1)
    email: str = ""
    phone: str = ""
    country: str = ""
    city: str = ""

    @field_validator("country")
    @classmethod
    def upper_country(cls, v: str) -> str:
        return v.strip().upper()


class CentreCapacity(BaseModel):
    """Advisory limits; the slot engine does not enforce them."""
    rooms: int = Field(default=1, ge=0)
    max_concurrent_appointments: int = Field(default=1, ge=0)
    max_daily_appointments: int = Field(default=0, ge=0)


class Centre(BaseModel):
    """Treatment centre."""
    id: str
    name: str
    code: str = ""
    country: str = Field(..., min_length=2, max_length=2, description="ISO 3166-1 alpha-2")
    city: str = ""
    timezone: str = "UTC"
    services: List[str] = Field(default_factory=list)
    working_hours: WeeklySchedule = Field(default_factory=WeeklySchedule)
    capacity: CentreCapacity = Field(default_factory=CentreCapacity)
    status: CentreStatus = CentreStatus.ACTIVE
    is_headquarters: bool = False

    @field_validator("country")
    @classmethod
    def upper_country(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def is_active(self) -> bool:
        return self.status == CentreStatus.ACTIVE

    def offers(self, service_id: str) -> bool:
        return service_id in self.services


class Service(BaseModel):
    """Bookable service type."""
    id: str
    name: str = Field(..., min_length=1)
    description: str = ""
    duration: int = Field(..., gt=0, description="Duration in minutes")
    price: float = Field(..., ge=0)
    category: ServiceCategory = ServiceCategory.CONSULTATION
    is_active: bool = True


class TimeOff(BaseModel):
    """Inclusive date range on which a staff member takes no bookings."""
    start_date: date
    end_date: date
    reason: str = ""

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("Time off cannot end before it starts")
        return self

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class StaffMember(BaseModel):
    """Practitioner, consultant or admin with per-centre working hours."""
    id: str
    first_name: str
    last_name: str
    email: str = ""
    phone: str = ""
    title: Optional[str] = None
    role: StaffRole = StaffRole.PRACTITIONER
    status: StaffStatus = StaffStatus.ACTIVE
    is_available_for_booking: bool = True
    assigned_centres: List[str] = Field(default_factory=list)
    primary_centre: Optional[str] = None
    available_services: List[str] = Field(default_factory=list)
    working_hours: Dict[str, WeeklySchedule] = Field(default_factory=dict)
    time_off: List[TimeOff] = Field(default_factory=list)
    max_daily_appointments: int = Field(default=0, ge=0)
    appointment_duration: int = Field(default=config.DEFAULT_APPOINTMENT_DURATION_MINUTES, ge=0)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_bookable(self) -> bool:
        return self.status == StaffStatus.ACTIVE and self.is_available_for_booking

    def offers(self, service_id: str) -> bool:
        return service_id in self.available_services

    def schedule_at(self, centre_id: str) -> Optional[WeeklySchedule]:
        """Working hours at a centre, or None if not schedulable there."""
        if centre_id not in self.assigned_centres:
            return None
        return self.working_hours.get(centre_id)

    def is_off_on(self, day: date) -> bool:
        return any(period.covers(day) for period in self.time_off)


# ---------------------------------------------------------------------------
# Appointments
# ---------------------------------------------------------------------------

class _AppointmentFields(BaseModel):
    """Fields shared by drafts and stored appointments."""
    client_id: str = ""
    client_name: str = ""
    client_email: str = ""
    client_phone: str = ""
    practitioner_id: str
    practitioner_name: str = ""
    date: date
    start_time: str
    duration: int = Field(default=config.DEFAULT_APPOINTMENT_DURATION_MINUTES, gt=0, description="Duration in minutes")
    service_type: str = Field(default="", description="Service name snapshot")
    service_description: Optional[str] = None
    location: LocationMode = LocationMode.IN_PERSON
    meeting_link: Optional[str] = None
    centre_id: Optional[str] = None
    centre_name: Optional[str] = None
    notes: Optional[str] = None
    practitioner_notes: Optional[str] = None
    price: float = Field(default=0, ge=0, description="Price snapshot at booking time")

    @field_validator("start_time", mode="before")
    @classmethod
    def normalise_start(cls, v):
        return format_time(v)

    @model_validator(mode="after")
    def check_centre_matches_location(self):
        if self.location == LocationMode.VIRTUAL and self.centre_id:
            raise ValueError("Virtual appointments are not tied to a centre")
        return self


class AppointmentDraft(_AppointmentFields):
    """
    Caller-supplied appointment data for create().

    end_time may be omitted; it is then start_time + duration.
    """
    model_config = ConfigDict(frozen=True)

    end_time: Optional[str] = None

    @field_validator("end_time", mode="before")
    @classmethod
    def normalise_end(cls, v):
        return None if v in (None, "") else format_time(v)

    @model_validator(mode="before")
    @classmethod
    def derive_end_time(cls, data):
        if isinstance(data, dict) and not data.get("end_time") and data.get("start_time"):
            try:
                duration = int(data.get("duration") or config.DEFAULT_APPOINTMENT_DURATION_MINUTES)
            except (TypeError, ValueError):
                # Left to the duration field to report
                return data
            data = dict(data)
            data["end_time"] = add_minutes(data["start_time"], duration)
        return data

    @model_validator(mode="after")
    def check_times(self):
        _check_interval(self.start_time, self.end_time, self.duration)
        return self


class Appointment(_AppointmentFields):
    """Stored appointment. Immutable; the mutation API replaces records."""
    model_config = ConfigDict(frozen=True)

    id: str
    end_time: str
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    payment_status: PaymentStatus = PaymentStatus.PENDING
    reminder_sent: bool = False
    created_at: datetime
    updated_at: datetime

    @field_validator("end_time", mode="before")
    @classmethod
    def normalise_end(cls, v):
        return format_time(v)

    @model_validator(mode="after")
    def check_times(self):
        _check_interval(self.start_time, self.end_time, self.duration)
        return self

    @property
    def is_cancelled(self) -> bool:
        return self.status == AppointmentStatus.CANCELLED


def _check_interval(start_time: str, end_time: str, duration: int) -> None:
    span = minutes_between(start_time, end_time)
    if span <= 0:
        raise ValueError("Appointment must end after it starts on the same day")
    if span != duration:
        raise ValueError(
            f"Duration {duration} does not match {start_time}-{end_time} ({span} minutes)"
        )


class TimeSlot(BaseModel):
    """Ephemeral availability result for one candidate start time."""
    model_config = ConfigDict(frozen=True)

    time: str
    available: bool
    appointment_id: Optional[str] = None
