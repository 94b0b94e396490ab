"""Scheduling facade exposed to the surrounding application.

Wraps the catalog, the appointment book and the booking flow behind the
operations the dashboard (or the HTTP shell) calls.
"""
from datetime import date, datetime
from typing import Callable, List, Optional, Union

from clinic_scheduling import config
from clinic_scheduling.appointments import AppointmentBook
from clinic_scheduling.availability import available_slots
from clinic_scheduling.catalog import Catalog
from clinic_scheduling.conflicts import ConflictMatch
from clinic_scheduling.eligibility import centres_for_country, services_at_centre, staff_for_service_at_centre
from clinic_scheduling.logging_config import get_logger
from clinic_scheduling.models import (
    Appointment,
    AppointmentDraft,
    Centre,
    LocationMode,
    Service,
    StaffMember,
    TimeSlot,
)
from clinic_scheduling.orchestrator import BookingFlow, BookingSession
from clinic_scheduling.slots import TimeOfDay

logger = get_logger(__name__)


class SchedulingService:
    """
    Entry point for availability queries and appointment mutations.

    Example:
        >>> service = SchedulingService.with_seed_data()
        >>> [c.code for c in service.resolve_centre_candidates("ZA")]
        ['JHB001']
    """

    def __init__(
        self,
        catalog: Catalog,
        book: Optional[AppointmentBook] = None,
        granularity_minutes: int = config.SLOT_GRANULARITY_MINUTES,
        match: Optional[ConflictMatch] = None
    ):
        self.catalog = catalog
        self.book = book or AppointmentBook()
        self.granularity_minutes = granularity_minutes
        self.match = match
        self.flow = BookingFlow(catalog, self.book, granularity_minutes, match)

    @classmethod
    def with_seed_data(cls, clock: Optional[Callable[[], datetime]] = None) -> "SchedulingService":
        """Service over the demo catalog and an empty appointment book."""
        return cls(Catalog.from_seed(), AppointmentBook(clock=clock))

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------

    def resolve_centre_candidates(self, country_code: Optional[str]) -> List[Centre]:
        return centres_for_country(self.catalog, country_code)

    def resolve_service_candidates(self, centre_id: Optional[str] = None) -> List[Service]:
        """Services at a centre; every active service when centre_id is None."""
        if centre_id is None:
            return services_at_centre(self.catalog, None)
        centre = self.catalog.get_centre_by_id(centre_id)
        if centre is None:
            return []
        return services_at_centre(self.catalog, centre)

    def resolve_staff_candidates(
        self,
        service_id: Optional[str],
        centre_id: Optional[str] = None,
        location: LocationMode = LocationMode.IN_PERSON
    ) -> List[StaffMember]:
        return staff_for_service_at_centre(
            self.catalog,
            self.catalog.get_service_by_id(service_id),
            self.catalog.get_centre_by_id(centre_id),
            location,
        )

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def get_available_slots(
        self,
        staff_id: str,
        day: Union[date, str],
        service_id: str,
        centre_id: Optional[str] = None,
        time_of_day: TimeOfDay = TimeOfDay.ANY
    ) -> List[TimeSlot]:
        """
        Marked slots for a staff member on a date.

        Args:
            staff_id: Staff member id
            day: Date (or ISO string)
            service_id: Service to book
            centre_id: In-person centre; None uses the staff member's
                primary centre hours (virtual)
            time_of_day: Morning/afternoon/any filter

        Returns:
            TimeSlots, each marked available or booked
        """
        if isinstance(day, str):
            day = date.fromisoformat(day)

        slots = available_slots(
            self.catalog,
            self.book.list_for_date(day),
            staff_id,
            day,
            service_id,
            centre_id,
            time_of_day=time_of_day,
            granularity_minutes=self.granularity_minutes,
            match=self.match,
        )
        logger.debug(
            "slots_resolved",
            staff_id=staff_id,
            date=day.isoformat(),
            total=len(slots),
            available=sum(1 for s in slots if s.available),
        )
        return slots

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_appointment(
        self,
        draft: Union[AppointmentDraft, dict],
        idempotency_key: Optional[str] = None
    ) -> Appointment:
        """Book a draft; the slot is re-checked under the book's lock."""
        return self.book.book(draft, idempotency_key=idempotency_key, match=self.match)

    def update_appointment(self, appointment_id: str, **fields) -> Appointment:
        return self.book.update(appointment_id, **fields)

    def cancel_appointment(self, appointment_id: str, reason: Optional[str] = None) -> Appointment:
        return self.book.cancel(appointment_id, reason)

    def reschedule_appointment(
        self,
        appointment_id: str,
        new_date: Union[date, str],
        new_time: str
    ) -> Appointment:
        return self.book.reschedule(appointment_id, new_date, new_time, match=self.match)

    def complete_appointment(self, appointment_id: str) -> Appointment:
        return self.book.complete(appointment_id)

    def get_appointment(self, appointment_id: str) -> Appointment:
        return self.book.require(appointment_id)

    def list_appointments(self, day: Optional[Union[date, str]] = None) -> List[Appointment]:
        if day is None:
            return self.book.list_all()
        return self.book.list_for_date(day)

    # ------------------------------------------------------------------
    # Booking sessions
    # ------------------------------------------------------------------

    def start_booking(self) -> BookingSession:
        """New booking flow starting from an empty selection."""
        return BookingSession(self.flow)

    def start_edit(self, appointment_id: str) -> BookingSession:
        """
        Edit flow seeded from an existing appointment.

        Raises:
            AppointmentNotFoundError: Unknown appointment id
        """
        appointment = self.book.require(appointment_id)
        return BookingSession(self.flow, self.flow.begin_edit(appointment))
