"""Booking cascade reducer, submission and edit flow.

The cascade is a pure reducer over BookingSelection:

    reduce(state, action) -> Transition(new_state, events)

Each action re-derives the candidate sets below the changed selection and
clears any downstream choice that is no longer a candidate. Cascade
decisions (auto-selected centre, no centres in the client's country, a
choice outside the candidate set) come back as events instead of being
raised.
"""
import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from clinic_scheduling import config
from clinic_scheduling.appointments import AppointmentBook
from clinic_scheduling.availability import available_slots
from clinic_scheduling.catalog import Catalog
from clinic_scheduling.conflicts import ConflictMatch
from clinic_scheduling.eligibility import centres_for_country, services_at_centre, staff_for_service_at_centre
from clinic_scheduling.errors import SlotUnavailableError
from clinic_scheduling.logging_config import get_logger
from clinic_scheduling.models import Appointment, AppointmentDraft, LocationMode, TimeSlot
from clinic_scheduling.state import (
    Action,
    AutoSelectedCentre,
    BookingSelection,
    BookingStep,
    ClearClient,
    EnterClientDetails,
    Event,
    MultipleCentres,
    NoCentresAvailable,
    Reset,
    SelectClient,
    SelectionCleared,
    SelectionRejected,
    SetCentre,
    SetDate,
    SetLocation,
    SetNotes,
    SetService,
    SetSlot,
    SetStaff,
    Transition,
    current_step,
    validate_submission,
)
from clinic_scheduling.timeutils import add_minutes, format_time

logger = get_logger(__name__)

SLOT_TAKEN_MESSAGE = "This time slot has just been booked. Please choose another."


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of submit()/submit_edit(); errors is the field-keyed map."""
    state: BookingSelection
    appointment: Optional[Appointment] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.appointment is not None and not self.errors


def validate_edit(state: BookingSelection) -> Dict[str, str]:
    """Field errors for the edit flow (client details are kept as booked)."""
    errors = {}
    if not state.service_id:
        errors["service_id"] = "Service is required"
    if not state.staff_id:
        errors["staff_id"] = "Staff member is required"
    if not state.appointment_date:
        errors["appointment_date"] = "Date is required"
    if not state.time_slot:
        errors["time_slot"] = "Start time is required"
    if state.location == LocationMode.IN_PERSON and not state.centre_id:
        errors["centre_id"] = "Treatment centre is required for in-person appointments"
    return errors


class _Cascade:
    """Working copy of one reducer step: current state plus collected events."""

    def __init__(self, state: BookingSelection):
        self.state = state
        self.events: List[Event] = []
        self.cleared: List[str] = []

    def set(self, **changes) -> None:
        self.state = self.state.evolve(**changes)

    def clear(self, *fields: str) -> None:
        """Reset selections, recording the ones that actually held a value."""
        changes = {}
        for name in fields:
            if getattr(self.state, name) is not None:
                changes[name] = None
                if name not in self.cleared:
                    self.cleared.append(name)
        if changes:
            self.set(**changes)

    def result(self) -> Transition:
        events = list(self.events)
        if self.cleared:
            events.append(SelectionCleared(fields=tuple(self.cleared)))
        return Transition(state=self.state, events=tuple(events))


class BookingFlow:
    """
    Booking cascade over a catalog and an appointment book.

    Pattern: the flow itself is stateless; callers hold the selection
    (directly or through a BookingSession) and feed it back in.
    """

    def __init__(
        self,
        catalog: Catalog,
        book: AppointmentBook,
        granularity_minutes: int = config.SLOT_GRANULARITY_MINUTES,
        match: Optional[ConflictMatch] = None
    ):
        """
        Initialize the booking flow.

        Args:
            catalog: Centre/service/staff/client catalog
            book: Appointment mutation API
            granularity_minutes: Slot step size
            match: Conflict matching mode (config default when None)
        """
        self.catalog = catalog
        self.book = book
        self.granularity_minutes = granularity_minutes
        self.match = match

    # ------------------------------------------------------------------
    # Reducer
    # ------------------------------------------------------------------

    def reduce(self, state: BookingSelection, action: Action) -> Transition:
        """
        Apply one action to a selection.

        Args:
            state: Current selection (never modified)
            action: One of the actions from clinic_scheduling.state

        Returns:
            Transition with the new selection and the events it produced
        """
        handler = {
            SelectClient: self._select_client,
            ClearClient: self._clear_client,
            EnterClientDetails: self._enter_client_details,
            SetLocation: self._set_location,
            SetCentre: self._set_centre,
            SetService: self._set_service,
            SetStaff: self._set_staff,
            SetDate: self._set_date,
            SetSlot: self._set_slot,
            SetNotes: self._set_notes,
            Reset: self._reset,
        }.get(type(action))

        if handler is None:
            raise TypeError(f"Unknown booking action: {type(action).__name__}")

        transition = handler(state, action)
        for event in transition.events:
            if isinstance(event, SelectionRejected):
                logger.info(
                    "selection_rejected",
                    field=event.field,
                    value=str(event.value),
                    reason=event.reason,
                )
        return transition

    def _reset(self, state: BookingSelection, action: Reset) -> Transition:
        return Transition(state=BookingSelection())

    def _select_client(self, state: BookingSelection, action: SelectClient) -> Transition:
        client = action.client
        cascade = _Cascade(state)
        cascade.set(
            client=client,
            client_name=client.name,
            client_email=client.email,
            client_phone=client.phone,
        )
        if cascade.state.location == LocationMode.IN_PERSON:
            self._resolve_in_person(cascade)
        return cascade.result()

    def _clear_client(self, state: BookingSelection, action: ClearClient) -> Transition:
        # Centres depend on the client's country, so everything below goes too
        cascade = _Cascade(state)
        cascade.set(client=None, client_name="", client_email="", client_phone="")
        cascade.clear("centre_id", "service_id", "staff_id", "time_slot")
        cascade.set(
            centre_candidates=(),
            service_candidates=(),
            staff_candidates=(),
            slot_candidates=(),
        )
        return cascade.result()

    def _enter_client_details(self, state: BookingSelection, action: EnterClientDetails) -> Transition:
        changes = {}
        if action.name is not None:
            changes["client_name"] = action.name
        if action.email is not None:
            changes["client_email"] = action.email
        if action.phone is not None:
            changes["client_phone"] = action.phone
        return Transition(state=state.evolve(**changes))

    def _set_location(self, state: BookingSelection, action: SetLocation) -> Transition:
        cascade = _Cascade(state)
        cascade.set(location=action.location, location_set=True)
        if action.location == LocationMode.VIRTUAL:
            self._apply_virtual(cascade)
        else:
            self._resolve_in_person(cascade)
        return cascade.result()

    def _set_centre(self, state: BookingSelection, action: SetCentre) -> Transition:
        centre_id = action.centre_id
        if centre_id is None:
            cascade = _Cascade(state)
            self._apply_centre(cascade, None)
            return cascade.result()

        if state.location == LocationMode.VIRTUAL:
            return self._reject(state, "centre_id", centre_id, "Virtual appointments have no centre")

        allowed = state.candidate_ids("centre") or tuple(c.id for c in self.catalog.list_active_centres())
        if centre_id not in allowed:
            return self._reject(state, "centre_id", centre_id, "Centre is not available for this booking")

        cascade = _Cascade(state)
        self._apply_centre(cascade, centre_id)
        return cascade.result()

    def _set_service(self, state: BookingSelection, action: SetService) -> Transition:
        service_id = action.service_id
        if service_id is not None and service_id not in state.candidate_ids("service"):
            return self._reject(state, "service_id", service_id, "Service is not offered here")

        cascade = _Cascade(state)
        if service_id is None:
            cascade.clear("service_id")
        else:
            cascade.set(service_id=service_id)
        self._refresh_staff(cascade)
        return cascade.result()

    def _set_staff(self, state: BookingSelection, action: SetStaff) -> Transition:
        staff_id = action.staff_id
        if staff_id is not None and staff_id not in state.candidate_ids("staff"):
            return self._reject(state, "staff_id", staff_id, "Staff member cannot provide this service")

        cascade = _Cascade(state)
        if staff_id is None:
            cascade.clear("staff_id")
        else:
            cascade.set(staff_id=staff_id)
        self._refresh_slots(cascade, force_clear=True)
        return cascade.result()

    def _set_date(self, state: BookingSelection, action: SetDate) -> Transition:
        cascade = _Cascade(state)
        cascade.set(appointment_date=action.day)
        self._refresh_slots(cascade, force_clear=True)
        return cascade.result()

    def _set_slot(self, state: BookingSelection, action: SetSlot) -> Transition:
        if action.time is None:
            cascade = _Cascade(state)
            cascade.clear("time_slot")
            return cascade.result()

        try:
            slot = format_time(action.time)
        except ValueError:
            return self._reject(state, "time_slot", action.time, "Not a valid HH:MM time")

        if slot not in state.available_slot_times:
            booked = any(s.time == slot and not s.available for s in state.slot_candidates)
            reason = "Time slot is already booked" if booked else "Time slot is not offered"
            return self._reject(state, "time_slot", slot, reason)

        return Transition(state=state.evolve(time_slot=slot))

    def _set_notes(self, state: BookingSelection, action: SetNotes) -> Transition:
        changes = {}
        if action.notes is not None:
            changes["notes"] = action.notes
        if action.practitioner_notes is not None:
            changes["practitioner_notes"] = action.practitioner_notes
        return Transition(state=state.evolve(**changes))

    # ------------------------------------------------------------------
    # Cascade steps
    # ------------------------------------------------------------------

    def _reject(self, state: BookingSelection, field_name: str, value, reason: str) -> Transition:
        return Transition(
            state=state,
            events=(SelectionRejected(field=field_name, value=value, reason=reason),)
        )

    def _apply_virtual(self, cascade: _Cascade) -> None:
        """Virtual: no centre, full active service catalog, re-pick staff."""
        cascade.clear("centre_id", "staff_id", "time_slot")
        services = tuple(services_at_centre(self.catalog, None))
        cascade.set(centre_candidates=(), service_candidates=services)
        if cascade.state.service_id not in {s.id for s in services}:
            cascade.clear("service_id")
        self._refresh_staff(cascade)

    def _resolve_in_person(self, cascade: _Cascade) -> None:
        """
        Resolve centres for an in-person booking.

        With a selected client, centres come from the client's country:
        none forces virtual, one is auto-selected, several need a choice.
        Without one, every active centre is a candidate.
        """
        state = cascade.state
        if state.client is None:
            cascade.set(centre_candidates=tuple(self.catalog.list_active_centres()))
            self._apply_centre(cascade, state.centre_id)
            return

        country = state.client.country
        centres = centres_for_country(self.catalog, country)

        if not centres:
            logger.info("no_centres_available", country=country, client_id=state.client.id)
            cascade.events.append(NoCentresAvailable(country=country))
            cascade.set(location=LocationMode.VIRTUAL)
            self._apply_virtual(cascade)
            return

        cascade.set(centre_candidates=tuple(centres))

        if len(centres) == 1:
            centre = centres[0]
            logger.info("centre_auto_selected", centre_id=centre.id, country=country)
            cascade.events.append(AutoSelectedCentre(centre=centre))
            self._apply_centre(cascade, centre.id)
            return

        cascade.events.append(MultipleCentres(candidates=tuple(centres)))
        keep = state.centre_id if state.centre_id in {c.id for c in centres} else None
        self._apply_centre(cascade, keep)

    def _apply_centre(self, cascade: _Cascade, centre_id: Optional[str]) -> None:
        """Select a centre (or none) and re-derive the services below it."""
        if centre_id is None:
            cascade.clear("centre_id")
        else:
            cascade.set(centre_id=centre_id)

        if cascade.state.location == LocationMode.VIRTUAL:
            return

        centre = self.catalog.get_centre_by_id(centre_id)
        services = tuple(services_at_centre(self.catalog, centre)) if centre else ()
        cascade.set(service_candidates=services)

        if cascade.state.service_id not in {s.id for s in services}:
            cascade.clear("service_id", "staff_id", "time_slot")
        self._refresh_staff(cascade)

    def _refresh_staff(self, cascade: _Cascade) -> None:
        """Re-derive staff candidates; drop the staff choice if no longer eligible."""
        state = cascade.state
        service = self.catalog.get_service_by_id(state.service_id)

        if state.editing_appointment_id:
            # Editing keeps any staff member who offers the service
            staff = staff_for_service_at_centre(self.catalog, service, None, LocationMode.VIRTUAL)
        else:
            centre = self.catalog.get_centre_by_id(state.centre_id)
            staff = staff_for_service_at_centre(self.catalog, service, centre, state.location)

        cascade.set(staff_candidates=tuple(staff))
        if state.staff_id not in {m.id for m in staff}:
            cascade.clear("staff_id", "time_slot")
        self._refresh_slots(cascade)

    def _refresh_slots(self, cascade: _Cascade, force_clear: bool = False) -> None:
        """Recompute slots; the slot choice survives only if still free."""
        state = cascade.state
        slots = self.slots_for(state)
        cascade.set(slot_candidates=tuple(slots))

        free = {slot.time for slot in slots if slot.available}
        if force_clear or state.time_slot not in free:
            cascade.clear("time_slot")

    def slots_for(self, state: BookingSelection):
        """Marked slots for the selection's staff member and date."""
        return available_slots(
            self.catalog,
            self.book.list_for_date(state.appointment_date) if state.appointment_date else (),
            state.staff_id,
            state.appointment_date,
            state.service_id,
            state.centre_id,
            location=state.location,
            granularity_minutes=self.granularity_minutes,
            match=self.match,
            exclude_appointment_id=state.editing_appointment_id,
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, state: BookingSelection, idempotency_key: Optional[str] = None) -> SubmissionResult:
        """
        Book the selection.

        Computes end_time = start + service duration and books through the
        appointment book, which re-checks the slot under its lock. On
        success the returned state is a fresh (Idle) selection.

        Args:
            state: Selection to submit
            idempotency_key: Makes retries return the first booking

        Returns:
            SubmissionResult with the appointment, or field errors and the
            selection to keep editing
        """
        if state.editing_appointment_id:
            return self.submit_edit(state.editing_appointment_id, state)

        errors = validate_submission(state)
        if errors:
            return SubmissionResult(state=state, errors=errors)

        service = self.catalog.get_service_by_id(state.service_id)
        member = self.catalog.get_staff_by_id(state.staff_id)
        if service is None:
            return SubmissionResult(state=state, errors={"service_id": "Service type not found"})
        if member is None:
            return SubmissionResult(state=state, errors={"staff_id": "Staff member not found"})

        centre = self.catalog.get_centre_by_id(state.centre_id) if state.location == LocationMode.IN_PERSON else None
        client_id = state.client.id if state.client else f"temp-{uuid.uuid4().hex[:8]}"

        draft = AppointmentDraft(
            client_id=client_id,
            client_name=state.client_name,
            client_email=state.client_email,
            client_phone=state.client_phone,
            practitioner_id=member.id,
            practitioner_name=member.display_name,
            date=state.appointment_date,
            start_time=state.time_slot,
            end_time=add_minutes(state.time_slot, service.duration),
            duration=service.duration,
            service_type=service.name,
            service_description=service.description,
            location=state.location,
            centre_id=centre.id if centre else None,
            centre_name=centre.name if centre else None,
            notes=state.notes or None,
            price=service.price,
        )

        try:
            appointment = self.book.book(draft, idempotency_key=idempotency_key, match=self.match)
        except SlotUnavailableError:
            return self._slot_taken(state)

        logger.info(
            "booking_submitted",
            appointment_id=appointment.id,
            client_id=client_id,
            service_id=service.id,
        )
        return SubmissionResult(state=BookingSelection(), appointment=appointment)

    def begin_edit(self, appointment: Appointment) -> BookingSelection:
        """
        Seed a selection from an existing appointment.

        The service is found by its name snapshot; staff candidates are
        everyone who offers it, regardless of centre. The appointment's own
        slot stays available while it is being edited.
        """
        client = self.catalog.get_client_by_id(appointment.client_id)
        service = self.catalog.find_service_by_name(appointment.service_type)
        centre = self.catalog.get_centre_by_id(appointment.centre_id)

        if appointment.location == LocationMode.IN_PERSON:
            centres = tuple(centres_for_country(self.catalog, client.country)) if client else ()
            if not centres:
                centres = tuple(self.catalog.list_active_centres())
            services = tuple(services_at_centre(self.catalog, centre)) if centre else ()
        else:
            centres = ()
            services = tuple(services_at_centre(self.catalog, None))

        if service is not None:
            staff = tuple(staff_for_service_at_centre(self.catalog, service, None, LocationMode.VIRTUAL))
        else:
            staff = tuple(m for m in self.catalog.list_staff() if m.is_bookable)

        state = BookingSelection(
            client=client,
            client_name=appointment.client_name,
            client_email=appointment.client_email,
            client_phone=appointment.client_phone,
            location=appointment.location,
            location_set=True,
            centre_id=appointment.centre_id,
            service_id=service.id if service else None,
            staff_id=appointment.practitioner_id,
            appointment_date=appointment.date,
            notes=appointment.notes or "",
            practitioner_notes=appointment.practitioner_notes or "",
            centre_candidates=centres,
            service_candidates=services,
            staff_candidates=staff,
            editing_appointment_id=appointment.id,
        )
        slots = self.slots_for(state)
        if appointment.start_time not in {slot.time for slot in slots}:
            # Off-grid booked time stays selectable until the date or staff changes
            slots.append(TimeSlot(time=appointment.start_time, available=True))
            slots.sort(key=lambda slot: slot.time)
        slots = tuple(slots)
        free = {slot.time for slot in slots if slot.available}
        return state.evolve(
            slot_candidates=slots,
            time_slot=appointment.start_time if appointment.start_time in free else None,
        )

    def submit_edit(self, appointment_id: str, state: BookingSelection) -> SubmissionResult:
        """
        Apply an edited selection to an existing appointment.

        End time, duration and price are recomputed from the chosen
        service.

        Raises:
            AppointmentNotFoundError: If the appointment no longer exists
        """
        errors = validate_edit(state)
        if errors:
            return SubmissionResult(state=state, errors=errors)

        current = self.book.require(appointment_id)
        service = self.catalog.get_service_by_id(state.service_id)
        member = self.catalog.get_staff_by_id(state.staff_id)
        if service is None:
            return SubmissionResult(state=state, errors={"service_id": "Service not found"})

        centre = self.catalog.get_centre_by_id(state.centre_id) if state.location == LocationMode.IN_PERSON else None
        changes = dict(
            date=state.appointment_date,
            start_time=state.time_slot,
            end_time=add_minutes(state.time_slot, service.duration),
            duration=service.duration,
            service_type=service.name,
            service_description=service.description,
            practitioner_id=state.staff_id,
            practitioner_name=member.display_name if member else current.practitioner_name,
            location=state.location,
            centre_id=centre.id if centre else None,
            centre_name=centre.name if centre else None,
            notes=state.notes or None,
            practitioner_notes=state.practitioner_notes or None,
            price=service.price,
        )

        try:
            appointment = self.book.update(appointment_id, check_slot=True, **changes)
        except SlotUnavailableError:
            return self._slot_taken(state)

        return SubmissionResult(state=BookingSelection(), appointment=appointment)

    def _slot_taken(self, state: BookingSelection) -> SubmissionResult:
        cascade = _Cascade(state)
        self._refresh_slots(cascade, force_clear=True)
        logger.warning("booking_slot_taken", staff_id=state.staff_id, time_slot=state.time_slot)
        return SubmissionResult(state=cascade.state, errors={"time_slot": SLOT_TAKEN_MESSAGE})


class BookingSession:
    """
    One booking (or edit) flow instance owning its selection.

    Transitions on a session never interleave.
    """

    def __init__(self, flow: BookingFlow, state: Optional[BookingSelection] = None):
        self._flow = flow
        self._state = state or BookingSelection()
        self._lock = threading.Lock()

    @property
    def state(self) -> BookingSelection:
        return self._state

    @property
    def step(self) -> BookingStep:
        return current_step(self._state)

    def dispatch(self, action: Action) -> Tuple[Event, ...]:
        """Apply an action and return the events it produced."""
        with self._lock:
            transition = self._flow.reduce(self._state, action)
            self._state = transition.state
            return transition.events

    def validate(self) -> Dict[str, str]:
        return validate_submission(self._state)

    def submit(self, idempotency_key: Optional[str] = None) -> SubmissionResult:
        with self._lock:
            result = self._flow.submit(self._state, idempotency_key=idempotency_key)
            self._state = result.state
            return result
