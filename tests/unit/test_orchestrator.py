"""Tests for the booking cascade reducer, submission and edit flow."""
from datetime import date

import pytest

from clinic_scheduling.conflicts import ConflictMatch
from clinic_scheduling.models import Centre, Client, LocationMode
from clinic_scheduling.orchestrator import BookingFlow, BookingSession
from clinic_scheduling.state import (
    AutoSelectedCentre,
    BookingSelection,
    BookingStep,
    ClearClient,
    EnterClientDetails,
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
    current_step,
    validate_submission,
)


MONDAY = date(2025, 6, 2)
TUESDAY = date(2025, 6, 3)


def run(flow, *actions, state=None):
    """Apply actions in order; return the final state and every event."""
    state = state or BookingSelection()
    events = []
    for action in actions:
        transition = flow.reduce(state, action)
        state = transition.state
        events.extend(transition.events)
    return state, events


def ids(items):
    return [item.id for item in items]


@pytest.fixture
def sarah_client(catalog):
    return catalog.get_client_by_id("1")


@pytest.fixture
def ready_to_submit(flow, sarah_client):
    """Sarah Johnson (ZA) booking an initial consultation at Johannesburg."""
    state, _ = run(
        flow,
        SelectClient(sarah_client),
        SetService("2"),
        SetStaff("1"),
        SetDate(MONDAY),
        SetSlot("08:00"),
    )
    return state


class TestLocationAndCentre:
    """Location mode and centre resolution."""

    def test_single_centre_auto_selected(self, flow, sarah_client):
        state, events = run(flow, SelectClient(sarah_client))

        assert state.centre_id == "1"
        assert events == [AutoSelectedCentre(centre=state.centre_candidates[0])]
        assert ids(state.service_candidates) == ["1", "2", "3", "4", "5"]

    def test_no_centre_forces_virtual(self, flow, catalog):
        traveller = Client(id="9", name="Marie Laurent", country="FR")
        catalog.add_client(traveller)

        state, events = run(flow, SelectClient(traveller), SetLocation(LocationMode.IN_PERSON))

        assert state.location == LocationMode.VIRTUAL
        assert state.centre_id is None
        assert NoCentresAvailable(country="FR") in events
        assert len(state.service_candidates) == 8

    def test_multiple_centres_need_a_choice(self, flow, catalog, sarah_client):
        catalog.add_centre(Centre(id="4", name="Life Arrow Cape Town", country="ZA", services=["1", "2"]))

        state, events = run(flow, SelectClient(sarah_client))

        assert state.centre_id is None
        assert isinstance(events[0], MultipleCentres)
        assert ids(events[0].candidates) == ["1", "4"]

        state, _ = run(flow, SetCentre("4"), state=state)
        assert state.centre_id == "4"
        assert ids(state.service_candidates) == ["1", "2"]

    def test_centre_outside_candidates_rejected(self, flow, sarah_client):
        state, _ = run(flow, SelectClient(sarah_client))

        transition = flow.reduce(state, SetCentre("3"))

        assert transition.state is state
        assert isinstance(transition.events[0], SelectionRejected)

    def test_in_person_without_client_offers_all_centres(self, flow):
        state, events = run(flow, SetLocation(LocationMode.IN_PERSON))

        assert ids(state.centre_candidates) == ["1", "2", "3"]
        assert state.service_candidates == ()
        assert events == []

    def test_virtual_clears_centre_staff_and_slot(self, flow, ready_to_submit):
        state, events = run(flow, SetLocation(LocationMode.VIRTUAL), state=ready_to_submit)

        assert state.centre_id is None
        assert state.staff_id is None
        assert state.time_slot is None
        assert state.service_id == "2"
        assert len(state.service_candidates) == 8
        assert ids(state.staff_candidates) == ["1", "3"]
        assert SelectionCleared(fields=("centre_id", "staff_id", "time_slot")) in events

    def test_centre_on_virtual_rejected(self, flow):
        state, events = run(flow, SetLocation(LocationMode.VIRTUAL), SetCentre("1"))

        assert state.centre_id is None
        assert isinstance(events[-1], SelectionRejected)


class TestCascadeInvariants:
    """Downstream candidates and invalidation."""

    def test_staff_candidates_after_centre_and_service(self, flow, catalog):
        for centre in catalog.list_active_centres():
            for service_id in centre.services:
                state, _ = run(
                    flow,
                    SetLocation(LocationMode.IN_PERSON),
                    SetCentre(centre.id),
                    SetService(service_id),
                )
                expected = [
                    m.id for m in catalog.list_staff()
                    if m.status == "active"
                    and m.is_available_for_booking
                    and centre.id in m.assigned_centres
                    and service_id in m.available_services
                ]
                assert ids(state.staff_candidates) == expected

    def test_centre_change_drops_unoffered_service(self, flow):
        state, _ = run(
            flow,
            SetLocation(LocationMode.IN_PERSON),
            SetCentre("2"),
            SetService("4"),
            SetStaff("1"),
            SetDate(MONDAY),
            SetSlot("09:00"),
        )
        assert state.time_slot == "09:00"

        state, events = run(flow, SetCentre("3"), state=state)

        assert state.centre_id == "3"
        assert state.service_id is None
        assert state.staff_id is None
        assert state.time_slot is None
        assert SelectionCleared(fields=("service_id", "staff_id", "time_slot")) in events

    def test_service_change_drops_ineligible_staff(self, flow):
        state, _ = run(
            flow,
            SetLocation(LocationMode.IN_PERSON),
            SetCentre("2"),
            SetService("3"),
            SetStaff("2"),
        )

        state, events = run(flow, SetService("4"), state=state)

        assert state.staff_id is None
        assert ids(state.staff_candidates) == ["1"]
        assert SelectionCleared(fields=("staff_id",)) in events

    def test_service_change_keeps_eligible_staff(self, flow):
        state, _ = run(
            flow,
            SetLocation(LocationMode.IN_PERSON),
            SetCentre("2"),
            SetService("3"),
            SetStaff("1"),
        )

        state, _ = run(flow, SetService("4"), state=state)

        assert state.staff_id == "1"

    def test_date_change_always_clears_slot(self, flow, ready_to_submit):
        state, events = run(flow, SetDate(TUESDAY), state=ready_to_submit)

        assert state.time_slot is None
        assert state.appointment_date == TUESDAY
        assert events == [SelectionCleared(fields=("time_slot",))]

    def test_unoffered_service_rejected(self, flow, sarah_client):
        state, _ = run(flow, SelectClient(sarah_client))

        transition = flow.reduce(state, SetService("8"))

        assert transition.state is state
        assert transition.events[0].field == "service_id"

    def test_clear_client_resets_cascade(self, flow, ready_to_submit):
        state, _ = run(flow, ClearClient(), state=ready_to_submit)

        assert state.client is None
        assert state.client_name == ""
        assert state.centre_id is None
        assert state.service_id is None
        assert state.staff_candidates == ()


class TestSlots:
    """Slot candidates inside the flow."""

    def test_slots_for_staff_and_date(self, flow, ready_to_submit):
        times = [slot.time for slot in ready_to_submit.slot_candidates]

        assert times[0] == "08:00"
        assert times[-1] == "16:30"
        assert "12:00" not in times
        assert len(times) == 16

    def test_booked_slot_rejected(self, flow, book, make_draft, sarah_client):
        booked = book.create(make_draft(start_time="09:00"))
        state, _ = run(flow, SelectClient(sarah_client), SetService("2"), SetStaff("1"), SetDate(MONDAY))

        nine = next(slot for slot in state.slot_candidates if slot.time == "09:00")
        assert not nine.available
        assert nine.appointment_id == booked.id

        transition = flow.reduce(state, SetSlot("09:00"))
        assert transition.events[0].reason == "Time slot is already booked"

    def test_centre_closed_hours_removed(self, flow):
        """Sarah works 09:00-18:00 in New York but the centre breaks 12:00-13:00."""
        state, _ = run(
            flow,
            SetLocation(LocationMode.IN_PERSON),
            SetCentre("2"),
            SetService("4"),
            SetStaff("1"),
            SetDate(MONDAY),
        )
        times = [slot.time for slot in state.slot_candidates]

        assert "12:00" not in times
        assert "13:00" not in times
        assert len(times) == 14

    def test_day_off_has_no_slots(self, flow, sarah_client):
        sunday = date(2025, 6, 8)
        state, _ = run(flow, SelectClient(sarah_client), SetService("2"), SetStaff("1"), SetDate(sunday))

        assert state.slot_candidates == ()


class TestSubmission:
    """Validation and booking."""

    def test_validation_errors(self, flow):
        state, _ = run(flow, EnterClientDetails(name="Walk-in"))

        errors = validate_submission(state)

        assert set(errors) == {
            "client_email", "client_phone", "centre_id", "service_id",
            "staff_id", "appointment_date", "time_slot",
        }
        assert "client_name" not in errors

    def test_submit_invalid_returns_errors(self, flow):
        result = flow.submit(BookingSelection())

        assert not result.ok
        assert result.errors["client_name"] == "Client name is required"

    def test_submit_books_and_resets(self, flow, book, ready_to_submit):
        result = flow.submit(ready_to_submit)

        assert result.ok
        appointment = result.appointment
        assert appointment.start_time == "08:00"
        assert appointment.end_time == "09:00"
        assert appointment.price == 3700
        assert appointment.service_type == "Initial Wellness Consultation"
        assert appointment.centre_name == "Life Arrow Johannesburg"
        assert appointment.practitioner_name == "Sarah Johnson"
        assert result.state == BookingSelection()
        assert current_step(result.state) == BookingStep.IDLE
        assert len(book) == 1

    def test_end_time_rolls_over_hour(self, catalog, book, sarah_client):
        flow = BookingFlow(catalog, book, granularity_minutes=10, match=ConflictMatch.EXACT_START)
        state, _ = run(
            flow,
            SelectClient(sarah_client),
            SetService("1"),
            SetStaff("1"),
            SetDate(MONDAY),
            SetSlot("08:50"),
        )

        result = flow.submit(state)

        assert result.appointment.duration == 45
        assert result.appointment.end_time == "09:35"

    def test_slot_taken_before_submit(self, flow, book, make_draft, ready_to_submit):
        book.book(make_draft(start_time="08:00", client_id="2"))

        result = flow.submit(ready_to_submit)

        assert not result.ok
        assert "time_slot" in result.errors
        assert result.state.time_slot is None
        eight = next(slot for slot in result.state.slot_candidates if slot.time == "08:00")
        assert not eight.available
        assert len(book) == 1

    def test_manual_client_gets_temporary_id(self, flow):
        state, _ = run(
            flow,
            EnterClientDetails(name="Walk-in", email="walkin@email.com", phone="555"),
            SetLocation(LocationMode.VIRTUAL),
            SetService("2"),
            SetStaff("3"),
            SetDate(MONDAY),
            SetSlot("09:00"),
            SetNotes(notes="Prefers video"),
        )

        result = flow.submit(state)

        assert result.appointment.client_id.startswith("temp-")
        assert result.appointment.location == LocationMode.VIRTUAL
        assert result.appointment.centre_id is None
        assert result.appointment.notes == "Prefers video"


class TestCurrentStep:
    """Derived position in the cascade."""

    def test_progression(self, flow, sarah_client):
        state = BookingSelection()
        assert current_step(state) == BookingStep.IDLE

        state, _ = run(flow, EnterClientDetails(name="Sarah"), state=state)
        assert current_step(state) == BookingStep.CLIENT_CHOSEN

        state, _ = run(flow, SelectClient(sarah_client), state=state)
        assert current_step(state) == BookingStep.CENTRE_CHOSEN

        state, _ = run(flow, SetService("2"), state=state)
        assert current_step(state) == BookingStep.SERVICE_CHOSEN

        state, _ = run(flow, SetStaff("1"), state=state)
        assert current_step(state) == BookingStep.STAFF_CHOSEN

        state, _ = run(flow, SetDate(MONDAY), state=state)
        assert current_step(state) == BookingStep.DATE_CHOSEN

        state, _ = run(flow, SetSlot("08:00"), state=state)
        assert current_step(state) == BookingStep.SUBMITTABLE

    def test_virtual_services_loaded(self, flow):
        state, _ = run(flow, EnterClientDetails(name="Sam"), SetLocation(LocationMode.VIRTUAL))

        assert current_step(state) == BookingStep.SERVICES_LOADED

    def test_reset(self, flow, ready_to_submit):
        state, _ = run(flow, Reset(), state=ready_to_submit)

        assert current_step(state) == BookingStep.IDLE


class TestEditFlow:
    """Editing an existing appointment."""

    @pytest.fixture
    def booked(self, flow, ready_to_submit):
        return flow.submit(ready_to_submit).appointment

    def test_begin_edit_seeds_selection(self, flow, booked):
        state = flow.begin_edit(booked)

        assert state.editing_appointment_id == booked.id
        assert state.service_id == "2"
        assert state.staff_id == "1"
        assert state.time_slot == "08:00"
        assert ids(state.staff_candidates) == ["1", "3"]
        own_slot = next(slot for slot in state.slot_candidates if slot.time == "08:00")
        assert own_slot.available

    def test_off_grid_start_kept(self, flow, book, make_draft):
        booked = book.create(make_draft(start_time="09:15"))

        state = flow.begin_edit(booked)

        assert state.time_slot == "09:15"
        times = [slot.time for slot in state.slot_candidates]
        assert times == sorted(times)
        assert "09:15" in state.available_slot_times

        result = flow.submit(state)

        assert result.ok
        assert book.get(booked.id).start_time == "09:15"

    def test_edit_recomputes_from_service(self, flow, book, booked):
        state, _ = run(flow, SetService("1"), SetSlot("10:00"), state=flow.begin_edit(booked))

        result = flow.submit(state)

        assert result.ok
        updated = book.get(booked.id)
        assert updated.start_time == "10:00"
        assert updated.end_time == "10:45"
        assert updated.duration == 45
        assert updated.price == 2800
        assert updated.service_type == "Body Composition Analysis"
        assert updated.created_at == booked.created_at
        assert len(book) == 1


class TestBookingSession:
    """Session wrapper."""

    def test_dispatch_and_submit(self, flow, sarah_client):
        session = BookingSession(flow)

        events = session.dispatch(SelectClient(sarah_client))
        assert isinstance(events[0], AutoSelectedCentre)

        for action in (SetService("2"), SetStaff("1"), SetDate(MONDAY), SetSlot("09:30")):
            session.dispatch(action)
        assert session.step == BookingStep.SUBMITTABLE
        assert session.validate() == {}

        result = session.submit(idempotency_key="form-1")

        assert result.ok
        assert session.step == BookingStep.IDLE
