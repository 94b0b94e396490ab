"""FastAPI server for the clinic scheduling core.

Features:
- CORS middleware for the dashboard front end
- Global exception handling with a uniform ErrorResponse body
- Request IDs on every response and in every log line
- Idempotent appointment creation via the Idempotency-Key header
"""
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clinic_scheduling import config
from clinic_scheduling.api.dependencies import get_scheduling_service
from clinic_scheduling.api.models import (
    AppointmentListResponse,
    AppointmentUpdateRequest,
    AvailabilityResponse,
    BookingRequest,
    CancelRequest,
    ErrorResponse,
    RescheduleRequest,
)
from clinic_scheduling.errors import (
    AppointmentNotFoundError,
    ImmutableFieldError,
    InvalidStatusTransitionError,
    SlotUnavailableError,
)
from clinic_scheduling.logging_config import RequestIDMiddleware, get_logger, setup_structured_logging
from clinic_scheduling.models import Appointment, AppointmentDraft, Centre, LocationMode, Service, StaffMember
from clinic_scheduling.service import SchedulingService
from clinic_scheduling.slots import TimeOfDay
from clinic_scheduling.timeutils import add_minutes

setup_structured_logging(config.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown logic."""
    service = get_scheduling_service()
    logger.info(
        "api_starting",
        centres=len(service.catalog.list_active_centres()),
        services=len(service.catalog.list_active_services()),
    )
    yield
    logger.info("api_stopping")


app = FastAPI(
    title="Clinic Scheduling API",
    description="Availability and appointment booking for multi-centre wellness clinics",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(RequestIDMiddleware)


def _error(status_code: int, error: str, detail: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail, code=code).model_dump()
    )


# Global exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors consistently."""
    logger.warning("request_validation_failed", errors=str(exc.errors()))
    return _error(
        status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation Error", str(exc.errors()), "VALIDATION_ERROR"
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Model or field errors raised by the core (includes ImmutableFieldError)."""
    logger.warning("appointment_validation_failed", error=str(exc))
    code = "IMMUTABLE_FIELD" if isinstance(exc, ImmutableFieldError) else "VALIDATION_ERROR"
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation Error", str(exc), code)


@app.exception_handler(AppointmentNotFoundError)
async def not_found_handler(request: Request, exc: AppointmentNotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, "Appointment Not Found", str(exc), "NOT_FOUND")


@app.exception_handler(SlotUnavailableError)
async def slot_unavailable_handler(request: Request, exc: SlotUnavailableError):
    return _error(status.HTTP_409_CONFLICT, "Slot Unavailable", str(exc), "SLOT_UNAVAILABLE")


@app.exception_handler(InvalidStatusTransitionError)
async def status_transition_handler(request: Request, exc: InvalidStatusTransitionError):
    return _error(
        status.HTTP_409_CONFLICT, "Invalid Status Transition", str(exc), "INVALID_STATUS_TRANSITION"
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected exceptions."""
    logger.error("unexpected_error", error=str(exc), exc_info=True)
    response = _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal Server Error",
        "An unexpected error occurred. Please try again later.",
        "INTERNAL_ERROR",
    )
    # Sent outside RequestIDMiddleware, so the header is set here
    request_id = request.scope.get("state", {}).get("request_id")
    if request_id:
        response.headers["X-Request-ID"] = request_id
    return response


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for load balancers."""
    return {
        "status": "healthy",
        "service": "clinic-scheduling-api",
        "version": "1.0.0"
    }


# ---------------------------------------------------------------------------
# Eligibility
# ---------------------------------------------------------------------------

@app.get("/centres", tags=["Eligibility"], response_model=List[Centre])
async def list_centres(
    country: str,
    service: SchedulingService = Depends(get_scheduling_service)
):
    """Active centres in a country (ISO 3166-1 alpha-2)."""
    return service.resolve_centre_candidates(country)


@app.get("/services", tags=["Eligibility"], response_model=List[Service])
async def list_services(
    centre_id: Optional[str] = None,
    service: SchedulingService = Depends(get_scheduling_service)
):
    """Services offered at a centre; all active services without one."""
    return service.resolve_service_candidates(centre_id)


@app.get("/staff", tags=["Eligibility"], response_model=List[StaffMember])
async def list_staff(
    service_id: str,
    centre_id: Optional[str] = None,
    location: LocationMode = LocationMode.IN_PERSON,
    service: SchedulingService = Depends(get_scheduling_service)
):
    """Staff who can deliver a service at a centre (or virtually)."""
    return service.resolve_staff_candidates(service_id, centre_id, location)


@app.get("/availability", tags=["Availability"], response_model=AvailabilityResponse)
async def get_availability(
    staff_id: str,
    date: date,
    service_id: str,
    centre_id: Optional[str] = None,
    time_of_day: TimeOfDay = TimeOfDay.ANY,
    service: SchedulingService = Depends(get_scheduling_service)
):
    """Slots for a staff member on a date, each marked available or booked."""
    slots = service.get_available_slots(staff_id, date, service_id, centre_id, time_of_day)
    return AvailabilityResponse(
        staff_id=staff_id,
        date=date,
        service_id=service_id,
        centre_id=centre_id,
        slots=slots,
        available_count=sum(1 for slot in slots if slot.available),
    )


# ---------------------------------------------------------------------------
# Appointments
# ---------------------------------------------------------------------------

@app.get("/appointments", tags=["Appointments"], response_model=AppointmentListResponse)
async def list_appointments(
    date: Optional[date] = None,
    service: SchedulingService = Depends(get_scheduling_service)
):
    appointments = service.list_appointments(date)
    return AppointmentListResponse(appointments=appointments, count=len(appointments))


@app.get("/appointments/{appointment_id}", tags=["Appointments"], response_model=Appointment)
async def get_appointment(
    appointment_id: str,
    service: SchedulingService = Depends(get_scheduling_service)
):
    return service.get_appointment(appointment_id)


@app.post(
    "/appointments",
    tags=["Appointments"],
    response_model=Appointment,
    status_code=status.HTTP_201_CREATED
)
async def create_appointment(
    request: BookingRequest,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    service: SchedulingService = Depends(get_scheduling_service)
):
    """
    Book an appointment.

    Service name, duration and price are snapshotted from the catalog; the
    end time is start + service duration.

    Raises:
        409: Slot already booked
        422: Unknown service/staff/centre or invalid fields
    """
    catalog = service.catalog
    booked_service = catalog.get_service_by_id(request.service_id)
    if booked_service is None:
        raise ValueError(f"Unknown service '{request.service_id}'")
    member = catalog.get_staff_by_id(request.staff_id)
    if member is None:
        raise ValueError(f"Unknown staff member '{request.staff_id}'")

    centre = None
    if request.location == LocationMode.IN_PERSON:
        centre = catalog.get_centre_by_id(request.centre_id)
        if centre is None:
            raise ValueError("In-person appointments need a valid centre_id")

    draft = AppointmentDraft(
        client_id=request.client_id or "",
        client_name=request.client_name,
        client_email=request.client_email,
        client_phone=request.client_phone,
        practitioner_id=member.id,
        practitioner_name=member.display_name,
        date=request.date,
        start_time=request.start_time,
        end_time=add_minutes(request.start_time, booked_service.duration),
        duration=booked_service.duration,
        service_type=booked_service.name,
        service_description=booked_service.description,
        location=request.location,
        meeting_link=request.meeting_link,
        centre_id=centre.id if centre else None,
        centre_name=centre.name if centre else None,
        notes=request.notes,
        price=booked_service.price,
    )
    return service.create_appointment(draft, idempotency_key=idempotency_key)


@app.patch("/appointments/{appointment_id}", tags=["Appointments"], response_model=Appointment)
async def update_appointment(
    appointment_id: str,
    request: AppointmentUpdateRequest,
    service: SchedulingService = Depends(get_scheduling_service)
):
    return service.update_appointment(appointment_id, **request.model_dump(exclude_unset=True))


@app.post("/appointments/{appointment_id}/cancel", tags=["Appointments"], response_model=Appointment)
async def cancel_appointment(
    appointment_id: str,
    request: Optional[CancelRequest] = None,
    service: SchedulingService = Depends(get_scheduling_service)
):
    """Cancel (status change only; the appointment is kept)."""
    return service.cancel_appointment(appointment_id, request.reason if request else None)


@app.put("/appointments/{appointment_id}/reschedule", tags=["Appointments"], response_model=Appointment)
async def reschedule_appointment(
    appointment_id: str,
    request: RescheduleRequest,
    service: SchedulingService = Depends(get_scheduling_service)
):
    return service.reschedule_appointment(appointment_id, request.date, request.start_time)


@app.post("/appointments/{appointment_id}/complete", tags=["Appointments"], response_model=Appointment)
async def complete_appointment(
    appointment_id: str,
    service: SchedulingService = Depends(get_scheduling_service)
):
    """Mark completed (payment is marked paid)."""
    return service.complete_appointment(appointment_id)


if __name__ == "__main__":
    import uvicorn

    # Run server
    uvicorn.run(
        "clinic_scheduling.api_server:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=True,
        log_level=config.LOG_LEVEL.lower()
    )
