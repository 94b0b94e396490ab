"""Pydantic models for API request/response validation."""
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clinic_scheduling.models import Appointment, LocationMode, TimeSlot
from clinic_scheduling.timeutils import format_time


class BookingRequest(BaseModel):
    """Request schema for POST /appointments."""
    client_id: Optional[str] = Field(None, description="Existing client id (omit for walk-ins)")
    client_name: str = Field(..., min_length=1, max_length=200)
    client_email: str = Field("", max_length=200)
    client_phone: str = Field("", max_length=50)
    staff_id: str = Field(..., min_length=1, description="Practitioner id")
    service_id: str = Field(..., min_length=1)
    date: date
    start_time: str = Field(..., description="HH:MM (24h)", examples=["09:30"])
    location: LocationMode = LocationMode.IN_PERSON
    centre_id: Optional[str] = Field(None, description="Required for in-person bookings")
    meeting_link: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "client_id": "1",
                "client_name": "Sarah Johnson",
                "client_email": "sarah.johnson@email.com",
                "client_phone": "+1 (555) 123-4567",
                "staff_id": "1",
                "service_id": "2",
                "date": "2025-06-02",
                "start_time": "09:00",
                "location": "in-person",
                "centre_id": "1"
            }
        }
    )

    @field_validator("start_time")
    @classmethod
    def normalise_start(cls, v: str) -> str:
        return format_time(v)


class AppointmentUpdateRequest(BaseModel):
    """Request schema for PATCH /appointments/{id}; only sent fields change."""
    client_name: Optional[str] = Field(None, min_length=1)
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    meeting_link: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)
    practitioner_notes: Optional[str] = Field(None, max_length=2000)
    reminder_sent: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")


class CancelRequest(BaseModel):
    """Request schema for POST /appointments/{id}/cancel."""
    reason: Optional[str] = Field(None, max_length=500)


class RescheduleRequest(BaseModel):
    """Request schema for PUT /appointments/{id}/reschedule."""
    date: date
    start_time: str = Field(..., examples=["14:00"])

    @field_validator("start_time")
    @classmethod
    def normalise_start(cls, v: str) -> str:
        return format_time(v)


class AvailabilityResponse(BaseModel):
    """Response schema for GET /availability."""
    staff_id: str
    date: date
    service_id: str
    centre_id: Optional[str] = None
    slots: List[TimeSlot]
    available_count: int


class AppointmentListResponse(BaseModel):
    """Response schema for GET /appointments."""
    appointments: List[Appointment]
    count: int


class ErrorResponse(BaseModel):
    """Error response schema."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")
    code: Optional[str] = Field(None, description="Error code")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Slot Unavailable",
                "detail": "Slot 2025-06-02 09:00 is no longer available for staff member 1",
                "code": "SLOT_UNAVAILABLE"
            }
        }
    )
