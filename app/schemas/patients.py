"""Patient schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.schemas.clinics import validate_phone
from app.schemas.queue import TicketStatus


class PatientRegister(BaseModel):
    """Schema for registering a patient."""

    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=7, max_length=20)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        """Validate phone number format."""
        return validate_phone(v)


class PatientUpdate(BaseModel):
    """Mutable patient fields."""

    model_config = {"extra": "forbid"}

    name: str | None = Field(None, min_length=1, max_length=200)
    phone: str | None = Field(None, min_length=7, max_length=20)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        """Validate phone number format."""
        return validate_phone(v) if v is not None else v


class FCMTokenUpdate(BaseModel):
    """Push notification token registration."""

    token: str | None = Field(None, max_length=4096)


class WalkInRequest(PatientRegister):
    """Front-desk registration straight into a doctor's queue."""

    doctor_id: UUID


class PatientResponse(BaseModel):
    """Patient response schema."""

    id: UUID
    name: str
    phone: str
    current_queue_id: UUID | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class WalkInResponse(BaseModel):
    """Result of a walk-in registration."""

    patient: PatientResponse
    queue_number: int
    estimated_wait: int


class HistoryItem(BaseModel):
    """Past ticket in a patient's history."""

    id: UUID
    number: int
    status: TicketStatus
    clinic_id: UUID
    clinic_name: str | None = None
    doctor_id: UUID
    booked_at: datetime
    served_at: datetime | None = None
    missed_at: datetime | None = None
    cancelled_at: datetime | None = None
