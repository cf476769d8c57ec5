"""Doctor schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from app.schemas.clinics import validate_hhmm


class Weekday(str, Enum):
    """Days a doctor can be scheduled."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


DEFAULT_WORKING_DAYS = [
    Weekday.MONDAY,
    Weekday.TUESDAY,
    Weekday.WEDNESDAY,
    Weekday.THURSDAY,
    Weekday.FRIDAY,
]


class AvailableHours(BaseModel):
    """Doctor's daily working window."""

    start: str = "09:00"
    end: str = "17:00"

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, v: str) -> str:
        """Validate HH:MM format."""
        return validate_hhmm(v)

    @model_validator(mode="after")
    def validate_window(self) -> "AvailableHours":
        """End must come after start."""
        if self.end <= self.start:
            raise ValueError("End time must be after start time")
        return self


# ============================================================================
# Doctor Commands
# ============================================================================


class DoctorCreate(BaseModel):
    """Schema for adding a doctor to the clinic."""

    name: str = Field(..., min_length=1, max_length=200)
    specialty: str = Field(..., min_length=1, max_length=200)
    consultation_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    available_days: list[Weekday] = Field(default_factory=lambda: list(DEFAULT_WORKING_DAYS))
    available_hours: AvailableHours = Field(default_factory=AvailableHours)


class DoctorUpdate(BaseModel):
    """Mutable doctor fields; availability has its own toggle."""

    model_config = {"extra": "forbid"}

    name: str | None = Field(None, min_length=1, max_length=200)
    specialty: str | None = Field(None, min_length=1, max_length=200)
    consultation_fee: Decimal | None = Field(None, ge=0, decimal_places=2)
    available_days: list[Weekday] | None = None
    available_hours: AvailableHours | None = None
    is_active: bool | None = None


class DoctorAvailabilityUpdate(BaseModel):
    """Real-time availability toggle."""

    is_available: bool


# ============================================================================
# Doctor Responses
# ============================================================================


class DoctorResponse(BaseModel):
    """Doctor response schema."""

    id: UUID
    clinic_id: UUID
    name: str
    specialty: str
    consultation_fee: Decimal
    available_days: list[str] | None = None
    available_start: str
    available_end: str
    is_active: bool
    is_available: bool
    last_status_change: datetime
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("consultation_fee", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class DoctorPublicResponse(BaseModel):
    """Doctor listing for patients choosing a queue."""

    id: UUID
    name: str
    specialty: str
    consultation_fee: Decimal
    available_days: list[str] | None = None
    available_start: str
    available_end: str
    is_available: bool

    model_config = {"from_attributes": True}

    @field_serializer("consultation_fee", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class DoctorAvailabilityResponse(BaseModel):
    """Result of an availability toggle."""

    id: UUID
    name: str
    is_available: bool
    last_status_change: datetime
    cancelled_count: int = 0
