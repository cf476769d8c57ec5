"""Clinic schemas for request/response validation."""

import re
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from app.core.clock import clinic_zone

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_hhmm(value: str) -> str:
    """Validate an ``HH:MM`` time-of-day string."""
    if not HHMM_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM format")
    return value


def validate_phone(value: str) -> str:
    """Validate phone number format."""
    cleaned = (
        value.replace("-", "").replace(" ", "").replace("(", "").replace(")", "").replace("+", "")
    )
    if not cleaned.isdigit():
        raise ValueError("Phone number must contain only digits and separators")
    if len(cleaned) < 7:
        raise ValueError("Phone number must have at least 7 digits")
    return value


def validate_timezone(value: str) -> str:
    """Reject timezone names the zoneinfo database does not know."""
    if clinic_zone(value).key != value:
        raise ValueError(f"Unknown timezone '{value}'")
    return value


# ============================================================================
# Operating Hours
# ============================================================================


class OperatingHours(BaseModel):
    """Daily opening window, local to the clinic's timezone."""

    opening: str = "09:00"
    closing: str = "17:00"

    @field_validator("opening", "closing")
    @classmethod
    def validate_time(cls, v: str) -> str:
        """Validate HH:MM format."""
        return validate_hhmm(v)

    @model_validator(mode="after")
    def validate_window(self) -> "OperatingHours":
        """Closing must come after opening."""
        if self.closing <= self.opening:
            raise ValueError("Closing time must be after opening time")
        return self


# ============================================================================
# Registration / Update
# ============================================================================


class ClinicRegister(BaseModel):
    """Schema for registering a clinic account."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    phone: str = Field(..., min_length=7, max_length=20)
    address: str = Field(..., min_length=1)
    services: list[str] = Field(default_factory=lambda: ["General Consultation"])
    operating_hours: OperatingHours = Field(default_factory=OperatingHours)
    timezone: str = Field("UTC", max_length=64)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        """Validate phone number format."""
        return validate_phone(v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject unknown timezone names."""
        return validate_timezone(v)


class ClinicUpdate(BaseModel):
    """
    Mutable clinic profile fields.

    Anything not listed here (credentials, open/closed state) has its own
    operation; unknown keys are rejected.
    """

    model_config = {"extra": "forbid"}

    name: str | None = Field(None, min_length=1, max_length=255)
    phone: str | None = Field(None, min_length=7, max_length=20)
    address: str | None = Field(None, min_length=1)
    services: list[str] | None = None
    operating_hours: OperatingHours | None = None
    timezone: str | None = Field(None, max_length=64)
    average_process_time: int | None = Field(None, ge=1, le=240)
    max_active_queues: int | None = Field(None, ge=1, le=1000)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        """Validate phone number format."""
        return validate_phone(v) if v is not None else v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        """Reject unknown timezone names."""
        return validate_timezone(v) if v is not None else v


# ============================================================================
# Responses
# ============================================================================


class ClinicResponse(BaseModel):
    """Clinic profile response schema."""

    id: UUID
    name: str
    email: str
    phone: str
    address: str
    services: list[str] | None = None
    opening_time: str
    closing_time: str
    timezone: str
    average_process_time: int
    max_active_queues: int
    is_open: bool
    last_status_change: datetime
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClinicPublicResponse(BaseModel):
    """Clinic listing for unauthenticated callers."""

    id: UUID
    name: str
    phone: str
    address: str
    services: list[str] | None = None
    opening_time: str
    closing_time: str
    is_open: bool

    model_config = {"from_attributes": True}


class ClinicStatusResponse(BaseModel):
    """Open/closed status with the operating hours check."""

    name: str
    is_open: bool
    operating_hours: OperatingHours
    last_status_change: datetime
    current_time: str
    is_within_operating_hours: bool


class ClinicPublicStatus(BaseModel):
    """Open/closed status shown to anyone choosing a clinic."""

    id: UUID
    name: str
    is_open: bool
    operating_hours: OperatingHours


class ClinicToggleResponse(BaseModel):
    """Result of opening or closing a clinic."""

    success: bool = True
    is_open: bool
    message: str
