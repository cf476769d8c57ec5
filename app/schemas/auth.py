"""Authentication schemas."""

from pydantic import BaseModel, EmailStr, Field

from app.schemas.clinics import ClinicResponse
from app.schemas.patients import PatientResponse


class Token(BaseModel):
    """JWT token response schema."""

    access_token: str
    token_type: str = "bearer"


class ClinicLoginRequest(BaseModel):
    """Clinic email/password login."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class PatientLoginRequest(BaseModel):
    """Patient login by registered phone number."""

    phone: str = Field(..., min_length=7, max_length=20)


class ClinicLoginResponse(Token):
    """Login response with token and clinic profile."""

    clinic: ClinicResponse


class PatientLoginResponse(Token):
    """Login response with token and patient profile."""

    patient: PatientResponse
