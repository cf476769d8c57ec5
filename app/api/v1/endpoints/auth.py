"""Authentication endpoints for clinics and patients."""

from fastapi import APIRouter, status

from app.core.security import ROLE_CLINIC, ROLE_PATIENT, issue_token
from app.dependencies import DatabaseSession
from app.schemas.auth import (
    ClinicLoginRequest,
    ClinicLoginResponse,
    PatientLoginRequest,
    PatientLoginResponse,
)
from app.schemas.clinics import ClinicRegister, ClinicResponse
from app.schemas.patients import PatientRegister, PatientResponse
from app.services.clinic_service import ClinicService
from app.services.patient_service import PatientService

router = APIRouter()


@router.post(
    "/clinic/register",
    response_model=ClinicLoginResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Authentication"],
    summary="Register a clinic",
)
async def register_clinic(data: ClinicRegister, db: DatabaseSession) -> ClinicLoginResponse:
    """
    Create a clinic account and sign it in.

    New clinics start closed.
    """
    clinic = await ClinicService(db).register(data)
    token = issue_token(clinic["id"], ROLE_CLINIC)
    return ClinicLoginResponse(access_token=token, clinic=ClinicResponse.model_validate(clinic))


@router.post(
    "/clinic/login",
    response_model=ClinicLoginResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Clinic login",
)
async def login_clinic(data: ClinicLoginRequest, db: DatabaseSession) -> ClinicLoginResponse:
    """Exchange clinic email and password for an access token."""
    clinic = await ClinicService(db).authenticate(data.email, data.password)
    token = issue_token(clinic["id"], ROLE_CLINIC)
    return ClinicLoginResponse(access_token=token, clinic=ClinicResponse.model_validate(clinic))


@router.post(
    "/patient/register",
    response_model=PatientLoginResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Authentication"],
    summary="Register a patient",
)
async def register_patient(data: PatientRegister, db: DatabaseSession) -> PatientLoginResponse:
    """Create a patient and sign them in."""
    patient = await PatientService(db).register(data)
    token = issue_token(patient["id"], ROLE_PATIENT)
    return PatientLoginResponse(access_token=token, patient=PatientResponse.model_validate(patient))


@router.post(
    "/patient/login",
    response_model=PatientLoginResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Patient login by phone",
)
async def login_patient(data: PatientLoginRequest, db: DatabaseSession) -> PatientLoginResponse:
    """Sign a patient in with their registered phone number."""
    patient = await PatientService(db).login(data.phone)
    token = issue_token(patient["id"], ROLE_PATIENT)
    return PatientLoginResponse(access_token=token, patient=PatientResponse.model_validate(patient))
