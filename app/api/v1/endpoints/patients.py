"""Patient endpoints."""

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentClinicId, CurrentPatientId, Patients
from app.schemas.patients import (
    FCMTokenUpdate,
    HistoryItem,
    PatientResponse,
    PatientUpdate,
    WalkInRequest,
    WalkInResponse,
)
from app.schemas.queue import CancelResponse, PatientQueueStatus

router = APIRouter()


@router.get(
    "/patients/me",
    response_model=PatientResponse,
    status_code=status.HTTP_200_OK,
    tags=["Patients"],
    summary="Get patient profile",
)
async def get_my_profile(patient_id: CurrentPatientId, service: Patients) -> PatientResponse:
    """Get the authenticated patient's profile."""
    return PatientResponse.model_validate(await service.get_patient(patient_id))


@router.patch(
    "/patients/me",
    response_model=PatientResponse,
    status_code=status.HTTP_200_OK,
    tags=["Patients"],
    summary="Update patient profile",
)
async def update_my_profile(data: PatientUpdate, patient_id: CurrentPatientId, service: Patients) -> PatientResponse:
    """Change the patient's name or phone number."""
    return PatientResponse.model_validate(await service.update_patient(patient_id, data))


@router.put(
    "/patients/me/fcm-token",
    response_model=PatientResponse,
    status_code=status.HTTP_200_OK,
    tags=["Patients"],
    summary="Register push token",
)
async def update_fcm_token(data: FCMTokenUpdate, patient_id: CurrentPatientId, service: Patients) -> PatientResponse:
    """Register the device token used for queue notifications; null clears it."""
    return PatientResponse.model_validate(await service.update_fcm_token(patient_id, data.token))


@router.get(
    "/patients/me/queue",
    response_model=PatientQueueStatus,
    status_code=status.HTTP_200_OK,
    tags=["Patients"],
    summary="Current queue status",
)
async def get_current_queue_status(patient_id: CurrentPatientId, service: Patients) -> PatientQueueStatus:
    """Ticket number, serving number, position and estimated wait of the active ticket."""
    return await service.current_status(patient_id)


@router.delete(
    "/patients/me/queue",
    response_model=CancelResponse,
    status_code=status.HTTP_200_OK,
    tags=["Patients"],
    summary="Cancel current booking",
)
async def cancel_current_booking(patient_id: CurrentPatientId, service: Patients) -> CancelResponse:
    """Cancel the active ticket while it is still waiting."""
    return await service.cancel_current(patient_id)


@router.get(
    "/patients/me/history",
    response_model=list[HistoryItem],
    status_code=status.HTTP_200_OK,
    tags=["Patients"],
    summary="Queue history",
)
async def get_queue_history(
    patient_id: CurrentPatientId,
    service: Patients,
    limit: int = Query(50, ge=1, le=200),
) -> list[HistoryItem]:
    """Past tickets, newest first."""
    return [HistoryItem.model_validate(row) for row in await service.history(patient_id, limit=limit)]


@router.post(
    "/patients/walk-in",
    response_model=WalkInResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Patients"],
    summary="Register walk-in patient and book",
)
async def register_walk_in(data: WalkInRequest, clinic_id: CurrentClinicId, service: Patients) -> WalkInResponse:
    """
    Front-desk booking for a patient without the app.

    An existing patient with the same phone number is reused.
    """
    patient, booking = await service.register_and_book(clinic_id, data.doctor_id, data)
    return WalkInResponse(
        patient=PatientResponse.model_validate(patient),
        queue_number=booking.ticket_number,
        estimated_wait=booking.estimated_wait,
    )
