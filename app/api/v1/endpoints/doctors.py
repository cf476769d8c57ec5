"""Doctor endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from app.dependencies import CurrentClinicId, Doctors, Queue
from app.schemas.doctors import (
    DoctorAvailabilityResponse,
    DoctorAvailabilityUpdate,
    DoctorCreate,
    DoctorPublicResponse,
    DoctorResponse,
    DoctorUpdate,
)
from app.schemas.queue import QueueSnapshot

router = APIRouter()


@router.get(
    "/clinics/{clinic_id}/doctors/public",
    response_model=list[DoctorPublicResponse],
    status_code=status.HTTP_200_OK,
    tags=["Doctors"],
    summary="List a clinic's doctors",
)
async def list_doctors_public(clinic_id: UUID, service: Doctors) -> list[DoctorPublicResponse]:
    """Active doctors of a clinic, for patients choosing a queue."""
    return [DoctorPublicResponse.model_validate(d) for d in await service.list_doctors(clinic_id)]


@router.post(
    "/doctors",
    response_model=DoctorResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Doctors"],
    summary="Add doctor",
)
async def add_doctor(data: DoctorCreate, clinic_id: CurrentClinicId, service: Doctors) -> DoctorResponse:
    """Add a doctor to the authenticated clinic (defaults: Monday-Friday, 09:00-17:00)."""
    return DoctorResponse.model_validate(await service.add_doctor(clinic_id, data))


@router.get(
    "/doctors",
    response_model=list[DoctorResponse],
    status_code=status.HTTP_200_OK,
    tags=["Doctors"],
    summary="List doctors",
)
async def list_doctors(clinic_id: CurrentClinicId, service: Doctors) -> list[DoctorResponse]:
    """Active doctors of the authenticated clinic."""
    return [DoctorResponse.model_validate(d) for d in await service.list_doctors(clinic_id)]


@router.get(
    "/doctors/{doctor_id}",
    response_model=DoctorResponse,
    status_code=status.HTTP_200_OK,
    tags=["Doctors"],
    summary="Get doctor",
)
async def get_doctor(doctor_id: UUID, clinic_id: CurrentClinicId, service: Doctors) -> DoctorResponse:
    """Get one of the clinic's doctors."""
    return DoctorResponse.model_validate(await service.get_doctor(clinic_id, doctor_id))


@router.patch(
    "/doctors/{doctor_id}",
    response_model=DoctorResponse,
    status_code=status.HTTP_200_OK,
    tags=["Doctors"],
    summary="Update doctor",
)
async def update_doctor(
    doctor_id: UUID,
    data: DoctorUpdate,
    clinic_id: CurrentClinicId,
    service: Doctors,
) -> DoctorResponse:
    """Update a doctor's profile or working hours."""
    return DoctorResponse.model_validate(await service.update_doctor(clinic_id, doctor_id, data))


@router.delete(
    "/doctors/{doctor_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Doctors"],
    summary="Delete doctor",
)
async def delete_doctor(doctor_id: UUID, clinic_id: CurrentClinicId, service: Doctors) -> None:
    """Remove a doctor from the clinic."""
    await service.delete_doctor(clinic_id, doctor_id)


@router.put(
    "/doctors/{doctor_id}/availability",
    response_model=DoctorAvailabilityResponse,
    status_code=status.HTTP_200_OK,
    tags=["Doctors"],
    summary="Set doctor availability",
)
async def set_doctor_availability(
    doctor_id: UUID,
    data: DoctorAvailabilityUpdate,
    clinic_id: CurrentClinicId,
    service: Doctors,
) -> DoctorAvailabilityResponse:
    """
    Mark the doctor available or unavailable.

    Going unavailable cancels every waiting ticket in the doctor's queue.
    """
    doctor, cancelled = await service.set_availability(clinic_id, doctor_id, data.is_available)
    return DoctorAvailabilityResponse(
        id=doctor["id"],
        name=doctor["name"],
        is_available=doctor["is_available"],
        last_status_change=doctor["last_status_change"],
        cancelled_count=cancelled,
    )


@router.get(
    "/doctors/{doctor_id}/queue",
    response_model=QueueSnapshot,
    status_code=status.HTTP_200_OK,
    tags=["Doctors"],
    summary="Doctor queue dashboard",
)
async def get_doctor_queue(doctor_id: UUID, clinic_id: CurrentClinicId, queue: Queue) -> QueueSnapshot:
    """Full queue snapshot, patient details included."""
    return await queue.get_snapshot(clinic_id, doctor_id)
