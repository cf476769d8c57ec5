"""Clinic endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import Clinics, CurrentClinic, CurrentClinicId
from app.schemas.clinics import (
    ClinicPublicResponse,
    ClinicPublicStatus,
    ClinicResponse,
    ClinicStatusResponse,
    ClinicToggleResponse,
    ClinicUpdate,
)
from app.schemas.queue import QueueAnalytics

router = APIRouter()


@router.get(
    "/clinics/public",
    response_model=list[ClinicPublicResponse],
    status_code=status.HTTP_200_OK,
    tags=["Clinics"],
    summary="List clinics",
)
async def list_clinics_public(service: Clinics) -> list[ClinicPublicResponse]:
    """List every clinic without credentials or internal settings."""
    return [ClinicPublicResponse.model_validate(c) for c in await service.list_public()]


@router.get(
    "/clinics/me",
    response_model=ClinicResponse,
    status_code=status.HTTP_200_OK,
    tags=["Clinics"],
    summary="Get clinic profile",
)
async def get_my_clinic(clinic: CurrentClinic) -> ClinicResponse:
    """Get the authenticated clinic's profile."""
    return ClinicResponse.model_validate(clinic)


@router.patch(
    "/clinics/me",
    response_model=ClinicResponse,
    status_code=status.HTTP_200_OK,
    tags=["Clinics"],
    summary="Update clinic profile",
)
async def update_my_clinic(data: ClinicUpdate, clinic_id: CurrentClinicId, service: Clinics) -> ClinicResponse:
    """
    Update the authenticated clinic's profile.

    Only the fields in ``ClinicUpdate`` can change; unknown keys are rejected.
    """
    return ClinicResponse.model_validate(await service.update_clinic(clinic_id, data))


@router.delete(
    "/clinics/me",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Clinics"],
    summary="Delete clinic",
)
async def delete_my_clinic(clinic_id: CurrentClinicId, service: Clinics) -> None:
    """Delete the clinic with its doctors and tickets."""
    await service.delete_clinic(clinic_id)


@router.post(
    "/clinics/me/toggle-status",
    response_model=ClinicToggleResponse,
    status_code=status.HTTP_200_OK,
    tags=["Clinics"],
    summary="Open or close the clinic",
)
async def toggle_clinic_status(clinic_id: CurrentClinicId, service: Clinics) -> ClinicToggleResponse:
    """
    Flip the clinic between open and closed.

    Opening starts a fresh numbering session for every doctor.
    """
    clinic = await service.toggle_status(clinic_id)
    return ClinicToggleResponse(
        is_open=clinic["is_open"],
        message="Clinic is now open" if clinic["is_open"] else "Clinic is now closed",
    )


@router.get(
    "/clinics/me/status",
    response_model=ClinicStatusResponse,
    status_code=status.HTTP_200_OK,
    tags=["Clinics"],
    summary="Get clinic status",
)
async def get_clinic_status(clinic_id: CurrentClinicId, service: Clinics) -> ClinicStatusResponse:
    """Open/closed status; an open clinic outside its hours is closed automatically."""
    return await service.get_status(clinic_id)


@router.get(
    "/clinics/me/analytics",
    response_model=QueueAnalytics,
    status_code=status.HTTP_200_OK,
    tags=["Clinics"],
    summary="Queue analytics",
)
async def get_queue_analytics(
    clinic_id: CurrentClinicId,
    service: Clinics,
    limit: int = Query(50, ge=1, le=200),
) -> QueueAnalytics:
    """Recent tickets per status with patient name and phone."""
    return await service.analytics(clinic_id, limit=limit)


@router.get(
    "/clinics/{clinic_id}/status",
    response_model=ClinicPublicStatus,
    status_code=status.HTTP_200_OK,
    tags=["Clinics"],
    summary="Get a clinic's public status",
)
async def get_public_clinic_status(clinic_id: UUID, service: Clinics) -> ClinicPublicStatus:
    """Whether a clinic is open and its operating hours; no credentials required."""
    return await service.public_status(clinic_id)
