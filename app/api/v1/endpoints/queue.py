"""Queue endpoints: booking, progression, cancellation and snapshots."""

from uuid import UUID

from fastapi import APIRouter, status

from app.dependencies import CurrentClinicId, CurrentPatientId, Queue
from app.schemas.queue import (
    AdvanceQueueRequest,
    AdvanceResponse,
    BookingResponse,
    BookTicketRequest,
    CancelResponse,
    PublicQueueSnapshot,
    QueueSnapshot,
)

router = APIRouter()


@router.post(
    "/book",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Queue"],
    summary="Book a ticket",
)
async def book_ticket(data: BookTicketRequest, patient_id: CurrentPatientId, queue: Queue) -> BookingResponse:
    """
    Take the next number in a doctor's queue.

    Refused while the clinic is closed, outside operating hours, when the
    doctor is unavailable or when the patient already holds a ticket.
    """
    return await queue.book_ticket(data.clinic_id, data.doctor_id, patient_id)


@router.post(
    "/next",
    response_model=AdvanceResponse,
    status_code=status.HTTP_200_OK,
    tags=["Queue"],
    summary="Call next patient",
)
async def advance_queue(data: AdvanceQueueRequest, clinic_id: CurrentClinicId, queue: Queue) -> AdvanceResponse:
    """
    Advance the doctor's serving number.

    ``next`` calls the lowest waiting number; ``specific`` jumps to
    ``new_number``. Skipped waiting tickets become missed.
    """
    return await queue.advance_queue(clinic_id, data.doctor_id, data.action, data.new_number)


@router.post(
    "/cancel/{ticket_id}",
    response_model=CancelResponse,
    status_code=status.HTTP_200_OK,
    tags=["Queue"],
    summary="Cancel a ticket (clinic)",
)
async def cancel_ticket(ticket_id: UUID, clinic_id: CurrentClinicId, queue: Queue) -> CancelResponse:
    """Cancel a waiting ticket in the authenticated clinic."""
    return await queue.cancel_ticket(ticket_id, clinic_id=clinic_id)


@router.get(
    "/snapshot/{doctor_id}",
    response_model=QueueSnapshot,
    status_code=status.HTTP_200_OK,
    tags=["Queue"],
    summary="Queue snapshot (clinic)",
)
async def get_snapshot(doctor_id: UUID, clinic_id: CurrentClinicId, queue: Queue) -> QueueSnapshot:
    """Full snapshot of one of the clinic's doctor queues."""
    return await queue.get_snapshot(clinic_id, doctor_id)


@router.get(
    "/public/{clinic_id}/{doctor_id}",
    response_model=PublicQueueSnapshot,
    status_code=status.HTTP_200_OK,
    tags=["Queue"],
    summary="Public queue display",
)
async def get_public_snapshot(clinic_id: UUID, doctor_id: UUID, queue: Queue) -> PublicQueueSnapshot:
    """Serving number and upcoming numbers, without patient details."""
    return PublicQueueSnapshot.from_snapshot(await queue.get_snapshot(clinic_id, doctor_id))
