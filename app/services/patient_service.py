"""Patient service for business logic."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utc_now
from app.core.exceptions import ConflictException, NotFoundException, TicketNotCancellableException
from app.models.patients import patients
from app.schemas.patients import PatientRegister, PatientUpdate
from app.schemas.queue import BookingResponse, CancelResponse, PatientQueueStatus
from app.services.queue_ledger import QueueLedger
from app.services.queue_service import QueueService

logger = structlog.get_logger(__name__)


class PatientService:
    """Service for patient accounts and their place in queues."""

    def __init__(self, db: AsyncSession, queue: QueueService | None = None):
        """Initialize service with database session and optional queue service."""
        self.db = db
        self.queue = queue

    def _require_queue(self) -> QueueService:
        if self.queue is None:
            raise RuntimeError("PatientService needs a QueueService for queue operations")
        return self.queue

    async def _insert(self, name: str, phone: str) -> dict[str, Any]:
        now = utc_now()
        result = await self.db.execute(
            patients.insert().values(name=name, phone=phone, created_at=now, updated_at=now).returning(patients)
        )
        patient = dict(result.mappings().one())
        await self.db.commit()
        logger.info("patient_registered", patient_id=str(patient["id"]))
        return patient

    async def get_by_phone(self, phone: str) -> dict[str, Any] | None:
        """Get patient by phone number."""
        result = await self.db.execute(select(patients).where(patients.c.phone == phone))
        patient = result.mappings().first()
        return dict(patient) if patient else None

    async def register(self, data: PatientRegister) -> dict[str, Any]:
        """
        Create a patient.

        Raises:
            ConflictException: If the phone number is already registered
        """
        if await self.get_by_phone(data.phone):
            raise ConflictException("Patient already exists")
        return await self._insert(data.name, data.phone)

    async def login(self, phone: str) -> dict[str, Any]:
        """
        Find the patient a phone login belongs to.

        Raises:
            NotFoundException: If no patient has this phone number
        """
        patient = await self.get_by_phone(phone)
        if not patient:
            raise NotFoundException("Patient not found")
        return patient

    async def get_patient(self, patient_id: UUID) -> dict[str, Any]:
        """Get patient by ID or raise NotFound."""
        result = await self.db.execute(select(patients).where(patients.c.id == patient_id))
        patient = result.mappings().first()
        if not patient:
            raise NotFoundException("Patient not found")
        return dict(patient)

    async def _update(self, patient_id: UUID, values: dict[str, Any]) -> dict[str, Any]:
        values["updated_at"] = utc_now()
        result = await self.db.execute(
            update(patients).where(patients.c.id == patient_id).values(**values).returning(patients)
        )
        patient = result.mappings().first()
        if not patient:
            raise NotFoundException("Patient not found")
        await self.db.commit()
        return dict(patient)

    async def update_fcm_token(self, patient_id: UUID, token: str | None) -> dict[str, Any]:
        """Register (or clear) the device token used for push notifications."""
        return await self._update(patient_id, {"fcm_token": token})

    async def update_patient(self, patient_id: UUID, data: PatientUpdate) -> dict[str, Any]:
        """
        Apply a typed name/phone update.

        Raises:
            ConflictException: If the new phone belongs to another patient
        """
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        if "phone" in update_data:
            owner = await self.get_by_phone(update_data["phone"])
            if owner and owner["id"] != patient_id:
                raise ConflictException("Phone number already registered")

        if not update_data:
            return await self.get_patient(patient_id)
        return await self._update(patient_id, update_data)

    async def current_status(self, patient_id: UUID) -> PatientQueueStatus:
        """
        Where the patient's active ticket stands.

        Raises:
            NotFoundException: If the patient has no active ticket
        """
        patient = await self.get_patient(patient_id)
        if patient["current_queue_id"] is None:
            raise NotFoundException("No active queue found")
        return await self._require_queue().ticket_status(patient["current_queue_id"])

    async def cancel_current(self, patient_id: UUID) -> CancelResponse:
        """Cancel the patient's active ticket."""
        patient = await self.get_patient(patient_id)
        if patient["current_queue_id"] is None:
            raise TicketNotCancellableException("No active booking to cancel")
        return await self._require_queue().cancel_ticket(patient["current_queue_id"], patient_id=patient_id)

    async def history(self, patient_id: UUID, limit: int = 50) -> list[dict[str, Any]]:
        """Past tickets, newest first."""
        await self.get_patient(patient_id)
        return await QueueLedger(self.db).history_for_patient(patient_id, limit=limit)

    async def register_and_book(
        self,
        clinic_id: UUID,
        doctor_id: UUID,
        data: PatientRegister,
    ) -> tuple[dict[str, Any], BookingResponse]:
        """
        Front-desk walk-in: find or create the patient by phone, then book.

        An existing patient keeps their stored name.

        Returns:
            Tuple of (patient, booking)
        """
        patient = await self.get_by_phone(data.phone)
        if patient is None:
            patient = await self._insert(data.name, data.phone)

        booking = await self._require_queue().book_ticket(clinic_id, doctor_id, patient["id"])
        patient = await self.get_patient(patient["id"])
        return patient, booking
