"""Doctor service for business logic."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utc_now
from app.core.exceptions import NotFoundException
from app.models.doctors import doctors
from app.schemas.doctors import DoctorCreate, DoctorUpdate
from app.services.queue_service import QueueService

logger = structlog.get_logger(__name__)


class DoctorService:
    """Service for a clinic's doctors."""

    def __init__(self, db: AsyncSession, queue: QueueService | None = None):
        """Initialize service with database session and the queue service for availability changes."""
        self.db = db
        self.queue = queue

    async def add_doctor(self, clinic_id: UUID, data: DoctorCreate) -> dict[str, Any]:
        """Add a doctor to a clinic; new doctors start active and available."""
        now = utc_now()
        query = (
            doctors.insert()
            .values(
                clinic_id=clinic_id,
                name=data.name,
                specialty=data.specialty,
                consultation_fee=data.consultation_fee,
                available_days=[day.value for day in data.available_days],
                available_start=data.available_hours.start,
                available_end=data.available_hours.end,
                is_active=True,
                is_available=True,
                last_status_change=now,
                created_at=now,
                updated_at=now,
            )
            .returning(doctors)
        )

        result = await self.db.execute(query)
        doctor = dict(result.mappings().one())
        await self.db.commit()

        logger.info("doctor_added", clinic_id=str(clinic_id), doctor_id=str(doctor["id"]))
        return doctor

    async def list_doctors(self, clinic_id: UUID, active_only: bool = True) -> list[dict[str, Any]]:
        """Doctors of a clinic ordered by name."""
        query = select(doctors).where(doctors.c.clinic_id == clinic_id)
        if active_only:
            query = query.where(doctors.c.is_active.is_(True))

        result = await self.db.execute(query.order_by(doctors.c.name))
        return [dict(row) for row in result.mappings().all()]

    async def get_doctor(self, clinic_id: UUID, doctor_id: UUID) -> dict[str, Any]:
        """
        Get one of the clinic's doctors.

        Raises:
            NotFoundException: If the doctor doesn't exist in this clinic
        """
        result = await self.db.execute(
            select(doctors).where(doctors.c.id == doctor_id, doctors.c.clinic_id == clinic_id)
        )
        doctor = result.mappings().first()
        if not doctor:
            raise NotFoundException("Doctor not found")
        return dict(doctor)

    async def update_doctor(self, clinic_id: UUID, doctor_id: UUID, data: DoctorUpdate) -> dict[str, Any]:
        """Apply a typed doctor update."""
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        hours = update_data.pop("available_hours", None)
        if hours is not None:
            update_data["available_start"] = hours["start"]
            update_data["available_end"] = hours["end"]

        if "available_days" in update_data:
            update_data["available_days"] = [day.value for day in data.available_days or []]

        if not update_data:
            return await self.get_doctor(clinic_id, doctor_id)

        update_data["updated_at"] = utc_now()
        result = await self.db.execute(
            update(doctors)
            .where(doctors.c.id == doctor_id, doctors.c.clinic_id == clinic_id)
            .values(**update_data)
            .returning(doctors)
        )
        doctor = result.mappings().first()
        if not doctor:
            raise NotFoundException("Doctor not found")

        await self.db.commit()
        logger.info("doctor_updated", doctor_id=str(doctor_id), fields=sorted(update_data))
        return dict(doctor)

    async def delete_doctor(self, clinic_id: UUID, doctor_id: UUID) -> None:
        """Remove a doctor and their tickets."""
        result = await self.db.execute(
            delete(doctors).where(doctors.c.id == doctor_id, doctors.c.clinic_id == clinic_id)
        )
        if result.rowcount == 0:
            raise NotFoundException("Doctor not found")
        await self.db.commit()
        logger.info("doctor_deleted", clinic_id=str(clinic_id), doctor_id=str(doctor_id))

    async def set_availability(
        self, clinic_id: UUID, doctor_id: UUID, is_available: bool
    ) -> tuple[dict[str, Any], int]:
        """
        Toggle whether the doctor is seeing patients right now.

        Returns:
            Tuple of (updated doctor, number of waiting tickets cancelled)
        """
        if self.queue is None:
            raise RuntimeError("DoctorService needs a QueueService for availability changes")
        return await self.queue.set_doctor_availability(clinic_id, doctor_id, is_available)
