"""Clinic service for business logic."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.clock import clinic_zone, is_within_hours, utc_now
from app.core.exceptions import ConflictException, NotFoundException, UnauthorizedException
from app.core.security import get_password_hash, verify_password
from app.models.clinics import clinics
from app.schemas.clinics import (
    ClinicPublicStatus,
    ClinicRegister,
    ClinicStatusResponse,
    ClinicUpdate,
    OperatingHours,
)
from app.schemas.queue import AnalyticsTicket, QueueAnalytics, TicketStatus
from app.services.queue_ledger import QueueLedger
from app.services.queue_service import QueueService
from app.services.wait_time import historical_average_minutes

logger = structlog.get_logger(__name__)


class ClinicService:
    """Service for clinic accounts, open/closed status and analytics."""

    def __init__(self, db: AsyncSession, queue: QueueService | None = None):
        """
        Initialize service with database session.

        Args:
            db: Database session
            queue: Queue service, needed by the status operations that reset queues
        """
        self.db = db
        self.queue = queue

    def _require_queue(self) -> QueueService:
        if self.queue is None:
            raise RuntimeError("ClinicService needs a QueueService for status changes")
        return self.queue

    async def register(self, data: ClinicRegister) -> dict[str, Any]:
        """
        Create a clinic account.

        Raises:
            ConflictException: If the email or phone is already registered
        """
        existing = await self.db.execute(
            select(clinics.c.id).where(or_(clinics.c.email == data.email, clinics.c.phone == data.phone))
        )
        if existing.first():
            raise ConflictException("Clinic with this email or phone already exists")

        now = utc_now()
        query = (
            clinics.insert()
            .values(
                name=data.name,
                email=data.email,
                password_hash=get_password_hash(data.password),
                phone=data.phone,
                address=data.address,
                services=data.services,
                opening_time=data.operating_hours.opening,
                closing_time=data.operating_hours.closing,
                timezone=data.timezone,
                average_process_time=settings.queue_default_process_minutes,
                is_open=False,
                last_status_change=now,
                created_at=now,
                updated_at=now,
            )
            .returning(clinics)
        )
        result = await self.db.execute(query)
        clinic = dict(result.mappings().one())
        await self.db.commit()

        logger.info("clinic_registered", clinic_id=str(clinic["id"]))
        return clinic

    async def authenticate(self, email: str, password: str) -> dict[str, Any]:
        """
        Check clinic credentials.

        Raises:
            UnauthorizedException: If the email is unknown or the password is wrong
        """
        result = await self.db.execute(select(clinics).where(clinics.c.email == email))
        clinic = result.mappings().first()

        if not clinic or not verify_password(password, clinic["password_hash"]):
            logger.info("clinic_login_failed", email=email)
            raise UnauthorizedException("Invalid credentials")

        return dict(clinic)

    async def get_clinic(self, clinic_id: UUID) -> dict[str, Any]:
        """Get clinic by ID or raise NotFound."""
        result = await self.db.execute(select(clinics).where(clinics.c.id == clinic_id))
        clinic = result.mappings().first()
        if not clinic:
            raise NotFoundException("Clinic not found")
        return dict(clinic)

    async def list_public(self) -> list[dict[str, Any]]:
        """All clinics, ordered by name."""
        result = await self.db.execute(select(clinics).order_by(clinics.c.name))
        return [dict(row) for row in result.mappings().all()]

    async def update_clinic(self, clinic_id: UUID, data: ClinicUpdate) -> dict[str, Any]:
        """
        Apply a profile update.

        Raises:
            NotFoundException: If the clinic doesn't exist
            ConflictException: If the new phone belongs to another clinic
        """
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        hours = update_data.pop("operating_hours", None)
        if hours is not None:
            update_data["opening_time"] = hours["opening"]
            update_data["closing_time"] = hours["closing"]

        if "phone" in update_data:
            taken = await self.db.execute(
                select(clinics.c.id).where(clinics.c.phone == update_data["phone"], clinics.c.id != clinic_id)
            )
            if taken.first():
                raise ConflictException("Phone number already registered")

        if not update_data:
            return await self.get_clinic(clinic_id)

        update_data["updated_at"] = utc_now()
        result = await self.db.execute(
            update(clinics).where(clinics.c.id == clinic_id).values(**update_data).returning(clinics)
        )
        clinic = result.mappings().first()
        if not clinic:
            raise NotFoundException("Clinic not found")

        await self.db.commit()
        logger.info("clinic_updated", clinic_id=str(clinic_id), fields=sorted(update_data))
        return dict(clinic)

    async def delete_clinic(self, clinic_id: UUID) -> None:
        """Delete a clinic with its doctors and tickets."""
        result = await self.db.execute(delete(clinics).where(clinics.c.id == clinic_id))
        if result.rowcount == 0:
            raise NotFoundException("Clinic not found")
        await self.db.commit()
        logger.info("clinic_deleted", clinic_id=str(clinic_id))

    async def toggle_status(self, clinic_id: UUID) -> dict[str, Any]:
        """
        Flip the clinic between open and closed.

        Opening starts a fresh session: leftover waiting tickets are
        cancelled and every doctor counter goes back to 0.

        Returns:
            Updated clinic
        """
        clinic = await self.get_clinic(clinic_id)
        opening = not clinic["is_open"]

        updated, _ = await self._require_queue().set_clinic_open(clinic_id, opening, reset=opening)
        return updated

    async def get_status(self, clinic_id: UUID) -> ClinicStatusResponse:
        """
        Report open/closed status, closing the clinic if it is open outside its hours.

        An automatic close also resets the clinic's queues.
        """
        clinic = await self.get_clinic(clinic_id)
        now = utc_now()
        within_hours = is_within_hours(now, clinic["opening_time"], clinic["closing_time"], clinic["timezone"])

        if clinic["is_open"] and not within_hours:
            logger.info("clinic_auto_closed", clinic_id=str(clinic_id))
            clinic, _ = await self._require_queue().set_clinic_open(clinic_id, False, reset=True)

        return ClinicStatusResponse(
            name=clinic["name"],
            is_open=clinic["is_open"],
            operating_hours=OperatingHours(opening=clinic["opening_time"], closing=clinic["closing_time"]),
            last_status_change=clinic["last_status_change"],
            current_time=now.astimezone(clinic_zone(clinic["timezone"])).strftime("%H:%M"),
            is_within_operating_hours=within_hours,
        )

    async def public_status(self, clinic_id: UUID) -> ClinicPublicStatus:
        """Open/closed flag and hours for unauthenticated callers; never changes state."""
        clinic = await self.get_clinic(clinic_id)
        return ClinicPublicStatus(
            id=clinic["id"],
            name=clinic["name"],
            is_open=clinic["is_open"],
            operating_hours=OperatingHours(opening=clinic["opening_time"], closing=clinic["closing_time"]),
        )

    async def analytics(self, clinic_id: UUID, limit: int = 50) -> QueueAnalytics:
        """Recent tickets per status plus the observed booked-to-served average."""
        ledger = QueueLedger(self.db)
        lists = {}
        for status in TicketStatus:
            rows = await ledger.list_by_status(clinic_id, status, limit=limit)
            lists[status.value] = [AnalyticsTicket(**row) for row in rows]

        return QueueAnalytics(
            **lists,
            historical_avg_wait_minutes=await historical_average_minutes(self.db, clinic_id),
        )
