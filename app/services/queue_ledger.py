"""Queue ledger: durable, ordered record of tickets per doctor queue."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from app.models.clinics import clinics
from app.models.patient_queue_history import patient_queue_history
from app.models.patients import patients
from app.models.queue_entries import queue_entries
from app.schemas.queue import TicketStatus

# Timestamp column stamped by each terminal transition
TRANSITION_TIMESTAMPS = {
    TicketStatus.SERVED: "served_at",
    TicketStatus.MISSED: "missed_at",
    TicketStatus.CANCELLED: "cancelled_at",
}


@dataclass(frozen=True)
class QueueScope:
    """One doctor's queue inside a clinic."""

    clinic_id: UUID
    doctor_id: UUID


class QueueLedger:
    """
    Queries and status transitions over ``queue_entries``.

    The ledger never commits; callers own the transaction so a progression
    step and its patient back-reference updates land together.
    """

    def __init__(self, db: AsyncSession):
        """Initialize ledger with database session."""
        self.db = db

    @staticmethod
    def _in_scope(scope: QueueScope) -> list[ColumnElement[bool]]:
        return [
            queue_entries.c.clinic_id == scope.clinic_id,
            queue_entries.c.doctor_id == scope.doctor_id,
        ]

    @staticmethod
    def _waiting() -> ColumnElement[bool]:
        return queue_entries.c.status == TicketStatus.WAITING.value

    async def create(
        self,
        scope: QueueScope,
        patient_id: UUID,
        number: int,
        session_started_at: datetime,
        booked_at: datetime,
    ) -> dict[str, Any]:
        """
        Issue a waiting ticket and point the patient at it.

        Returns:
            Created ticket
        """
        stmt = (
            insert(queue_entries)
            .values(
                clinic_id=scope.clinic_id,
                doctor_id=scope.doctor_id,
                patient_id=patient_id,
                number=number,
                status=TicketStatus.WAITING.value,
                session_started_at=session_started_at,
                booked_at=booked_at,
            )
            .returning(queue_entries)
        )
        result = await self.db.execute(stmt)
        ticket = dict(result.mappings().one())

        await self.db.execute(
            update(patients)
            .where(patients.c.id == patient_id)
            .values(current_queue_id=ticket["id"], updated_at=booked_at)
        )
        return ticket

    async def get(self, ticket_id: UUID) -> dict[str, Any] | None:
        """Get a ticket by ID."""
        result = await self.db.execute(select(queue_entries).where(queue_entries.c.id == ticket_id))
        row = result.mappings().first()
        return dict(row) if row else None

    async def find_waiting(
        self,
        scope: QueueScope,
        limit: int,
        after_number: int | None = None,
        since: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """
        Waiting tickets in ascending number order, patient name/phone populated.

        Args:
            scope: Doctor queue
            limit: Page size
            after_number: Only tickets strictly after this number
            since: Only tickets booked in the session starting here

        Returns:
            Upcoming tickets
        """
        conditions = [*self._in_scope(scope), self._waiting()]
        if after_number is not None:
            conditions.append(queue_entries.c.number > after_number)
        if since is not None:
            conditions.append(queue_entries.c.booked_at >= since)

        stmt = (
            select(
                queue_entries.c.id,
                queue_entries.c.number,
                queue_entries.c.booked_at,
                queue_entries.c.patient_id,
                patients.c.name.label("patient_name"),
                patients.c.phone.label("patient_phone"),
                patients.c.fcm_token.label("patient_fcm_token"),
            )
            .select_from(queue_entries.outerjoin(patients, patients.c.id == queue_entries.c.patient_id))
            .where(and_(*conditions))
            .order_by(queue_entries.c.number.asc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def find_next(self, scope: QueueScope, after_number: int, since: datetime | None = None) -> int | None:
        """Smallest waiting number greater than ``after_number``."""
        conditions = [*self._in_scope(scope), self._waiting(), queue_entries.c.number > after_number]
        if since is not None:
            conditions.append(queue_entries.c.booked_at >= since)
        stmt = select(func.min(queue_entries.c.number)).where(and_(*conditions))
        return (await self.db.execute(stmt)).scalar()

    async def count_waiting(self, scope: QueueScope, after_number: int, since: datetime | None = None) -> int:
        """Waiting tickets with a number greater than ``after_number``."""
        conditions = [*self._in_scope(scope), self._waiting(), queue_entries.c.number > after_number]
        if since is not None:
            conditions.append(queue_entries.c.booked_at >= since)
        stmt = select(func.count()).select_from(queue_entries).where(and_(*conditions))
        return (await self.db.execute(stmt)).scalar() or 0

    async def retire_before(self, scope: QueueScope, since: datetime, at: datetime) -> list[dict[str, Any]]:
        """
        Cancel tickets still waiting from an earlier numbering session.

        Their numbers would otherwise collide with the session starting at
        ``since``. Patient references are released as for any cancellation.
        """
        return await self.bulk_transition(scope, [queue_entries.c.booked_at < since], TicketStatus.CANCELLED, at)

    async def count_waiting_in_clinic(self, clinic_id: UUID) -> int:
        """Waiting tickets across all of a clinic's doctors."""
        stmt = (
            select(func.count())
            .select_from(queue_entries)
            .where(queue_entries.c.clinic_id == clinic_id, self._waiting())
        )
        return (await self.db.execute(stmt)).scalar() or 0

    async def max_number_since(self, scope: QueueScope, since: datetime) -> int | None:
        """Highest ticket number booked at or after ``since``, any status."""
        stmt = select(func.max(queue_entries.c.number)).where(
            and_(*self._in_scope(scope), queue_entries.c.booked_at >= since)
        )
        return (await self.db.execute(stmt)).scalar()

    async def latest_settled_number(self, scope: QueueScope, since: datetime) -> int | None:
        """Highest served or missed number since ``since``; rebuilds a lost counter."""
        stmt = select(func.max(queue_entries.c.number)).where(
            and_(
                *self._in_scope(scope),
                queue_entries.c.booked_at >= since,
                queue_entries.c.status.in_([TicketStatus.SERVED.value, TicketStatus.MISSED.value]),
            )
        )
        return (await self.db.execute(stmt)).scalar()

    async def bulk_transition(
        self,
        scope: QueueScope,
        predicate: list[ColumnElement[bool]],
        new_status: TicketStatus,
        at: datetime,
    ) -> list[dict[str, Any]]:
        """
        Move matching waiting tickets to a terminal status.

        Only ``waiting`` rows are touched, so terminal tickets are never
        reopened or re-stamped.

        Args:
            scope: Doctor queue
            predicate: Extra conditions on ``queue_entries`` columns
            new_status: Terminal status
            at: Transition timestamp

        Returns:
            Transitioned tickets (id, number, patient_id)
        """
        conditions = [*self._in_scope(scope), self._waiting(), *predicate]
        stmt = (
            select(queue_entries.c.id, queue_entries.c.number, queue_entries.c.patient_id)
            .where(and_(*conditions))
            .order_by(queue_entries.c.number.asc())
        )
        rows = [dict(row) for row in (await self.db.execute(stmt)).mappings().all()]
        if not rows:
            return []

        ticket_ids = [row["id"] for row in rows]
        await self.db.execute(
            update(queue_entries)
            .where(queue_entries.c.id.in_(ticket_ids), self._waiting())
            .values(status=new_status.value, **{TRANSITION_TIMESTAMPS[new_status]: at})
        )
        await self._release_patients(rows, at)
        return rows

    async def transition(
        self,
        ticket_id: UUID,
        new_status: TicketStatus,
        at: datetime,
        patient_id: UUID | None = None,
    ) -> dict[str, Any] | None:
        """
        Move one waiting ticket to a terminal status.

        Returns:
            Updated ticket, or None if it was not waiting (or not the patient's)
        """
        conditions = [queue_entries.c.id == ticket_id, self._waiting()]
        if patient_id is not None:
            conditions.append(queue_entries.c.patient_id == patient_id)

        stmt = (
            update(queue_entries)
            .where(and_(*conditions))
            .values(status=new_status.value, **{TRANSITION_TIMESTAMPS[new_status]: at})
            .returning(queue_entries)
        )
        row = (await self.db.execute(stmt)).mappings().first()
        if row is None:
            return None

        ticket = dict(row)
        await self._release_patients([ticket], at)
        return ticket

    async def _release_patients(self, tickets: list[dict[str, Any]], at: datetime) -> None:
        """Clear ``current_queue_id`` and file the tickets in patient history."""
        ticket_ids = [t["id"] for t in tickets]
        await self.db.execute(
            update(patients)
            .where(patients.c.current_queue_id.in_(ticket_ids))
            .values(current_queue_id=None, updated_at=at)
        )
        await self.db.execute(
            insert(patient_queue_history),
            [{"patient_id": t["patient_id"], "queue_entry_id": t["id"], "added_at": at} for t in tickets],
        )

    async def list_by_status(
        self,
        clinic_id: UUID,
        status: TicketStatus,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Clinic tickets in one status, patient populated; waiting oldest first, others newest first."""
        if status == TicketStatus.WAITING:
            order = queue_entries.c.number.asc()
        else:
            order = queue_entries.c[TRANSITION_TIMESTAMPS[status]].desc()

        stmt = (
            select(
                queue_entries,
                patients.c.name.label("name"),
                patients.c.phone.label("phone"),
            )
            .select_from(queue_entries.outerjoin(patients, patients.c.id == queue_entries.c.patient_id))
            .where(queue_entries.c.clinic_id == clinic_id, queue_entries.c.status == status.value)
            .order_by(order)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def history_for_patient(self, patient_id: UUID, limit: int = 50) -> list[dict[str, Any]]:
        """A patient's past tickets, newest booking first."""
        stmt = (
            select(queue_entries, clinics.c.name.label("clinic_name"))
            .select_from(
                patient_queue_history.join(
                    queue_entries, queue_entries.c.id == patient_queue_history.c.queue_entry_id
                ).outerjoin(clinics, clinics.c.id == queue_entries.c.clinic_id)
            )
            .where(patient_queue_history.c.patient_id == patient_id)
            .order_by(queue_entries.c.booked_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]
