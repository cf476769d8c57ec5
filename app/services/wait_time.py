"""Wait-time estimation for queue snapshots and patient status."""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import as_utc
from app.models.queue_entries import queue_entries
from app.schemas.queue import TicketStatus


@dataclass(frozen=True)
class WaitEstimate:
    """Flat-rate wait estimate for one queue."""

    waiting_count: int
    per_patient_minutes: int
    total_minutes: int


def estimate(waiting_count: int, average_process_time: int) -> WaitEstimate:
    """
    Estimate the wait for everyone still queued.

    Args:
        waiting_count: Waiting tickets beyond the serving number
        average_process_time: Clinic's minutes per patient

    Returns:
        Wait estimate
    """
    waiting_count = max(waiting_count, 0)
    return WaitEstimate(
        waiting_count=waiting_count,
        per_patient_minutes=average_process_time,
        total_minutes=waiting_count * average_process_time,
    )


def position_wait(ticket_number: int, current_serving: int, average_process_time: int) -> tuple[int, int]:
    """
    Position and wait for a single ticket.

    Returns:
        Tuple of (position_in_queue, estimated_wait_minutes), both 0 once called
    """
    position = max(ticket_number - current_serving, 0)
    return position, position * average_process_time


async def historical_average_minutes(
    db: AsyncSession,
    clinic_id: UUID,
    doctor_id: UUID | None = None,
    sample_size: int = 200,
) -> float | None:
    """
    Average booked-to-served time over recent served tickets.

    Informational only (analytics); snapshots use the flat clinic average.
    """
    conditions = [
        queue_entries.c.clinic_id == clinic_id,
        queue_entries.c.status == TicketStatus.SERVED.value,
        queue_entries.c.served_at.is_not(None),
    ]
    if doctor_id is not None:
        conditions.append(queue_entries.c.doctor_id == doctor_id)

    stmt = (
        select(queue_entries.c.booked_at, queue_entries.c.served_at)
        .where(and_(*conditions))
        .order_by(queue_entries.c.served_at.desc())
        .limit(sample_size)
    )
    rows = (await db.execute(stmt)).fetchall()
    if not rows:
        return None

    total_seconds = sum(
        (as_utc(row.served_at) - as_utc(row.booked_at)).total_seconds() for row in rows
    )
    return round(total_seconds / len(rows) / 60, 2)

