"""Queue service: booking, progression, cancellation and snapshots per doctor queue."""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.clock import utc_now
from app.core.exceptions import (
    AppException,
    ConflictRaceException,
    DownstreamUnavailableException,
    NoMoreInScopeException,
    NotFoundException,
    TicketNotCancellableException,
    ValidationException,
)
from app.core.locks import ScopeGuard, scope_guard
from app.core.redis_client import CounterStore, doctor_scope_key
from app.models.clinics import clinics
from app.models.doctors import doctors
from app.models.patients import patients
from app.models.queue_entries import queue_entries
from app.schemas.queue import (
    AdvanceAction,
    AdvanceResponse,
    BookingResponse,
    CancelResponse,
    ClinicStatusSnapshot,
    PatientQueueStatus,
    QueueSnapshot,
    TicketResponse,
    TicketStatus,
    UpcomingTicket,
)
from app.services.broadcast_service import QueueBroadcaster
from app.services.notification_service import NotificationService
from app.services.numbering import NumberingPolicy
from app.services.queue_ledger import QueueLedger, QueueScope
from app.services.wait_time import estimate, position_wait

logger = structlog.get_logger(__name__)


class QueueService:
    """
    Doctor-scoped queue operations.

    Every mutation runs inside the scope's exclusive section and a single
    database transaction, with the doctor row locked for the duration.
    Broadcasts and push notifications are dispatched only after commit.
    """

    def __init__(
        self,
        db: AsyncSession,
        counter: CounterStore,
        broadcaster: QueueBroadcaster,
        notifier: NotificationService,
        guard: ScopeGuard | None = None,
        policy: NumberingPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize queue service with its collaborators."""
        self.db = db
        self.ledger = QueueLedger(db)
        self.counter = counter
        self.broadcaster = broadcaster
        self.notifier = notifier
        self.guard = guard or scope_guard
        self.policy = policy or NumberingPolicy.from_settings()
        self.clock = clock

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[None]:
        """Commit on success, roll back on any failure and map store errors."""
        try:
            yield
            await self.db.commit()
        except AppException:
            await self.db.rollback()
            raise
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("queue_write_conflict", operation=operation, error=str(e.orig))
            raise ConflictRaceException() from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("queue_store_failed", operation=operation, error=str(e))
            raise DownstreamUnavailableException() from e

    async def _get_clinic(self, clinic_id: UUID, for_update: bool = False) -> dict[str, Any]:
        stmt = select(clinics).where(clinics.c.id == clinic_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self.db.execute(stmt)).mappings().first()
        if not row:
            raise NotFoundException("Clinic not found")
        return dict(row)

    async def _load_scope(
        self,
        clinic_id: UUID,
        doctor_id: UUID,
        for_update: bool = False,
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """
        Fetch a clinic and one of its doctors.

        Args:
            clinic_id: Clinic ID
            doctor_id: Doctor ID, must belong to the clinic
            for_update: Lock the doctor row until the transaction ends

        Raises:
            NotFoundException: If either is missing
        """
        clinic = await self._get_clinic(clinic_id)

        stmt = select(doctors).where(doctors.c.id == doctor_id, doctors.c.clinic_id == clinic_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self.db.execute(stmt)).mappings().first()
        if not row:
            raise NotFoundException("Doctor not found")
        return clinic, dict(row)

    async def _get_patient(self, patient_id: UUID) -> dict[str, Any]:
        row = (await self.db.execute(select(patients).where(patients.c.id == patient_id))).mappings().first()
        if not row:
            raise NotFoundException("Patient not found")
        return dict(row)

    async def _tokens_for(self, patient_ids: list[UUID]) -> dict[UUID, str]:
        if not patient_ids:
            return {}
        stmt = select(patients.c.id, patients.c.fcm_token).where(
            patients.c.id.in_(patient_ids), patients.c.fcm_token.is_not(None)
        )
        return {row.id: row.fcm_token for row in (await self.db.execute(stmt)).fetchall()}

    async def current_serving(self, scope: QueueScope, session_started_at: datetime) -> int:
        """
        Serving number for a scope, rebuilt from the ledger if the counter is missing.

        The rebuilt value is the highest served or missed number in the
        current session, or 0.
        """
        key = doctor_scope_key(scope.doctor_id)
        value = self.counter.get(key)
        if value is not None:
            return value

        value = await self.ledger.latest_settled_number(scope, session_started_at) or 0
        self.counter.set(key, value)
        logger.info("counter_reconciled", doctor_id=str(scope.doctor_id), current_number=value)
        return value

    async def _snapshot(self, clinic: dict[str, Any], doctor: dict[str, Any]) -> QueueSnapshot:
        scope = QueueScope(clinic["id"], doctor["id"])
        session_started_at = self.policy.session_start(clinic, doctor, self.clock())
        current = await self.current_serving(scope, session_started_at)

        upcoming = await self.ledger.find_waiting(
            scope, settings.queue_upcoming_limit, after_number=current, since=session_started_at
        )
        total_waiting = await self.ledger.count_waiting(scope, current, since=session_started_at)
        wait = estimate(total_waiting, clinic["average_process_time"])

        return QueueSnapshot(
            clinic_id=clinic["id"],
            doctor_id=doctor["id"],
            current_number=current,
            upcoming=[UpcomingTicket(**row) for row in upcoming],
            total_waiting=total_waiting,
            avg_wait_time=wait.per_patient_minutes,
            estimated_wait=wait.total_minutes,
            has_next_patient=bool(upcoming),
            doctor_available=doctor["is_active"] and doctor["is_available"],
            clinic_status=ClinicStatusSnapshot(
                is_open=clinic["is_open"],
                operating_hours={"opening": clinic["opening_time"], "closing": clinic["closing_time"]},
            ),
        )

    async def _broadcast(self, clinic_id: UUID, doctor_id: UUID, extra: dict[str, Any] | None = None) -> None:
        """
        Publish the committed state of a scope.

        Runs after commit, so a failed read here is logged and never reaches
        the caller of the operation that triggered it.
        """
        try:
            clinic, doctor = await self._load_scope(clinic_id, doctor_id)
            snapshot = await self._snapshot(clinic, doctor)
        except (AppException, SQLAlchemyError) as e:
            logger.warning(
                "broadcast_snapshot_failed",
                clinic_id=str(clinic_id),
                doctor_id=str(doctor_id),
                error=str(e),
            )
            return
        self.broadcaster.dispatch_snapshot(snapshot, extra)

    async def _retire_stale(
        self, scope: QueueScope, session_started_at: datetime, now: datetime
    ) -> list[dict[str, Any]]:
        """Cancel waiting tickets left over from an earlier session of the scope."""
        stale = await self.ledger.retire_before(scope, session_started_at, now)
        if stale:
            logger.info(
                "stale_tickets_retired",
                doctor_id=str(scope.doctor_id),
                session_started_at=session_started_at.isoformat(),
                count=len(stale),
            )
        return stale

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def book_ticket(self, clinic_id: UUID, doctor_id: UUID, patient_id: UUID) -> BookingResponse:
        """
        Issue the next ticket in a doctor's queue.

        Waiting tickets from an earlier session (e.g. yesterday's) are
        cancelled first so numbers never repeat among waiting tickets.

        Args:
            clinic_id: Clinic ID
            doctor_id: Doctor ID
            patient_id: Patient ID

        Returns:
            Ticket, its number and the estimated wait in minutes

        Raises:
            NotFoundException: Clinic, doctor or patient missing
            ClinicClosedException: Clinic closed or outside operating hours
            DoctorUnavailableException: Doctor inactive or unavailable
            AlreadyQueuedException: Patient already holds a waiting ticket
            ConflictRaceException: Concurrent booking collided on the number
        """
        now = self.clock()
        scope = QueueScope(clinic_id, doctor_id)
        key = doctor_scope_key(doctor_id)
        previous: int | None = None
        counter_reset = False

        async with self.guard.hold(clinic_id, doctor_id):
            try:
                async with self._transaction("book_ticket"):
                    clinic, doctor = await self._load_scope(clinic_id, doctor_id, for_update=True)
                    session_started_at = self.policy.session_start(clinic, doctor, now)
                    stale = await self._retire_stale(scope, session_started_at, now)

                    patient = await self._get_patient(patient_id)
                    self.policy.check_bookable(clinic, doctor, patient, now)
                    self.policy.check_capacity(clinic, await self.ledger.count_waiting_in_clinic(clinic_id))

                    assignment = await self.policy.assign(self.ledger, scope, session_started_at)
                    ticket = await self.ledger.create(scope, patient_id, assignment.number, session_started_at, now)

                    if assignment.fresh_session:
                        previous = self.counter.get(key)
                        counter_reset = True
                        self.counter.reset(key)
                        current = 0
                    else:
                        current = await self.current_serving(scope, session_started_at)

                    waiting = await self.ledger.count_waiting(scope, current, since=session_started_at)
                    tokens = await self._tokens_for([t["patient_id"] for t in stale])
            except Exception:
                if counter_reset and previous is not None:
                    self._restore_counter(key, previous)
                raise

        wait = estimate(waiting, clinic["average_process_time"])
        logger.info(
            "ticket_booked",
            clinic_id=str(clinic_id),
            doctor_id=str(doctor_id),
            patient_id=str(patient_id),
            number=ticket["number"],
        )

        await self._broadcast(clinic_id, doctor_id)
        self._notify_cancelled(stale, tokens, "Your previous queue ticket has expired")
        self.notifier.booking_confirmed(patient["fcm_token"], ticket)

        return BookingResponse(
            ticket=TicketResponse(**ticket),
            ticket_number=ticket["number"],
            estimated_wait=wait.total_minutes,
        )

    async def advance_queue(
        self,
        clinic_id: UUID,
        doctor_id: UUID,
        action: AdvanceAction,
        explicit_number: int | None = None,
    ) -> AdvanceResponse:
        """
        Move the serving number forward and settle the tickets it passed.

        Waiting tickets strictly between the old and new serving number are
        marked missed; every remaining waiting ticket up to the new number
        is marked served. Only the current session's tickets are considered;
        waiting tickets from an earlier session are cancelled. Nothing is
        written when no next ticket exists.

        Args:
            clinic_id: Clinic ID
            doctor_id: Doctor ID
            action: ``next`` or ``specific``
            explicit_number: Target number for ``specific``

        Returns:
            New serving number, settle counts and the upcoming page

        Raises:
            ValidationException: ``specific`` without a positive number
            NoMoreInScopeException: No waiting ticket beyond the serving number
            NotFoundException: Clinic or doctor missing
        """
        if action == AdvanceAction.SPECIFIC and (explicit_number is None or explicit_number < 1):
            raise ValidationException("new_number must be a positive integer")

        now = self.clock()
        scope = QueueScope(clinic_id, doctor_id)
        key = doctor_scope_key(doctor_id)
        previous: int | None = None
        counter_written = False

        async with self.guard.hold(clinic_id, doctor_id):
            try:
                async with self._transaction("advance_queue"):
                    clinic, doctor = await self._load_scope(clinic_id, doctor_id, for_update=True)
                    session_started_at = self.policy.session_start(clinic, doctor, now)
                    previous = await self.current_serving(scope, session_started_at)

                    if action == AdvanceAction.NEXT:
                        target = await self.ledger.find_next(scope, previous, since=session_started_at)
                        if target is None:
                            raise NoMoreInScopeException(current_number=previous)
                    else:
                        target = explicit_number

                    stale = await self._retire_stale(scope, session_started_at, now)
                    missed = await self.ledger.bulk_transition(
                        scope,
                        [queue_entries.c.number > previous, queue_entries.c.number < target],
                        TicketStatus.MISSED,
                        now,
                    )
                    served = await self.ledger.bulk_transition(
                        scope,
                        [queue_entries.c.number <= target],
                        TicketStatus.SERVED,
                        now,
                    )

                    counter_written = True
                    self.counter.set(key, target)

                    upcoming = await self.ledger.find_waiting(
                        scope,
                        max(settings.queue_upcoming_limit, settings.queue_notify_ahead),
                        after_number=target,
                        since=session_started_at,
                    )
                    remaining = await self.ledger.count_waiting(scope, target, since=session_started_at)
                    tokens = await self._tokens_for([t["patient_id"] for t in stale])
            except Exception:
                if counter_written and previous is not None:
                    self._restore_counter(key, previous)
                raise

        logger.info(
            "queue_advanced",
            clinic_id=str(clinic_id),
            doctor_id=str(doctor_id),
            action=action.value,
            previous_number=previous,
            current_number=target,
            served=len(served),
            missed=len(missed),
        )

        await self._broadcast(clinic_id, doctor_id)
        self._notify_cancelled(stale, tokens, "Your previous queue ticket has expired")

        for ticket in upcoming[: settings.queue_notify_ahead]:
            position = ticket["number"] - target
            if position <= settings.queue_notify_ahead:
                self.notifier.turn_approaching(ticket["patient_fcm_token"], ticket, position)

        return AdvanceResponse(
            current_number=target,
            served=len(served),
            missed=len(missed),
            upcoming=[UpcomingTicket(**row) for row in upcoming[: settings.queue_advance_upcoming_limit]],
            wait_time=estimate(remaining, clinic["average_process_time"]).total_minutes,
            has_next_patient=bool(upcoming),
        )

    def _restore_counter(self, key: str, value: int) -> None:
        try:
            self.counter.set(key, value)
        except DownstreamUnavailableException:
            logger.error("counter_restore_failed", key=key, value=value)

    async def cancel_ticket(
        self,
        ticket_id: UUID,
        patient_id: UUID | None = None,
        clinic_id: UUID | None = None,
    ) -> CancelResponse:
        """
        Cancel a waiting ticket.

        Args:
            ticket_id: Ticket ID
            patient_id: Owning patient, when a patient cancels
            clinic_id: Owning clinic, when clinic staff cancel

        Raises:
            TicketNotCancellableException: Ticket missing, not the caller's, or not waiting
        """
        ticket = await self.ledger.get(ticket_id)
        if ticket is None or (clinic_id is not None and ticket["clinic_id"] != clinic_id):
            raise TicketNotCancellableException()

        now = self.clock()
        async with self.guard.hold(ticket["clinic_id"], ticket["doctor_id"]):
            async with self._transaction("cancel_ticket"):
                cancelled = await self.ledger.transition(ticket_id, TicketStatus.CANCELLED, now, patient_id=patient_id)
                if cancelled is None:
                    raise TicketNotCancellableException()

        logger.info(
            "ticket_cancelled",
            ticket_id=str(ticket_id),
            doctor_id=str(cancelled["doctor_id"]),
            number=cancelled["number"],
            by_clinic=clinic_id is not None,
        )

        await self._broadcast(cancelled["clinic_id"], cancelled["doctor_id"], {"cancelled_number": cancelled["number"]})
        return CancelResponse(cancelled_number=cancelled["number"])

    async def get_snapshot(self, clinic_id: UUID, doctor_id: UUID) -> QueueSnapshot:
        """
        Current state of a doctor's queue. Read-only.

        Raises:
            NotFoundException: Clinic or doctor missing
        """
        clinic, doctor = await self._load_scope(clinic_id, doctor_id)
        return await self._snapshot(clinic, doctor)

    async def ticket_status(self, ticket_id: UUID) -> PatientQueueStatus:
        """
        A ticket's place in its queue.

        Raises:
            NotFoundException: Ticket, clinic or doctor missing
        """
        ticket = await self.ledger.get(ticket_id)
        if ticket is None:
            raise NotFoundException("Queue entry not found")

        clinic, doctor = await self._load_scope(ticket["clinic_id"], ticket["doctor_id"])
        scope = QueueScope(clinic["id"], doctor["id"])
        current = await self.current_serving(scope, self.policy.session_start(clinic, doctor, self.clock()))

        if ticket["status"] == TicketStatus.WAITING.value:
            position, wait = position_wait(ticket["number"], current, clinic["average_process_time"])
        else:
            position, wait = 0, 0

        return PatientQueueStatus(
            ticket_id=ticket["id"],
            clinic_name=clinic["name"],
            clinic_address=clinic["address"],
            doctor_name=doctor["name"],
            queue_number=ticket["number"],
            current_serving=current,
            position_in_queue=position,
            estimated_wait=wait,
            status=ticket["status"],
        )

    # ------------------------------------------------------------------
    # Scope resets
    # ------------------------------------------------------------------

    async def _cancel_waiting(self, scopes: list[QueueScope], now: datetime) -> list[dict[str, Any]]:
        """Cancel every waiting ticket in the scopes and zero their counters."""
        cancelled: list[dict[str, Any]] = []
        for scope in scopes:
            cancelled.extend(await self.ledger.bulk_transition(scope, [], TicketStatus.CANCELLED, now))
            self.counter.reset(doctor_scope_key(scope.doctor_id))
        return cancelled

    async def _clinic_doctor_ids(self, clinic_id: UUID) -> list[UUID]:
        result = await self.db.execute(select(doctors.c.id).where(doctors.c.clinic_id == clinic_id))
        return [row.id for row in result.fetchall()]

    def _notify_cancelled(self, cancelled: list[dict[str, Any]], tokens: dict[UUID, str], reason: str) -> None:
        for ticket in cancelled:
            self.notifier.queue_cancelled(tokens.get(ticket["patient_id"]), ticket, reason)

    async def cancel_scope(self, clinic_id: UUID, doctor_id: UUID | None = None) -> int:
        """
        Cancel every waiting ticket of one doctor, or of every doctor in a clinic.

        Counters are reset to 0 and patient references cleared.

        Returns:
            Number of tickets cancelled
        """
        now = self.clock()
        doctor_ids = [doctor_id] if doctor_id is not None else await self._clinic_doctor_ids(clinic_id)
        scopes = [QueueScope(clinic_id, d) for d in doctor_ids]

        async with self.guard.hold_many(clinic_id, doctor_ids):
            async with self._transaction("cancel_scope"):
                await self._get_clinic(clinic_id)
                cancelled = await self._cancel_waiting(scopes, now)
                tokens = await self._tokens_for([t["patient_id"] for t in cancelled])

        logger.info("queue_scope_cancelled", clinic_id=str(clinic_id), doctors=len(scopes), cancelled=len(cancelled))

        for scope in scopes:
            await self._broadcast(scope.clinic_id, scope.doctor_id)
        self._notify_cancelled(cancelled, tokens, "Your queue ticket was cancelled by the clinic")
        return len(cancelled)

    async def set_doctor_availability(
        self,
        clinic_id: UUID,
        doctor_id: UUID,
        is_available: bool,
    ) -> tuple[dict[str, Any], int]:
        """
        Toggle a doctor's real-time availability.

        Either direction starts a new numbering session. Going unavailable
        also cancels the doctor's waiting tickets.

        Returns:
            Tuple of (updated doctor, cancelled ticket count)
        """
        now = self.clock()
        scope = QueueScope(clinic_id, doctor_id)

        async with self.guard.hold(clinic_id, doctor_id):
            async with self._transaction("set_doctor_availability"):
                await self._load_scope(clinic_id, doctor_id, for_update=True)

                result = await self.db.execute(
                    update(doctors)
                    .where(doctors.c.id == doctor_id)
                    .values(is_available=is_available, last_status_change=now, updated_at=now)
                    .returning(doctors)
                )
                doctor = dict(result.mappings().one())

                if is_available:
                    cancelled: list[dict[str, Any]] = []
                    self.counter.reset(doctor_scope_key(doctor_id))
                else:
                    cancelled = await self._cancel_waiting([scope], now)
                tokens = await self._tokens_for([t["patient_id"] for t in cancelled])

        logger.info(
            "doctor_availability_changed",
            clinic_id=str(clinic_id),
            doctor_id=str(doctor_id),
            is_available=is_available,
            cancelled=len(cancelled),
        )

        await self._broadcast(clinic_id, doctor_id)
        self._notify_cancelled(cancelled, tokens, "The doctor is no longer available today")
        return doctor, len(cancelled)

    async def set_clinic_open(self, clinic_id: UUID, is_open: bool, reset: bool) -> tuple[dict[str, Any], int]:
        """
        Open or close a clinic and record the status change.

        Args:
            clinic_id: Clinic ID
            is_open: New status
            reset: Cancel leftover waiting tickets and zero every doctor counter

        Returns:
            Tuple of (updated clinic, cancelled ticket count)
        """
        now = self.clock()
        doctor_ids = await self._clinic_doctor_ids(clinic_id)
        scopes = [QueueScope(clinic_id, d) for d in doctor_ids]

        async with self.guard.hold_many(clinic_id, doctor_ids):
            async with self._transaction("set_clinic_open"):
                await self._get_clinic(clinic_id, for_update=True)

                result = await self.db.execute(
                    update(clinics)
                    .where(clinics.c.id == clinic_id)
                    .values(is_open=is_open, last_status_change=now, updated_at=now)
                    .returning(clinics)
                )
                clinic = dict(result.mappings().one())

                cancelled = await self._cancel_waiting(scopes, now) if reset else []
                tokens = await self._tokens_for([t["patient_id"] for t in cancelled])

        logger.info(
            "clinic_status_changed",
            clinic_id=str(clinic_id),
            is_open=is_open,
            reset=reset,
            cancelled=len(cancelled),
        )

        self.broadcaster.dispatch_clinic_status(
            clinic_id,
            is_open,
            {
                "last_status_change": now.isoformat(),
                "operating_hours": {"opening": clinic["opening_time"], "closing": clinic["closing_time"]},
            },
        )
        for scope in scopes:
            await self._broadcast(scope.clinic_id, scope.doctor_id)
        reason = "Your previous queue ticket has expired" if is_open else "The clinic has closed its queue"
        self._notify_cancelled(cancelled, tokens, reason)
        return clinic, len(cancelled)
