"""Ticket numbering policy for doctor queues."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog

from app.config import settings
from app.core.clock import as_utc, is_within_hours, start_of_day
from app.core.exceptions import (
    AlreadyQueuedException,
    ClinicClosedException,
    DoctorUnavailableException,
    PreconditionFailedException,
)
from app.services.queue_ledger import QueueLedger, QueueScope

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class NumberAssignment:
    """Number for a new ticket and whether it opens a fresh session."""

    number: int
    session_started_at: datetime
    fresh_session: bool


@dataclass(frozen=True)
class NumberingPolicy:
    """
    Doctor-scoped numbering that restarts at 1 on every new session.

    A session starts when the clinic opens, when the doctor's availability
    last changed, and (with ``reset_on_new_day``) at local midnight,
    whichever is latest. Cancelled tickets still hold their number, so a
    number is never issued twice within a session.
    """

    reset_on_new_day: bool = True

    @classmethod
    def from_settings(cls) -> "NumberingPolicy":
        """Build the policy from application settings."""
        return cls(reset_on_new_day=settings.queue_reset_on_new_day)

    def session_start(self, clinic: dict[str, Any], doctor: dict[str, Any], now: datetime) -> datetime:
        """Start of the numbering session the scope is currently in."""
        candidates = [as_utc(clinic["last_status_change"]), as_utc(doctor["last_status_change"])]
        if self.reset_on_new_day:
            candidates.append(start_of_day(now, clinic["timezone"]))
        return max(candidates)

    def check_bookable(
        self,
        clinic: dict[str, Any],
        doctor: dict[str, Any],
        patient: dict[str, Any],
        now: datetime,
    ) -> None:
        """
        Refuse a booking the scope cannot accept.

        Raises:
            ClinicClosedException: Clinic closed or outside operating hours
            DoctorUnavailableException: Doctor inactive or unavailable
            AlreadyQueuedException: Patient already holds a waiting ticket
        """
        if not clinic["is_open"]:
            raise ClinicClosedException()

        if not is_within_hours(now, clinic["opening_time"], clinic["closing_time"], clinic["timezone"]):
            raise ClinicClosedException("Clinic is outside operating hours")

        if not doctor["is_active"] or not doctor["is_available"]:
            raise DoctorUnavailableException()

        if patient["current_queue_id"] is not None:
            raise AlreadyQueuedException()

    @staticmethod
    def check_capacity(clinic: dict[str, Any], waiting_in_clinic: int) -> None:
        """Refuse bookings once the clinic holds ``max_active_queues`` waiting tickets."""
        if waiting_in_clinic >= clinic["max_active_queues"]:
            raise PreconditionFailedException("Clinic queue is full")

    async def assign(self, ledger: QueueLedger, scope: QueueScope, session_started_at: datetime) -> NumberAssignment:
        """
        Next ticket number for the scope.

        Returns ``max + 1`` over tickets booked since the session start, or 1
        (flagged as a fresh session) when there are none.
        """
        highest = await ledger.max_number_since(scope, session_started_at)
        if highest is None:
            logger.info(
                "numbering_session_started",
                doctor_id=str(scope.doctor_id),
                session_started_at=session_started_at.isoformat(),
            )
            return NumberAssignment(number=1, session_started_at=session_started_at, fresh_session=True)

        return NumberAssignment(
            number=highest + 1,
            session_started_at=session_started_at,
            fresh_session=False,
        )
