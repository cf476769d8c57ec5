"""Per-scope exclusive sections for queue mutations."""

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from uuid import UUID

import structlog

from app.config import settings
from app.core.exceptions import ConflictRaceException

logger = structlog.get_logger(__name__)


def scope_key(clinic_id: UUID | str, doctor_id: UUID | str) -> str:
    """Lock key for a (clinic, doctor) queue."""
    return f"queue:{clinic_id}:{doctor_id}"


class ScopeGuard:
    """
    Serialises booking, progression and cancellation per queue scope.

    Only covers coroutines in this process; services pair it with a row lock
    on the doctor record so other workers are serialised by the database.
    """

    def __init__(self, timeout: float | None = None):
        """Initialize guard with the lock acquisition timeout in seconds."""
        self.timeout = timeout if timeout is not None else settings.queue_lock_timeout_seconds
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, clinic_id: UUID | str, doctor_id: UUID | str) -> AsyncIterator[None]:
        """
        Hold the exclusive section for one doctor's queue.

        Raises:
            ConflictRaceException: If the section is not acquired within the timeout
        """
        key = scope_key(clinic_id, doctor_id)
        lock = self._lock_for(key)

        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
        except TimeoutError as e:
            logger.warning("scope_lock_timeout", scope=key, timeout=self.timeout)
            raise ConflictRaceException() from e

        try:
            yield
        finally:
            lock.release()

    @asynccontextmanager
    async def hold_many(self, clinic_id: UUID | str, doctor_ids: list[UUID | str]) -> AsyncIterator[None]:
        """Hold the sections of several doctors in one clinic, in a fixed order."""
        async with AsyncExitStack() as stack:
            for doctor_id in sorted({str(d) for d in doctor_ids}):
                await stack.enter_async_context(self.hold(clinic_id, doctor_id))
            yield


# Shared guard for the application process
scope_guard = ScopeGuard()
