"""Tests for per-scope exclusive sections."""

import asyncio
from uuid import uuid4

import pytest

from app.core.exceptions import ConflictRaceException
from app.core.locks import ScopeGuard, scope_key


def test_scope_key_is_per_doctor():
    clinic_id, doctor_id = uuid4(), uuid4()
    assert scope_key(clinic_id, doctor_id) == scope_key(str(clinic_id), str(doctor_id))
    assert scope_key(clinic_id, doctor_id) != scope_key(clinic_id, uuid4())


@pytest.mark.asyncio
async def test_scope_guard_times_out():
    """A second holder of the same scope gives up with ConflictRace."""
    guard = ScopeGuard(timeout=0.05)
    clinic_id, doctor_id = uuid4(), uuid4()

    async with guard.hold(clinic_id, doctor_id):
        with pytest.raises(ConflictRaceException):
            async with guard.hold(clinic_id, doctor_id):
                pass

        # Other doctors are not blocked
        async with guard.hold(clinic_id, uuid4()):
            pass


@pytest.mark.asyncio
async def test_scope_guard_serialises_holders():
    guard = ScopeGuard(timeout=1.0)
    clinic_id, doctor_id = uuid4(), uuid4()
    order: list[str] = []

    async def worker(name: str) -> None:
        async with guard.hold(clinic_id, doctor_id):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order == ["a-in", "a-out", "b-in", "b-out"]


@pytest.mark.asyncio
async def test_hold_many_locks_every_doctor():
    guard = ScopeGuard(timeout=0.05)
    clinic_id, first, second = uuid4(), uuid4(), uuid4()

    async with guard.hold_many(clinic_id, [second, first]):
        with pytest.raises(ConflictRaceException):
            async with guard.hold(clinic_id, first):
                pass
