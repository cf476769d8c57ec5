"""Tests for numbering sessions and booking preconditions."""

from datetime import UTC, datetime, timedelta

import pytest

from app.core.exceptions import (
    AlreadyQueuedException,
    ClinicClosedException,
    DoctorUnavailableException,
    PreconditionFailedException,
)
from app.services.numbering import NumberingPolicy

NOON = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


def make_clinic(**overrides) -> dict:
    clinic = {
        "is_open": True,
        "opening_time": "09:00",
        "closing_time": "17:00",
        "timezone": "UTC",
        "max_active_queues": 3,
        "last_status_change": NOON - timedelta(hours=3),
    }
    clinic.update(overrides)
    return clinic


def make_doctor(**overrides) -> dict:
    doctor = {
        "is_active": True,
        "is_available": True,
        "last_status_change": NOON - timedelta(hours=5),
    }
    doctor.update(overrides)
    return doctor


def test_session_start_is_latest_change():
    """Clinic opening, doctor toggle and midnight: the latest wins."""
    policy = NumberingPolicy(reset_on_new_day=True)

    assert policy.session_start(make_clinic(), make_doctor(), NOON) == NOON - timedelta(hours=3)

    doctor = make_doctor(last_status_change=NOON - timedelta(minutes=30))
    assert policy.session_start(make_clinic(), doctor, NOON) == NOON - timedelta(minutes=30)


def test_session_start_midnight_reset():
    """A clinic left open overnight starts a new session at local midnight."""
    clinic = make_clinic(last_status_change=NOON - timedelta(days=2))
    doctor = make_doctor(last_status_change=NOON - timedelta(days=2))

    with_reset = NumberingPolicy(reset_on_new_day=True).session_start(clinic, doctor, NOON)
    without_reset = NumberingPolicy(reset_on_new_day=False).session_start(clinic, doctor, NOON)

    assert with_reset == datetime(2026, 10, 19, 0, 0, tzinfo=UTC)
    assert without_reset == NOON - timedelta(days=2)


def test_session_start_accepts_naive_database_values():
    """Naive timestamps read back from SQLite are treated as UTC."""
    clinic = make_clinic(last_status_change=datetime(2026, 10, 19, 11, 0))
    start = NumberingPolicy().session_start(clinic, make_doctor(), NOON)
    assert start == datetime(2026, 10, 19, 11, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    "clinic, doctor, patient, error",
    [
        (make_clinic(is_open=False), make_doctor(), {"current_queue_id": None}, ClinicClosedException),
        (make_clinic(closing_time="11:00"), make_doctor(), {"current_queue_id": None}, ClinicClosedException),
        (make_clinic(), make_doctor(is_available=False), {"current_queue_id": None}, DoctorUnavailableException),
        (make_clinic(), make_doctor(is_active=False), {"current_queue_id": None}, DoctorUnavailableException),
        (make_clinic(), make_doctor(), {"current_queue_id": "ticket"}, AlreadyQueuedException),
    ],
)
def test_check_bookable_refusals(clinic, doctor, patient, error):
    with pytest.raises(error):
        NumberingPolicy().check_bookable(clinic, doctor, patient, NOON)


def test_check_bookable_accepts():
    NumberingPolicy().check_bookable(make_clinic(), make_doctor(), {"current_queue_id": None}, NOON)


def test_check_capacity():
    NumberingPolicy.check_capacity(make_clinic(), 2)
    with pytest.raises(PreconditionFailedException):
        NumberingPolicy.check_capacity(make_clinic(), 3)
