"""Tests for wait estimates and time helpers."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from app.core.clock import as_utc, is_within_hours, start_of_day
from app.services.wait_time import estimate, position_wait

NOON = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


def test_estimate_flat_rate():
    """Total wait is waiting count times the clinic average."""
    wait = estimate(4, 15)
    assert wait.waiting_count == 4
    assert wait.per_patient_minutes == 15
    assert wait.total_minutes == 60


def test_estimate_never_negative():
    assert estimate(-2, 15).total_minutes == 0


def test_position_wait():
    """Position counts from the serving number; called tickets sit at 0."""
    assert position_wait(7, 4, 10) == (3, 30)
    assert position_wait(4, 4, 10) == (0, 0)
    assert position_wait(2, 4, 10) == (0, 0)


def test_operating_hours_respect_clinic_timezone():
    """12:00 UTC is 08:00 in New York, before a 09:00 opening."""
    assert is_within_hours(NOON, "09:00", "17:00", "UTC") is True
    assert is_within_hours(NOON, "09:00", "17:00", "America/New_York") is False
    assert is_within_hours(NOON, "09:00", "17:00", "Not/AZone") is True


def test_start_of_day_in_clinic_timezone():
    """Midnight in Kolkata is 18:30 UTC the previous day."""
    assert start_of_day(NOON, "Asia/Kolkata") == datetime(2026, 10, 18, 18, 30, tzinfo=UTC)


def test_as_utc_converts_offsets():
    eastern = datetime(2026, 10, 19, 8, 0, tzinfo=UTC).astimezone(ZoneInfo("America/New_York"))
    assert as_utc(eastern) == datetime(2026, 10, 19, 8, 0, tzinfo=UTC)
