"""Time helpers for operating hours and numbering sessions."""

from datetime import UTC, datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """
    Normalise a datetime read from the database to aware UTC.

    SQLite returns naive values for timezone-aware columns; those are stored
    as UTC, so they are tagged rather than converted.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:MM`` string into a time."""
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def clinic_zone(name: str | None) -> ZoneInfo:
    """Resolve a clinic timezone name, falling back to UTC."""
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def is_within_hours(now: datetime, opening: str, closing: str, tz_name: str | None = None) -> bool:
    """
    Check whether ``now`` falls inside the ``[opening, closing]`` window.

    Args:
        now: Aware current time
        opening: Opening time of day, ``HH:MM``
        closing: Closing time of day, ``HH:MM``
        tz_name: IANA timezone the hours are expressed in

    Returns:
        True if within operating hours
    """
    local = as_utc(now).astimezone(clinic_zone(tz_name)).time().replace(tzinfo=None)
    return parse_hhmm(opening) <= local <= parse_hhmm(closing)


def start_of_day(now: datetime, tz_name: str | None = None) -> datetime:
    """Midnight of the current local day, as aware UTC."""
    zone = clinic_zone(tz_name)
    local = as_utc(now).astimezone(zone)
    midnight = datetime.combine(local.date(), time(0, 0), tzinfo=zone)
    return midnight.astimezone(UTC)
