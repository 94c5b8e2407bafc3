"""
Timezone utilities for the TutorConnect marketplace.

Availability is declared in the tutor's wall-clock time while bookings are
stored as UTC instants; these helpers convert between the two.
"""

from datetime import date, datetime, time

import pytz


def get_timezone(name: str | None) -> pytz.BaseTzInfo:
    """
    Resolve an IANA timezone name, falling back to UTC.

    Args:
        name: Timezone name such as ``America/New_York``

    Returns:
        pytz timezone object
    """
    if not name:
        return pytz.UTC
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def is_valid_timezone(name: str) -> bool:
    return name in pytz.all_timezones_set


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(pytz.UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def local_to_utc(day: date, wall_time: time, tz_name: str | None) -> datetime:
    """
    Convert a wall-clock time on a given date in ``tz_name`` to UTC.

    Non-existent local times (spring-forward gaps) are shifted by pytz's
    ``normalize`` rather than rejected.
    """
    tz = get_timezone(tz_name)
    local = tz.normalize(tz.localize(datetime.combine(day, wall_time), is_dst=False))
    return local.astimezone(pytz.UTC)


def utc_to_local(dt: datetime, tz_name: str | None) -> datetime:
    """Convert a UTC (or naive-as-UTC) datetime into ``tz_name``."""
    return ensure_utc(dt).astimezone(get_timezone(tz_name))
