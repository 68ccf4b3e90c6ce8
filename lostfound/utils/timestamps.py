"""Timestamp utilities for UTC handling and day-boundary arithmetic.

All timestamps in the service are timezone-aware UTC datetimes. Listing
``found_at`` values, alert date ranges and confirmation expiries are compared
through the helpers in this module so that naive values coming from request
payloads are interpreted consistently.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC time with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    If the datetime is timezone-naive, it's treated as UTC.
    If the datetime has a different timezone, it's converted to UTC.

    Args:
        dt: Datetime to convert (can be None)

    Returns:
        Timezone-aware datetime in UTC, or None if input is None

    Example:
        >>> naive = datetime(2024, 1, 1, 12, 0, 0)
        >>> ensure_utc(naive).tzinfo == timezone.utc
        True
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def start_of_day(day: date) -> datetime:
    """Return 00:00:00 UTC on the given calendar day."""
    return datetime.combine(day, time(0, 0, 0), tzinfo=timezone.utc)


def end_of_day(day: date) -> datetime:
    """Return 23:59:59 UTC on the given calendar day.

    The boundary is inclusive at whole-second precision: a listing found at
    ``23:59:59.500`` on that day falls after it.
    """
    return datetime.combine(day, time(23, 59, 59), tzinfo=timezone.utc)


def hours_from(dt: datetime, hours: int) -> datetime:
    """Return ``dt`` shifted forward by ``hours`` hours, in UTC."""
    return ensure_utc(dt) + timedelta(hours=hours)


def parse_iso_datetime(iso_string: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 datetime string to UTC datetime.

    Supports ``2024-01-01T12:00:00Z``, ``2024-01-01T12:00:00+02:00``,
    ``2024-01-01T12:00:00`` and date-only ``2024-01-01`` forms.

    Args:
        iso_string: ISO 8601 formatted datetime string

    Returns:
        Timezone-aware datetime in UTC, or None if parsing fails
    """
    if not iso_string or not iso_string.strip():
        return None

    cleaned = iso_string.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"

    try:
        return ensure_utc(datetime.fromisoformat(cleaned))
    except ValueError:
        pass

    try:
        return ensure_utc(datetime.strptime(cleaned, "%Y-%m-%d"))
    except ValueError:
        return None


def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime for database storage.

    Stored values share one fixed-width layout so that string comparison in
    SQL orders them chronologically.

    Args:
        dt: Datetime to format (naive values are treated as UTC)

    Returns:
        ISO 8601 string with microseconds and 'Z' suffix, or None
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return None
    return dt_utc.strftime(STORAGE_FORMAT)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a value written by :func:`format_timestamp`.

    Args:
        value: Stored timestamp string

    Returns:
        Timezone-aware datetime in UTC or None
    """
    if value is None or value == "":
        return None

    stripped = value.rstrip("Z")
    try:
        dt = datetime.strptime(stripped, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        dt = datetime.strptime(stripped, "%Y-%m-%dT%H:%M:%S")

    return dt.replace(tzinfo=timezone.utc)


def format_date(day: Optional[date]) -> Optional[str]:
    """Format a calendar date as ``YYYY-MM-DD`` (None passes through)."""
    return day.isoformat() if day else None


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string (None/empty passes through)."""
    if not value:
        return None
    return date.fromisoformat(value)
