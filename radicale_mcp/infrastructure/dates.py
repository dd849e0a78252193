"""Conversions between ISO 8601 strings and iCalendar DATE / DATE-TIME values."""

from datetime import date, datetime, timezone
from typing import Any, Optional

from dateutil.parser import isoparse

ICAL_DATETIME_FORMAT = "%Y%m%dT%H%M%SZ"
ICAL_DATE_FORMAT = "%Y%m%d"
ISO_UTC_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def parse_instant(iso: str) -> datetime:
    """Parse an ISO instant into an aware UTC datetime without microseconds.

    Instants without an offset are taken as UTC.
    """
    value = isoparse(iso.strip())
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0)


def to_ical_datetime(iso: str) -> str:
    """``2026-03-01T09:00:00.250+01:00`` -> ``20260301T080000Z``."""
    return parse_instant(iso).strftime(ICAL_DATETIME_FORMAT)


def to_ical_date(iso: str) -> str:
    """``2026-03-01`` or ``2026-03-01T09:00:00Z`` -> ``20260301``."""
    token = iso.strip().replace("-", "")[:8]
    if len(token) != 8 or not token.isdigit():
        raise ValueError(f"Not an ISO date: {iso!r}")
    return token


def parse_date(iso: str) -> date:
    return datetime.strptime(to_ical_date(iso), ICAL_DATE_FORMAT).date()


def to_iso(value: Any) -> Optional[str]:
    """Normalize a decoded calendar value to an ISO string.

    Aware datetimes come out in UTC with a ``Z`` suffix, floating ones
    without an offset, dates as ``YYYY-MM-DD``. Strings are passed through.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    # datetime is a subclass of date, so it has to be checked first
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(microsecond=0).isoformat()
        return value.astimezone(timezone.utc).strftime(ISO_UTC_FORMAT)
    if isinstance(value, date):
        return value.isoformat()
    return str(value)
