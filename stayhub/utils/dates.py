import math
from datetime import date, datetime, time, timezone
from typing import Optional

from stayhub.core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a datetime to an aware UTC value.

    Some backends (SQLite) hand back naive datetimes even for
    ``DateTime(timezone=True)`` columns; every value we write is UTC, so a
    naive value read back is UTC as well.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def stay_instant(day: date) -> datetime:
    """Turn a calendar date from a request into the stay boundary instant (noon UTC by default)."""
    return datetime.combine(day, time(hour=settings.CHECK_IN_HOUR_UTC), tzinfo=timezone.utc)


def count_nights(check_in: datetime, check_out: datetime) -> int:
    """Nights billed for a stay: partial days round up."""
    seconds = (as_utc(check_out) - as_utc(check_in)).total_seconds()
    return math.ceil(seconds / (60 * 60 * 24))
