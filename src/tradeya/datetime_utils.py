"""Timezone helpers.

SQLite hands back naive datetimes even for ``DateTime(timezone=True)``
columns; everything stored by this service is UTC, so naive values are read
as UTC.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time with tzinfo set."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime, treating naive values as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
