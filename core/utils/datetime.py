"""Datetime utilities for common operations."""

from datetime import datetime, timezone
from typing import Optional


def now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Make a datetime timezone aware.

    Some drivers (SQLite) hand back naive datetimes for timezone-aware
    columns; those values were stored as UTC.

    Args:
        dt: Datetime to normalize

    Returns:
        UTC-aware datetime, or None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_past(dt: datetime) -> bool:
    """
    Check if datetime is in the past.

    Args:
        dt: Datetime to check

    Returns:
        True if in the past
    """
    return ensure_utc(dt) < now()


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as ISO-8601 in UTC."""
    dt = ensure_utc(dt)
    return dt.isoformat() if dt else None
