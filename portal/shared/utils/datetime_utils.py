"""Timezone-aware datetime helpers."""

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Return the current UTC time with tzinfo set."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime.

    Naive datetimes are assumed to already be in UTC; aware ones are
    converted.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def start_of_month(dt: datetime) -> datetime:
    """Midnight UTC on the first day of ``dt``'s month."""
    return ensure_utc(dt).replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def start_of_week(dt: datetime) -> datetime:
    """Midnight UTC on the Monday of ``dt``'s week."""
    day = ensure_utc(dt).replace(hour=0, minute=0, second=0, microsecond=0)
    return day - timedelta(days=day.weekday())


__all__ = [
    "ensure_utc",
    "start_of_month",
    "start_of_week",
    "utcnow",
]
