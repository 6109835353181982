"""
Clock helpers.

Timestamps are stored as naive UTC datetimes, so "now" is always the naive UTC
wall clock rather than the deprecated ``datetime.utcnow()``.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple


def utcnow() -> datetime:
    """Current UTC time without tzinfo (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Return the half-open [start, end) datetime range covering a calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an incoming datetime to the storage convention.

    Offset-aware values are converted to UTC and stripped of tzinfo; naive
    values are taken to already be UTC.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
