"""
Court slot overlap checks.

Ranges are half-open: [start, end). Two bookings that touch (one ends at
10:00, the next starts at 10:00) do not overlap. Only live bookings
(pending_payment, confirmed) occupy a slot.

``has_overlap`` must run inside the same unit of work as the insert it
guards, after the court row has been locked (see booking_service).
"""
from datetime import datetime
from typing import List, Optional

from sqlmodel import Session, select

from courtclub.models.booking import LIVE_BOOKING_STATUSES, Booking


def ranges_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    return start1 < end2 and start2 < end1


def _overlap_query(court_id: int, start: datetime, end: datetime, exclude_booking_id: Optional[int]):
    query = select(Booking).where(
        Booking.court_id == court_id,
        Booking.status.in_([s.value for s in LIVE_BOOKING_STATUSES]),
        Booking.start_time < end,
        Booking.end_time > start,
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)
    return query


def has_overlap(
    session: Session,
    court_id: int,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[int] = None,
) -> bool:
    """True if any live booking on the court intersects [start, end)."""
    return session.exec(_overlap_query(court_id, start, end, exclude_booking_id).limit(1)).first() is not None


def find_conflicts(
    session: Session,
    court_id: int,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[int] = None,
) -> List[Booking]:
    """Live bookings on the court that intersect [start, end), earliest first."""
    return list(
        session.exec(_overlap_query(court_id, start, end, exclude_booking_id).order_by(Booking.start_time)).all()
    )
