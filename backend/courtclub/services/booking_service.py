"""
Booking lifecycle: create (paid or held), pay, recurring series, cancel with
tiered refund, expiry of unpaid holds, completion of past slots.

Every mutating operation is one unit of work (``database.atomic``). The court
row is read FOR UPDATE before the overlap check so that concurrent bookings
for the same court serialize on PostgreSQL; on SQLite the engine opens every
transaction with BEGIN IMMEDIATE for the same effect (see database.build_engine).
"""
import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlmodel import Session, select

from courtclub.database import atomic
from courtclub.errors import (
    AlreadyCancelled,
    AlreadyCompleted,
    Forbidden,
    InvalidRequest,
    InvalidState,
    NoSlotsAvailable,
    NotFound,
    SlotConflict,
    TierRestricted,
)
from courtclub.models.booking import LIVE_BOOKING_STATUSES, Booking, BookingStatus
from courtclub.models.court import Court
from courtclub.models.member import Member, MemberTier
from courtclub.models.notification import NotificationType
from courtclub.models.wallet_transaction import TransactionType
from courtclub.services import ledger
from courtclub.services.notification_service import notify
from courtclub.services.slot_overlap import has_overlap
from courtclub.utils.clock import utcnow
from courtclub.utils.money import format_amount, hours_between, to_money

logger = logging.getLogger(__name__)

RECURRING_MIN_TIER = MemberTier.gold

# (minimum hours of notice, refund share), checked top-down
REFUND_TIERS = [
    (24, Decimal("1.00")),
    (12, Decimal("0.50")),
    (6, Decimal("0.25")),
]

CALENDAR_EVENT = "UpdateCalendar"


def calculate_price(start: datetime, end: datetime, price_per_hour: Decimal) -> Decimal:
    """Fractional hours x hourly price, to the cent."""
    return to_money(hours_between(start, end) * Decimal(price_per_hour))


def refund_percentage(hours_until_start: float) -> Decimal:
    for min_hours, share in REFUND_TIERS:
        if hours_until_start >= min_hours:
            return share
    return Decimal("0")


def booking_ref(booking_id: int) -> str:
    return f"Booking:{booking_id}"


def _get_active_member(session: Session, member_id: int) -> Member:
    member = session.get(Member, member_id)
    if not member:
        raise NotFound(f"Member {member_id} not found")
    if not member.is_active:
        raise Forbidden("Member account is deactivated")
    return member


def _lock_active_court(session: Session, court_id: int) -> Court:
    """Lock the court row for the rest of the unit; serializes bookings per court."""
    court = session.get(Court, court_id, with_for_update=True)
    if not court:
        raise NotFound(f"Court {court_id} not found")
    if not court.is_active:
        raise InvalidRequest(f"Court {court.name} is not available for booking")
    return court


def _validate_range(start: datetime, end: datetime) -> None:
    if start >= end:
        raise InvalidRequest("start_time must be before end_time")


def _slot_label(court: Court, start: datetime, end: datetime) -> str:
    return f"{court.name} ({start:%d/%m/%Y %H:%M} - {end:%H:%M})"


def _insert_booking(
    session: Session, member: Member, court: Court, start: datetime, end: datetime, status: BookingStatus
) -> Booking:
    if has_overlap(session, court.id, start, end):
        raise SlotConflict(f"{_slot_label(court, start, end)} is already booked")

    booking = Booking(
        court_id=court.id,
        member_id=member.id,
        start_time=start,
        end_time=end,
        total_price=calculate_price(start, end, court.price_per_hour),
        status=status,
    )
    session.add(booking)
    session.flush()
    return booking


def create_booking(
    session: Session,
    member_id: int,
    court_id: int,
    start: datetime,
    end: datetime,
    push=None,
) -> Booking:
    """Book and pay for a single slot. Nothing persists unless the debit succeeds."""
    _validate_range(start, end)

    with atomic(session):
        member = _get_active_member(session, member_id)
        court = _lock_active_court(session, court_id)
        booking = _insert_booking(session, member, court, start, end, BookingStatus.confirmed)

        txn = ledger.debit(
            session,
            member.id,
            booking.total_price,
            TransactionType.payment,
            related_id=booking_ref(booking.id),
            description=f"Court booking {_slot_label(court, start, end)}",
        )
        booking.transaction_id = txn.id
        session.add(booking)

    session.refresh(booking)
    logger.info("Booking %d confirmed for member %d on court %d", booking.id, member_id, court_id)
    if push is not None:
        push.broadcast(CALENDAR_EVENT, {"reason": "booking_created", "booking_id": booking.id})
    return booking


def hold_booking(
    session: Session,
    member_id: int,
    court_id: int,
    start: datetime,
    end: datetime,
    push=None,
) -> Booking:
    """Reserve a slot without paying. The sweeper cancels holds left unpaid past the timeout."""
    _validate_range(start, end)

    with atomic(session):
        member = _get_active_member(session, member_id)
        court = _lock_active_court(session, court_id)
        booking = _insert_booking(session, member, court, start, end, BookingStatus.pending_payment)

    session.refresh(booking)
    logger.info("Booking %d held (pending payment) for member %d", booking.id, member_id)
    if push is not None:
        push.broadcast(CALENDAR_EVENT, {"reason": "booking_held", "booking_id": booking.id})
    return booking


def pay_booking(session: Session, booking_id: int, member_id: int) -> Booking:
    """Pay for a held booking: pending_payment -> confirmed."""
    with atomic(session):
        booking = session.get(Booking, booking_id, with_for_update=True)
        if not booking:
            raise NotFound(f"Booking {booking_id} not found")
        if booking.member_id != member_id:
            raise Forbidden("Only the booking owner can pay for it")
        if booking.status == BookingStatus.cancelled:
            raise AlreadyCancelled(f"Booking {booking_id} was cancelled")
        if booking.status != BookingStatus.pending_payment:
            raise InvalidState(f"Booking {booking_id} is {booking.status}, not pending payment")

        court = session.get(Court, booking.court_id)
        txn = ledger.debit(
            session,
            member_id,
            booking.total_price,
            TransactionType.payment,
            related_id=booking_ref(booking.id),
            description=f"Court booking {_slot_label(court, booking.start_time, booking.end_time)}",
        )
        booking.transaction_id = txn.id
        booking.status = BookingStatus.confirmed
        session.add(booking)

    session.refresh(booking)
    logger.info("Booking %d paid by member %d", booking.id, member_id)
    return booking


def day_of_week(day: date) -> int:
    """Sunday=0 .. Saturday=6, the numbering stored in recurrence rules."""
    return (day.weekday() + 1) % 7


def expand_dates(start_date: date, end_date: date, days_of_week: Iterable[int]) -> List[date]:
    """Dates in [start_date, end_date] whose day_of_week (Sunday=0) is in days_of_week."""
    wanted = set(days_of_week)
    dates = []
    current = start_date
    while current <= end_date:
        if day_of_week(current) in wanted:
            dates.append(current)
        current += timedelta(days=1)
    return dates


def recurrence_rule(days_of_week: Iterable[int]) -> str:
    return "Weekly;" + ",".join(str(d) for d in sorted(set(days_of_week)))


def create_recurring_booking(
    session: Session,
    member_id: int,
    court_id: int,
    start_date: date,
    end_date: date,
    days_of_week: List[int],
    start_time_of_day: time,
    end_time_of_day: time,
    push=None,
) -> List[Booking]:
    """
    Book the same slot on matching weekdays across a date range.

    Dates that conflict with live bookings are skipped. Only the sessions
    actually created are charged, in a single ledger debit. The first created
    booking is the parent of the series.

    Raises:
        TierRestricted: member below Gold
        NoSlotsAvailable: no date in the range could be booked
        InsufficientFunds: balance below the total of created sessions (nothing persists)
    """
    if start_time_of_day >= end_time_of_day:
        raise InvalidRequest("start time must be before end time")
    if end_date < start_date:
        raise InvalidRequest("end_date must be >= start_date")
    if any(d < 0 or d > 6 for d in days_of_week):
        raise InvalidRequest("days_of_week values must be 0 (Sunday) .. 6 (Saturday)")

    rule = recurrence_rule(days_of_week)

    with atomic(session):
        member = _get_active_member(session, member_id)
        if not ledger.tier_at_least(member.tier, RECURRING_MIN_TIER):
            raise TierRestricted("Recurring bookings are available to Gold and Diamond members")

        court = _lock_active_court(session, court_id)

        created: List[Booking] = []
        parent_id: Optional[int] = None
        skipped = 0
        for day in expand_dates(start_date, end_date, days_of_week):
            start = datetime.combine(day, start_time_of_day)
            end = datetime.combine(day, end_time_of_day)
            if has_overlap(session, court.id, start, end):
                skipped += 1
                continue

            booking = Booking(
                court_id=court.id,
                member_id=member.id,
                start_time=start,
                end_time=end,
                total_price=calculate_price(start, end, court.price_per_hour),
                status=BookingStatus.confirmed,
                is_recurring=True,
                recurrence_rule=rule,
                parent_booking_id=parent_id,
            )
            session.add(booking)
            session.flush()
            if parent_id is None:
                parent_id = booking.id
            created.append(booking)

        if not created:
            raise NoSlotsAvailable("Every requested slot is already booked")

        total = sum((b.total_price for b in created), Decimal("0"))
        txn = ledger.debit(
            session,
            member.id,
            total,
            TransactionType.payment,
            related_id=booking_ref(parent_id),
            description=f"Recurring booking {court.name} ({len(created)} sessions)",
        )
        for booking in created:
            booking.transaction_id = txn.id
            session.add(booking)

    for booking in created:
        session.refresh(booking)
    logger.info(
        "Recurring series %d for member %d: %d created, %d skipped", parent_id, member_id, len(created), skipped
    )
    if push is not None:
        push.broadcast(CALENDAR_EVENT, {"reason": "recurring_created", "booking_id": parent_id})
    return created


def cancel_booking(
    session: Session,
    booking_id: int,
    acting_member_id: int,
    is_admin: bool = False,
    now: Optional[datetime] = None,
    push=None,
) -> Booking:
    """
    Cancel a booking and refund by notice period (>=24h 100%, >=12h 50%, >=6h 25%).

    Held (unpaid) bookings are cancelled without refund. The refund goes to the
    booking owner, whoever cancels.
    """
    now = now or utcnow()
    refund_amount = Decimal("0")
    message = None

    with atomic(session):
        booking = session.get(Booking, booking_id, with_for_update=True)
        if not booking:
            raise NotFound(f"Booking {booking_id} not found")
        if booking.member_id != acting_member_id and not is_admin:
            raise Forbidden("Only the booking owner or an admin can cancel it")
        if booking.status == BookingStatus.cancelled:
            raise AlreadyCancelled(f"Booking {booking_id} was already cancelled")
        if booking.status == BookingStatus.completed:
            raise AlreadyCompleted(f"Booking {booking_id} is completed and cannot be cancelled")

        was_paid = booking.status == BookingStatus.confirmed
        booking.status = BookingStatus.cancelled
        session.add(booking)

        if was_paid:
            hours_until = (booking.start_time - now).total_seconds() / 3600
            share = refund_percentage(hours_until)
            refund_amount = to_money(booking.total_price * share)
            court = session.get(Court, booking.court_id)
            label = _slot_label(court, booking.start_time, booking.end_time)

            if refund_amount > 0:
                ledger.credit(
                    session,
                    booking.member_id,
                    refund_amount,
                    TransactionType.refund,
                    related_id=booking_ref(booking.id),
                    description=f"Refund for cancelled booking {label} ({share * 100:.0f}%)",
                )
                message = f"Booking {label} cancelled. Refunded {format_amount(refund_amount)} ({share * 100:.0f}%)"
                notify(session, booking.member_id, message, NotificationType.success, f"/bookings/{booking.id}")
            else:
                message = f"Booking {label} cancelled. No refund for cancellations under 6 hours"
                notify(session, booking.member_id, message, NotificationType.warning, f"/bookings/{booking.id}")

    session.refresh(booking)
    logger.info("Booking %d cancelled by member %d (refund %s)", booking.id, acting_member_id, refund_amount)
    if push is not None:
        push.broadcast(CALENDAR_EVENT, {"reason": "booking_cancelled", "booking_id": booking.id})
        if message:
            push.notify_member(booking.member_id, message)
    return booking


def expire_unpaid_bookings(session: Session, timeout: timedelta, now: Optional[datetime] = None) -> List[int]:
    """Cancel pending_payment bookings created before now - timeout. No money moved, so no refunds."""
    cutoff = (now or utcnow()) - timeout
    with atomic(session):
        stale = session.exec(
            select(Booking).where(
                Booking.status == BookingStatus.pending_payment,
                Booking.created_at < cutoff,
            )
        ).all()
        for booking in stale:
            booking.status = BookingStatus.cancelled
            session.add(booking)
            logger.info("Auto-cancelled unpaid booking %d", booking.id)

    expired = [b.id for b in stale]
    if expired:
        logger.info("Cancelled %d unpaid bookings", len(expired))
    return expired


def complete_past_bookings(session: Session, now: Optional[datetime] = None) -> List[int]:
    """Confirmed bookings whose slot has ended become completed (terminal)."""
    now = now or utcnow()
    with atomic(session):
        finished = session.exec(
            select(Booking).where(
                Booking.status == BookingStatus.confirmed,
                Booking.end_time <= now,
            )
        ).all()
        for booking in finished:
            booking.status = BookingStatus.completed
            session.add(booking)
    return [b.id for b in finished]


# ============================================================================
# Reads
# ============================================================================


def get_booking(session: Session, booking_id: int) -> Booking:
    booking = session.get(Booking, booking_id)
    if not booking:
        raise NotFound(f"Booking {booking_id} not found")
    return booking


def list_member_bookings(session: Session, member_id: int, status: Optional[BookingStatus] = None) -> List[Booking]:
    query = select(Booking).where(Booking.member_id == member_id)
    if status is not None:
        query = query.where(Booking.status == status)
    return list(session.exec(query.order_by(Booking.start_time.desc())).all())


def calendar(session: Session, window_start: datetime, window_end: datetime) -> List[Booking]:
    """Live bookings lying within [window_start, window_end]."""
    return list(
        session.exec(
            select(Booking)
            .where(
                Booking.start_time >= window_start,
                Booking.end_time <= window_end,
                Booking.status.in_([s.value for s in LIVE_BOOKING_STATUSES]),
            )
            .order_by(Booking.start_time, Booking.court_id)
        ).all()
    )
