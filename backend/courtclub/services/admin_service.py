"""
Club-wide aggregates for the admin dashboard.

The club fund is the sum of every member wallet. It can go negative, which is
reported as a warning rather than an error.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlmodel import Session, func, select

from courtclub.models.booking import Booking, BookingStatus
from courtclub.models.member import Member, MemberTier
from courtclub.models.tournament import Tournament, TournamentStatus
from courtclub.models.wallet_transaction import TransactionStatus, TransactionType, WalletTransaction
from courtclub.utils.clock import utcnow
from courtclub.utils.money import to_money

NEGATIVE_FUND_WARNING = "Club fund is negative"


def month_start(now: datetime) -> datetime:
    return datetime(now.year, now.month, 1)


def _wallet_total(session: Session) -> Decimal:
    balances = session.exec(select(Member.wallet_balance)).all()
    return to_money(sum(balances, Decimal("0")))


def club_balance(session: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    total = _wallet_total(session)
    member_count = session.exec(select(func.count(Member.id))).one()
    return {
        "total_balance": total,
        "is_negative": total < 0,
        "warning": NEGATIVE_FUND_WARNING if total < 0 else None,
        "member_count": member_count,
        "timestamp": now or utcnow(),
    }


def dashboard_stats(session: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Member, booking, tournament and finance counters.

    Revenue for the month is the absolute sum of completed payments and
    deposits created since the first of the month (UTC).
    """
    now = now or utcnow()
    first_of_month = month_start(now)

    tier_counts = dict(session.exec(select(Member.tier, func.count(Member.id)).group_by(Member.tier)).all())
    by_tier = [{"tier": tier.value, "count": tier_counts.get(tier.value, 0)} for tier in MemberTier]

    def count_bookings(*filters) -> int:
        return session.exec(select(func.count(Booking.id)).where(*filters)).one()

    def count_tournaments(*filters) -> int:
        return session.exec(select(func.count(Tournament.id)).where(*filters)).one()

    revenue_amounts = session.exec(
        select(WalletTransaction.amount).where(
            WalletTransaction.created_at >= first_of_month,
            WalletTransaction.status == TransactionStatus.completed,
            WalletTransaction.type.in_([TransactionType.payment.value, TransactionType.deposit.value]),
        )
    ).all()
    pending_deposits = session.exec(
        select(func.count(WalletTransaction.id)).where(
            WalletTransaction.type == TransactionType.deposit,
            WalletTransaction.status == TransactionStatus.pending,
        )
    ).one()

    return {
        "members": {
            "total": sum(tier_counts.values()),
            "by_tier": by_tier,
        },
        "bookings": {
            "total": count_bookings(),
            "this_month": count_bookings(Booking.created_at >= first_of_month),
            "active": count_bookings(Booking.status == BookingStatus.confirmed, Booking.start_time > now),
        },
        "tournaments": {
            "total": count_tournaments(),
            "open": count_tournaments(
                Tournament.status.in_([TournamentStatus.open.value, TournamentStatus.registering.value])
            ),
            "ongoing": count_tournaments(Tournament.status == TournamentStatus.ongoing),
        },
        "finance": {
            "club_balance": _wallet_total(session),
            "this_month_revenue": to_money(sum((abs(a) for a in revenue_amounts), Decimal("0"))),
            "pending_deposits": pending_deposits,
        },
    }
