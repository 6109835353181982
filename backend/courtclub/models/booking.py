from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, Index, String
from sqlmodel import Column, Field, SQLModel

from courtclub.utils.clock import utcnow


class BookingStatus(str, Enum):
    pending_payment = "pending_payment"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"


# Statuses that occupy a court slot
LIVE_BOOKING_STATUSES = (BookingStatus.pending_payment, BookingStatus.confirmed)


class Booking(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_booking_time_range"),
        Index("ix_booking_court_range", "court_id", "start_time", "end_time"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    court_id: int = Field(foreign_key="court.id")
    member_id: int = Field(foreign_key="member.id", index=True)
    start_time: datetime
    end_time: datetime
    total_price: Decimal = Field(max_digits=18, decimal_places=2)
    status: BookingStatus = Field(
        default=BookingStatus.pending_payment, sa_column=Column(String, nullable=False, index=True)
    )

    # Wallet transaction that paid for this booking (null while pending_payment)
    transaction_id: Optional[int] = Field(default=None, foreign_key="wallet_transaction.id")

    # Recurring series: children point at the first booking of the series by id
    is_recurring: bool = Field(default=False)
    recurrence_rule: Optional[str] = Field(default=None, max_length=200)  # e.g. "Weekly;1,3"
    parent_booking_id: Optional[int] = Field(default=None, foreign_key="booking.id")

    created_at: datetime = Field(default_factory=utcnow)
