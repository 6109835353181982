from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel

from courtclub.utils.clock import utcnow


class TransactionType(str, Enum):
    deposit = "deposit"
    withdraw = "withdraw"
    payment = "payment"
    refund = "refund"
    reward = "reward"


class TransactionStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    rejected = "rejected"
    failed = "failed"


class WalletTransaction(SQLModel, table=True):
    """Immutable audit record of one balance change (signed: + credit, - debit)."""

    __tablename__ = "wallet_transaction"

    id: Optional[int] = Field(default=None, primary_key=True)
    member_id: int = Field(foreign_key="member.id", index=True)
    amount: Decimal = Field(max_digits=18, decimal_places=2)
    type: TransactionType = Field(sa_column=Column(String, nullable=False))
    status: TransactionStatus = Field(
        default=TransactionStatus.pending, sa_column=Column(String, nullable=False, index=True)
    )
    related_id: Optional[str] = Field(default=None, max_length=100)  # "Booking:12" | "Tournament:3"
    description: Optional[str] = Field(default=None, max_length=500)
    proof_image_url: Optional[str] = Field(default=None, max_length=500)  # Deposit evidence
    created_at: datetime = Field(default_factory=utcnow)
