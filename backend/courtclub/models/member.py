from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel

from courtclub.utils.clock import utcnow


class MemberTier(str, Enum):
    standard = "standard"
    silver = "silver"
    gold = "gold"
    diamond = "diamond"


class Member(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True, unique=True)  # Identity-layer user key
    full_name: str
    joined_at: datetime = Field(default_factory=utcnow)

    # Rating used for ranked matches; wins cap at 8.0, losses floor at 2.0
    rank_level: float = Field(default=3.0)

    # Wallet: only the ledger writes these three fields
    wallet_balance: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=2)
    total_spent: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=2)
    tier: MemberTier = Field(default=MemberTier.standard, sa_column=Column(String, nullable=False))

    avatar_url: Optional[str] = None
    is_active: bool = Field(default=True)  # Soft deactivation; members are never deleted
