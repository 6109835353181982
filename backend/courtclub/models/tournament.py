import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel

from courtclub.utils.clock import utcnow

DEFAULT_MAX_PARTICIPANTS = 16


class TournamentFormat(str, Enum):
    round_robin = "round_robin"
    knockout = "knockout"
    hybrid = "hybrid"


class TournamentStatus(str, Enum):
    open = "open"
    registering = "registering"
    draw_completed = "draw_completed"
    ongoing = "ongoing"
    finished = "finished"


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    start_date: date
    end_date: date
    format: TournamentFormat = Field(default=TournamentFormat.knockout, sa_column=Column(String, nullable=False))
    entry_fee: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=2)
    prize_pool: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=2)
    status: TournamentStatus = Field(default=TournamentStatus.open, sa_column=Column(String, nullable=False))
    settings: Optional[str] = None  # JSON blob, e.g. {"maxParticipants": 16}
    created_at: datetime = Field(default_factory=utcnow)

    def max_participants(self) -> int:
        """maxParticipants from the settings blob; 16 when missing or unreadable."""
        if not self.settings:
            return DEFAULT_MAX_PARTICIPANTS
        try:
            value = json.loads(self.settings).get("maxParticipants")
            return int(value) if value is not None else DEFAULT_MAX_PARTICIPANTS
        except (ValueError, TypeError, AttributeError):
            return DEFAULT_MAX_PARTICIPANTS
