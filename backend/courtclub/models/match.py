from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel

from courtclub.utils.clock import utcnow


class MatchStatus(str, Enum):
    scheduled = "scheduled"
    in_progress = "in_progress"
    finished = "finished"


class WinningSide(str, Enum):
    team1 = "team1"
    team2 = "team2"


class Match(SQLModel, table=True):
    # Ids are never reused, so old /matches/{id} links cannot land on a regenerated match
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: Optional[int] = Field(default=None, foreign_key="tournament.id", index=True)  # null = friendly
    round_name: Optional[str] = Field(default=None, max_length=100)  # "Group Stage" | "Quarter Final" | ...
    start_time: datetime
    court_id: Optional[int] = Field(default=None, foreign_key="court.id")

    # Player slots; any may be null (singles, byes)
    team1_player1_id: Optional[int] = Field(default=None, foreign_key="member.id")
    team1_player2_id: Optional[int] = Field(default=None, foreign_key="member.id")
    team2_player1_id: Optional[int] = Field(default=None, foreign_key="member.id")
    team2_player2_id: Optional[int] = Field(default=None, foreign_key="member.id")

    # Results (sets won per side; per-set detail in free text, e.g. "11-9, 5-11, 11-8")
    score1: int = Field(default=0)
    score2: int = Field(default=0)
    details: Optional[str] = Field(default=None, max_length=500)
    winning_side: Optional[WinningSide] = Field(default=None, sa_column=Column(String, nullable=True))

    is_ranked: bool = Field(default=True)
    status: MatchStatus = Field(default=MatchStatus.scheduled, sa_column=Column(String, nullable=False))
    created_at: datetime = Field(default_factory=utcnow)

    def team1_ids(self) -> List[int]:
        return [pid for pid in (self.team1_player1_id, self.team1_player2_id) if pid is not None]

    def team2_ids(self) -> List[int]:
        return [pid for pid in (self.team2_player1_id, self.team2_player2_id) if pid is not None]

    def player_ids(self) -> List[int]:
        """Distinct player ids across both sides, slot order."""
        seen: List[int] = []
        for pid in self.team1_ids() + self.team2_ids():
            if pid not in seen:
                seen.append(pid)
        return seen
