from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel

from courtclub.utils.clock import utcnow


class TournamentParticipant(SQLModel, table=True):
    __tablename__ = "tournament_participant"
    __table_args__ = (SAUniqueConstraint("tournament_id", "member_id", name="uq_tournament_member"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    member_id: int = Field(foreign_key="member.id")
    team_name: Optional[str] = Field(default=None, max_length=100)
    partner_id: Optional[int] = Field(default=None, foreign_key="member.id")  # Doubles partner
    seed: Optional[int] = Field(default=None)  # 1 = top seed; null sorts last
    payment_status: bool = Field(default=False)
    registered_at: datetime = Field(default_factory=utcnow)
