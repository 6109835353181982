from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from courtclub.database import get_session
from courtclub.dependencies import REFEREE, Actor, get_actor, require_roles
from courtclub.models.match import MatchStatus, WinningSide
from courtclub.services import match_service
from courtclub.services.push_service import get_push_service

router = APIRouter()


class MatchResponse(BaseModel):
    id: int
    tournament_id: Optional[int]
    round_name: Optional[str]
    start_time: datetime
    court_id: Optional[int]
    team1_player1_id: Optional[int]
    team1_player2_id: Optional[int]
    team2_player1_id: Optional[int]
    team2_player2_id: Optional[int]
    score1: int
    score2: int
    details: Optional[str]
    winning_side: Optional[WinningSide]
    is_ranked: bool
    status: MatchStatus

    class Config:
        from_attributes = True


class MatchResult(BaseModel):
    score1: int = Field(ge=0)
    score2: int = Field(ge=0)
    details: Optional[str] = None  # e.g. "11-9, 5-11, 11-8"
    winning_side: WinningSide


@router.get("/matches/upcoming", response_model=List[MatchResponse])
def upcoming_matches(session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    """The caller's next scheduled matches (at most 10)"""
    return match_service.list_upcoming_matches(session, actor.member_id)


@router.get("/matches/{match_id}", response_model=MatchResponse)
def get_match(match_id: int, session: Session = Depends(get_session)):
    return match_service.get_match(session, match_id)


@router.post("/matches/{match_id}/start", response_model=MatchResponse)
def start_match(match_id: int, session: Session = Depends(get_session), _ref=Depends(require_roles(REFEREE))):
    return match_service.start_match(session, match_id)


@router.post("/matches/{match_id}/result", response_model=MatchResponse)
def record_result(
    match_id: int,
    data: MatchResult,
    session: Session = Depends(get_session),
    _ref=Depends(require_roles(REFEREE)),
):
    """Finish the match; ranked matches adjust player ratings once"""
    return match_service.record_result(
        session, match_id, data.score1, data.score2, data.details, data.winning_side, push=get_push_service()
    )
