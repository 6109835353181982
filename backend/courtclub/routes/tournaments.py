from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, model_validator
from sqlmodel import Session

from courtclub.database import get_session
from courtclub.dependencies import ADMIN, Actor, get_actor, require_roles
from courtclub.models.tournament import TournamentFormat, TournamentStatus
from courtclub.routes.matches import MatchResponse
from courtclub.services import tournament_service

router = APIRouter()


class TournamentCreate(BaseModel):
    name: str
    description: Optional[str] = None
    start_date: date
    end_date: date
    format: TournamentFormat = TournamentFormat.knockout
    entry_fee: Decimal = Decimal("0")
    prize_pool: Decimal = Decimal("0")
    max_participants: Optional[int] = Field(default=None, ge=2)

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


class TournamentResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    start_date: date
    end_date: date
    format: TournamentFormat
    entry_fee: Decimal
    prize_pool: Decimal
    status: TournamentStatus
    settings: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class ParticipantResponse(BaseModel):
    id: int
    tournament_id: int
    member_id: int
    team_name: Optional[str]
    partner_id: Optional[int]
    seed: Optional[int]
    payment_status: bool
    registered_at: datetime

    class Config:
        from_attributes = True


class TournamentDetail(TournamentResponse):
    max_participants: int
    participants: List[ParticipantResponse]
    matches: List[MatchResponse]


class JoinRequest(BaseModel):
    team_name: Optional[str] = None
    partner_id: Optional[int] = None


class StatusUpdate(BaseModel):
    status: TournamentStatus


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(status: Optional[TournamentStatus] = None, session: Session = Depends(get_session)):
    """List tournaments, newest first"""
    return tournament_service.list_tournaments(session, status)


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(
    data: TournamentCreate,
    session: Session = Depends(get_session),
    _admin=Depends(require_roles(ADMIN)),
):
    return tournament_service.create_tournament(
        session,
        name=data.name,
        description=data.description,
        start_date=data.start_date,
        end_date=data.end_date,
        format=data.format,
        entry_fee=data.entry_fee,
        prize_pool=data.prize_pool,
        max_participants=data.max_participants,
    )


@router.get("/tournaments/{tournament_id}", response_model=TournamentDetail)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Tournament with its participants and matches"""
    tournament = tournament_service.get_tournament(session, tournament_id)
    return TournamentDetail(
        **TournamentResponse.model_validate(tournament).model_dump(),
        max_participants=tournament_service.get_max_participants(tournament),
        participants=[
            ParticipantResponse.model_validate(p) for p in tournament_service.list_participants(session, tournament_id)
        ],
        matches=[
            MatchResponse.model_validate(m) for m in tournament_service.list_tournament_matches(session, tournament_id)
        ],
    )


@router.post("/tournaments/{tournament_id}/join", response_model=ParticipantResponse, status_code=201)
def join_tournament(
    tournament_id: int,
    data: Optional[JoinRequest] = None,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    data = data or JoinRequest()
    return tournament_service.join_tournament(
        session, tournament_id, actor.member_id, team_name=data.team_name, partner_id=data.partner_id
    )


@router.post("/tournaments/{tournament_id}/generate-schedule", response_model=List[MatchResponse])
def generate_schedule(
    tournament_id: int,
    session: Session = Depends(get_session),
    _admin=Depends(require_roles(ADMIN)),
):
    """(Re)generate the draw; replaces any existing matches of the tournament"""
    return tournament_service.generate_schedule(session, tournament_id)


@router.post("/tournaments/{tournament_id}/status", response_model=TournamentResponse)
def update_status(
    tournament_id: int,
    data: StatusUpdate,
    session: Session = Depends(get_session),
    _admin=Depends(require_roles(ADMIN)),
):
    return tournament_service.advance_tournament_status(session, tournament_id, data.status)
