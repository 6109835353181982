from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlmodel import Session

from courtclub.database import get_session
from courtclub.dependencies import Actor, get_actor
from courtclub.models.member import MemberTier
from courtclub.routes.matches import MatchResponse
from courtclub.services import member_service

router = APIRouter()


class MemberResponse(BaseModel):
    id: int
    full_name: str
    joined_at: datetime
    rank_level: float
    tier: MemberTier
    wallet_balance: Decimal
    avatar_url: Optional[str]
    is_active: bool

    class Config:
        from_attributes = True


class MemberPage(BaseModel):
    items: List[MemberResponse]
    total: int
    page: int
    page_size: int


class MemberProfileResponse(MemberResponse):
    total_spent: Decimal
    total_matches: int
    total_wins: int
    total_tournaments: int
    recent_matches: List[MatchResponse]


class MemberUpdate(BaseModel):
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None


@router.get("/members", response_model=MemberPage)
def list_members(
    search: Optional[str] = None,
    tier: Optional[MemberTier] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
    _actor: Actor = Depends(get_actor),
):
    """Active members, highest rank first"""
    items, total = member_service.list_members(session, search, tier, page, page_size)
    return MemberPage(
        items=[MemberResponse.model_validate(m) for m in items], total=total, page=page, page_size=page_size
    )


@router.get("/members/{member_id}/profile", response_model=MemberProfileResponse)
def get_profile(member_id: int, session: Session = Depends(get_session), _actor: Actor = Depends(get_actor)):
    profile = member_service.get_profile(session, member_id)
    return MemberProfileResponse(
        **MemberResponse.model_validate(profile.member).model_dump(),
        total_spent=profile.member.total_spent,
        total_matches=profile.total_matches,
        total_wins=profile.total_wins,
        total_tournaments=profile.total_tournaments,
        recent_matches=[MatchResponse.model_validate(m) for m in profile.recent_matches],
    )


@router.put("/members/{member_id}", response_model=MemberResponse)
def update_member(
    member_id: int,
    data: MemberUpdate,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    """Update your own name/avatar (admins may update anyone)"""
    return member_service.update_member(
        session, member_id, actor.member_id, data.full_name, data.avatar_url, is_admin=actor.is_admin
    )
