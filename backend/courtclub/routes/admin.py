from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from courtclub.database import get_session
from courtclub.dependencies import ADMIN, TREASURER, require_roles
from courtclub.services import admin_service

router = APIRouter()


class ClubBalanceResponse(BaseModel):
    total_balance: Decimal
    is_negative: bool
    warning: Optional[str]
    member_count: int
    timestamp: datetime


class TierCount(BaseModel):
    tier: str
    count: int


class MemberStats(BaseModel):
    total: int
    by_tier: List[TierCount]


class BookingStats(BaseModel):
    total: int
    this_month: int
    active: int


class TournamentStats(BaseModel):
    total: int
    open: int
    ongoing: int


class FinanceStats(BaseModel):
    club_balance: Decimal
    this_month_revenue: Decimal
    pending_deposits: int


class DashboardStats(BaseModel):
    members: MemberStats
    bookings: BookingStats
    tournaments: TournamentStats
    finance: FinanceStats


@router.get("/admin/club-balance", response_model=ClubBalanceResponse)
def get_club_balance(session: Session = Depends(get_session), _actor=Depends(require_roles(TREASURER))):
    """Sum of all member wallets; flagged when negative"""
    return admin_service.club_balance(session)


@router.get("/admin/dashboard/stats", response_model=DashboardStats)
def get_dashboard_stats(session: Session = Depends(get_session), _actor=Depends(require_roles(ADMIN))):
    return admin_service.dashboard_stats(session)
