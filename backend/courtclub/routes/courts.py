from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from courtclub.database import get_session
from courtclub.dependencies import ADMIN, require_roles
from courtclub.errors import NotFound
from courtclub.models.court import Court
from courtclub.utils.money import to_money

router = APIRouter()


class CourtCreate(BaseModel):
    name: str
    description: Optional[str] = None
    price_per_hour: Decimal

    @field_validator("price_per_hour")
    @classmethod
    def validate_price(cls, v):
        if v < 0:
            raise ValueError("price_per_hour cannot be negative")
        return to_money(v)


class CourtResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    price_per_hour: Decimal
    is_active: bool

    class Config:
        from_attributes = True


@router.get("/courts", response_model=List[CourtResponse])
def list_courts(include_inactive: bool = False, session: Session = Depends(get_session)):
    """List courts (active only unless include_inactive)"""
    query = select(Court)
    if not include_inactive:
        query = query.where(Court.is_active == True)  # noqa: E712
    return session.exec(query.order_by(Court.name)).all()


@router.get("/courts/{court_id}", response_model=CourtResponse)
def get_court(court_id: int, session: Session = Depends(get_session)):
    court = session.get(Court, court_id)
    if not court:
        raise NotFound(f"Court {court_id} not found")
    return court


@router.post("/courts", response_model=CourtResponse, status_code=201)
def create_court(
    court_data: CourtCreate,
    session: Session = Depends(get_session),
    _admin=Depends(require_roles(ADMIN)),
):
    court = Court(**court_data.model_dump())
    session.add(court)
    session.commit()
    session.refresh(court)
    return court
