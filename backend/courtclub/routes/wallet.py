from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator
from sqlmodel import Session

from courtclub.database import get_session
from courtclub.dependencies import TREASURER, Actor, get_actor, require_roles
from courtclub.models.wallet_transaction import TransactionStatus, TransactionType
from courtclub.services import ledger
from courtclub.services.push_service import get_push_service

router = APIRouter()


class DepositRequest(BaseModel):
    amount: Decimal
    description: Optional[str] = None
    proof_image_url: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        if v <= 0:
            raise ValueError("amount must be positive")
        return v


class TransactionResponse(BaseModel):
    id: int
    member_id: int
    amount: Decimal
    type: TransactionType
    status: TransactionStatus
    related_id: Optional[str]
    description: Optional[str]
    proof_image_url: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class BalanceResponse(BaseModel):
    member_id: int
    balance: Decimal


class TransactionPage(BaseModel):
    items: List[TransactionResponse]
    total: int
    page: int
    page_size: int


@router.get("/wallet/balance", response_model=BalanceResponse)
def get_balance(session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    return BalanceResponse(member_id=actor.member_id, balance=ledger.get_balance(session, actor.member_id))


@router.get("/wallet/transactions", response_model=TransactionPage)
def list_transactions(
    type: Optional[TransactionType] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    items, total = ledger.list_transactions(session, actor.member_id, type, page, page_size)
    return TransactionPage(
        items=[TransactionResponse.model_validate(t) for t in items], total=total, page=page, page_size=page_size
    )


@router.post("/wallet/deposit", response_model=TransactionResponse, status_code=201)
def request_deposit(data: DepositRequest, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    """Submit a deposit request; balance changes only on approval"""
    return ledger.request_deposit(session, actor.member_id, data.amount, data.description, data.proof_image_url)


@router.get("/admin/wallet/pending", response_model=List[TransactionResponse])
def list_pending_deposits(session: Session = Depends(get_session), _actor=Depends(require_roles(TREASURER))):
    return ledger.list_pending_deposits(session)


@router.put("/admin/wallet/{transaction_id}/approve", response_model=TransactionResponse)
def approve_deposit(
    transaction_id: int,
    session: Session = Depends(get_session),
    _actor=Depends(require_roles(TREASURER)),
):
    return ledger.approve_deposit(session, transaction_id, push=get_push_service())


@router.put("/admin/wallet/{transaction_id}/reject", response_model=TransactionResponse)
def reject_deposit(
    transaction_id: int,
    session: Session = Depends(get_session),
    _actor=Depends(require_roles(TREASURER)),
):
    return ledger.reject_deposit(session, transaction_id, push=get_push_service())
