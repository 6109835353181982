from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator, model_validator
from sqlmodel import Session

from courtclub.database import get_session
from courtclub.dependencies import Actor, get_actor
from courtclub.errors import Forbidden
from courtclub.models.booking import BookingStatus
from courtclub.services import booking_service
from courtclub.services.push_service import get_push_service
from courtclub.utils.clock import to_naive_utc

router = APIRouter()


class BookingCreate(BaseModel):
    court_id: int
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_utc(cls, v):
        return to_naive_utc(v)

    @model_validator(mode="after")
    def validate_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class RecurringBookingCreate(BaseModel):
    court_id: int
    start_date: date
    end_date: date
    days_of_week: List[int]  # 0 = Sunday .. 6 = Saturday
    start_time: time  # UTC wall clock
    end_time: time

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_naive(cls, v):
        if v.tzinfo is not None:
            raise ValueError("recurring times are UTC wall-clock times without an offset")
        return v

    @field_validator("days_of_week")
    @classmethod
    def validate_days(cls, v):
        if not v:
            raise ValueError("days_of_week must not be empty")
        if any(d < 0 or d > 6 for d in v):
            raise ValueError("days_of_week values must be 0..6 (Sunday=0)")
        return sorted(set(v))

    @model_validator(mode="after")
    def validate_ranges(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class BookingResponse(BaseModel):
    id: int
    court_id: int
    member_id: int
    start_time: datetime
    end_time: datetime
    total_price: Decimal
    status: BookingStatus
    transaction_id: Optional[int]
    is_recurring: bool
    recurrence_rule: Optional[str]
    parent_booking_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("/bookings/calendar", response_model=List[BookingResponse])
def get_calendar(
    start: datetime = Query(...),
    end: Optional[datetime] = Query(None),
    session: Session = Depends(get_session),
):
    """Live bookings in [start, end]; defaults to a one week window"""
    start = to_naive_utc(start)
    end = to_naive_utc(end) if end else start + timedelta(days=7)
    return booking_service.calendar(session, start, end)


@router.get("/bookings/my", response_model=List[BookingResponse])
def my_bookings(
    status: Optional[BookingStatus] = None,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return booking_service.list_member_bookings(session, actor.member_id, status)


@router.post("/bookings", response_model=BookingResponse, status_code=201)
def create_booking(data: BookingCreate, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    """Book and pay for a slot"""
    return booking_service.create_booking(
        session, actor.member_id, data.court_id, data.start_time, data.end_time, push=get_push_service()
    )


@router.post("/bookings/hold", response_model=BookingResponse, status_code=201)
def hold_booking(data: BookingCreate, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    """Reserve a slot; pay within the hold timeout or it is released"""
    return booking_service.hold_booking(
        session, actor.member_id, data.court_id, data.start_time, data.end_time, push=get_push_service()
    )


@router.post("/bookings/{booking_id}/pay", response_model=BookingResponse)
def pay_booking(booking_id: int, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    return booking_service.pay_booking(session, booking_id, actor.member_id)


@router.post("/bookings/recurring", response_model=List[BookingResponse], status_code=201)
def create_recurring_booking(
    data: RecurringBookingCreate,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    """Book a weekly series; conflicting dates are skipped"""
    return booking_service.create_recurring_booking(
        session,
        actor.member_id,
        data.court_id,
        data.start_date,
        data.end_date,
        data.days_of_week,
        data.start_time,
        data.end_time,
        push=get_push_service(),
    )


@router.post("/bookings/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(booking_id: int, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    return booking_service.cancel_booking(
        session, booking_id, actor.member_id, is_admin=actor.is_admin, push=get_push_service()
    )


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
def get_booking(booking_id: int, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    booking = booking_service.get_booking(session, booking_id)
    if booking.member_id != actor.member_id and not actor.is_admin:
        raise Forbidden("Not your booking")
    return booking
