"""Expiry and reminder passes, and the threaded sweeper loop."""
import threading
from datetime import datetime, timedelta
from decimal import Decimal

from sqlmodel import Session, select

from courtclub.database import build_engine, init_db
from courtclub.models.booking import Booking, BookingStatus
from courtclub.models.court import Court
from courtclub.models.match import Match
from courtclub.models.member import Member
from courtclub.models.notification import Notification
from courtclub.services import booking_service
from courtclub.services.push_service import get_push_service
from courtclub.services.sweeper import Sweeper, get_sweeper, run_expiry_pass, send_reminders

NOW = datetime(2030, 1, 7, 8, 0)
TOMORROW_10 = datetime(2030, 1, 8, 10, 0)


class RecordingPush:
    def __init__(self):
        self.sent = []
        self.broadcasts = []

    def notify_member(self, member_id, message, notification_type="info"):
        self.sent.append((member_id, message))

    def broadcast(self, event, payload=None):
        self.broadcasts.append((event, payload))


def _hold(session, member, court, start, created_at):
    booking = booking_service.hold_booking(session, member.id, court.id, start, start + timedelta(hours=1))
    booking.created_at = created_at
    session.add(booking)
    session.commit()
    return booking


def test_expiry_pass_cancels_stale_holds_and_completes_past(session: Session, make_member, make_court):
    member = make_member(balance="1000000")
    court = make_court()
    stale = _hold(session, member, court, TOMORROW_10, NOW - timedelta(minutes=10))
    past = booking_service.create_booking(
        session, member.id, court.id, NOW - timedelta(hours=3), NOW - timedelta(hours=2)
    )

    expired = run_expiry_pass(lambda: Session(session.get_bind()), timedelta(minutes=5), now=NOW)

    assert expired == [stale.id]
    session.expire_all()
    assert session.get(Booking, stale.id).status == BookingStatus.cancelled
    assert session.get(Booking, past.id).status == BookingStatus.completed

    assert run_expiry_pass(lambda: Session(session.get_bind()), timedelta(minutes=5), now=NOW) == []


def test_reminders_for_tomorrow_are_deduplicated(session: Session, make_member, make_court):
    a, b, owner = make_member(), make_member(), make_member(balance="1000000")
    court = make_court(name="Court A")
    match = Match(start_time=TOMORROW_10, team1_player1_id=a.id, team2_player1_id=b.id, round_name="Final")
    later = Match(start_time=TOMORROW_10 + timedelta(days=1), team1_player1_id=a.id, team2_player1_id=b.id)
    session.add_all([match, later])
    session.commit()
    booking = booking_service.create_booking(
        session, owner.id, court.id, TOMORROW_10, TOMORROW_10 + timedelta(hours=1)
    )
    push = RecordingPush()

    first = send_reminders(session, push=push, now=NOW)
    second = send_reminders(session, push=push, now=NOW + timedelta(hours=1))

    assert len(first) == 3
    assert second == []
    links = sorted((n.receiver_id, n.link_url) for n in session.exec(select(Notification)).all())
    assert links == sorted(
        [
            (a.id, f"/matches/{match.id}"),
            (b.id, f"/matches/{match.id}"),
            (owner.id, f"/bookings/{booking.id}"),
        ]
    )
    assert len(push.sent) == 3

    # One day later only the following day's match is due
    third = send_reminders(session, now=NOW + timedelta(days=1))
    assert {n.link_url for n in third} == {f"/matches/{later.id}"}


def test_reminders_skip_cancelled_bookings(session: Session, make_member, make_court):
    owner = make_member(balance="1000000")
    court = make_court()
    booking = booking_service.create_booking(
        session, owner.id, court.id, TOMORROW_10, TOMORROW_10 + timedelta(hours=1)
    )
    booking_service.cancel_booking(session, booking.id, owner.id, now=NOW - timedelta(days=2))
    before = len(session.exec(select(Notification)).all())

    assert send_reminders(session, now=NOW) == []
    assert len(session.exec(select(Notification)).all()) == before


def test_sweeper_threads_expire_holds_and_stop(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'sweeper.db'}")
    init_db(engine)
    with Session(engine) as session:
        court = Court(name="Court S", price_per_hour=Decimal("1000"))
        member = Member(user_id="sweep", full_name="Sweep", wallet_balance=Decimal("0"))
        session.add_all([court, member])
        session.commit()
        start = datetime(2031, 1, 1, 10, 0)
        hold = Booking(
            court_id=court.id,
            member_id=member.id,
            start_time=start,
            end_time=start + timedelta(hours=1),
            total_price=Decimal("1000"),
            status=BookingStatus.pending_payment,
            created_at=datetime(2020, 1, 1),
        )
        session.add(hold)
        session.commit()
        hold_id = hold.id

    push = RecordingPush()
    sweeper = Sweeper(
        session_factory=lambda: Session(engine),
        push=push,
        expiry_interval=0.05,
        reminder_interval=0.05,
        payment_timeout=timedelta(minutes=5),
    )
    sweeper.start()
    try:
        for _ in range(100):
            with Session(engine) as session:
                if session.get(Booking, hold_id).status == BookingStatus.cancelled:
                    break
            threading.Event().wait(0.05)
    finally:
        sweeper.stop()

    assert not sweeper.running
    with Session(engine) as session:
        assert session.get(Booking, hold_id).status == BookingStatus.cancelled
    assert ("UpdateCalendar", {"reason": "bookings_expired", "booking_ids": [hold_id]}) in push.broadcasts
    engine.dispose()


def test_sweeper_survives_failing_cycles():
    calls = []
    recovered = threading.Event()

    class FlakySession:
        def __enter__(self):
            raise RuntimeError("database unavailable")

        def __exit__(self, *exc):
            return False

    def factory():
        calls.append(1)
        if len(calls) >= 3:
            recovered.set()
        return FlakySession()

    sweeper = Sweeper(session_factory=factory, expiry_interval=0.01, reminder_interval=60)
    sweeper.start()
    try:
        assert recovered.wait(5)
    finally:
        sweeper.stop()

    assert len(calls) >= 3
    assert not sweeper.running


def test_app_sweeper_pushes_through_the_app_push_service():
    sweeper = get_sweeper()
    assert sweeper.push is get_push_service()
    assert get_sweeper() is sweeper
