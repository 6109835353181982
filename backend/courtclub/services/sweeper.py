"""
Background sweeper: unpaid-booking expiry and next-day reminders.

Two daemon threads share one stop event and run independently:
- expiry: every EXPIRY_INTERVAL_SECONDS, cancels holds older than
  PENDING_PAYMENT_TIMEOUT_MINUTES and completes bookings whose slot has ended
- reminders: every REMINDER_INTERVAL_SECONDS, notifies players of matches and
  owners of confirmed bookings starting tomorrow (UTC), at most once per
  receiver and link per day

A failing cycle is logged and the loop carries on with the next tick.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlmodel import Session, select

from courtclub import config
from courtclub.database import atomic, engine
from courtclub.models.booking import Booking, BookingStatus
from courtclub.models.court import Court
from courtclub.models.match import Match, MatchStatus
from courtclub.models.notification import Notification, NotificationType
from courtclub.services.booking_service import complete_past_bookings, expire_unpaid_bookings
from courtclub.services.notification_service import notify, reminder_exists
from courtclub.services.push_service import get_push_service
from courtclub.utils.clock import day_bounds, utcnow

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


def _default_session_factory() -> Session:
    return Session(engine)


def run_expiry_pass(
    session_factory: SessionFactory,
    timeout: timedelta,
    now: Optional[datetime] = None,
) -> List[int]:
    """One expiry cycle. Returns the ids of bookings cancelled for non-payment."""
    with session_factory() as session:
        expired = expire_unpaid_bookings(session, timeout, now=now)
        completed = complete_past_bookings(session, now=now)
    if completed:
        logger.info("Marked %d bookings completed", len(completed))
    return expired


def _remind(session: Session, receiver_id: int, message: str, link_url: str, now: datetime) -> Optional[Notification]:
    if reminder_exists(session, receiver_id, link_url, now.date()):
        return None
    notification = notify(session, receiver_id, message, NotificationType.info, link_url)
    notification.created_at = now
    return notification


def send_reminders(session: Session, push=None, now: Optional[datetime] = None) -> List[Notification]:
    """Reminders for scheduled matches and confirmed bookings starting tomorrow."""
    now = now or utcnow()
    window_start, window_end = day_bounds(now.date() + timedelta(days=1))
    sent: List[Notification] = []

    with atomic(session):
        matches = session.exec(
            select(Match).where(
                Match.status == MatchStatus.scheduled,
                Match.start_time >= window_start,
                Match.start_time < window_end,
            )
        ).all()
        for match in matches:
            label = match.round_name or "match"
            message = f"Reminder: your {label} starts tomorrow at {match.start_time:%H:%M}"
            for member_id in match.player_ids():
                notification = _remind(session, member_id, message, f"/matches/{match.id}", now)
                if notification is not None:
                    sent.append(notification)

        bookings = session.exec(
            select(Booking).where(
                Booking.status == BookingStatus.confirmed,
                Booking.start_time >= window_start,
                Booking.start_time < window_end,
            )
        ).all()
        for booking in bookings:
            court = session.get(Court, booking.court_id)
            message = (
                f"Reminder: {court.name if court else 'your court'} is booked for you tomorrow "
                f"{booking.start_time:%H:%M} - {booking.end_time:%H:%M}"
            )
            notification = _remind(session, booking.member_id, message, f"/bookings/{booking.id}", now)
            if notification is not None:
                sent.append(notification)

    if sent:
        logger.info("Sent %d reminders for %s", len(sent), window_start.date())
    if push is not None:
        for notification in sent:
            push.notify_member(notification.receiver_id, notification.message)
    return sent


class Sweeper:
    """Runs the expiry and reminder passes on their own daemon threads."""

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        push=None,
        expiry_interval: float = config.EXPIRY_INTERVAL_SECONDS,
        reminder_interval: float = config.REMINDER_INTERVAL_SECONDS,
        payment_timeout: timedelta = timedelta(minutes=config.PENDING_PAYMENT_TIMEOUT_MINUTES),
    ):
        self.session_factory = session_factory or _default_session_factory
        self.push = push
        self.expiry_interval = expiry_interval
        self.reminder_interval = reminder_interval
        self.payment_timeout = payment_timeout
        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self) -> None:
        """Start both loops. No-op if already running."""
        if self.running:
            return
        self._stop_event.clear()
        self._threads = [
            threading.Thread(
                target=self._loop,
                args=("expiry", self.expiry_interval, self._expiry_cycle),
                name="sweeper-expiry",
                daemon=True,
            ),
            threading.Thread(
                target=self._loop,
                args=("reminders", self.reminder_interval, self._reminder_cycle),
                name="sweeper-reminders",
                daemon=True,
            ),
        ]
        for thread in self._threads:
            thread.start()
        logger.info(
            "Sweeper started (expiry every %ss, reminders every %ss)", self.expiry_interval, self.reminder_interval
        )

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        logger.info("Sweeper stopped")

    def _loop(self, name: str, interval: float, cycle: Callable[[], None]) -> None:
        while not self._stop_event.is_set():
            try:
                cycle()
            except Exception as e:
                logger.error(f"Error in sweeper {name} cycle: {e}", exc_info=True)
            # Returns True as soon as stop() is called
            if self._stop_event.wait(interval):
                break

    def _expiry_cycle(self) -> None:
        expired = run_expiry_pass(self.session_factory, self.payment_timeout)
        if expired and self.push is not None:
            self.push.broadcast("UpdateCalendar", {"reason": "bookings_expired", "booking_ids": expired})

    def _reminder_cycle(self) -> None:
        with self.session_factory() as session:
            send_reminders(session, push=self.push)


# Global singleton
_sweeper: Optional[Sweeper] = None


def get_sweeper() -> Sweeper:
    """Get or create the singleton Sweeper, wired to the app push service."""
    global _sweeper
    if _sweeper is None:
        _sweeper = Sweeper(push=get_push_service())
    return _sweeper
