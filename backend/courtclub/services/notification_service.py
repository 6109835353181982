"""
Durable notification inbox.

``notify`` only adds the row to the caller's session; it is committed with the
caller's unit of work. Real-time delivery is the push service's job.
"""
from datetime import date
from typing import List, Optional

from sqlmodel import Session, func, select

from courtclub.errors import NotFound
from courtclub.models.notification import Notification, NotificationType
from courtclub.utils.clock import day_bounds

INBOX_LIMIT = 50


def notify(
    session: Session,
    receiver_id: int,
    message: str,
    notification_type: NotificationType = NotificationType.info,
    link_url: Optional[str] = None,
) -> Notification:
    notification = Notification(
        receiver_id=receiver_id,
        message=message[:500],
        type=notification_type,
        link_url=link_url,
    )
    session.add(notification)
    return notification


def reminder_exists(session: Session, receiver_id: int, link_url: str, on_day: date) -> bool:
    """True if the receiver already got a notification for this link on the given calendar day."""
    start, end = day_bounds(on_day)
    existing = session.exec(
        select(Notification.id).where(
            Notification.receiver_id == receiver_id,
            Notification.link_url == link_url,
            Notification.created_at >= start,
            Notification.created_at < end,
        )
    ).first()
    return existing is not None


def list_notifications(session: Session, member_id: int, limit: int = INBOX_LIMIT) -> List[Notification]:
    return list(
        session.exec(
            select(Notification)
            .where(Notification.receiver_id == member_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        ).all()
    )


def unread_count(session: Session, member_id: int) -> int:
    return session.exec(
        select(func.count(Notification.id)).where(
            Notification.receiver_id == member_id,
            Notification.is_read == False,  # noqa: E712
        )
    ).one()


def mark_read(session: Session, notification_id: int, member_id: int) -> Notification:
    """Mark one notification read. Only the receiver may do this."""
    notification = session.get(Notification, notification_id)
    if not notification or notification.receiver_id != member_id:
        raise NotFound("Notification not found")
    if not notification.is_read:
        notification.is_read = True
        session.add(notification)
        session.commit()
        session.refresh(notification)
    return notification


def mark_all_read(session: Session, member_id: int) -> int:
    unread = session.exec(
        select(Notification).where(
            Notification.receiver_id == member_id,
            Notification.is_read == False,  # noqa: E712
        )
    ).all()
    for notification in unread:
        notification.is_read = True
        session.add(notification)
    session.commit()
    return len(unread)
