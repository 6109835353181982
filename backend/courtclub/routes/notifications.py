from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from courtclub.database import get_session
from courtclub.dependencies import Actor, get_actor
from courtclub.models.notification import NotificationType
from courtclub.services import notification_service

router = APIRouter()


class NotificationResponse(BaseModel):
    id: int
    receiver_id: int
    message: str
    type: NotificationType
    link_url: Optional[str]
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("/notifications", response_model=List[NotificationResponse])
def list_notifications(session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    """Latest 50 notifications, newest first"""
    return notification_service.list_notifications(session, actor.member_id)


@router.get("/notifications/unread-count")
def unread_count(session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    return {"unread": notification_service.unread_count(session, actor.member_id)}


@router.put("/notifications/read-all")
def mark_all_read(session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    return {"updated": notification_service.mark_all_read(session, actor.member_id)}


@router.put("/notifications/{notification_id}/read", response_model=NotificationResponse)
def mark_read(notification_id: int, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    return notification_service.mark_read(session, notification_id, actor.member_id)
