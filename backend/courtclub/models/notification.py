from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel

from courtclub.utils.clock import utcnow


class NotificationType(str, Enum):
    info = "info"
    success = "success"
    warning = "warning"
    error = "error"


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    receiver_id: int = Field(foreign_key="member.id", index=True)
    message: str = Field(max_length=500)
    type: NotificationType = Field(default=NotificationType.info, sa_column=Column(String, nullable=False))
    link_url: Optional[str] = Field(default=None, max_length=200)  # e.g. "/matches/7"
    is_read: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
