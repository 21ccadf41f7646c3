from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON


class NotificationType(str, Enum):
    order = "order"
    sale = "sale"
    payment = "payment"
    follow = "follow"
    like = "like"
    submission = "submission"


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="profiles.id", index=True)

    type: str
    title: str
    message: str
    data: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    read: bool = Field(default=False, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
