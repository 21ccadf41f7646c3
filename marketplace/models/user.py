from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import uuid4


class Profile(SQLModel, table=True):
    """Marketplace mirror of a user issued by the managed auth service."""

    __tablename__ = "profiles"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    email: str = Field(index=True)
    full_name: Optional[str] = None
    role: str = Field(default="collector")  # collector | creator | admin
    can_login: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
