from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import uuid4


class Artwork(SQLModel, table=True):
    __tablename__ = "artworks"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    creator_id: str = Field(foreign_key="profiles.id", index=True)

    title: Optional[str] = None
    thumbnail_url: Optional[str] = None

    price: float = 0
    is_available: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
