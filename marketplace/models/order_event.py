from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON, UniqueConstraint


class OrderCompletionStep(SQLModel, table=True):
    """
    Journal of post-payment side effects applied for an order.

    A row is written in the same transaction as the side effect it marks,
    so a step present here has been applied exactly once.
    """

    __tablename__ = "order_completion_steps"
    __table_args__ = (
        UniqueConstraint("order_id", "step", name="uq_order_completion_steps_order_step"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)

    order_id: str = Field(foreign_key="orders.id", index=True)
    step: str

    meta: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow)
