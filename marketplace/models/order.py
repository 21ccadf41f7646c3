from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional
from datetime import datetime
from uuid import uuid4

from marketplace.constants.order_status import OrderStatus, PaymentStatus
from marketplace.models.order_item import OrderItem


class Order(SQLModel, table=True):
    __tablename__ = "orders"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    order_number: Optional[str] = Field(default=None, index=True)
    buyer_id: str = Field(foreign_key="profiles.id", index=True)

    # minted at checkout, echoed back by the gateway
    payment_reference: Optional[str] = Field(default=None, unique=True, index=True)

    payment_status: str = Field(default=PaymentStatus.PENDING)
    order_status: str = Field(default=OrderStatus.PENDING)

    subtotal: float = 0
    shipping_cost: float = 0
    total_amount: float = 0
    currency: str = Field(default="NGN")

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    items: List["OrderItem"] = Relationship(back_populates="order")

    @property
    def display_ref(self) -> str:
        return self.order_number or self.id[:8]
