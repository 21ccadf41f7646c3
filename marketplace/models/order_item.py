from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from uuid import uuid4

if TYPE_CHECKING:
    from marketplace.models.order import Order


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_items"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    order_id: str = Field(foreign_key="orders.id", index=True)
    artwork_id: str = Field(foreign_key="artworks.id")
    creator_id: Optional[str] = Field(default=None, foreign_key="profiles.id", index=True)

    unit_price: float
    quantity: int

    order: Optional["Order"] = Relationship(back_populates="items")

    @property
    def line_total(self) -> float:
        return float(self.unit_price) * self.quantity
