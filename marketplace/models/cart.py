from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint, Index, UniqueConstraint, text
from datetime import datetime
from uuid import uuid4

from marketplace.constants.order_status import CartStatus


class Cart(SQLModel, table=True):
    __tablename__ = "carts"
    # one active cart per user
    __table_args__ = (
        Index(
            "uq_carts_active_user",
            "user_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="profiles.id", index=True)
    status: str = Field(default=CartStatus.ACTIVE)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class CartItem(SQLModel, table=True):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "artwork_id", name="uq_cart_items_cart_artwork"),
        CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    cart_id: str = Field(foreign_key="carts.id", index=True)
    artwork_id: str = Field(foreign_key="artworks.id")

    # price captured when the item was added
    unit_price: float
    quantity: int = 1

    created_at: datetime = Field(default_factory=datetime.utcnow)
