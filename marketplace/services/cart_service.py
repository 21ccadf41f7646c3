"""
Cart operations for the shopper's single active cart.

The store enforces one active cart per user and one row per
(cart, artwork); the helpers here treat a constraint conflict as
"someone else got there first" and re-read instead of failing.
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from marketplace.constants.order_status import CartStatus
from marketplace.errors import StoreError, ValidationFailed
from marketplace.models.artwork import Artwork
from marketplace.models.cart import Cart, CartItem

logger = logging.getLogger(__name__)

EMPTY_CART = {"id": None, "items": [], "subtotal": 0, "count": 0}


@contextmanager
def store_errors(session: Session, fallback_message: str):
    try:
        yield
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"{fallback_message}: {e}")
        raise StoreError(fallback_message) from e


def get_active_cart(session: Session, user_id: str) -> Optional[Cart]:
    return session.exec(
        select(Cart).where(
            Cart.user_id == user_id,
            Cart.status == CartStatus.ACTIVE,
        )
    ).first()


def get_or_create_active_cart(session: Session, user_id: str) -> Cart:
    cart = get_active_cart(session, user_id)
    if cart:
        return cart

    cart = Cart(user_id=user_id, status=CartStatus.ACTIVE)
    session.add(cart)
    try:
        session.commit()
    except IntegrityError:
        # a concurrent request created the active cart first
        session.rollback()
        cart = get_active_cart(session, user_id)
        if cart is None:
            raise
        return cart

    session.refresh(cart)
    logger.info(f"Created active cart {cart.id} for user {user_id}")
    return cart


def _validate_quantity(quantity: Any, message: str = "Quantity must be a whole number of at least 1") -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationFailed(message, field="quantity")
    return quantity


def _increment_existing(session: Session, cart_id: str, artwork_id: str, quantity: int) -> bool:
    result = session.execute(
        update(CartItem)
        .where(CartItem.cart_id == cart_id, CartItem.artwork_id == artwork_id)
        .values(quantity=CartItem.quantity + quantity)
    )
    return result.rowcount > 0


def add_item(session: Session, user_id: str, artwork_id: str, quantity: int = 1) -> Cart:
    """
    Put ``quantity`` of an artwork into the user's active cart.

    An artwork already in the cart has its quantity increased; a new line
    captures the artwork's current price as ``unit_price``.
    """
    _validate_quantity(quantity)

    with store_errors(session, "Failed to add to cart"):
        artwork = session.get(Artwork, artwork_id)
        if not artwork:
            raise ValidationFailed("Artwork not found", field="artworkId")
        if not artwork.is_available:
            raise ValidationFailed("Artwork not available", field="artworkId")
        unit_price = float(artwork.price or 0)

        cart = get_or_create_active_cart(session, user_id)
        cart_id = cart.id

        try:
            if not _increment_existing(session, cart_id, artwork_id, quantity):
                session.add(CartItem(
                    cart_id=cart_id,
                    artwork_id=artwork_id,
                    quantity=quantity,
                    unit_price=unit_price,
                ))
            session.commit()
        except IntegrityError:
            # the line was inserted concurrently; fold into it
            session.rollback()
            _increment_existing(session, cart_id, artwork_id, quantity)
            session.commit()

    return cart


def update_item_quantity(session: Session, user_id: str, item_id: str, quantity: int) -> int:
    """Set the quantity of a line in the user's active cart. Returns rows changed."""
    _validate_quantity(quantity, "itemId and valid quantity are required")

    with store_errors(session, "Failed to update cart item"):
        cart = get_active_cart(session, user_id)
        if cart is None:
            return 0

        result = session.execute(
            update(CartItem)
            .where(CartItem.id == item_id, CartItem.cart_id == cart.id)
            .values(quantity=quantity)
        )
        session.commit()
        return result.rowcount


def remove_item(session: Session, user_id: str, item_id: str) -> int:
    with store_errors(session, "Failed to remove cart item"):
        cart = get_active_cart(session, user_id)
        if cart is None:
            return 0

        result = session.execute(
            delete(CartItem).where(CartItem.id == item_id, CartItem.cart_id == cart.id)
        )
        session.commit()
        return result.rowcount


def clear_cart(session: Session, cart_id: str) -> int:
    """
    Delete every line of a cart and retire it from ``active``.

    Does not commit; callers commit together with their own bookkeeping.
    """
    result = session.execute(delete(CartItem).where(CartItem.cart_id == cart_id))
    session.execute(
        update(Cart)
        .where(Cart.id == cart_id)
        .values(status=CartStatus.CHECKED_OUT, updated_at=datetime.utcnow())
    )
    return result.rowcount


def _unwrap(joined: Any) -> Any:
    # joins can come back as a single row or a one-element list
    if isinstance(joined, (list, tuple)):
        return joined[0] if joined else None
    return joined


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _to_number(value: Any) -> float:
    # numeric columns may be serialized as strings
    if value is None or value == "":
        return 0.0
    return float(value)


def to_cart_response(cart_id: Optional[str], rows: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    items = []
    for row in rows:
        art = _unwrap(row.get("artwork"))
        items.append({
            "id": row["id"],
            "artwork_id": row["artwork_id"],
            "title": _field(art, "title") or "Untitled",
            "thumbnail_url": _field(art, "thumbnail_url"),
            "unit_price": _to_number(row.get("unit_price")),
            "quantity": row["quantity"],
            "creator_id": _field(art, "creator_id"),
        })

    subtotal = sum(item["unit_price"] * item["quantity"] for item in items)
    count = sum(item["quantity"] for item in items)

    return {"id": cart_id, "items": items, "subtotal": subtotal, "count": count}


def get_cart_summary(session: Session, user_id: str) -> Dict[str, Any]:
    with store_errors(session, "Failed to load cart"):
        cart = get_active_cart(session, user_id)
        if cart is None:
            return dict(EMPTY_CART, items=[])
        return cart_summary_for(session, cart.id)


def cart_summary_for(session: Session, cart_id: str) -> Dict[str, Any]:
    rows = session.exec(
        select(CartItem, Artwork)
        .join(Artwork, Artwork.id == CartItem.artwork_id, isouter=True)
        .where(CartItem.cart_id == cart_id)
        .order_by(CartItem.created_at, CartItem.id)
    ).all()

    return to_cart_response(cart_id, (
        {
            "id": item.id,
            "artwork_id": item.artwork_id,
            "unit_price": item.unit_price,
            "quantity": item.quantity,
            "artwork": artwork,
        }
        for item, artwork in rows
    ))
