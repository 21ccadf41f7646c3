import logging
import random
import string
import time
from typing import Any, Dict

from sqlmodel import Session, select

from marketplace.config import settings
from marketplace.constants.order_status import CartStatus, OrderStatus, PaymentStatus
from marketplace.errors import NotFound, ValidationFailed
from marketplace.models.artwork import Artwork
from marketplace.models.cart import Cart, CartItem
from marketplace.models.order import Order
from marketplace.models.order_item import OrderItem
from marketplace.models.user import Profile
from marketplace.services.paystack_service import get_gateway, to_kobo

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def generate_order_number() -> str:
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=5))
    return f"ORD-{_now_ms()}-{suffix}"


def payment_reference_for(order: Order) -> str:
    return f"ORDER_{order.id}_{_now_ms()}"


def initialize_payment(session: Session, user: Profile, cart_id: str, email: str) -> Dict[str, Any]:
    """
    Turn the caller's active cart into a pending order and open a
    hosted checkout for it.

    The reference is stored on the order before the gateway is called,
    so a webhook can never arrive for a reference the store has not seen.
    """
    cart = session.exec(
        select(Cart).where(
            Cart.id == cart_id,
            Cart.user_id == user.id,
            Cart.status == CartStatus.ACTIVE,
        )
    ).first()
    if not cart:
        raise NotFound("Cart", cart_id)

    rows = session.exec(
        select(CartItem, Artwork)
        .join(Artwork, Artwork.id == CartItem.artwork_id, isouter=True)
        .where(CartItem.cart_id == cart.id)
        .order_by(CartItem.created_at, CartItem.id)
    ).all()
    if not rows:
        raise ValidationFailed("Cart is empty")

    subtotal = round(sum(float(item.unit_price) * item.quantity for item, _ in rows), 2)

    order = Order(
        order_number=generate_order_number(),
        buyer_id=user.id,
        payment_status=PaymentStatus.PENDING,
        order_status=OrderStatus.PENDING,
        subtotal=subtotal,
        shipping_cost=0,
        total_amount=subtotal,
        currency=settings.currency,
    )
    session.add(order)
    session.flush()

    for item, artwork in rows:
        session.add(OrderItem(
            order_id=order.id,
            artwork_id=item.artwork_id,
            creator_id=artwork.creator_id if artwork else None,
            unit_price=item.unit_price,
            quantity=item.quantity,
        ))

    reference = payment_reference_for(order)
    order.payment_reference = reference
    session.add(order)
    session.commit()
    session.refresh(order)

    logger.info(f"Order {order.id} created from cart {cart.id}, total {order.total_amount}")

    response = get_gateway().initialize_transaction(
        email=email,
        amount=to_kobo(order.total_amount),
        reference=reference,
        metadata={"order_id": order.id, "user_id": user.id, "cart_id": cart.id},
    )
    data = response.get("data") or {}

    return {
        "authorization_url": data.get("authorization_url"),
        "access_code": data.get("access_code"),
        "reference": reference,
        "order_id": order.id,
    }
