"""
Order state changes driven by gateway payment confirmations.

The paid transition is a single conditional UPDATE, so concurrent or
repeated deliveries for one reference confirm the order exactly once.
"""
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from marketplace.constants.order_status import (
    ALLOWED_PAYMENT_TRANSITIONS,
    OrderStatus,
    PaymentStatus,
)
from marketplace.models.notifications import NotificationType
from marketplace.models.order import Order
from marketplace.models.order_item import OrderItem
from marketplace.services.notification_service import create_notification
from marketplace.services.order_processing import CompletionReport, process_order_completion

logger = logging.getLogger(__name__)


class FinalizationOutcome(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ALREADY_PROCESSED = "already_processed"
    NOT_FOUND = "not_found"
    UPDATE_FAILED = "update_failed"
    ITEMS_UNAVAILABLE = "items_unavailable"


@dataclass
class FinalizationResult:
    outcome: FinalizationOutcome
    order: Optional[Order] = None
    report: Optional[CompletionReport] = None


def find_order_by_reference(session: Session, reference: str) -> Optional[Order]:
    return session.exec(
        select(Order).where(Order.payment_reference == reference)
    ).first()


def _lookup(session: Session, reference: str) -> Optional[Order]:
    try:
        return find_order_by_reference(session, reference)
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Error looking up order for reference: {reference}")
        return None


def cart_id_from_metadata(metadata: Any) -> Optional[str]:
    """
    Gateway metadata is echoed back as sent, which may be a JSON string
    rather than an object. Anything unreadable yields no cart.
    """
    if isinstance(metadata, (str, bytes)):
        try:
            metadata = json.loads(metadata)
        except ValueError:
            logger.warning("Ignoring unparseable payment metadata")
            return None

    if not isinstance(metadata, Mapping):
        return None

    cart_id = metadata.get("cart_id")
    return str(cart_id) if cart_id else None


def _complete(session: Session, order: Order, cart_id: Optional[str]) -> Optional[CompletionReport]:
    try:
        items = session.exec(
            select(OrderItem).where(OrderItem.order_id == order.id)
        ).all()
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Error fetching order items for order {order.id}")
        return None

    return process_order_completion(session, order, items, cart_id)


def finalize_successful_payment(
    session: Session,
    reference: Optional[str],
    metadata: Any = None,
) -> FinalizationResult:
    """
    Confirm the order paid under ``reference`` and run its completion.

    A repeated confirmation does not touch the order again; it only resumes
    completion steps that are not yet journaled, which is a no-op once the
    first run succeeded.
    """
    if not reference:
        logger.error("Payment confirmation without a reference")
        return FinalizationResult(FinalizationOutcome.NOT_FOUND)

    order = _lookup(session, reference)
    if not order:
        logger.error(f"Order not found for reference: {reference}")
        return FinalizationResult(FinalizationOutcome.NOT_FOUND)

    cart_id = cart_id_from_metadata(metadata)

    try:
        result = session.execute(
            update(Order)
            .where(
                Order.id == order.id,
                Order.payment_status != PaymentStatus.COMPLETED,
            )
            .values(
                payment_status=PaymentStatus.COMPLETED,
                order_status=OrderStatus.CONFIRMED,
                updated_at=datetime.utcnow(),
            )
        )
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Error updating order {order.id}")
        return FinalizationResult(FinalizationOutcome.UPDATE_FAILED, order)

    session.refresh(order)

    if result.rowcount == 0:
        logger.info(f"Payment already processed for order: {order.id}")
        report = _complete(session, order, cart_id)
        return FinalizationResult(FinalizationOutcome.ALREADY_PROCESSED, order, report)

    logger.info(f"Order updated successfully: {order.id}")

    report = _complete(session, order, cart_id)
    if report is None:
        return FinalizationResult(FinalizationOutcome.ITEMS_UNAVAILABLE, order)

    logger.info(f"Payment processing completed for order: {order.id}")
    return FinalizationResult(FinalizationOutcome.COMPLETED, order, report)


def mark_payment_failed(session: Session, reference: Optional[str]) -> FinalizationResult:
    """Cancel the order under ``reference`` and tell the buyer. Paid orders are left alone."""
    if not reference:
        logger.error("Payment failure without a reference")
        return FinalizationResult(FinalizationOutcome.NOT_FOUND)

    order = _lookup(session, reference)
    if not order:
        logger.error(f"Order not found for reference: {reference}")
        return FinalizationResult(FinalizationOutcome.NOT_FOUND)

    may_fail = [
        current
        for current, targets in ALLOWED_PAYMENT_TRANSITIONS.items()
        if PaymentStatus.FAILED in targets
    ]

    try:
        result = session.execute(
            update(Order)
            .where(Order.id == order.id, Order.payment_status.in_(may_fail))
            .values(
                payment_status=PaymentStatus.FAILED,
                order_status=OrderStatus.CANCELLED,
                updated_at=datetime.utcnow(),
            )
        )
        if result.rowcount == 0:
            session.rollback()
            logger.info(f"Ignoring payment failure for order {order.id} ({order.payment_status})")
            return FinalizationResult(FinalizationOutcome.ALREADY_PROCESSED, order)

        create_notification(
            session=session,
            user_id=order.buyer_id,
            type=NotificationType.payment,
            title="Payment Failed",
            message=f"Payment for order #{order.display_ref} failed. Please try again.",
            data={"order_id": order.id, "reference": reference},
        )
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Error recording failed payment for order {order.id}")
        return FinalizationResult(FinalizationOutcome.UPDATE_FAILED, order)

    session.refresh(order)
    logger.info(f"Failed payment processed for order: {order.id}")
    return FinalizationResult(FinalizationOutcome.CANCELLED, order)
