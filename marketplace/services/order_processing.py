"""
Post-payment side effects for a confirmed order.

Each side effect runs in its own transaction together with a row in
``order_completion_steps``. A step already journaled for the order is
skipped, so running completion again after a partial failure applies
only what is missing and never credits a wallet twice.
"""
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from marketplace.models.cart import Cart
from marketplace.models.notifications import NotificationType
from marketplace.models.order import Order
from marketplace.models.order_event import OrderCompletionStep
from marketplace.models.order_item import OrderItem
from marketplace.services.cart_service import clear_cart
from marketplace.services.notification_service import create_notification
from marketplace.services.wallet_service import record_credit

logger = logging.getLogger(__name__)


@dataclass
class CompletionReport:
    order_id: str
    applied: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def creator_totals(items: Sequence[OrderItem]) -> Dict[str, float]:
    """Sum of line totals per creator, in order of first appearance."""
    totals: Dict[str, float] = {}
    for item in items:
        if not item.creator_id:
            continue
        totals[item.creator_id] = totals.get(item.creator_id, 0) + item.line_total
    return {creator_id: round(amount, 2) for creator_id, amount in totals.items()}


def completed_steps(session: Session, order_id: str) -> List[str]:
    return session.exec(
        select(OrderCompletionStep.step).where(OrderCompletionStep.order_id == order_id)
    ).all()


def _journaled(session: Session, order_id: str, step: str) -> bool:
    try:
        row = session.exec(
            select(OrderCompletionStep.id).where(
                OrderCompletionStep.order_id == order_id,
                OrderCompletionStep.step == step,
            )
        ).first()
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Could not read completion journal for order {order_id}")
        return False
    return row is not None


def _run_step(
    session: Session,
    report: CompletionReport,
    step: str,
    action: Callable[[], object],
    meta: Optional[dict] = None,
) -> None:
    try:
        if step in completed_steps(session, report.order_id):
            report.skipped.append(step)
            return

        action()
        session.add(OrderCompletionStep(order_id=report.order_id, step=step, meta=meta or {}))
        session.commit()
    except IntegrityError:
        session.rollback()
        if _journaled(session, report.order_id, step):
            # a concurrent run committed this step first; its side effect stands
            report.skipped.append(step)
            logger.info(f"Step {step} for order {report.order_id} already applied elsewhere")
        else:
            report.failed.append(step)
            logger.exception(f"Completion step {step} violated a constraint for order {report.order_id}")
    except Exception:
        session.rollback()
        report.failed.append(step)
        logger.exception(f"Completion step {step} failed for order {report.order_id}")
    else:
        report.applied.append(step)


def process_order_completion(
    session: Session,
    order: Order,
    order_items: Sequence[OrderItem],
    cart_id: Optional[str] = None,
) -> CompletionReport:
    # plain values only: a failed step rolls back and expires ORM state
    order_id = order.id
    order_ref = order.display_ref
    buyer_id = order.buyer_id
    total_amount = order.total_amount
    order_status = order.order_status

    totals = creator_totals(order_items)
    artworks_by_creator: Dict[str, List[str]] = {}
    for item in order_items:
        if item.creator_id:
            artworks_by_creator.setdefault(item.creator_id, []).append(item.artwork_id)

    report = CompletionReport(order_id=order_id)

    for creator_id, amount in totals.items():
        _run_step(
            session,
            report,
            f"wallet_credit:{creator_id}",
            partial(
                record_credit,
                session,
                user_id=creator_id,
                amount=amount,
                description=f"Payment for order #{order_ref}",
                reference=f"ORDER_{order_id}",
                meta={"order_id": order_id, "artwork_ids": artworks_by_creator[creator_id]},
            ),
            meta={"amount": amount},
        )

    _run_step(
        session,
        report,
        "notify_buyer",
        partial(
            create_notification,
            session=session,
            user_id=buyer_id,
            type=NotificationType.order,
            title="Order Confirmed!",
            message=f"Your order #{order_ref} has been confirmed and is being processed.",
            data={"order_id": order_id, "amount": total_amount, "status": order_status},
        ),
    )

    for creator_id, amount in totals.items():
        _run_step(
            session,
            report,
            f"notify_seller:{creator_id}",
            partial(
                create_notification,
                session=session,
                user_id=creator_id,
                type=NotificationType.sale,
                title="New Sale!",
                message=f"You have a new sale from order #{order_ref}",
                data={
                    "order_id": order_id,
                    "artwork_id": artworks_by_creator[creator_id][0],
                    "amount": amount,
                },
            ),
        )

    if cart_id:
        cart = session.get(Cart, cart_id)
        if cart is None:
            logger.warning(f"Cart {cart_id} for order {order_id} no longer exists")
        elif cart.user_id != buyer_id:
            logger.warning(f"Cart {cart_id} does not belong to buyer of order {order_id}")
        else:
            _run_step(session, report, f"clear_cart:{cart_id}", partial(clear_cart, session, cart_id))

    if report.failed:
        logger.error(f"Order {order_id} completion incomplete, failed steps: {report.failed}")
    else:
        logger.info(f"Order completion processed for order {order_id}")

    return report
