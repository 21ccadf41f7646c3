import logging

from sqlmodel import Session

from marketplace.schemas.payment_schemas import WebhookEvent
from marketplace.services.order_finalizer import (
    FinalizationResult,
    finalize_successful_payment,
    mark_payment_failed,
)

logger = logging.getLogger(__name__)

CHARGE_SUCCESS = "charge.success"
CHARGE_FAILED = "charge.failed"
TRANSFER_SUCCESS = "transfer.success"
TRANSFER_FAILED = "transfer.failed"


def handle_webhook_event(session: Session, event: WebhookEvent) -> FinalizationResult | None:
    """Route a verified gateway event to the order finalizer."""
    data = event.data or {}
    reference = data.get("reference")

    if event.event == CHARGE_SUCCESS:
        logger.info(f"Processing successful payment: {reference}")
        result = finalize_successful_payment(session, reference, data.get("metadata"))
        logger.info(f"Payment {reference} finalization outcome: {result.outcome.value}")
        return result

    if event.event == CHARGE_FAILED:
        logger.info(f"Processing failed payment: {reference}")
        return mark_payment_failed(session, reference)

    if event.event in (TRANSFER_SUCCESS, TRANSFER_FAILED):
        # payouts are initiated elsewhere; nothing to reconcile here yet
        logger.info(f"Transfer event {event.event} for {reference}")
        return None

    logger.info(f"Unhandled webhook event: {event.event}")
    return None
