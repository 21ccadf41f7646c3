import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from marketplace.config import settings
from marketplace.database import get_session
from marketplace.errors import MarketplaceError, NotFound, Unauthenticated, ValidationFailed
from marketplace.models.user import Profile
from marketplace.schemas.payment_schemas import (
    PaymentConfigResponse,
    PaymentInitializeRequest,
    PaymentInitializeResponse,
    WebhookEvent,
)
from marketplace.services.checkout_service import initialize_payment
from marketplace.services.order_finalizer import (
    FinalizationOutcome,
    finalize_successful_payment,
    find_order_by_reference,
)
from marketplace.services.paystack_service import (
    SIGNATURE_HEADER,
    from_kobo,
    get_gateway,
    verify_signature,
)
from marketplace.services.webhook_service import handle_webhook_event
from marketplace.utils.token import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook")
async def paystack_webhook(request: Request, session: Session = Depends(get_session)):
    # the signature covers the exact bytes received
    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    if not signature:
        logger.error("Webhook received without signature")
        raise ValidationFailed("Missing signature")

    if not verify_signature(body, signature, settings.paystack_secret_key):
        logger.error("Invalid webhook signature")
        raise Unauthenticated("Invalid signature")

    try:
        event = WebhookEvent.model_validate(json.loads(body))
        logger.info(f"Webhook event received: {event.event}")
        await run_in_threadpool(handle_webhook_event, session, event)
    except Exception as e:
        logger.exception("Webhook processing error")
        raise MarketplaceError("Webhook processing failed") from e

    return {"received": True}


@router.post("/initialize", response_model=PaymentInitializeResponse)
def initialize(
    data: PaymentInitializeRequest,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
):
    result = initialize_payment(session, current_user, data.cart_id, data.email)
    return {"success": True, "data": result}


@router.get("/verify")
def verify_payment(
    reference: Optional[str] = None,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
):
    if not reference:
        raise ValidationFailed("Payment reference is required")

    order = find_order_by_reference(session, reference)
    if not order or order.buyer_id != current_user.id:
        raise NotFound("Order", reference)

    response = get_gateway().verify_transaction(reference)
    data = response.get("data") or {}

    if data.get("status") != "success":
        return {
            "success": False,
            "status": data.get("status"),
            "message": response.get("message") or "Payment was not successful",
        }

    result = finalize_successful_payment(session, reference, data.get("metadata"))

    if result.outcome == FinalizationOutcome.UPDATE_FAILED:
        raise MarketplaceError("Failed to update order")

    amount = from_kobo(data["amount"]) if data.get("amount") is not None else result.order.total_amount
    status = (
        FinalizationOutcome.ALREADY_PROCESSED.value
        if result.outcome == FinalizationOutcome.ALREADY_PROCESSED
        else result.order.payment_status
    )

    return {
        "success": True,
        "data": {
            "order_id": result.order.id,
            "amount": amount,
            "status": status,
            "reference": reference,
        },
    }


@router.get("/config", response_model=PaymentConfigResponse)
def payment_config():
    return PaymentConfigResponse(
        public_key=settings.paystack_public_key,
        currency=settings.currency,
        support_phone=settings.support_phone,
    )
