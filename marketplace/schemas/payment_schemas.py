from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr


class PaymentInitializeRequest(BaseModel):
    cart_id: str
    email: EmailStr


class PaymentInitializeData(BaseModel):
    authorization_url: str
    access_code: str
    reference: str
    order_id: str


class PaymentInitializeResponse(BaseModel):
    success: bool = True
    data: PaymentInitializeData


class PaymentConfigResponse(BaseModel):
    public_key: str
    currency: str
    support_phone: str


class WebhookEvent(BaseModel):
    """Envelope of a gateway webhook delivery; ``data`` is gateway-defined."""

    event: Optional[str] = None
    data: Dict[str, Any] = {}
