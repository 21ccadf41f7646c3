import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import requests

from marketplace.config import settings
from marketplace.errors import PaymentGatewayError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-paystack-signature"


def to_kobo(amount: float) -> int:
    """Naira to kobo (100 kobo = 1 naira)."""
    return int(round(float(amount) * 100))


def from_kobo(kobo: int) -> float:
    return kobo / 100


def compute_signature(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA512 of the raw request body, as sent by Paystack."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha512).hexdigest()


def verify_signature(body: bytes, signature: str, secret: str) -> bool:
    expected = compute_signature(body, secret)
    return hmac.compare_digest(
        expected.encode("ascii"),
        signature.strip().lower().encode("utf-8"),
    )


class PaystackService:
    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.paystack.co",
        timeout: int = 15,
    ):
        if not secret_key:
            raise ValueError("PAYSTACK_SECRET_KEY is not configured")
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(
        self,
        method: str,
        endpoint: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

        try:
            response = requests.request(
                method,
                f"{self.base_url}{endpoint}",
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.exception(f"Paystack {method} {endpoint} failed")
            raise PaymentGatewayError(f"Paystack request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            message = body.get("message") or "Paystack API request failed"
            logger.error(f"Paystack {endpoint} returned {response.status_code}: {message}")
            raise PaymentGatewayError(message)

        return body

    def initialize_transaction(
        self,
        *,
        email: str,
        amount: int,
        reference: str,
        metadata: Optional[Dict[str, Any]] = None,
        callback_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Start a hosted checkout. ``amount`` is in kobo."""
        return self._request("POST", "/transaction/initialize", {
            "email": email,
            "amount": amount,
            "reference": reference,
            "metadata": metadata or {},
            "callback_url": callback_url or settings.paystack_callback_url,
        })

    def verify_transaction(self, reference: str) -> Dict[str, Any]:
        return self._request("GET", f"/transaction/verify/{reference}")


_current_gateway: Optional[PaystackService] = None


def get_gateway() -> PaystackService:
    """Return the active gateway client, built from settings on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = PaystackService(
            secret_key=settings.paystack_secret_key,
            base_url=settings.paystack_base_url,
        )
    return _current_gateway


def set_gateway(gateway: PaystackService) -> None:
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
