import json
import os
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

# settings are read at import time
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "sk_test_webhook_secret")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from marketplace import models  # noqa: F401
from marketplace.config import settings
from marketplace.database import get_session
from marketplace.main import app
from marketplace.models.artwork import Artwork
from marketplace.models.order import Order
from marketplace.models.order_item import OrderItem
from marketplace.models.user import Profile
from marketplace.services.paystack_service import (
    SIGNATURE_HEADER,
    PaystackService,
    compute_signature,
    reset_gateway,
    set_gateway,
)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Mint a session token the way the auth service signs them."""
    to_encode = data.copy()
    to_encode["exp"] = datetime.utcnow() + (expires_delta or timedelta(minutes=60))
    if settings.jwt_audience:
        to_encode.setdefault("aud", settings.jwt_audience)
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


class FakeGateway(PaystackService):
    """Answers gateway calls from memory and records them."""

    def __init__(self):
        super().__init__(secret_key=settings.paystack_secret_key, base_url="https://paystack.test")
        self.calls: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []
        self.verify_responses: Dict[str, Dict[str, Any]] = {}
        self.error: Optional[Exception] = None

    def _request(self, method, endpoint, payload=None):
        self.calls.append((method, endpoint, payload))
        if self.error is not None:
            raise self.error

        if endpoint == "/transaction/initialize":
            return {
                "status": True,
                "message": "Authorization URL created",
                "data": {
                    "authorization_url": f"https://checkout.paystack.test/{payload['reference']}",
                    "access_code": "ac_test_123",
                    "reference": payload["reference"],
                },
            }

        reference = endpoint.rsplit("/", 1)[-1]
        return self.verify_responses.get(reference, {
            "status": True,
            "message": "Verification successful",
            "data": {"status": "success", "reference": reference, "metadata": {}},
        })


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="gateway", autouse=True)
def gateway_fixture():
    gateway = FakeGateway()
    set_gateway(gateway)
    yield gateway
    reset_gateway()


@pytest.fixture
def make_profile(session):
    def _make(**kwargs) -> Profile:
        kwargs.setdefault("email", f"{uuid4().hex[:10]}@example.com")
        profile = Profile(**kwargs)
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile

    return _make


@pytest.fixture
def buyer(make_profile):
    return make_profile(full_name="Ada Buyer")


@pytest.fixture
def creator(make_profile):
    return make_profile(full_name="Kemi Creator", role="creator")


@pytest.fixture
def make_artwork(session, creator):
    def _make(price: float = 1000, owner: Optional[Profile] = None, **kwargs) -> Artwork:
        kwargs.setdefault("title", "Lagos at Dusk")
        artwork = Artwork(creator_id=(owner or creator).id, price=price, **kwargs)
        session.add(artwork)
        session.commit()
        session.refresh(artwork)
        return artwork

    return _make


@pytest.fixture
def make_order(session):
    """Pending order for ``buyer`` with one item per ``(artwork, quantity)``."""

    def _make(buyer: Profile, lines, reference: Optional[str] = None, order_number: str = "ORD-1-TEST1") -> Order:
        subtotal = sum(artwork.price * quantity for artwork, quantity in lines)
        order = Order(
            order_number=order_number,
            buyer_id=buyer.id,
            subtotal=subtotal,
            total_amount=subtotal,
        )
        session.add(order)
        session.flush()
        order.payment_reference = reference or f"ORDER_{order.id}_1700000000000"

        for artwork, quantity in lines:
            session.add(OrderItem(
                order_id=order.id,
                artwork_id=artwork.id,
                creator_id=artwork.creator_id,
                unit_price=artwork.price,
                quantity=quantity,
            ))

        session.add(order)
        session.commit()
        session.refresh(order)
        return order

    return _make


@pytest.fixture
def auth_headers():
    def _headers(profile: Profile) -> Dict[str, str]:
        token = create_access_token({"sub": profile.id})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def post_webhook(client):
    def _post(payload: Dict[str, Any], secret: Optional[str] = None, signature: Optional[str] = None):
        body = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if signature is None:
            signature = compute_signature(body, secret or settings.paystack_secret_key)
        if signature:
            headers[SIGNATURE_HEADER] = signature
        return client.post("/api/payments/webhook", content=body, headers=headers)

    return _post
