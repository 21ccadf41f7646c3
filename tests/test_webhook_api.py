"""Paystack webhook delivery: signature check, dispatch and idempotent finalization."""
import json
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from marketplace.config import settings
from marketplace.constants.order_status import CartStatus, OrderStatus, PaymentStatus
from marketplace.models.cart import Cart, CartItem
from marketplace.models.notifications import Notification
from marketplace.models.order import Order
from marketplace.models.wallet import WalletTransaction
from marketplace.services import cart_service, order_finalizer
from marketplace.services.paystack_service import SIGNATURE_HEADER, compute_signature


def charge_event(event, reference, metadata=None):
    return {
        "event": event,
        "data": {
            "reference": reference,
            "status": "success" if event == "charge.success" else "failed",
            "metadata": metadata or {},
        },
    }


@pytest.fixture
def pending_order(session, buyer, make_artwork, make_order):
    artwork = make_artwork(price=25000)
    cart = cart_service.add_item(session, buyer.id, artwork.id, 2)
    order = make_order(buyer, [(artwork, 2)])
    return SimpleNamespace(id=order.id, payment_reference=order.payment_reference, cart_id=cart.id)


def _reload(session, model, id):
    session.expire_all()
    return session.get(model, id)


class TestSignature:
    def test_missing_signature(self, post_webhook, session, pending_order):
        response = post_webhook(charge_event("charge.success", pending_order.payment_reference), signature="")

        assert response.status_code == 400
        assert response.json() == {"error": "Missing signature"}
        assert _reload(session, Order, pending_order.id).payment_status == PaymentStatus.PENDING

    def test_invalid_signature(self, post_webhook, session, pending_order):
        response = post_webhook(
            charge_event("charge.success", pending_order.payment_reference),
            secret="sk_attacker_guess",
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid signature"}
        order = _reload(session, Order, pending_order.id)
        assert order.payment_status == PaymentStatus.PENDING
        assert order.order_status == OrderStatus.PENDING
        assert session.exec(select(WalletTransaction)).all() == []

    def test_signature_covers_exact_bytes(self, client, session, pending_order):
        payload = charge_event("charge.success", pending_order.payment_reference)
        signed_body = json.dumps(payload).encode()
        reformatted = json.dumps(payload, indent=2).encode()

        response = client.post(
            "/api/payments/webhook",
            content=reformatted,
            headers={
                SIGNATURE_HEADER: compute_signature(signed_body, settings.paystack_secret_key),
                "Content-Type": "application/json",
            },
        )

        assert response.status_code == 401
        assert _reload(session, Order, pending_order.id).payment_status == PaymentStatus.PENDING

    def test_unparseable_body(self, client):
        body = b"{not json"

        response = client.post(
            "/api/payments/webhook",
            content=body,
            headers={SIGNATURE_HEADER: compute_signature(body, settings.paystack_secret_key)},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Webhook processing failed"}


class TestChargeSuccess:
    def test_completes_order_and_applies_side_effects(self, post_webhook, session, buyer, creator, pending_order):
        cart_id = pending_order.cart_id
        response = post_webhook(charge_event(
            "charge.success", pending_order.payment_reference, {"cart_id": cart_id},
        ))

        assert response.status_code == 200
        assert response.json() == {"received": True}

        order = _reload(session, Order, pending_order.id)
        assert order.payment_status == PaymentStatus.COMPLETED
        assert order.order_status == OrderStatus.CONFIRMED

        credits = session.exec(select(WalletTransaction)).all()
        assert len(credits) == 1
        assert credits[0].user_id == creator.id
        assert credits[0].amount == 50000
        assert credits[0].reference == f"ORDER_{order.id}"

        buyer_notes = session.exec(select(Notification).where(Notification.user_id == buyer.id)).all()
        seller_notes = session.exec(select(Notification).where(Notification.user_id == creator.id)).all()
        assert [n.title for n in buyer_notes] == ["Order Confirmed!"]
        assert [n.title for n in seller_notes] == ["New Sale!"]

        assert session.exec(select(CartItem).where(CartItem.cart_id == cart_id)).all() == []
        assert _reload(session, Cart, cart_id).status == CartStatus.CHECKED_OUT

    def test_duplicate_delivery_is_a_no_op(self, post_webhook, session, pending_order):
        event = charge_event(
            "charge.success",
            pending_order.payment_reference,
            {"cart_id": pending_order.cart_id},
        )

        first = post_webhook(event)
        second = post_webhook(event)

        assert first.status_code == second.status_code == 200
        assert second.json() == {"received": True}
        assert len(session.exec(select(WalletTransaction)).all()) == 1
        assert len(session.exec(select(Notification)).all()) == 2
        assert _reload(session, Order, pending_order.id).payment_status == PaymentStatus.COMPLETED

    def test_metadata_sent_as_json_string(self, post_webhook, session, pending_order):
        cart_id = pending_order.cart_id
        event = charge_event("charge.success", pending_order.payment_reference)
        event["data"]["metadata"] = json.dumps({"cart_id": cart_id})

        response = post_webhook(event)

        assert response.status_code == 200
        assert response.json() == {"received": True}
        assert _reload(session, Order, pending_order.id).payment_status == PaymentStatus.COMPLETED
        assert len(session.exec(select(WalletTransaction)).all()) == 1
        assert _reload(session, Cart, cart_id).status == CartStatus.CHECKED_OUT

    @pytest.mark.parametrize("metadata", ["not json", "[1, 2]", 42, ["cart"]])
    def test_unreadable_metadata_still_confirms(self, post_webhook, session, pending_order, metadata):
        event = charge_event("charge.success", pending_order.payment_reference)
        event["data"]["metadata"] = metadata

        response = post_webhook(event)

        assert response.status_code == 200
        assert _reload(session, Order, pending_order.id).payment_status == PaymentStatus.COMPLETED
        # no cart to clear without a readable cart id
        assert _reload(session, Cart, pending_order.cart_id).status == CartStatus.ACTIVE

    def test_lookup_failure_is_acknowledged(self, post_webhook, session, pending_order, monkeypatch):
        def lookup_down(*args, **kwargs):
            raise OperationalError("SELECT orders", {}, Exception("connection reset"))

        monkeypatch.setattr(order_finalizer, "find_order_by_reference", lookup_down)

        response = post_webhook(charge_event("charge.success", pending_order.payment_reference))
        monkeypatch.undo()

        assert response.status_code == 200
        assert response.json() == {"received": True}
        assert _reload(session, Order, pending_order.id).payment_status == PaymentStatus.PENDING

    def test_unknown_reference_is_acknowledged(self, post_webhook, session):
        response = post_webhook(charge_event("charge.success", "ORDER_nope_1"))

        assert response.status_code == 200
        assert response.json() == {"received": True}
        assert session.exec(select(WalletTransaction)).all() == []


class TestChargeFailed:
    def test_cancels_pending_order(self, post_webhook, session, buyer, pending_order):
        response = post_webhook(charge_event("charge.failed", pending_order.payment_reference))

        assert response.status_code == 200
        order = _reload(session, Order, pending_order.id)
        assert order.payment_status == PaymentStatus.FAILED
        assert order.order_status == OrderStatus.CANCELLED

        note = session.exec(select(Notification).where(Notification.user_id == buyer.id)).one()
        assert note.type == "payment"
        assert note.title == "Payment Failed"
        assert note.data == {"order_id": order.id, "reference": order.payment_reference}

    def test_never_downgrades_completed_order(self, post_webhook, session, pending_order):
        reference = pending_order.payment_reference
        post_webhook(charge_event("charge.success", reference))

        response = post_webhook(charge_event("charge.failed", reference))

        assert response.status_code == 200
        order = _reload(session, Order, pending_order.id)
        assert order.payment_status == PaymentStatus.COMPLETED
        assert order.order_status == OrderStatus.CONFIRMED
        titles = [n.title for n in session.exec(select(Notification)).all()]
        assert "Payment Failed" not in titles


@pytest.mark.parametrize("event", ["transfer.success", "transfer.failed", "subscription.create"])
def test_other_events_are_logged_only(post_webhook, session, pending_order, event):
    response = post_webhook(charge_event(event, pending_order.payment_reference))

    assert response.status_code == 200
    assert response.json() == {"received": True}
    assert _reload(session, Order, pending_order.id).payment_status == PaymentStatus.PENDING
    assert session.exec(select(Notification)).all() == []


def test_end_to_end_purchase(client, session, buyer, creator, make_artwork, auth_headers, post_webhook, gateway):
    headers = auth_headers(buyer)
    artwork = make_artwork(price=150000, title="Harmattan Morning")

    cart = client.post("/api/cart", json={"artworkId": artwork.id, "quantity": 1}, headers=headers).json()
    assert cart["subtotal"] == 150000

    checkout = client.post(
        "/api/payments/initialize",
        json={"cart_id": cart["id"], "email": "ada@example.com"},
        headers=headers,
    )
    assert checkout.status_code == 200
    reference = checkout.json()["data"]["reference"]
    order_id = checkout.json()["data"]["order_id"]

    order = session.get(Order, order_id)
    assert order.payment_reference == reference
    assert order.total_amount == 150000

    # the gateway echoes back the metadata sent at initialization
    metadata = gateway.calls[-1][2]["metadata"]
    response = post_webhook(charge_event("charge.success", reference, metadata))
    assert response.status_code == 200

    order = _reload(session, Order, order_id)
    assert order.payment_status == PaymentStatus.COMPLETED
    assert order.order_status == OrderStatus.CONFIRMED

    credits = session.exec(select(WalletTransaction).where(WalletTransaction.user_id == creator.id)).all()
    assert len(credits) == 1
    assert credits[0].amount == 150000
    assert credits[0].transaction_type == "credit"

    assert client.get("/api/cart", headers=headers).json()["items"] == []
