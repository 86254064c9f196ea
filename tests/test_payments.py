"""
Tests for Stripe checkout, webhook reconciliation and payment verification.
"""
import json
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import stripe
from fastapi import status

from models.order import Order
from models.payment import Payment
from models.sale import Sale
from services import stripe_gateway


@pytest.fixture
def order(client, customer_headers, location, menu_item):
    response = client.post(
        "/orders",
        json={"items": [{"menuItemId": menu_item.id, "quantity": 2}], "totalAmount": 25.0, "locationId": location.id},
        headers=customer_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


class TestCheckoutSession:
    def test_creates_session_with_minor_units_and_metadata(self, client, order):
        fake_session = MagicMock(id="cs_test_abc", url="https://checkout.stripe.test/cs_test_abc")
        with patch("stripe.checkout.Session.create", return_value=fake_session) as create:
            response = client.post(
                "/payments/create-checkout-session",
                json={
                    "orderId": order["id"],
                    "userId": order["user_id"],
                    "locationId": order["location_id"],
                    "tableNumber": 7,
                    "items": [
                        {"name": "Chicken Momo", "price": 12.345, "quantity": 2},
                        {"name": "Tea", "price": 1.5, "quantity": 1},
                    ],
                },
            )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"url": "https://checkout.stripe.test/cs_test_abc", "session_id": "cs_test_abc"}

        kwargs = create.call_args.kwargs
        assert kwargs["mode"] == "payment"
        assert [line["price_data"]["unit_amount"] for line in kwargs["line_items"]] == [1235, 150]
        assert kwargs["line_items"][0]["quantity"] == 2
        assert kwargs["line_items"][0]["price_data"]["currency"] == "usd"
        assert kwargs["metadata"]["orderId"] == order["id"]
        assert kwargs["metadata"]["tableNumber"] == "7"
        assert kwargs["success_url"] == "http://frontend.test/payment-success?session_id={CHECKOUT_SESSION_ID}"
        assert kwargs["cancel_url"] == "http://frontend.test/cancel"

    def test_order_id_required(self, client):
        with patch("stripe.checkout.Session.create") as create:
            response = client.post(
                "/payments/create-checkout-session",
                json={"items": [{"name": "Tea", "price": 1.5, "quantity": 1}]},
            )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Order ID is required"
        create.assert_not_called()

    def test_items_required(self, client):
        response = client.post("/payments/create-checkout-session", json={"orderId": "abc", "items": []})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Items are required"

    def test_provider_error_is_reported(self, client):
        with patch("stripe.checkout.Session.create", side_effect=stripe.APIConnectionError("network down")):
            response = client.post(
                "/payments/create-checkout-session",
                json={"orderId": "abc", "items": [{"name": "Tea", "price": 1.5, "quantity": 1}]},
            )
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["success"] is False


class TestStripeWebhook:
    def test_completed_event_reconciles_order(self, client, db, order, customer, completed_event, send_webhook):
        response = send_webhook(completed_event(order["id"], customer.id, session_id="cs_test_123", amount_total=2500))
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"received": True}

        payment = db.query(Payment).one()
        assert payment.stripe_session_id == "cs_test_123"
        assert payment.stripe_payment_id == "pi_cs_test_123"
        assert payment.amount == Decimal("25.00")
        assert payment.user_id == customer.id
        sale = db.query(Sale).one()
        assert sale.payment_id == payment.id
        assert sale.order_id == order["id"]
        assert db.get(Order, order["id"]).paid is True

    def test_redelivery_is_idempotent(self, client, db, order, customer, completed_event, send_webhook):
        event = completed_event(order["id"], customer.id)
        for _ in range(3):
            response = send_webhook(event)
            assert response.status_code == status.HTTP_200_OK
        assert db.query(Payment).count() == 1
        assert db.query(Sale).count() == 1
        assert db.get(Order, order["id"]).paid is True

    def test_bad_signature_rejected(self, client, db, order, customer, completed_event, send_webhook):
        response = send_webhook(completed_event(order["id"], customer.id), secret="whsec_wrong")
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"].startswith("Webhook Error")
        assert db.query(Payment).count() == 0
        assert db.get(Order, order["id"]).paid is False

    def test_missing_signature_rejected(self, client, order, customer, completed_event):
        response = client.post("/stripe/webhook", content=json.dumps(completed_event(order["id"], customer.id)))
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_stale_timestamp_rejected(self, client, order, customer, completed_event, sign_payload):
        payload = json.dumps(completed_event(order["id"], customer.id))
        response = client.post(
            "/stripe/webhook",
            content=payload,
            headers={"Stripe-Signature": sign_payload(payload, timestamp=1_000_000)},
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_non_utf8_body_rejected(self, client, db):
        response = client.post(
            "/stripe/webhook",
            content=b"\xff\xfe{not-json",
            headers={"Stripe-Signature": "t=1700000000,v1=deadbeef"},
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"].startswith("Webhook Error")
        assert db.query(Payment).count() == 0

    def test_unknown_order_still_acknowledged(self, client, db, customer, completed_event, send_webhook):
        response = send_webhook(completed_event("no-such-order", customer.id))
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"received": True}
        assert db.query(Payment).count() == 0
        assert db.query(Sale).count() == 0

    def test_missing_order_metadata_still_acknowledged(self, client, db, customer, completed_event, send_webhook):
        event = completed_event("x", customer.id)
        event["data"]["object"]["metadata"] = {}
        response = send_webhook(event)
        assert response.status_code == status.HTTP_200_OK
        assert db.query(Payment).count() == 0

    def test_other_event_types_ignored(self, client, db, order, customer, completed_event, send_webhook):
        event = completed_event(order["id"], customer.id)
        event["type"] = "payment_intent.created"
        response = send_webhook(event)
        assert response.status_code == status.HTTP_200_OK
        assert db.query(Payment).count() == 0
        assert db.get(Order, order["id"]).paid is False

    def test_unpaid_session_not_reconciled(self, client, db, order, customer, completed_event, send_webhook):
        response = send_webhook(completed_event(order["id"], customer.id, payment_status="unpaid"))
        assert response.status_code == status.HTTP_200_OK
        assert db.query(Payment).count() == 0
        assert db.get(Order, order["id"]).paid is False

    def test_async_payment_success_reconciles(self, client, db, order, customer, completed_event, send_webhook):
        event = completed_event(order["id"], customer.id, session_id="cs_async")
        event["type"] = "checkout.session.async_payment_succeeded"
        send_webhook(event)
        assert db.query(Payment).one().stripe_session_id == "cs_async"


def _paid_session(order_id, session_id="cs_test_123", payment_status="paid"):
    return {
        "id": session_id,
        "payment_status": payment_status,
        "metadata": {"orderId": order_id} if order_id else {},
        "amount_total": 2500,
        "currency": "usd",
        "payment_intent": "pi_123",
    }


class TestVerifyPayment:
    def test_marks_order_paid_without_payment_rows(self, client, db, order, monkeypatch):
        monkeypatch.setattr(stripe_gateway, "retrieve_session", lambda session_id: _paid_session(order["id"]))
        response = client.post("/payments/verify-payment", json={"sessionId": "cs_test_123"})
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["order"]["id"] == order["id"]
        assert data["order"]["paid"] is True
        assert db.query(Payment).count() == 0
        assert db.query(Sale).count() == 0

    def test_verify_after_webhook_converges(
        self, client, db, order, customer, completed_event, send_webhook, monkeypatch
    ):
        send_webhook(completed_event(order["id"], customer.id))
        monkeypatch.setattr(stripe_gateway, "retrieve_session", lambda session_id: _paid_session(order["id"]))
        response = client.post("/payments/verify-payment", json={"session_id": "cs_test_123"})
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["order"]["paid"] is True
        assert db.query(Payment).count() == 1
        assert db.query(Sale).count() == 1

    def test_webhook_after_verify_converges(
        self, client, db, order, customer, completed_event, send_webhook, monkeypatch
    ):
        monkeypatch.setattr(stripe_gateway, "retrieve_session", lambda session_id: _paid_session(order["id"]))
        client.post("/payments/verify-payment", json={"sessionId": "cs_test_123"})
        send_webhook(completed_event(order["id"], customer.id))
        send_webhook(completed_event(order["id"], customer.id))
        assert db.get(Order, order["id"]).paid is True
        assert db.query(Payment).count() == 1
        assert db.query(Sale).count() == 1

    def test_session_id_required(self, client):
        response = client.post("/payments/verify-payment", json={})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Session ID is required"

    def test_unpaid_session(self, client, order, monkeypatch):
        monkeypatch.setattr(
            stripe_gateway, "retrieve_session", lambda session_id: _paid_session(order["id"], payment_status="unpaid")
        )
        response = client.post("/payments/verify-payment", json={"sessionId": "cs_test_123"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Payment not completed"

    def test_session_without_order(self, client, monkeypatch):
        monkeypatch.setattr(stripe_gateway, "retrieve_session", lambda session_id: _paid_session(None))
        response = client.post("/payments/verify-payment", json={"sessionId": "cs_test_123"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Order ID not found in session metadata"

    def test_unknown_order(self, client, db, monkeypatch):
        monkeypatch.setattr(stripe_gateway, "retrieve_session", lambda session_id: _paid_session("gone"))
        response = client.post("/payments/verify-payment", json={"sessionId": "cs_test_123"})
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_unknown_session_from_provider(self, client):
        error = stripe.InvalidRequestError("No such checkout.session: cs_missing", "id")
        with patch("stripe.checkout.Session.retrieve", side_effect=error):
            response = client.post("/payments/verify-payment", json={"sessionId": "cs_missing"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Invalid checkout session: cs_missing"

    def test_sdk_session_object_marks_order_paid(self, client, db, order):
        session = stripe.checkout.Session.construct_from(
            {
                "id": "cs_test_sdk",
                "object": "checkout.session",
                "payment_status": "paid",
                "metadata": {"orderId": order["id"]},
                "amount_total": 2500,
                "currency": "usd",
                "payment_intent": "pi_sdk",
            },
            "sk_test_123",
        )
        with patch("stripe.checkout.Session.retrieve", return_value=session) as retrieve:
            response = client.post("/payments/verify-payment", json={"sessionId": "cs_test_sdk"})

        retrieve.assert_called_once_with("cs_test_sdk")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["order"]["paid"] is True
        db.expire_all()
        assert db.get(Order, order["id"]).paid is True
        assert db.query(Payment).count() == 0
        assert db.query(Sale).count() == 0
