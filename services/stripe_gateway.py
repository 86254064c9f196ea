"""
Stripe payment provider gateway.

Thin wrapper around the official Stripe SDK: hosted checkout sessions,
session lookup for the poll-based verification path, and webhook signature
verification. Results are returned as plain dicts so callers never depend on
StripeObject internals.
"""
import json
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

import stripe

from core.config import settings
from core.errors import ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)

stripe.api_key = settings.STRIPE_SECRET_KEY
stripe.max_network_retries = settings.STRIPE_MAX_NETWORK_RETRIES
# requests-based transport so every provider call carries an explicit timeout
stripe.default_http_client = stripe.RequestsClient(timeout=settings.STRIPE_TIMEOUT_SECONDS)


def to_minor_units(amount: Any) -> int:
    """Convert a decimal amount to the integer minor unit, rounding half up (12.345 -> 1235)."""
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: Optional[int]) -> Decimal:
    return (Decimal(amount or 0) / Decimal(100)).quantize(Decimal("0.01"))


def build_line_items(items: List[Dict[str, Any]], currency: str) -> List[Dict[str, Any]]:
    """One price line per cart entry, priced in minor units."""
    return [
        {
            "price_data": {
                "currency": currency,
                "product_data": {"name": item["name"]},
                "unit_amount": to_minor_units(item["price"]),
            },
            "quantity": int(item["quantity"]),
        }
        for item in items
    ]


def create_checkout_session(
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, str],
) -> Dict[str, str]:
    """Create a hosted checkout session and return its redirect URL and id."""
    try:
        session = stripe.checkout.Session.create(
            payment_method_types=["card"],
            mode="payment",
            line_items=line_items,
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
        )
    except stripe.StripeError as e:
        logger.error("Stripe: checkout session creation failed - %s", e)
        raise ExternalServiceError(e.user_message or str(e))

    logger.info("Stripe: checkout session created - %s (order=%s)", session.id, metadata.get("orderId"))
    return {"url": session.url, "session_id": session.id}


def _normalize_session(session: Any) -> Dict[str, Any]:
    # SDK objects are not dicts; webhook payloads already are
    if isinstance(session, stripe.StripeObject):
        session = session.to_dict()
    metadata = session.get("metadata")
    if isinstance(metadata, stripe.StripeObject):
        metadata = metadata.to_dict()
    return {
        "id": session.get("id"),
        "payment_status": session.get("payment_status"),
        "metadata": dict(metadata) if metadata else {},
        "amount_total": session.get("amount_total"),
        "currency": session.get("currency"),
        "payment_intent": session.get("payment_intent"),
    }


def retrieve_session(session_id: str) -> Dict[str, Any]:
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.InvalidRequestError as e:
        logger.warning("Stripe: unknown checkout session %s - %s", session_id, e)
        raise ValidationError(f"Invalid checkout session: {session_id}")
    except stripe.StripeError as e:
        logger.error("Stripe: failed to retrieve session %s - %s", session_id, e)
        raise ExternalServiceError(e.user_message or str(e))
    return _normalize_session(session)


def verify_webhook_signature(payload: bytes, signature_header: Optional[str], secret: str) -> Dict[str, Any]:
    """Verify a webhook delivery and return the decoded event.

    Raises ValidationError when the header is missing or the signature does
    not match, so nothing unauthenticated is ever processed.
    """
    if not signature_header:
        raise ValidationError("Webhook Error: missing Stripe-Signature header")
    if not secret:
        logger.error("Stripe: webhook secret not configured, rejecting delivery")
        raise ValidationError("Webhook Error: webhook secret not configured")

    try:
        payload_str = payload.decode("utf-8") if isinstance(payload, bytes) else payload
    except UnicodeDecodeError as e:
        logger.warning("Stripe: webhook body is not valid UTF-8 - %s", e)
        raise ValidationError(f"Webhook Error: payload is not valid UTF-8 ({e.reason})")

    try:
        stripe.WebhookSignature.verify_header(
            payload_str, signature_header, secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
        )
    except stripe.SignatureVerificationError as e:
        logger.warning("Stripe: webhook signature invalid - %s", e)
        raise ValidationError(f"Webhook Error: {e}")

    try:
        event = json.loads(payload_str)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Webhook Error: invalid payload ({e})")

    logger.debug("Stripe: webhook verified - %s", event.get("type"))
    return event


def session_from_event(event: Dict[str, Any]) -> Dict[str, Any]:
    return _normalize_session(event.get("data", {}).get("object", {}))
