"""
Payment reconciliation.

Two uncoordinated paths can mark an order as paid:

* the Stripe webhook, which records the Payment and Sale rows and flips
  ``Order.paid`` in one transaction, deduplicated on the checkout session id;
* the client-polled verification, which only flips ``Order.paid`` with a
  conditional update and never writes Payment or Sale rows.

Both writes are idempotent, so any interleaving converges to ``paid = True``
with at most one Payment and one Sale per checkout session.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import settings
from core.db import atomic
from core.errors import NotFoundError, ValidationError
from models.order import Order
from models.payment import Payment
from models.sale import Sale
from services import orders as order_service
from services import stripe_gateway

logger = logging.getLogger(__name__)

RECONCILED_EVENTS = {"checkout.session.completed", "checkout.session.async_payment_succeeded"}
PAID_STATUSES = {"paid", "no_payment_required"}


def create_checkout(
    order_id: Optional[str],
    items: Optional[List[Dict[str, Any]]],
    user_id: Optional[str] = None,
    location_id: Optional[str] = None,
    table_number: Optional[str] = None,
    special_instructions: Optional[str] = None,
    currency: Optional[str] = None,
) -> Dict[str, str]:
    if not order_id:
        raise ValidationError("Order ID is required")
    if not items:
        raise ValidationError("Items are required")

    line_items = stripe_gateway.build_line_items(items, (currency or settings.STRIPE_CURRENCY).lower())
    metadata = {
        "userId": user_id or "",
        "orderId": order_id,
        "locationId": location_id or "",
        "tableNumber": str(table_number) if table_number is not None else "",
        "specialInstructions": special_instructions or "",
    }
    return stripe_gateway.create_checkout_session(
        line_items=line_items,
        success_url=f"{settings.FRONTEND_URL}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{settings.FRONTEND_URL}/cancel",
        metadata=metadata,
    )


def _payment_exists(db: Session, session_id: str) -> bool:
    return db.query(Payment.id).filter(Payment.stripe_session_id == session_id).first() is not None


def record_checkout_payment(db: Session, session: Dict[str, Any]) -> bool:
    """Persist Payment + Sale and mark the order paid for a completed session.

    Returns False when this session has already been reconciled.
    """
    session_id = session["id"]
    metadata = session.get("metadata") or {}
    order_id = metadata.get("orderId")
    if not order_id:
        raise ValidationError(f"Order ID not found in session metadata ({session_id})")

    try:
        with atomic(db):
            if _payment_exists(db, session_id):
                logger.info("Checkout session %s already reconciled, skipping", session_id)
                return False

            order = db.get(Order, order_id)
            if order is None:
                raise NotFoundError(f"Order not found: {order_id}")
            if metadata.get("userId") and metadata["userId"] != order.user_id:
                logger.warning(
                    "Session %s metadata user %s does not own order %s",
                    session_id, metadata["userId"], order_id,
                )

            amount = stripe_gateway.from_minor_units(session.get("amount_total"))
            payment = Payment(
                user_id=order.user_id,
                order_id=order.id,
                stripe_session_id=session_id,
                stripe_payment_id=session.get("payment_intent"),
                amount=amount,
                currency=session.get("currency") or settings.STRIPE_CURRENCY,
                status=session.get("payment_status") or "paid",
            )
            db.add(payment)
            db.flush()
            db.add(Sale(order_id=order.id, payment_id=payment.id, amount=amount))
            order.paid = True
    except IntegrityError:
        # A concurrent delivery won the race on the unique session id
        if _payment_exists(db, session_id):
            logger.info("Checkout session %s reconciled concurrently, skipping", session_id)
            return False
        raise

    logger.info("Order %s paid via session %s (%s %s)", order_id, session_id, amount, payment.currency)
    return True


def handle_webhook_event(db: Session, event: Dict[str, Any]) -> Optional[bool]:
    """Apply a verified webhook event. Returns None for events that are ignored."""
    event_type = event.get("type")
    if event_type not in RECONCILED_EVENTS:
        logger.debug("Ignoring Stripe event %s", event_type)
        return None

    session = stripe_gateway.session_from_event(event)
    if session.get("payment_status") not in PAID_STATUSES:
        logger.info("Session %s completed with status %s, not reconciling", session.get("id"), session.get("payment_status"))
        return None
    return record_checkout_payment(db, session)


def mark_order_paid(db: Session, order_id: str) -> Order:
    """Set ``paid`` if it is not set yet; a no-op when the webhook got there first."""
    with atomic(db):
        result = db.execute(
            update(Order)
            .where(Order.id == order_id, Order.paid.is_(False))
            .values(paid=True)
            .execution_options(synchronize_session=False)
        )
    order = order_service.get_order_with_items(db, order_id)
    if result.rowcount:
        logger.info("Order %s marked paid by verification", order_id)
    return order


def verify_payment(db: Session, session_id: Optional[str]) -> Order:
    if not session_id:
        raise ValidationError("Session ID is required")
    session = stripe_gateway.retrieve_session(session_id)
    if session.get("payment_status") not in PAID_STATUSES:
        raise ValidationError("Payment not completed")
    order_id = session["metadata"].get("orderId")
    if not order_id:
        raise ValidationError("Order ID not found in session metadata")
    if db.get(Order, order_id) is None:
        raise NotFoundError("Order not found")
    return mark_order_paid(db, order_id)
