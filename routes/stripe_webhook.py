import logging

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from core.config import settings
from core.db import get_db
from schemas.payment import WebhookAck
from services import payments as payment_service
from services import stripe_gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stripe", tags=["payments"])


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
):
    """Receive Stripe events.

    Only the signature check can fail the request. Once the delivery is
    authenticated it is always acknowledged, and processing failures are
    logged for follow-up instead of being surfaced to Stripe.
    """
    payload = await request.body()
    event = stripe_gateway.verify_webhook_signature(payload, stripe_signature, settings.STRIPE_WEBHOOK_SECRET)

    try:
        await run_in_threadpool(payment_service.handle_webhook_event, db, event)
    except Exception:
        logger.exception("Failed to process Stripe event %s (%s)", event.get("id"), event.get("type"))
    return {"received": True}
