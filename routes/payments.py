from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from schemas.payment import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from services import payments as payment_service

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
def create_checkout_session(data: CheckoutSessionRequest):
    items = [item.model_dump() for item in data.items] if data.items else None
    return payment_service.create_checkout(
        order_id=data.order_id,
        items=items,
        user_id=data.user_id,
        location_id=data.location_id,
        table_number=data.table_number,
        special_instructions=data.special_instructions,
        currency=data.currency,
    )


@router.post("/verify-payment", response_model=VerifyPaymentResponse)
def verify_payment(data: VerifyPaymentRequest, db: Session = Depends(get_db)):
    order = payment_service.verify_payment(db, data.session_id)
    return {"success": True, "order": order}
