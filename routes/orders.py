from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from core.access import get_current_user, require_staff
from core.db import get_db
from models.user import User
from schemas.order import OrderCreate, OrderDetailOut, OrderOut, OrderStatusUpdate
from services import orders as order_service

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderOut, status_code=201)
def create_order(data: OrderCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return order_service.create_order(
        db,
        user,
        location_id=data.location_id,
        items=data.items,
        total_amount=data.total_amount,
        special_notes=data.special_notes,
    )


@router.get("/user/orders", response_model=List[OrderOut])
def list_my_orders(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return order_service.list_user_orders(db, user)


@router.get("/all", response_model=List[OrderDetailOut])
def list_all_orders(
    location_id: Optional[str] = None,
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return order_service.list_all_orders(db, user, location_id=location_id)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return order_service.get_order_for_caller(db, user, order_id)


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return order_service.update_order_status(db, user, order_id, data.status)


@router.delete("/{order_id}", status_code=204)
def delete_order(order_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    order_service.delete_order(db, user, order_id)
    return Response(status_code=204)
