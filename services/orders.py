"""
Order workflow: creation, status transitions, reads and deletion.

Order creation runs as a single transaction. The order header and every
line item are written together or not at all, and each line item stores a
snapshot of the menu price so later menu edits never change an existing
order.
"""
import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from core.config import settings
from core.db import atomic
from core.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from models.location import Location
from models.menu_item import MenuItem
from models.order import Order, OrderStatus
from models.order_item import OrderItem
from models.user import User, UserRole

logger = logging.getLogger(__name__)

ORDER_STATUSES = [s.value for s in OrderStatus]


def _to_decimal(value: float | int | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _is_positive_number(value: Any) -> bool:
    # bool is an int subclass; True must not pass as an amount
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False
    try:
        return _to_decimal(value) > 0
    except InvalidOperation:
        return False


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def make_order_number(user_id: str) -> str:
    return f"ORD-{int(time.time() * 1000)}-{user_id}"


def validate_order_request(
    caller: Optional[User],
    location_id: Any,
    items: Any,
    total_amount: Any,
) -> None:
    """Check the order preconditions in order; the first failure wins."""
    if caller is None:
        raise AuthenticationError("User not authenticated")
    if not isinstance(items, list) or len(items) == 0:
        raise ValidationError("Order items are required")
    if not _is_positive_number(total_amount):
        raise ValidationError("Valid total amount is required")
    if not location_id:
        raise ValidationError("Location ID is required")
    for index, item in enumerate(items):
        menu_item_id = item.get("menu_item_id") if isinstance(item, dict) else None
        quantity = item.get("quantity") if isinstance(item, dict) else None
        if not isinstance(menu_item_id, str) or not menu_item_id.strip():
            raise ValidationError(f"Item {index}: menu item ID is required")
        if not _is_positive_int(quantity):
            raise ValidationError(f"Item {index} ({menu_item_id}): quantity must be a positive integer")


def create_order(
    db: Session,
    caller: Optional[User],
    location_id: Any,
    items: Any,
    total_amount: Any,
    special_notes: Optional[str] = None,
) -> Order:
    validate_order_request(caller, location_id, items, total_amount)

    submitted_total = _to_decimal(total_amount)
    try:
        with atomic(db):
            if db.get(Location, location_id) is None:
                raise ValidationError(f"Location not found: {location_id}")

            order = Order(
                user_id=caller.id,
                location_id=location_id,
                order_number=make_order_number(caller.id),
                total_amount=submitted_total,
                status=OrderStatus.PENDING.value,
                paid=False,
                special_notes=special_notes,
            )
            db.add(order)
            db.flush()

            computed_total = Decimal("0.00")
            for item in items:
                menu_item = db.get(MenuItem, item["menu_item_id"])
                if menu_item is None:
                    raise ValidationError(f"Menu item not found: {item['menu_item_id']}")
                price = _to_decimal(menu_item.price)
                line_total = price * item["quantity"]
                computed_total += line_total
                db.add(
                    OrderItem(
                        order_id=order.id,
                        menu_item_id=menu_item.id,
                        price=price,
                        quantity=item["quantity"],
                        total=line_total,
                    )
                )

            if computed_total != submitted_total:
                if settings.STRICT_ORDER_TOTALS:
                    raise ValidationError(
                        f"Total amount {submitted_total} does not match item total {computed_total}"
                    )
                logger.warning(
                    "Order %s submitted total %s differs from item total %s",
                    order.order_number, submitted_total, computed_total,
                )
    except IntegrityError:
        logger.warning("Order number collision for user %s", caller.id)
        raise ConflictError("Order could not be created, please retry")

    logger.info("Order %s created for user %s (%s items)", order.order_number, caller.id, len(items))
    return get_order_with_items(db, order.id)


def get_order_with_items(db: Session, order_id: str) -> Order:
    order = (
        db.query(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.menu_item))
        .filter(Order.id == order_id)
        .populate_existing()
        .one_or_none()
    )
    if not order:
        raise NotFoundError("Order not found")
    return order


def list_user_orders(db: Session, user: User) -> List[Order]:
    return (
        db.query(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.menu_item))
        .filter(Order.user_id == user.id)
        .order_by(Order.created_at.desc())
        .all()
    )


def list_all_orders(db: Session, caller: User, location_id: Optional[str] = None) -> List[Order]:
    """Staff only see their own location; admins may narrow by location."""
    query = db.query(Order).options(
        selectinload(Order.items).selectinload(OrderItem.menu_item),
        selectinload(Order.user),
        selectinload(Order.location),
    )
    if caller.role == UserRole.STAFF.value:
        if not caller.location_id:
            raise AuthorizationError("Staff member is not assigned to a location")
        query = query.filter(Order.location_id == caller.location_id)
    elif location_id:
        query = query.filter(Order.location_id == location_id)
    return query.order_by(Order.created_at.desc()).all()


def get_order_for_caller(db: Session, caller: User, order_id: str) -> Order:
    order = get_order_with_items(db, order_id)
    if order.user_id != caller.id and caller.role not in (UserRole.STAFF.value, UserRole.ADMIN.value):
        raise AuthorizationError("Access denied")
    return order


def update_order_status(db: Session, caller: User, order_id: str, new_status: Any) -> Order:
    """Move an order to any status in the enumeration.

    Checks run in order: status value, caller role, then the order lookup,
    so customers never learn which order ids exist.
    """
    if new_status not in ORDER_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(ORDER_STATUSES)}")
    if caller.role not in (UserRole.STAFF.value, UserRole.ADMIN.value):
        raise AuthorizationError("Only staff or admin can update order status")
    order = db.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")

    with atomic(db):
        previous = order.status
        order.status = new_status
    logger.info("Order %s status %s -> %s by %s", order.order_number, previous, new_status, caller.id)
    return get_order_with_items(db, order.id)


def delete_order(db: Session, caller: User, order_id: str) -> None:
    order = db.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    if order.user_id != caller.id and caller.role != UserRole.ADMIN.value:
        raise AuthorizationError("Access denied")
    if order.paid:
        raise ConflictError("Paid orders cannot be deleted")

    with atomic(db):
        db.delete(order)
    logger.info("Order %s deleted by %s", order.order_number, caller.id)
