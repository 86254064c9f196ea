"""
Read-only reporting over payments, sales and orders for the admin dashboard.

All money figures are aggregated in the database except revenue trends,
which are bucketed in Python so the grouping works the same on SQLite and
PostgreSQL.
"""
import math
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, selectinload

from core.errors import NotFoundError, ValidationError
from models.location import Location
from models.menu_category import MenuCategory
from models.menu_item import MenuItem
from models.order import Order
from models.order_item import OrderItem
from models.payment import Payment
from models.sale import Sale
from models.user import User, UserRole

PAYMENT_SORT_FIELDS = {"amount": Payment.amount, "created_at": Payment.created_at, "status": Payment.status}
SALE_SORT_FIELDS = {"amount": Sale.amount, "created_at": Sale.created_at}
TREND_GROUPS = ("hour", "day", "week", "month", "year")


def _money(value: Any) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def _in_range(query: Query, column, start_date: Optional[datetime], end_date: Optional[datetime]) -> Query:
    if start_date:
        query = query.filter(column >= start_date)
    if end_date:
        query = query.filter(column <= end_date)
    return query


def paginate(query: Query, page: int, limit: int) -> Tuple[List[Any], Dict[str, int]]:
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, {
        "current_page": page,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "total_items": total,
        "items_per_page": limit,
    }


def _payment_query(db: Session) -> Query:
    return db.query(Payment).options(
        selectinload(Payment.user),
        selectinload(Payment.order).selectinload(Order.location),
        selectinload(Payment.order).selectinload(Order.items).selectinload(OrderItem.menu_item),
    )


def _sale_query(db: Session) -> Query:
    return db.query(Sale).options(
        selectinload(Sale.payment),
        selectinload(Sale.order).selectinload(Order.user),
        selectinload(Sale.order).selectinload(Order.location),
        selectinload(Sale.order).selectinload(Order.items).selectinload(OrderItem.menu_item),
    )


def _sorted(query: Query, fields: Dict[str, Any], sort_by: str, sort_order: str) -> Query:
    column = fields.get(sort_by, fields["created_at"])
    return query.order_by(column.asc() if sort_order == "asc" else column.desc())


# Payments

def list_payments(
    db: Session,
    page: int = 1,
    limit: int = 10,
    user_id: Optional[str] = None,
    order_id: Optional[str] = None,
    status: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> Dict[str, Any]:
    query = _payment_query(db)
    if user_id:
        query = query.filter(Payment.user_id == user_id)
    if order_id:
        query = query.filter(Payment.order_id == order_id)
    if status:
        query = query.filter(Payment.status == status)
    query = _in_range(query, Payment.created_at, start_date, end_date)
    if search:
        pattern = f"%{search}%"
        query = (
            query.join(User, Payment.user_id == User.id)
            .join(Order, Payment.order_id == Order.id)
            .filter(
                or_(
                    User.phone_number == search,
                    User.name.ilike(pattern),
                    User.email.ilike(pattern),
                    Order.order_number.ilike(pattern),
                )
            )
        )
    items, pagination = paginate(_sorted(query, PAYMENT_SORT_FIELDS, sort_by, sort_order), page, limit)
    return {"data": items, "pagination": pagination}


def get_payment(db: Session, payment_id: str) -> Payment:
    payment = _payment_query(db).filter(Payment.id == payment_id).one_or_none()
    if not payment:
        raise NotFoundError("Payment not found")
    return payment


def list_user_payments(db: Session, user_id: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    if db.get(User, user_id) is None:
        raise NotFoundError("User not found")
    query = _payment_query(db).filter(Payment.user_id == user_id).order_by(Payment.created_at.desc())
    items, pagination = paginate(query, page, limit)
    return {"data": items, "pagination": pagination}


def _payments_scope(db: Session, start_date, end_date, location_id) -> Query:
    query = _in_range(db.query(Payment), Payment.created_at, start_date, end_date)
    if location_id:
        query = query.join(Order, Payment.order_id == Order.id).filter(Order.location_id == location_id)
    return query


def _payments_by_status(scope: Query) -> List[Dict[str, Any]]:
    rows = (
        scope.with_entities(Payment.status, func.count(Payment.id), func.sum(Payment.amount))
        .group_by(Payment.status)
        .order_by(Payment.status)
        .all()
    )
    return [{"status": status, "count": count, "total_amount": _money(total)} for status, count, total in rows]


def payment_stats(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
) -> Dict[str, Any]:
    scope = _payments_scope(db, start_date, end_date, location_id)
    paid = scope.filter(Payment.status == "paid")
    total_payments = scope.count()
    successful = paid.count()
    revenue, average = paid.with_entities(func.sum(Payment.amount), func.avg(Payment.amount)).one()
    return {
        "total_payments": total_payments,
        "successful_payments": successful,
        "failed_payments": total_payments - successful,
        "total_revenue": _money(revenue),
        "average_order_value": _money(average).quantize(Decimal("0.01")),
        "payments_by_status": _payments_by_status(scope),
    }


# Sales

def list_sales(
    db: Session,
    page: int = 1,
    limit: int = 10,
    location_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> Dict[str, Any]:
    query = _in_range(_sale_query(db), Sale.created_at, start_date, end_date)
    if location_id:
        query = query.join(Order, Sale.order_id == Order.id).filter(Order.location_id == location_id)
    items, pagination = paginate(_sorted(query, SALE_SORT_FIELDS, sort_by, sort_order), page, limit)
    return {"data": items, "pagination": pagination}


def get_sale(db: Session, sale_id: str) -> Sale:
    sale = _sale_query(db).filter(Sale.id == sale_id).one_or_none()
    if not sale:
        raise NotFoundError("Sale not found")
    return sale


def list_location_sales(
    db: Session,
    location_id: str,
    page: int = 1,
    limit: int = 10,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    if db.get(Location, location_id) is None:
        raise NotFoundError("Location not found")
    query = (
        _sale_query(db)
        .join(Order, Sale.order_id == Order.id)
        .filter(Order.location_id == location_id)
    )
    query = _in_range(query, Sale.created_at, start_date, end_date).order_by(Sale.created_at.desc())
    items, pagination = paginate(query, page, limit)
    return {"data": items, "pagination": pagination}


def _location_breakdown(db: Session, start_date, end_date, location_id=None) -> List[Dict[str, Any]]:
    query = (
        db.query(
            Location.id,
            Location.name,
            Location.city,
            Location.address,
            func.count(Order.id),
            func.sum(Order.total_amount),
            func.avg(Order.total_amount),
        )
        .join(Order, Order.location_id == Location.id)
        .filter(Order.paid.is_(True))
    )
    query = _in_range(query, Order.created_at, start_date, end_date)
    if location_id:
        query = query.filter(Order.location_id == location_id)
    rows = query.group_by(Location.id, Location.name, Location.city, Location.address).all()
    return [
        {
            "location": {"id": loc_id, "name": name, "city": city, "address": address},
            "order_count": count,
            "total_revenue": _money(total),
            "average_order_value": _money(average).quantize(Decimal("0.01")),
        }
        for loc_id, name, city, address, count, total, average in rows
    ]


def sales_stats(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
) -> Dict[str, Any]:
    scope = _in_range(db.query(Sale), Sale.created_at, start_date, end_date)
    if location_id:
        scope = scope.join(Order, Sale.order_id == Order.id).filter(Order.location_id == location_id)
    count, revenue, average = scope.with_entities(func.count(Sale.id), func.sum(Sale.amount), func.avg(Sale.amount)).one()
    return {
        "total_sales": count,
        "total_revenue": _money(revenue),
        "average_sale_value": _money(average).quantize(Decimal("0.01")),
        "sales_by_location": _location_breakdown(db, start_date, end_date, location_id),
    }


# Dashboard

def dashboard_metrics(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
) -> Dict[str, Any]:
    sales = _in_range(db.query(func.sum(Sale.amount)), Sale.created_at, start_date, end_date)
    if location_id:
        sales = sales.join(Order, Sale.order_id == Order.id).filter(Order.location_id == location_id)

    paid_orders = _in_range(db.query(Order).filter(Order.paid.is_(True)), Order.created_at, start_date, end_date)
    if location_id:
        paid_orders = paid_orders.filter(Order.location_id == location_id)
    order_count, average = paid_orders.with_entities(func.count(Order.id), func.avg(Order.total_amount)).one()

    customers = _in_range(
        db.query(func.count(User.id)).filter(User.role == UserRole.CUSTOMER.value),
        User.created_at, start_date, end_date,
    )
    return {
        "overview": {
            "total_revenue": _money(sales.scalar()),
            "total_orders": order_count,
            "total_customers": customers.scalar(),
            "average_order_value": _money(average).quantize(Decimal("0.01")),
        },
        "payments": {"by_status": _payments_by_status(_payments_scope(db, start_date, end_date, location_id))},
    }


def _paid_items_query(db: Session, start_date, end_date, location_id) -> Query:
    query = db.query(OrderItem).join(Order, OrderItem.order_id == Order.id).filter(Order.paid.is_(True))
    query = _in_range(query, Order.created_at, start_date, end_date)
    if location_id:
        query = query.filter(Order.location_id == location_id)
    return query


def most_sold_items(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
    limit: int = 10,
) -> List[Dict[str, Any]]:
    quantity = func.sum(OrderItem.quantity)
    rows = (
        _paid_items_query(db, start_date, end_date, location_id)
        .join(MenuItem, OrderItem.menu_item_id == MenuItem.id)
        .join(MenuCategory, MenuItem.category_id == MenuCategory.id)
        .with_entities(
            MenuItem.id, MenuItem.name, MenuItem.image_url, MenuCategory.name,
            quantity, func.sum(OrderItem.total), func.count(OrderItem.id),
        )
        .group_by(MenuItem.id, MenuItem.name, MenuItem.image_url, MenuCategory.name)
        .order_by(quantity.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "menu_item": {"id": item_id, "name": name, "image_url": image_url, "category": category},
            "quantity_sold": int(qty or 0),
            "total_revenue": _money(revenue),
            "order_count": count,
        }
        for item_id, name, image_url, category, qty, revenue, count in rows
    ]


def _period_key(moment: datetime, group_by: str) -> str:
    if group_by == "hour":
        return moment.strftime("%Y-%m-%d %H:00")
    if group_by == "week":
        year, week, _ = moment.isocalendar()
        return f"{year}-W{week:02d}"
    if group_by == "month":
        return moment.strftime("%Y-%m")
    if group_by == "year":
        return moment.strftime("%Y")
    return moment.strftime("%Y-%m-%d")


def revenue_trends(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
    group_by: str = "day",
) -> List[Dict[str, Any]]:
    if group_by not in TREND_GROUPS:
        raise ValidationError(f"Invalid group_by. Must be one of: {', '.join(TREND_GROUPS)}")
    query = (
        db.query(Sale.amount, Sale.created_at)
        .join(Order, Sale.order_id == Order.id)
        .filter(Order.paid.is_(True))
    )
    query = _in_range(query, Sale.created_at, start_date, end_date)
    if location_id:
        query = query.filter(Order.location_id == location_id)

    buckets: "OrderedDict[str, Decimal]" = OrderedDict()
    for amount, created_at in query.order_by(Sale.created_at.asc()).all():
        key = _period_key(created_at, group_by)
        buckets[key] = buckets.get(key, Decimal("0")) + _money(amount)
    return [{"period": period, "revenue": revenue} for period, revenue in buckets.items()]


def sales_by_category(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    rows = (
        _paid_items_query(db, start_date, end_date, location_id)
        .join(MenuItem, OrderItem.menu_item_id == MenuItem.id)
        .join(MenuCategory, MenuItem.category_id == MenuCategory.id)
        .with_entities(
            MenuCategory.id, MenuCategory.name,
            func.sum(OrderItem.quantity), func.sum(OrderItem.total), func.count(OrderItem.id),
        )
        .group_by(MenuCategory.id, MenuCategory.name)
        .order_by(MenuCategory.name)
        .all()
    )
    return [
        {
            "category_id": category_id,
            "category_name": name,
            "total_quantity": int(qty or 0),
            "total_revenue": _money(revenue),
            "item_count": count,
        }
        for category_id, name, qty, revenue, count in rows
    ]


def top_customers(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
    limit: int = 10,
) -> List[Dict[str, Any]]:
    spent = func.sum(Order.total_amount)
    query = (
        db.query(User.id, User.name, User.email, User.phone_number, func.count(Order.id), spent)
        .join(Order, Order.user_id == User.id)
        .filter(Order.paid.is_(True))
    )
    query = _in_range(query, Order.created_at, start_date, end_date)
    if location_id:
        query = query.filter(Order.location_id == location_id)
    rows = (
        query.group_by(User.id, User.name, User.email, User.phone_number)
        .order_by(spent.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "user": {"id": user_id, "name": name, "email": email, "phone_number": phone},
            "order_count": count,
            "total_spent": _money(total),
        }
        for user_id, name, email, phone, count, total in rows
    ]


def order_status_distribution(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    query = _in_range(
        db.query(Order.status, func.count(Order.id), func.sum(Order.total_amount)),
        Order.created_at, start_date, end_date,
    )
    if location_id:
        query = query.filter(Order.location_id == location_id)
    rows = query.group_by(Order.status).order_by(Order.status).all()
    return [{"status": status, "count": count, "total_amount": _money(total)} for status, count, total in rows]


def location_performance(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    return _location_breakdown(db, start_date, end_date)
