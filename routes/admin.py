from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.access import require_admin
from core.db import get_db
from schemas.report import PaymentPage, PaymentReportOut, SalePage, SaleReportOut
from services import reports

# Every reporting endpoint is admin-only
router = APIRouter(prefix="/admin", tags=["admin reports"], dependencies=[Depends(require_admin)])

SortOrder = Literal["asc", "desc"]


@router.get("/payments", response_model=PaymentPage)
def list_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: Optional[str] = None,
    order_id: Optional[str] = None,
    status: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
    sort_by: Literal["amount", "created_at", "status"] = "created_at",
    sort_order: SortOrder = "desc",
    db: Session = Depends(get_db),
):
    return reports.list_payments(
        db, page=page, limit=limit, user_id=user_id, order_id=order_id, status=status,
        start_date=start_date, end_date=end_date, search=search, sort_by=sort_by, sort_order=sort_order,
    )


@router.get("/payments/stats")
def payment_stats(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return reports.payment_stats(db, start_date=start_date, end_date=end_date, location_id=location_id)


@router.get("/payments/user/{user_id}", response_model=PaymentPage)
def list_user_payments(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return reports.list_user_payments(db, user_id, page=page, limit=limit)


@router.get("/payments/{payment_id}", response_model=PaymentReportOut)
def get_payment(payment_id: str, db: Session = Depends(get_db)):
    return reports.get_payment(db, payment_id)


@router.get("/sales", response_model=SalePage)
def list_sales(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    location_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    sort_by: Literal["amount", "created_at"] = "created_at",
    sort_order: SortOrder = "desc",
    db: Session = Depends(get_db),
):
    return reports.list_sales(
        db, page=page, limit=limit, location_id=location_id, start_date=start_date,
        end_date=end_date, sort_by=sort_by, sort_order=sort_order,
    )


@router.get("/sales/stats")
def sales_stats(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return reports.sales_stats(db, start_date=start_date, end_date=end_date, location_id=location_id)


@router.get("/sales/location/{location_id}", response_model=SalePage)
def list_location_sales(
    location_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    return reports.list_location_sales(
        db, location_id, page=page, limit=limit, start_date=start_date, end_date=end_date
    )


@router.get("/sales/{sale_id}", response_model=SaleReportOut)
def get_sale(sale_id: str, db: Session = Depends(get_db)):
    return reports.get_sale(db, sale_id)


@router.get("/dashboard/metrics")
def dashboard_metrics(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return reports.dashboard_metrics(db, start_date=start_date, end_date=end_date, location_id=location_id)


@router.get("/dashboard/most-sold-items")
def most_sold_items(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return reports.most_sold_items(
        db, start_date=start_date, end_date=end_date, location_id=location_id, limit=limit
    )


@router.get("/dashboard/revenue-trends")
def revenue_trends(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
    group_by: str = "day",
    db: Session = Depends(get_db),
):
    return reports.revenue_trends(
        db, start_date=start_date, end_date=end_date, location_id=location_id, group_by=group_by
    )


@router.get("/dashboard/sales-by-category")
def sales_by_category(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return reports.sales_by_category(db, start_date=start_date, end_date=end_date, location_id=location_id)


@router.get("/dashboard/top-customers")
def top_customers(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return reports.top_customers(
        db, start_date=start_date, end_date=end_date, location_id=location_id, limit=limit
    )


@router.get("/dashboard/order-status-distribution")
def order_status_distribution(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return reports.order_status_distribution(
        db, start_date=start_date, end_date=end_date, location_id=location_id
    )


@router.get("/dashboard/location-performance")
def location_performance(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    return reports.location_performance(db, start_date=start_date, end_date=end_date)
