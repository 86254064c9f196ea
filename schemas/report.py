from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from schemas.order import OrderDetailOut
from schemas.users import UserSummary


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


class PaymentReportOut(BaseModel):
    id: str
    user_id: str
    order_id: str
    stripe_session_id: str
    stripe_payment_id: Optional[str] = None
    amount: float
    currency: str
    status: str
    created_at: datetime
    user: Optional[UserSummary] = None
    order: Optional[OrderDetailOut] = None

    class Config:
        from_attributes = True


class PaymentBrief(BaseModel):
    id: str
    stripe_session_id: str
    stripe_payment_id: Optional[str] = None
    status: str
    currency: str

    class Config:
        from_attributes = True


class SaleReportOut(BaseModel):
    id: str
    order_id: str
    payment_id: str
    amount: float
    created_at: datetime
    payment: Optional[PaymentBrief] = None
    order: Optional[OrderDetailOut] = None

    class Config:
        from_attributes = True


class PaymentPage(BaseModel):
    data: List[PaymentReportOut]
    pagination: Pagination


class SalePage(BaseModel):
    data: List[SaleReportOut]
    pagination: Pagination


