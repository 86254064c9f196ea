from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from schemas.users import UserSummary

_ITEM_KEYS = {"menuItemId": "menu_item_id"}


class OrderCreate(BaseModel):
    """Loosely typed on purpose: the order service reports which field is wrong."""

    items: Any = None
    total_amount: Any = Field(default=None, alias="totalAmount")
    location_id: Any = Field(default=None, alias="locationId")
    special_notes: Optional[str] = Field(default=None, alias="specialNotes")

    class Config:
        populate_by_name = True

    @field_validator("items", mode="before")
    @classmethod
    def normalize_item_keys(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [
            {_ITEM_KEYS.get(key, key): val for key, val in item.items()} if isinstance(item, dict) else item
            for item in value
        ]


class OrderStatusUpdate(BaseModel):
    status: Any = None


class MenuItemBrief(BaseModel):
    id: str
    name: str
    image_url: Optional[str] = None

    class Config:
        from_attributes = True


class OrderItemOut(BaseModel):
    id: str
    menu_item_id: str
    price: float
    quantity: int
    total: float
    menu_item: Optional[MenuItemBrief] = None

    class Config:
        from_attributes = True


class LocationBrief(BaseModel):
    id: str
    name: str
    address: str
    city: str

    class Config:
        from_attributes = True


class OrderOut(BaseModel):
    id: str
    user_id: str
    location_id: str
    order_number: str
    total_amount: float
    status: str
    paid: bool
    special_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOut]

    class Config:
        from_attributes = True


class OrderDetailOut(OrderOut):
    user: Optional[UserSummary] = None
    location: Optional[LocationBrief] = None
