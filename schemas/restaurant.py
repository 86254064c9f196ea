from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, EmailStr, Field

from models.restaurant_config import RestaurantStatus


class RestaurantConfigUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    logo_url: Optional[str] = None
    currency: str = Field(default="usd", min_length=3, max_length=10)
    status: RestaurantStatus = RestaurantStatus.OPEN
    is_accepting_orders: bool = True
    estimated_prep_time_mins: Optional[int] = Field(default=None, ge=0)


class RestaurantStatusUpdate(BaseModel):
    status: RestaurantStatus


class RestaurantFieldUpdate(BaseModel):
    value: Any = None


class RestaurantConfigOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    logo_url: Optional[str] = None
    currency: str
    status: str
    is_accepting_orders: bool
    estimated_prep_time_mins: Optional[int] = None
    updated_at: datetime

    class Config:
        from_attributes = True
