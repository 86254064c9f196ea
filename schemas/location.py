from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class LocationCreate(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1, max_length=100)
    state: Optional[str] = None
    country: str = "India"
    postal_code: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[EmailStr] = None
    opening_hours: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool = True


class LocationUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[EmailStr] = None
    opening_hours: Optional[str] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None


class DeliveryServiceBrief(BaseModel):
    id: str
    name: str
    service_url: str
    is_active: bool

    class Config:
        from_attributes = True


class LocationOut(BaseModel):
    id: str
    name: str
    address: str
    city: str
    state: Optional[str] = None
    country: str
    postal_code: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    opening_hours: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class LocationDetailOut(LocationOut):
    delivery_services: List[DeliveryServiceBrief] = []
