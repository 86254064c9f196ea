from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, HttpUrl


class DeliveryServiceCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    service_url: HttpUrl
    location_id: str
    is_active: bool = True


class DeliveryServiceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    service_url: Optional[HttpUrl] = None
    location_id: Optional[str] = None
    is_active: Optional[bool] = None


class DeliveryServiceOut(BaseModel):
    id: str
    name: str
    service_url: str
    location_id: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
