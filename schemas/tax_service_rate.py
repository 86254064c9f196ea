from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TaxServiceRateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    rate: float = Field(ge=0, le=100)
    is_active: bool = True


class TaxServiceRateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    rate: Optional[float] = Field(default=None, ge=0, le=100)
    is_active: Optional[bool] = None


class TaxServiceRateOut(BaseModel):
    id: str
    name: str
    rate: float
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
