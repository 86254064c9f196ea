from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class MenuCategoryCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True


class MenuCategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None


class MenuItemCreate(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    description: Optional[str] = None
    price: float = Field(gt=0)
    is_vegetarian: bool = True
    is_available: bool = True
    prep_time_mins: Optional[int] = Field(default=None, ge=0)
    image_url: Optional[str] = None
    category_id: str


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, gt=0)
    is_vegetarian: Optional[bool] = None
    is_available: Optional[bool] = None
    prep_time_mins: Optional[int] = Field(default=None, ge=0)
    image_url: Optional[str] = None
    category_id: Optional[str] = None


class MenuItemOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: float
    is_vegetarian: bool
    is_available: bool
    prep_time_mins: Optional[int] = None
    image_url: Optional[str] = None
    category_id: str
    created_at: datetime

    class Config:
        from_attributes = True


class MenuCategoryOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class MenuCategoryDetailOut(MenuCategoryOut):
    items: List[MenuItemOut] = []


class MenuItemDetailOut(MenuItemOut):
    category: Optional[MenuCategoryOut] = None
