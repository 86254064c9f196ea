from typing import List, Optional

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.orm import Session, selectinload

from core.access import require_staff
from core.db import atomic, get_db
from core.errors import ConflictError, ExternalServiceError, NotFoundError, ValidationError
from models.menu_category import MenuCategory
from models.menu_item import MenuItem
from models.order_item import OrderItem
from models.user import User
from schemas.menu import MenuItemCreate, MenuItemDetailOut, MenuItemOut, MenuItemUpdate
from services.cloudinary import cloudinary_service

router = APIRouter(prefix="/menu-items", tags=["menu"])

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp"}
MAX_IMAGE_BYTES = 5 * 1024 * 1024


def _get_item(db: Session, item_id: str) -> MenuItem:
    item = db.get(MenuItem, item_id)
    if not item:
        raise NotFoundError("Menu item not found")
    return item


def _ensure_category(db: Session, category_id: str) -> None:
    if db.get(MenuCategory, category_id) is None:
        raise NotFoundError("Menu category not found")


@router.get("", response_model=List[MenuItemOut])
def list_items(
    category_id: Optional[str] = None,
    is_vegetarian: Optional[bool] = None,
    is_available: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    query = db.query(MenuItem)
    if category_id:
        query = query.filter(MenuItem.category_id == category_id)
    if is_vegetarian is not None:
        query = query.filter(MenuItem.is_vegetarian.is_(is_vegetarian))
    if is_available is not None:
        query = query.filter(MenuItem.is_available.is_(is_available))
    return query.order_by(MenuItem.name).all()


@router.get("/{item_id}", response_model=MenuItemDetailOut)
def get_item(item_id: str, db: Session = Depends(get_db)):
    item = (
        db.query(MenuItem)
        .options(selectinload(MenuItem.category))
        .filter(MenuItem.id == item_id)
        .one_or_none()
    )
    if not item:
        raise NotFoundError("Menu item not found")
    return item


@router.post("", response_model=MenuItemOut, status_code=201)
def create_item(data: MenuItemCreate, _: User = Depends(require_staff), db: Session = Depends(get_db)):
    _ensure_category(db, data.category_id)
    item = MenuItem(**data.model_dump())
    item.name = item.name.strip()
    with atomic(db):
        db.add(item)
    return item


@router.put("/{item_id}", response_model=MenuItemOut)
def update_item(item_id: str, data: MenuItemUpdate, _: User = Depends(require_staff), db: Session = Depends(get_db)):
    item = _get_item(db, item_id)
    updates = data.model_dump(exclude_unset=True)
    if updates.get("category_id"):
        _ensure_category(db, updates["category_id"])
    # Existing order items keep their own price snapshot
    with atomic(db):
        for field, value in updates.items():
            setattr(item, field, value)
    return item


@router.patch("/{item_id}/toggle-availability", response_model=MenuItemOut)
def toggle_availability(item_id: str, _: User = Depends(require_staff), db: Session = Depends(get_db)):
    item = _get_item(db, item_id)
    with atomic(db):
        item.is_available = not item.is_available
    return item


@router.patch("/{item_id}/toggle-vegetarian", response_model=MenuItemOut)
def toggle_vegetarian(item_id: str, _: User = Depends(require_staff), db: Session = Depends(get_db)):
    item = _get_item(db, item_id)
    with atomic(db):
        item.is_vegetarian = not item.is_vegetarian
    return item


@router.delete("/{item_id}", status_code=204)
def delete_item(item_id: str, _: User = Depends(require_staff), db: Session = Depends(get_db)):
    item = _get_item(db, item_id)
    if db.query(OrderItem.id).filter(OrderItem.menu_item_id == item.id).first():
        raise ConflictError("Menu item is part of existing orders; mark it unavailable instead")
    with atomic(db):
        db.delete(item)
    return Response(status_code=204)


@router.post("/{item_id}/image", response_model=MenuItemOut)
async def upload_item_image(
    item_id: str,
    file: UploadFile = File(...),
    _: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    item = _get_item(db, item_id)
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError("Only JPEG, PNG and WebP images are allowed")
    file_data = await file.read()
    if len(file_data) > MAX_IMAGE_BYTES:
        raise ValidationError("Image must be 5MB or smaller")

    ok, url, error = cloudinary_service.upload_menu_image(file_data, item.id)
    if not ok:
        raise ExternalServiceError(f"Image upload failed: {error}")
    with atomic(db):
        item.image_url = url
    return item


@router.delete("/{item_id}/image", response_model=MenuItemOut)
def delete_item_image(item_id: str, _: User = Depends(require_staff), db: Session = Depends(get_db)):
    item = _get_item(db, item_id)
    ok, error = cloudinary_service.delete_menu_image(item.id)
    if not ok:
        raise ExternalServiceError(f"Image removal failed: {error}")
    with atomic(db):
        item.image_url = None
    return item
