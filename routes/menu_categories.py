from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session, selectinload

from core.access import require_staff
from core.db import atomic, get_db
from core.errors import ConflictError, NotFoundError
from models.menu_category import MenuCategory
from models.menu_item import MenuItem
from models.user import User
from schemas.menu import MenuCategoryCreate, MenuCategoryDetailOut, MenuCategoryOut, MenuCategoryUpdate

router = APIRouter(prefix="/menu-categories", tags=["menu"])


def _get_category(db: Session, category_id: str) -> MenuCategory:
    category = db.get(MenuCategory, category_id)
    if not category:
        raise NotFoundError("Menu category not found")
    return category


def _ensure_unique_name(db: Session, name: str, exclude_id: str | None = None) -> None:
    query = db.query(MenuCategory).filter(MenuCategory.name == name)
    if exclude_id:
        query = query.filter(MenuCategory.id != exclude_id)
    if query.first():
        raise ConflictError("Menu category with this name already exists")


@router.get("", response_model=List[MenuCategoryOut])
def list_categories(include_inactive: bool = False, db: Session = Depends(get_db)):
    query = db.query(MenuCategory)
    if not include_inactive:
        query = query.filter(MenuCategory.is_active.is_(True))
    return query.order_by(MenuCategory.name).all()


@router.get("/{category_id}", response_model=MenuCategoryDetailOut)
def get_category(category_id: str, db: Session = Depends(get_db)):
    category = (
        db.query(MenuCategory)
        .options(selectinload(MenuCategory.items))
        .filter(MenuCategory.id == category_id)
        .one_or_none()
    )
    if not category:
        raise NotFoundError("Menu category not found")
    return category


@router.post("", response_model=MenuCategoryOut, status_code=201)
def create_category(data: MenuCategoryCreate, _: User = Depends(require_staff), db: Session = Depends(get_db)):
    name = data.name.strip()
    _ensure_unique_name(db, name)
    category = MenuCategory(name=name, description=data.description, is_active=data.is_active)
    with atomic(db):
        db.add(category)
    return category


@router.put("/{category_id}", response_model=MenuCategoryOut)
def update_category(
    category_id: str,
    data: MenuCategoryUpdate,
    _: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    category = _get_category(db, category_id)
    updates = data.model_dump(exclude_unset=True)
    if updates.get("name"):
        updates["name"] = updates["name"].strip()
        _ensure_unique_name(db, updates["name"], exclude_id=category.id)
    with atomic(db):
        for field, value in updates.items():
            setattr(category, field, value)
    return category


@router.patch("/{category_id}/toggle-status", response_model=MenuCategoryOut)
def toggle_category_status(category_id: str, _: User = Depends(require_staff), db: Session = Depends(get_db)):
    category = _get_category(db, category_id)
    with atomic(db):
        category.is_active = not category.is_active
    return category


@router.delete("/{category_id}", status_code=204)
def delete_category(category_id: str, _: User = Depends(require_staff), db: Session = Depends(get_db)):
    category = _get_category(db, category_id)
    if db.query(MenuItem.id).filter(MenuItem.category_id == category.id).first():
        raise ConflictError("Cannot delete category with existing menu items")
    with atomic(db):
        db.delete(category)
    return Response(status_code=204)
