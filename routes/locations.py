from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from core.access import require_admin
from core.db import atomic, get_db
from core.errors import ConflictError, NotFoundError
from models.location import Location
from models.order import Order
from models.user import User
from schemas.location import (
    DeliveryServiceBrief,
    LocationCreate,
    LocationDetailOut,
    LocationOut,
    LocationUpdate,
)
from schemas.users import UserOut

router = APIRouter(prefix="/locations", tags=["locations"])


def _get_location(db: Session, location_id: str) -> Location:
    location = db.get(Location, location_id)
    if not location:
        raise NotFoundError("Location not found")
    return location


@router.get("", response_model=List[LocationOut])
def list_locations(is_active: Optional[bool] = None, db: Session = Depends(get_db)):
    query = db.query(Location)
    if is_active is not None:
        query = query.filter(Location.is_active.is_(is_active))
    return query.order_by(Location.name).all()


@router.get("/{location_id}", response_model=LocationDetailOut)
def get_location(location_id: str, db: Session = Depends(get_db)):
    location = _get_location(db, location_id)
    # Only active delivery partners are exposed publicly
    active_services = [
        DeliveryServiceBrief.model_validate(service) for service in location.delivery_services if service.is_active
    ]
    return LocationDetailOut.model_validate(location).model_copy(update={"delivery_services": active_services})


@router.post("", response_model=LocationOut, status_code=201)
def create_location(data: LocationCreate, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    location = Location(**data.model_dump())
    with atomic(db):
        db.add(location)
    return location


@router.put("/{location_id}", response_model=LocationOut)
def update_location(
    location_id: str,
    data: LocationUpdate,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    location = _get_location(db, location_id)
    with atomic(db):
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(location, field, value)
    return location


@router.delete("/{location_id}", status_code=204)
def delete_location(location_id: str, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    location = _get_location(db, location_id)
    if db.query(User.id).filter(User.location_id == location.id).first():
        raise ConflictError("Cannot delete location with assigned staff")
    if db.query(Order.id).filter(Order.location_id == location.id).first():
        raise ConflictError("Cannot delete location with existing orders")
    with atomic(db):
        db.delete(location)
    return Response(status_code=204)


@router.get("/{location_id}/staff", response_model=List[UserOut])
def list_location_staff(location_id: str, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    location = _get_location(db, location_id)
    return db.query(User).filter(User.location_id == location.id).order_by(User.name).all()
