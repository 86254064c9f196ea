from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from core.access import require_admin
from core.db import atomic, get_db
from core.errors import NotFoundError
from models.delivery_service import DeliveryService
from models.location import Location
from models.user import User
from schemas.delivery_service import DeliveryServiceCreate, DeliveryServiceOut, DeliveryServiceUpdate

router = APIRouter(prefix="/delivery-services", tags=["delivery services"])


def _get_service(db: Session, service_id: str) -> DeliveryService:
    service = db.get(DeliveryService, service_id)
    if not service:
        raise NotFoundError("Delivery service not found")
    return service


def _ensure_location(db: Session, location_id: str) -> None:
    if db.get(Location, location_id) is None:
        raise NotFoundError("Location not found")


@router.get("", response_model=List[DeliveryServiceOut])
def list_services(is_active: Optional[bool] = None, db: Session = Depends(get_db)):
    query = db.query(DeliveryService)
    if is_active is not None:
        query = query.filter(DeliveryService.is_active.is_(is_active))
    return query.order_by(DeliveryService.name).all()


@router.get("/location/{location_id}", response_model=List[DeliveryServiceOut])
def list_location_services(location_id: str, db: Session = Depends(get_db)):
    _ensure_location(db, location_id)
    return (
        db.query(DeliveryService)
        .filter(DeliveryService.location_id == location_id, DeliveryService.is_active.is_(True))
        .order_by(DeliveryService.name)
        .all()
    )


@router.get("/{service_id}", response_model=DeliveryServiceOut)
def get_service(service_id: str, db: Session = Depends(get_db)):
    return _get_service(db, service_id)


@router.post("", response_model=DeliveryServiceOut, status_code=201)
def create_service(data: DeliveryServiceCreate, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    _ensure_location(db, data.location_id)
    service = DeliveryService(
        name=data.name.strip(),
        service_url=str(data.service_url),
        location_id=data.location_id,
        is_active=data.is_active,
    )
    with atomic(db):
        db.add(service)
    return service


@router.put("/{service_id}", response_model=DeliveryServiceOut)
def update_service(
    service_id: str,
    data: DeliveryServiceUpdate,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = _get_service(db, service_id)
    updates = data.model_dump(exclude_unset=True)
    if updates.get("location_id"):
        _ensure_location(db, updates["location_id"])
    if updates.get("service_url") is not None:
        updates["service_url"] = str(updates["service_url"])
    with atomic(db):
        for field, value in updates.items():
            setattr(service, field, value)
    return service


@router.delete("/{service_id}", status_code=204)
def delete_service(service_id: str, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    service = _get_service(db, service_id)
    with atomic(db):
        db.delete(service)
    return Response(status_code=204)
