from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from core.access import get_current_user, require_admin
from core.db import atomic, get_db
from core.errors import ConflictError, NotFoundError
from models.tax_service_rate import TaxServiceRate
from models.user import User
from schemas.tax_service_rate import TaxServiceRateCreate, TaxServiceRateOut, TaxServiceRateUpdate

router = APIRouter(prefix="/tax-service-rates", tags=["tax & service rates"])


def _get_rate(db: Session, rate_id: str) -> TaxServiceRate:
    rate = db.get(TaxServiceRate, rate_id)
    if not rate:
        raise NotFoundError("Tax/service rate not found")
    return rate


@router.get("", response_model=List[TaxServiceRateOut])
def list_rates(_: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return db.query(TaxServiceRate).order_by(TaxServiceRate.name).all()


@router.get("/{rate_id}", response_model=TaxServiceRateOut)
def get_rate(rate_id: str, _: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _get_rate(db, rate_id)


@router.post("", response_model=TaxServiceRateOut, status_code=201)
def create_rate(data: TaxServiceRateCreate, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    if db.query(TaxServiceRate).filter(TaxServiceRate.name == data.name).first():
        raise ConflictError("A rate with this name already exists")
    rate = TaxServiceRate(**data.model_dump())
    with atomic(db):
        db.add(rate)
    return rate


@router.put("/{rate_id}", response_model=TaxServiceRateOut)
def update_rate(
    rate_id: str,
    data: TaxServiceRateUpdate,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rate = _get_rate(db, rate_id)
    with atomic(db):
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(rate, field, value)
    return rate


@router.delete("/{rate_id}", status_code=204)
def delete_rate(rate_id: str, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    rate = _get_rate(db, rate_id)
    with atomic(db):
        db.delete(rate)
    return Response(status_code=204)
