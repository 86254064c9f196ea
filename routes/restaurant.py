from typing import Any, Callable, Dict

from fastapi import APIRouter, Depends
from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from core.access import require_admin
from core.db import atomic, get_db
from core.errors import NotFoundError, ValidationError
from models.restaurant_config import RestaurantConfig, RestaurantStatus
from models.user import User
from schemas.restaurant import (
    RestaurantConfigOut,
    RestaurantConfigUpdate,
    RestaurantFieldUpdate,
    RestaurantStatusUpdate,
)

router = APIRouter(prefix="/restaurant", tags=["restaurant"])

_email_adapter = TypeAdapter(EmailStr)


def _text(required: bool = False, max_length: int = 500) -> Callable[[Any], Any]:
    def _parse(value: Any) -> Any:
        if value is None and not required:
            return None
        if not isinstance(value, str) or (required and not value.strip()):
            raise ValidationError("Value must be a non-empty string" if required else "Value must be a string")
        if len(value) > max_length:
            raise ValidationError(f"Value must be at most {max_length} characters")
        return value.strip()
    return _parse


def _email(value: Any) -> Any:
    if value is None:
        return None
    try:
        return _email_adapter.validate_python(value)
    except PydanticValidationError:
        raise ValidationError("Value must be a valid email address")


def _currency(value: Any) -> str:
    if not isinstance(value, str) or not 3 <= len(value) <= 10:
        raise ValidationError("Currency must be a 3-10 character code")
    return value.lower()


def _flag(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValidationError("Value must be true or false")
    return value


def _minutes(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError("Value must be a non-negative integer")
    return value


def _status(value: Any) -> str:
    try:
        return RestaurantStatus(value).value
    except ValueError:
        allowed = ", ".join(s.value for s in RestaurantStatus)
        raise ValidationError(f"Invalid status. Must be one of: {allowed}")


# Fields that may be changed one at a time, each with its own parser
UPDATABLE_FIELDS: Dict[str, Callable[[Any], Any]] = {
    "name": _text(required=True, max_length=255),
    "description": _text(),
    "phone_number": _text(max_length=20),
    "email": _email,
    "address": _text(),
    "logo_url": _text(),
    "currency": _currency,
    "status": _status,
    "is_accepting_orders": _flag,
    "estimated_prep_time_mins": _minutes,
}


def _get_config(db: Session) -> RestaurantConfig:
    config = db.query(RestaurantConfig).first()
    if not config:
        raise NotFoundError("Config not found")
    return config


@router.get("", response_model=RestaurantConfigOut)
def get_config(db: Session = Depends(get_db)):
    return _get_config(db)


@router.put("", response_model=RestaurantConfigOut)
def update_config(data: RestaurantConfigUpdate, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    config = db.query(RestaurantConfig).first()
    values = data.model_dump()
    values["status"] = data.status.value
    values["currency"] = data.currency.lower()
    with atomic(db):
        if config is None:
            config = RestaurantConfig(**values)
            db.add(config)
        else:
            for field, value in values.items():
                setattr(config, field, value)
    return config


@router.patch("/status", response_model=RestaurantConfigOut)
def update_status(data: RestaurantStatusUpdate, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    config = _get_config(db)
    with atomic(db):
        config.status = data.status.value
    return config


@router.patch("/{field}", response_model=RestaurantConfigOut)
def update_field(
    field: str,
    data: RestaurantFieldUpdate,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    parser = UPDATABLE_FIELDS.get(field)
    if parser is None:
        raise ValidationError(f"Field '{field}' cannot be updated. Allowed: {', '.join(UPDATABLE_FIELDS)}")
    value = parser(data.value)
    config = _get_config(db)
    with atomic(db):
        setattr(config, field, value)
    return config
