import logging
from typing import List

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from core.access import get_current_user, get_optional_user, require_staff
from core.config import settings
from core.db import atomic, get_db
from core.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from core.rate_limit import login_rate_limiter, otp_rate_limiter
from models.location import Location
from models.user import User, UserRole
from schemas.auth import (
    AuthResponse,
    CustomerLoginRequest,
    CustomerRegisterRequest,
    MessageResponse,
    RefreshTokenRequest,
    StaffLoginRequest,
    StaffRegisterRequest,
    TokenPair,
    VerifyOtpRequest,
)
from schemas.users import UserOut
from security import jwt as jwt_utils
from security.password import hash_password, is_strong_password, verify_password
from services import otp as otp_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        access_token=jwt_utils.create_access_token(user),
        refresh_token=jwt_utils.create_refresh_token(user),
        user=UserOut.model_validate(user),
    )


def _user_by_phone(db: Session, phone_number: str) -> User | None:
    return db.query(User).filter(User.phone_number == phone_number).one_or_none()


# Customer OTP flows

@router.post(
    "/customer/register/send-otp",
    response_model=MessageResponse,
    dependencies=[Depends(otp_rate_limiter)],
)
def customer_register_send_otp(data: CustomerRegisterRequest, db: Session = Depends(get_db)):
    if _user_by_phone(db, data.phone_number):
        raise ConflictError("Phone number already registered")
    otp_service.issue_code(
        data.phone_number,
        otp_service.PURPOSE_REGISTER,
        user_data={"name": data.name.strip(), "phone_number": data.phone_number},
    )
    return {"detail": "OTP sent to phone number"}


@router.post(
    "/customer/register/verify-otp",
    response_model=AuthResponse,
    status_code=201,
    dependencies=[Depends(otp_rate_limiter)],
)
def customer_register_verify_otp(data: VerifyOtpRequest, db: Session = Depends(get_db)):
    record = otp_service.verify_code(data.identifier, data.otp, otp_service.PURPOSE_REGISTER)
    if not record:
        raise ValidationError("Invalid or expired OTP")
    user_data = record.get("user_data") or {}
    if _user_by_phone(db, data.identifier):
        raise ConflictError("Phone number already registered")

    user = User(
        name=user_data.get("name") or data.identifier,
        phone_number=data.identifier,
        role=UserRole.CUSTOMER.value,
    )
    with atomic(db):
        db.add(user)
    logger.info("Customer %s registered", user.id)
    return _auth_response(user)


@router.post(
    "/customer/login/send-otp",
    response_model=MessageResponse,
    dependencies=[Depends(otp_rate_limiter)],
)
def customer_login_send_otp(data: CustomerLoginRequest, db: Session = Depends(get_db)):
    if not _user_by_phone(db, data.phone_number):
        raise NotFoundError("User not found. Please register first")
    otp_service.issue_code(data.phone_number, otp_service.PURPOSE_LOGIN)
    return {"detail": "OTP sent to phone number"}


@router.post(
    "/customer/login/verify-otp",
    response_model=AuthResponse,
    dependencies=[Depends(login_rate_limiter)],
)
def customer_login_verify_otp(data: VerifyOtpRequest, db: Session = Depends(get_db)):
    if not otp_service.verify_code(data.identifier, data.otp, otp_service.PURPOSE_LOGIN):
        raise ValidationError("Invalid or expired OTP")
    user = _user_by_phone(db, data.identifier)
    if not user:
        raise NotFoundError("User not found")
    return _auth_response(user)


# Staff / admin credentials

@router.post("/staff/register", response_model=UserOut, status_code=201)
def staff_register(
    data: StaffRegisterRequest,
    caller: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Create a staff or admin account.

    Needs an admin caller, except while no admin exists yet: the very first
    admin can be created anonymously.
    """
    admin_exists = db.query(User.id).filter(User.role == UserRole.ADMIN.value).first() is not None
    if admin_exists:
        if caller is None:
            raise AuthenticationError("Access token required")
        if caller.role != UserRole.ADMIN.value:
            raise AuthorizationError("Only admins can register staff")

    if data.role == UserRole.CUSTOMER:
        raise ValidationError("Role must be STAFF or ADMIN")
    if data.role == UserRole.STAFF and not data.location_id:
        raise ValidationError("Location ID is required for staff")
    if not is_strong_password(data.password):
        raise ValidationError("Password must be 6+ chars with uppercase, lowercase, and number")

    email = data.email.lower()
    if db.query(User).filter(User.email == email).one_or_none():
        raise ConflictError("Email already registered")
    if data.location_id and db.get(Location, data.location_id) is None:
        raise NotFoundError("Location not found")

    user = User(
        name=data.name.strip(),
        email=email,
        password_hash=hash_password(data.password),
        role=data.role.value,
        location_id=data.location_id,
    )
    with atomic(db):
        db.add(user)
    logger.info("%s account %s registered", user.role, user.id)
    return user


@router.post("/staff/login", response_model=AuthResponse, dependencies=[Depends(login_rate_limiter)])
def staff_login(data: StaffLoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == data.email.lower()).one_or_none()
    if (
        not user
        or user.role not in (UserRole.STAFF.value, UserRole.ADMIN.value)
        or not verify_password(data.password, user.password_hash)
    ):
        raise AuthenticationError("Invalid credentials")
    return _auth_response(user)


# Session

@router.post("/refresh-token", response_model=TokenPair)
def refresh_token(data: RefreshTokenRequest, db: Session = Depends(get_db)):
    try:
        payload = jwt_utils.decode_refresh(data.refresh_token)
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid refresh token")
    user = db.query(User).filter(User.id == payload.get("sub")).one_or_none()
    if not user:
        raise NotFoundError("User not found")
    return TokenPair(
        access_token=jwt_utils.create_access_token(user),
        refresh_token=jwt_utils.create_refresh_token(user),
    )


@router.post("/logout", response_model=MessageResponse)
def logout(current_user: User = Depends(get_current_user)):
    # Tokens are stateless; the client drops them
    logger.info("User %s logged out", current_user.id)
    return {"detail": "Logged out successfully"}


@router.get("/profile", response_model=UserOut)
def profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/users/staff", response_model=List[UserOut])
def list_staff(_: User = Depends(require_staff), db: Session = Depends(get_db)):
    return (
        db.query(User)
        .filter(User.role.in_([UserRole.STAFF.value, UserRole.ADMIN.value]))
        .order_by(User.created_at.desc())
        .all()
    )


@router.get("/users/customers", response_model=List[UserOut])
def list_customers(_: User = Depends(require_staff), db: Session = Depends(get_db)):
    return db.query(User).filter(User.role == UserRole.CUSTOMER.value).order_by(User.created_at.desc()).all()


@router.get("/otp-status/{purpose}/{identifier}")
def get_otp_status(purpose: str, identifier: str):
    """Get OTP status for debugging (development only)"""
    if not settings.DEBUG:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return otp_service.get_otp_status(identifier, purpose)
