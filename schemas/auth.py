from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from models.user import UserRole
from schemas.users import UserOut

# E.164-ish: optional leading +, 7 to 15 digits
PHONE_PATTERN = r"^\+?[0-9]{7,15}$"


class CustomerRegisterRequest(BaseModel):
    name: str = Field(min_length=2, max_length=50)
    phone_number: str = Field(pattern=PHONE_PATTERN, alias="phoneNumber")

    class Config:
        populate_by_name = True


class CustomerLoginRequest(BaseModel):
    phone_number: str = Field(pattern=PHONE_PATTERN, alias="phoneNumber")

    class Config:
        populate_by_name = True


class VerifyOtpRequest(BaseModel):
    identifier: str = Field(min_length=1)
    otp: str = Field(min_length=6, max_length=6)


class StaffRegisterRequest(BaseModel):
    name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    role: UserRole
    location_id: Optional[str] = Field(default=None, alias="locationId")

    class Config:
        populate_by_name = True


class StaffLoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(TokenPair):
    user: UserOut


class MessageResponse(BaseModel):
    detail: str
