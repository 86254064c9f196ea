"""
Request identity and role checks used as FastAPI dependencies.
"""
from typing import Callable, Optional

import jwt
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from core.db import get_db
from core.errors import AuthenticationError, AuthorizationError
from models.user import User, UserRole
from security import jwt as jwt_utils


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthenticationError("Access token required")
    return authorization.split(" ", 1)[1].strip()


def get_current_user(
    db: Session = Depends(get_db), authorization: Optional[str] = Header(default=None, alias="Authorization")
) -> User:
    """Resolve the bearer token to a User, re-reading role and location from the database."""
    token = _bearer_token(authorization)
    try:
        payload = jwt_utils.decode_access(token)
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")
    user_id = payload.get("sub")
    user = db.query(User).filter(User.id == user_id).one_or_none() if user_id else None
    if not user:
        raise AuthenticationError("User not found")
    return user


def has_role(user: User, *roles: UserRole) -> bool:
    return user.role in {role.value for role in roles}


def require_roles(*roles: UserRole) -> Callable[..., User]:
    """Dependency factory that only lets the given roles through."""
    allowed = ", ".join(role.value for role in roles)

    def _check_role(user: User = Depends(get_current_user)) -> User:
        if not has_role(user, *roles):
            raise AuthorizationError(f"Requires one of the following roles: {allowed}")
        return user

    return _check_role


require_admin = require_roles(UserRole.ADMIN)
require_staff = require_roles(UserRole.STAFF, UserRole.ADMIN)


def get_optional_user(
    db: Session = Depends(get_db), authorization: Optional[str] = Header(default=None, alias="Authorization")
) -> Optional[User]:
    """Like get_current_user, but anonymous requests resolve to None."""
    if not authorization:
        return None
    return get_current_user(db=db, authorization=authorization)
