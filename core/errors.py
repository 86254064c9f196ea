"""
Application error taxonomy and the FastAPI handlers that render it.

Every error response has the same envelope:
{"success": false, "detail": "...", "path": "...", "method": "...", "timestamp": "..."}
"""
import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class RateLimitError(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests"


class DatabaseError(AppError):
    default_message = "Database operation failed"


class ExternalServiceError(AppError):
    default_message = "External service error"


# Postgres SQLSTATE codes
_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"


def _is_unique_violation(exc: IntegrityError) -> bool:
    if getattr(exc.orig, "pgcode", None) == _UNIQUE_VIOLATION:
        return True
    return "unique" in str(exc.orig).lower()


def _is_foreign_key_violation(exc: IntegrityError) -> bool:
    if getattr(exc.orig, "pgcode", None) == _FOREIGN_KEY_VIOLATION:
        return True
    return "foreign key" in str(exc.orig).lower()


def translate_db_error(exc: SQLAlchemyError) -> AppError:
    """Map a persistence failure onto the application taxonomy."""
    if isinstance(exc, IntegrityError):
        if _is_unique_violation(exc):
            return ConflictError("Resource already exists")
        if _is_foreign_key_violation(exc):
            return ValidationError("Invalid reference or foreign key constraint")
    if isinstance(exc, NoResultFound):
        return NotFoundError("Record not found")
    return DatabaseError()


def _error_body(request: Request, message) -> dict:
    return {
        "success": False,
        "detail": message,
        "path": request.url.path,
        "method": request.method,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error_body(request, exc.message))


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def db_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return await app_error_handler(request, translate_db_error(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(SQLAlchemyError, db_error_handler)
