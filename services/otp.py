from datetime import datetime
import json
import logging
import secrets
from typing import Any, Dict, Optional

import redis

from core.config import settings
from core.errors import RateLimitError
from services.sms import send_templated_sms

logger = logging.getLogger(__name__)

# Redis connection for OTP storage; the client connects lazily on first command
redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)

OTP_PREFIX = "otp:"
OTP_LAST_SENT_PREFIX = "otp:last:"

PURPOSE_REGISTER = "register"
PURPOSE_LOGIN = "login"


def get_redis():
    return redis_client


def _otp_key(purpose: str, identifier: str) -> str:
    return f"{OTP_PREFIX}{purpose}:{identifier}"


def _generate_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def issue_code(identifier: str, purpose: str, user_data: Optional[Dict[str, Any]] = None) -> str:
    """Generate and store an OTP in Redis, then send it by SMS.

    ``user_data`` travels with the code so the registration flow can create
    the account once the code is confirmed.
    """
    last_key = f"{OTP_LAST_SENT_PREFIX}{purpose}:{identifier}"
    if settings.OTP_RESEND_INTERVAL_SECONDS > 0 and redis_client.exists(last_key):
        ttl = redis_client.ttl(last_key)
        if ttl is None or ttl > 0:
            wait = ttl if ttl and ttl > 0 else settings.OTP_RESEND_INTERVAL_SECONDS
            raise RateLimitError(f"Please wait {wait} seconds before requesting a new code")

    code = _generate_code()
    otp_data = {
        "code": code,
        "identifier": identifier,
        "purpose": purpose,
        "user_data": user_data or {},
        "created_at": datetime.utcnow().isoformat(),
        "attempts": 0,
    }
    redis_client.setex(_otp_key(purpose, identifier), settings.OTP_TTL_SECONDS, json.dumps(otp_data))

    # Set resend limiter key only if interval > 0
    if settings.OTP_RESEND_INTERVAL_SECONDS > 0:
        redis_client.setex(last_key, settings.OTP_RESEND_INTERVAL_SECONDS, "1")

    send_templated_sms(
        identifier,
        "sms/otp_code.txt",
        {"code": code, "minutes": max(settings.OTP_TTL_SECONDS // 60, 1), "purpose": purpose},
    )
    logger.info("Issued %s OTP for %s", purpose, identifier)
    return code


def verify_code(identifier: str, code: str, purpose: str) -> Optional[Dict[str, Any]]:
    """Check a code and consume it on success.

    Returns the stored record (including ``user_data``) or None when the code
    is missing, expired, wrong or has been guessed too many times.
    """
    otp_key = _otp_key(purpose, identifier)
    otp_data_str = redis_client.get(otp_key)
    if not otp_data_str:
        return None

    try:
        otp_data = json.loads(otp_data_str)

        if otp_data.get("attempts", 0) >= settings.OTP_MAX_ATTEMPTS:
            redis_client.delete(otp_key)
            return None

        if not secrets.compare_digest(otp_data["code"], code):
            otp_data["attempts"] = otp_data.get("attempts", 0) + 1
            remaining = redis_client.ttl(otp_key)
            ttl = remaining if remaining and remaining > 0 else settings.OTP_TTL_SECONDS
            redis_client.setex(otp_key, ttl, json.dumps(otp_data))
            logger.info("Wrong %s OTP for %s (attempt %s)", purpose, identifier, otp_data["attempts"])
            return None

        redis_client.delete(otp_key)
        return otp_data

    except (json.JSONDecodeError, KeyError):
        # Corrupted data - delete and fail
        redis_client.delete(otp_key)
        return None


def get_otp_status(identifier: str, purpose: str) -> dict:
    """Get OTP status for debugging/monitoring"""
    otp_key = _otp_key(purpose, identifier)
    otp_data_str = redis_client.get(otp_key)

    if not otp_data_str:
        return {"exists": False}

    try:
        otp_data = json.loads(otp_data_str)
        return {
            "exists": True,
            "identifier": otp_data["identifier"],
            "created_at": otp_data["created_at"],
            "attempts": otp_data.get("attempts", 0),
            "ttl_seconds": redis_client.ttl(otp_key),
        }
    except (json.JSONDecodeError, KeyError):
        redis_client.delete(otp_key)
        return {"exists": False}
