"""
Fixed-window request limiter keyed by client IP, backed by redis.
"""
import logging

from fastapi import Request

from core.errors import RateLimitError
from services import otp as otp_store

logger = logging.getLogger(__name__)

RATE_LIMIT_PREFIX = "ratelimit:"


class RateLimiter:
    def __init__(self, scope: str, limit: int, window_seconds: int):
        self.scope = scope
        self.limit = limit
        self.window_seconds = window_seconds

    def __call__(self, request: Request) -> None:
        client_ip = request.client.host if request.client else "unknown"
        key = f"{RATE_LIMIT_PREFIX}{self.scope}:{client_ip}"
        redis_client = otp_store.get_redis()
        count = redis_client.incr(key)
        if count == 1:
            redis_client.expire(key, self.window_seconds)
        if count > self.limit:
            logger.warning("Rate limit hit for %s on %s", client_ip, self.scope)
            raise RateLimitError("Too many requests, please try again later")


otp_rate_limiter = RateLimiter("otp", limit=40, window_seconds=10 * 60)
login_rate_limiter = RateLimiter("login", limit=40, window_seconds=15 * 60)
