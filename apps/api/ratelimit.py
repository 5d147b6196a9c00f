"""
Fixed-window rate limiting backed by Redis.

Every /api request is counted against the caller: the user id from a valid
bearer token, otherwise the client IP. Login has its own, smaller bucket.
When Redis cannot be reached the limiter lets requests through.
"""

import logging
import time
from dataclasses import dataclass

import redis
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from apps.api.config import get_settings
from apps.api.dependencies import get_client_ip
from apps.api.redis_client import get_redis

logger = logging.getLogger(__name__)

TOO_MANY_REQUESTS = "Too many requests from this client, please try again later."

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class RateLimitResult:
    """Outcome of counting one request."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: int  # Unix timestamp of the window end
    retry_after: int | None = None


def check_rate_limit(
    redis_client: redis.Redis,
    key: str,
    limit: int,
    window_seconds: int,
) -> RateLimitResult:
    """
    Count one request against key in the current window.

    The counter key is suffixed with the window start, so each window starts
    from zero and old counters expire on their own.
    """
    now = int(time.time())
    window_start = now - (now % window_seconds)
    reset_at = window_start + window_seconds
    counter_key = f"{key}:{window_start}"

    pipe = redis_client.pipeline()
    pipe.incr(counter_key)
    pipe.expire(counter_key, window_seconds + 1)
    count = pipe.execute()[0]

    if count > limit:
        return RateLimitResult(
            allowed=False,
            limit=limit,
            remaining=0,
            reset_at=reset_at,
            retry_after=reset_at - now,
        )
    return RateLimitResult(allowed=True, limit=limit, remaining=limit - count, reset_at=reset_at)


def caller_key(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str:
    """Bucket key for the caller: user id when the token is valid, else IP."""
    if credentials:
        from apps.api.auth.security import decode_access_token

        payload = decode_access_token(credentials.credentials)
        if payload and payload.get("sub"):
            return f"ratelimit:user:{payload['sub']}"
    return f"ratelimit:ip:{get_client_ip(request) or 'unknown'}"


class RateLimiter:
    """
    FastAPI dependency enforcing one bucket.

    Args:
        scope: Suffix separating this bucket from the others ("api", "login")
        limit_setting: Name of the Settings field holding the request limit
    """

    def __init__(self, scope: str, limit_setting: str):
        self.scope = scope
        self.limit_setting = limit_setting

    async def __call__(
        self,
        request: Request,
        redis_client: redis.Redis = Depends(get_redis),
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    ) -> RateLimitResult | None:
        settings = get_settings()
        limit = getattr(settings, self.limit_setting)
        key = f"{caller_key(request, credentials)}:{self.scope}"

        try:
            result = check_rate_limit(
                redis_client, key, limit, settings.rate_limit_window_seconds
            )
        except redis.RedisError:
            logger.warning("Rate limiter unavailable, allowing %s", key)
            return None

        request.state.rate_limit_result = result
        if not result.allowed:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "message": TOO_MANY_REQUESTS,
                    "limit": result.limit,
                    "retry_after": result.retry_after,
                },
                headers={"Retry-After": str(result.retry_after), **get_rate_limit_headers(result)},
            )
        return result


rate_limit_default = RateLimiter("api", "rate_limit_requests")
rate_limit_auth = RateLimiter("login", "rate_limit_auth_requests")


def get_rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at),
    }
