"""
Shared FastAPI dependencies and request helpers.
"""

from fastapi import Request

from apps.api.db import get_db
from apps.api.redis_client import get_redis

__all__ = ["get_client_info", "get_client_ip", "get_db", "get_redis"]


def get_client_ip(request: Request) -> str | None:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else None


def get_client_info(request: Request) -> tuple[str | None, str | None]:
    """Extract user agent and IP from request."""
    return request.headers.get("user-agent"), get_client_ip(request)
