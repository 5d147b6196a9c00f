"""
Health check endpoint.
GET /api/health - Returns 200 if the database and Redis respond, 503 otherwise.
"""

import time
from typing import Any

import redis
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apps.api.config import get_settings
from apps.api.db import get_db
from apps.api.redis_client import get_redis
from db.models import utcnow

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(
    response: Response,
    db: Session = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis),
) -> dict[str, Any]:
    """
    Health check endpoint.

    Returns:
        200 + {"status": "ok", ...} if all checks pass
        503 + {"status": "degraded", ...} if any check fails
    """
    settings = get_settings()
    result: dict[str, Any] = {
        "status": "ok",
        "environment": settings.environment,
        "version": settings.app_version,
        "timestamp": utcnow().isoformat(),
        "db": "ok",
        "redis": "ok",
    }

    start = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
        result["db_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
    except SQLAlchemyError:
        result["db"] = "fail"

    start = time.perf_counter()
    try:
        redis_client.ping()
        result["redis_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
    except redis.RedisError:
        result["redis"] = "fail"

    if "fail" in (result["db"], result["redis"]):
        result["status"] = "degraded"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return result
