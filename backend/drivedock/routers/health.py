"""Health check endpoints for load balancers and monitoring."""

from datetime import datetime, timezone

import redis.asyncio as redis
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from drivedock.config import settings
from drivedock.services.record_api import RecordAPIClient, get_record_api
from drivedock.utils.cache import get_redis

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Lightweight health check (no Redis / record API round trip)."""
    return {
        "status": "ok",
        "service": "DriveDock",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check(api: RecordAPIClient = Depends(get_record_api)):
    """Readiness: Redis answers PING and the record API is reachable.

    Returns 503 when either dependency is down.
    """
    checks = {
        "service": "ok",
        "redis": "unknown",
        "record_api": "unknown",
    }
    overall_healthy = True

    try:
        client = await get_redis()
        await client.ping()
        checks["redis"] = "ok"
    except redis.RedisError as e:
        checks["redis"] = f"error: {str(e)[:100]}"
        overall_healthy = False

    if await api.ping():
        checks["record_api"] = "ok"
    else:
        checks["record_api"] = "error: unreachable"
        overall_healthy = False

    return JSONResponse(
        status_code=status.HTTP_200_OK if overall_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if overall_healthy else "unhealthy",
            "service": "DriveDock",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
