"""Health check endpoints."""
import logging

from fastapi import APIRouter
from pydantic import BaseModel

from core.redis import get_redis_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    redis: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Check application and Redis health.

    Redis only caches property snapshots, so an unreachable Redis degrades
    the service rather than failing it.
    """
    client = get_redis_client()
    if client is None or not client.enabled:
        redis_status = "disabled"
    elif await client.ping():
        redis_status = "healthy"
    else:
        logger.warning("Redis health check failed")
        redis_status = "unhealthy"

    return HealthResponse(
        status="degraded" if redis_status == "unhealthy" else "healthy",
        redis=redis_status,
    )
