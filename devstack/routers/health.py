"""Health check and metrics endpoints."""

import os
import time
from datetime import UTC, datetime
from pathlib import Path

import structlog
from fastapi import APIRouter, Response
from pydantic import BaseModel, Field
from sqlalchemy import text

from devstack import __version__
from devstack.config import get_settings
from devstack.database import get_session_maker
from devstack.metrics import get_metrics, get_metrics_content_type

router = APIRouter(tags=["Health"])
logger = structlog.get_logger()

# Track server start time for uptime calculation
_server_start_time = time.time()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Health status: healthy, degraded, unhealthy")
    timestamp: str = Field(..., description="ISO 8601 timestamp")
    version: str = Field(..., description="API version")
    uptime_seconds: int = Field(..., description="Server uptime in seconds")


class DependencyCheck(BaseModel):
    """Individual dependency check result."""

    status: str = Field(..., description="Status: healthy, unhealthy")
    latency_ms: float | None = Field(None, description="Check latency in milliseconds")
    error: str | None = Field(None, description="Error message if unhealthy")


class ReadyResponse(HealthResponse):
    """Readiness check response with dependency status."""

    checks: dict[str, DependencyCheck] = Field(..., description="Individual dependency checks")


class ApiInfoResponse(BaseModel):
    """API information response."""

    name: str
    version: str
    env: str
    docs: str | None


def _uptime() -> int:
    return int(time.time() - _server_start_time)


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns healthy if the API is running. Does not check dependencies.
    Use /ready for full dependency checks.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC).isoformat(),
        version=__version__,
        uptime_seconds=_uptime(),
    )


async def _check_database() -> DependencyCheck:
    try:
        start = time.perf_counter()
        async with get_session_maker()() as session:
            await session.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000
        return DependencyCheck(status="healthy", latency_ms=round(latency_ms, 2))
    except Exception as e:
        logger.warning("database_health_check_failed", error=str(e))
        return DependencyCheck(status="unhealthy", error=str(e))


async def _check_redis(url: str) -> DependencyCheck:
    import redis.asyncio as aioredis

    client = aioredis.from_url(url, socket_timeout=2)
    try:
        start = time.perf_counter()
        await client.ping()
        latency_ms = (time.perf_counter() - start) * 1000
        return DependencyCheck(status="healthy", latency_ms=round(latency_ms, 2))
    except Exception as e:
        logger.warning("redis_health_check_failed", error=str(e))
        return DependencyCheck(status="unhealthy", error=str(e))
    finally:
        await client.aclose()


def _check_storage(upload_dir: str) -> DependencyCheck:
    """Uploads land on local disk; the directory must exist and be writable."""
    path = Path(upload_dir)
    if not path.is_dir():
        return DependencyCheck(status="unhealthy", error=f"{upload_dir} does not exist")
    if not os.access(path, os.W_OK):
        return DependencyCheck(status="unhealthy", error=f"{upload_dir} is not writable")
    return DependencyCheck(status="healthy")


@router.get("/ready", response_model=ReadyResponse)
async def readiness_check() -> ReadyResponse:
    """
    Readiness check with dependency verification.

    Checks:
    - Database connectivity and latency
    - Upload directory is writable
    - Redis connectivity and latency (only when the Redis rate limiter is configured)
    """
    settings = get_settings()
    checks = {
        "database": await _check_database(),
        "storage": _check_storage(settings.upload_dir),
    }
    if settings.rate_limit_backend == "redis" and settings.redis_url:
        checks["redis"] = await _check_redis(str(settings.redis_url))

    unhealthy = sum(1 for c in checks.values() if c.status == "unhealthy")
    if unhealthy == 0:
        overall_status = "healthy"
    elif unhealthy < len(checks):
        overall_status = "degraded"
    else:
        overall_status = "unhealthy"

    return ReadyResponse(
        status=overall_status,
        timestamp=datetime.now(UTC).isoformat(),
        version=__version__,
        uptime_seconds=_uptime(),
        checks=checks,
    )


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


@router.get("/", response_model=ApiInfoResponse)
async def root() -> ApiInfoResponse:
    """Root endpoint with API information."""
    settings = get_settings()
    return ApiInfoResponse(
        name=f"{settings.app_name} API",
        version=__version__,
        env=settings.env,
        docs="/docs" if settings.debug else None,
    )
