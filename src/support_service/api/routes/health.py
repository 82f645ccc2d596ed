"""
Health endpoints.

- ``/health/live``: process is up, no dependencies touched
- ``/health/ready``: database reachable (and Redis, when configured)
- ``/health``: every component plus uptime, version and realtime connections
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field

from support_service.api.dependencies import AppSettings
from support_service.config.settings import Settings
from support_service.infrastructure.cache.redis import get_redis_manager
from support_service.infrastructure.database.connection import db
from support_service.infrastructure.realtime import connection_manager

logger = logging.getLogger(__name__)

_started_at = time.monotonic()

router = APIRouter()


def _now() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentHealth(BaseModel):
    name: str
    status: HealthStatus
    latency_ms: Optional[float] = None
    details: Optional[Dict] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: HealthStatus
    timestamp: datetime = Field(default_factory=_now)
    uptime_seconds: float
    version: str
    components: List[ComponentHealth] = Field(default_factory=list)


class LivenessResponse(BaseModel):
    status: str = "alive"
    timestamp: datetime = Field(default_factory=_now)


class ReadinessResponse(BaseModel):
    status: str
    timestamp: datetime = Field(default_factory=_now)
    components: List[ComponentHealth] = Field(default_factory=list)


async def _timed(
    name: str,
    check: Callable[[], Awaitable[Optional[Dict]]],
    timeout: float,
    failure_status: HealthStatus = HealthStatus.UNHEALTHY,
) -> ComponentHealth:
    """Run ``check`` under a timeout; it returns optional details or raises."""
    started = time.monotonic()

    def elapsed() -> float:
        return round((time.monotonic() - started) * 1000, 2)

    try:
        async with asyncio.timeout(timeout):
            details = await check()
    except asyncio.TimeoutError:
        return ComponentHealth(
            name=name, status=failure_status, latency_ms=elapsed(), error=f"Timed out after {timeout}s"
        )
    except Exception as e:
        logger.error("Health check failed", extra={"component": name, "error": str(e)}, exc_info=True)
        return ComponentHealth(name=name, status=failure_status, latency_ms=elapsed(), error=str(e))
    return ComponentHealth(name=name, status=HealthStatus.HEALTHY, latency_ms=elapsed(), details=details)


async def check_database(timeout: float = 5.0) -> ComponentHealth:
    if not db.is_connected:
        return ComponentHealth(name="database", status=HealthStatus.UNHEALTHY, error="Database not configured")

    return await _timed("database", db.health_check, timeout)


async def check_redis(timeout: float = 5.0) -> ComponentHealth:
    """Redis only backs the cache, so a missing Redis is degraded rather than unhealthy."""
    redis_manager = await get_redis_manager()
    if not redis_manager.is_available:
        return ComponentHealth(name="redis", status=HealthStatus.DEGRADED, error="Redis not configured")

    async def ping() -> None:
        if not await redis_manager.health_check():
            raise RuntimeError("Redis ping failed")

    return await _timed("redis", ping, timeout)


def check_whatsapp(settings: Settings) -> ComponentHealth:
    missing = [
        name
        for name, value in (
            ("verify_token", settings.whatsapp_verify_token),
            ("webhook_secret", settings.whatsapp_webhook_secret),
            ("access_token", settings.whatsapp_access_token),
            ("phone_number_id", settings.whatsapp_phone_number_id),
        )
        if not value
    ]
    if missing:
        return ComponentHealth(name="whatsapp", status=HealthStatus.DEGRADED, details={"missing": missing})
    return ComponentHealth(name="whatsapp", status=HealthStatus.HEALTHY)


def overall_status(components: List[ComponentHealth]) -> HealthStatus:
    statuses = {c.status for c in components}
    for candidate in (HealthStatus.UNHEALTHY, HealthStatus.DEGRADED):
        if candidate in statuses:
            return candidate
    return HealthStatus.HEALTHY


@router.get("/health/live", response_model=LivenessResponse)
async def liveness():
    return LivenessResponse()


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness(response: Response):
    """503 when the database, or a configured Redis, cannot be reached."""
    components = [await check_database(timeout=3.0)]
    redis_health = await check_redis(timeout=3.0)
    if redis_health.status != HealthStatus.DEGRADED:
        components.append(redis_health)

    if overall_status(components) == HealthStatus.UNHEALTHY:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(status="not_ready", components=components)
    return ReadinessResponse(status="ready", components=components)


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: AppSettings):
    components = [
        await check_database(),
        await check_redis(),
        check_whatsapp(settings),
        ComponentHealth(
            name="realtime",
            status=HealthStatus.HEALTHY,
            details={"connections": connection_manager.connection_count},
        ),
    ]
    return HealthResponse(
        status=overall_status(components),
        uptime_seconds=round(time.monotonic() - _started_at, 2),
        version=settings.app_version,
        components=components,
    )
