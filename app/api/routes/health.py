"""
Health Check Endpoints

Health, readiness and liveness probes for load balancers and containers.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.config import settings
from app.infra.database import check_db_health
from app.infra.redis import check_redis_health

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])

VERSION = "1.0.0"

_start_time: Optional[datetime] = None


def set_start_time() -> None:
    """Set application start time. Called once on startup."""
    global _start_time
    _start_time = datetime.now(timezone.utc)


def get_uptime_seconds() -> Optional[float]:
    """Get application uptime in seconds."""
    if _start_time is None:
        return None
    return (datetime.now(timezone.utc) - _start_time).total_seconds()


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    environment: str
    storage_backend: str


class ReadyResponse(BaseModel):
    status: str
    timestamp: datetime
    checks: dict[str, str]


class LiveResponse(BaseModel):
    status: str
    timestamp: datetime
    uptime_seconds: Optional[float] = None


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health() -> HealthResponse:
    """Always 200 while the process runs. Use /health/ready for dependencies."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=VERSION,
        environment=settings.app_env,
        storage_backend=settings.storage_backend,
    )


@router.get(
    "/ready",
    response_model=ReadyResponse,
    summary="Readiness probe",
    responses={
        200: {"description": "Booking storage is ready"},
        503: {"description": "Booking storage is unavailable"},
    },
)
async def ready():
    """
    Readiness probe.

    The database is required only with the ``database`` storage backend.
    Redis is reported but never fails readiness: sessions fall back to
    process memory without it.
    """
    checks = {}
    all_ok = True

    if settings.storage_backend == "database":
        try:
            db_ok = await check_db_health()
        except Exception as e:
            logger.error(f"Readiness check: Database error - {e}")
            db_ok = False
        checks["database"] = "ok" if db_ok else "failed"
        if not db_ok:
            all_ok = False
            logger.warning("Readiness check: Database unhealthy")
    else:
        checks["database"] = "skipped"

    redis_ok = await check_redis_health()
    checks["redis"] = "ok" if redis_ok else "unavailable"

    response = ReadyResponse(
        status="ready" if all_ok else "not_ready",
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )

    if not all_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json"),
        )
    return response


@router.get(
    "/live",
    response_model=LiveResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
)
async def live() -> LiveResponse:
    return LiveResponse(
        status="alive",
        timestamp=datetime.now(timezone.utc),
        uptime_seconds=get_uptime_seconds(),
    )
