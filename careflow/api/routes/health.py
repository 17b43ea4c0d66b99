"""
Health Probes

/health        process is up (no dependency checks)
/health/ready  database reachable; scheduler state reported alongside
/health/live   process is up, with uptime
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from careflow.api.dependencies import get_reminder_scheduler
from careflow.config import VERSION, settings
from careflow.core.reminders import ReminderScheduler
from careflow.infra.database import check_db_health

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])

_started_at: Optional[datetime] = None


def set_start_time() -> None:
    """Record process start. Called from the application lifespan."""
    global _started_at
    _started_at = datetime.now(timezone.utc)


def get_uptime_seconds() -> Optional[float]:
    if _started_at is None:
        return None
    return (datetime.now(timezone.utc) - _started_at).total_seconds()


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    environment: str


class ReadyResponse(BaseModel):
    """Readiness result with one entry per checked component."""
    status: str
    timestamp: datetime
    checks: dict[str, str]


class LiveResponse(BaseModel):
    status: str
    timestamp: datetime
    uptime_seconds: Optional[float] = None


async def _database_state() -> str:
    try:
        return "ok" if await check_db_health() else "failed"
    except Exception as e:
        logger.error(f"Readiness check: database error - {e}")
        return "error"


def _scheduler_state(scheduler: Optional[ReminderScheduler]) -> str:
    if scheduler is None or not scheduler.enabled:
        return "disabled"
    return "running" if scheduler.is_running else "stopped"


@router.get("", response_model=HealthResponse, summary="Basic health check")
async def health() -> HealthResponse:
    """Always 200 while the process is serving requests."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=VERSION,
        environment=settings.app_env,
    )


@router.get(
    "/ready",
    response_model=ReadyResponse,
    summary="Readiness probe",
    responses={503: {"description": "The database is unavailable"}},
)
async def ready(
    scheduler: Optional[ReminderScheduler] = Depends(get_reminder_scheduler),
) -> ReadyResponse:
    """
    Readiness probe.

    Only the database decides readiness. A stopped or disabled scheduler
    is reported but the API can still serve manual reminder runs.
    """
    checks = {
        "database": await _database_state(),
        "scheduler": _scheduler_state(scheduler),
    }
    is_ready = checks["database"] == "ok"
    if not is_ready:
        logger.warning(f"Readiness check failed: {checks}")

    response = ReadyResponse(
        status="ready" if is_ready else "not_ready",
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )
    if not is_ready:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json"),
        )
    return response


@router.get("/live", response_model=LiveResponse, summary="Liveness probe")
async def live() -> LiveResponse:
    return LiveResponse(
        status="alive",
        timestamp=datetime.now(timezone.utc),
        uptime_seconds=get_uptime_seconds(),
    )
