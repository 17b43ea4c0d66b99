"""
Reminder Endpoints

Operational endpoints for the appointment reminder pipeline:
- POST /reminders/run: run one reminder cycle now
- GET /reminders/jobs: list scheduled reminder jobs

All endpoints require the admin API key.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from careflow.api.dependencies import (
    get_reminder_scheduler,
    get_reminder_service,
    require_admin_key,
)
from careflow.core.reminders import ReminderScheduler, ReminderService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reminders",
    tags=["Reminders"],
    dependencies=[Depends(require_admin_key)],
)


class DeliveryResultModel(BaseModel):
    """Result of one email or SMS send."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None


class ReminderOutcomeModel(BaseModel):
    """Per-appointment reminder outcome."""
    appointment_id: str
    participant_id: str
    email_result: Optional[DeliveryResultModel] = None
    sms_result: Optional[DeliveryResultModel] = None
    reminder_marked: bool = False
    error: Optional[str] = None


class ReminderCycleResponse(BaseModel):
    """Result of a reminder cycle."""
    success: bool
    total: int = 0
    sent: int = 0
    results: list[ReminderOutcomeModel] = []
    error: Optional[str] = None


class ScheduledJob(BaseModel):
    """Scheduled job info."""
    id: str
    name: str
    next_run: Optional[str] = None


class JobsResponse(BaseModel):
    """Scheduler state."""
    running: bool
    jobs: list[ScheduledJob]


@router.post(
    "/run",
    response_model=ReminderCycleResponse,
    summary="Run a reminder cycle",
    description="Sends reminders for all due appointments immediately and returns the outcomes.",
)
async def run_reminders(
    service: ReminderService = Depends(get_reminder_service),
) -> ReminderCycleResponse:
    """Trigger one reminder cycle outside the schedule."""
    logger.info("Manual reminder cycle requested")
    result = await service.run_reminder_cycle()
    return ReminderCycleResponse.model_validate(result.to_dict())


@router.get(
    "/jobs",
    response_model=JobsResponse,
    summary="List scheduled reminder jobs",
)
async def list_jobs(
    scheduler: Optional[ReminderScheduler] = Depends(get_reminder_scheduler),
) -> JobsResponse:
    """Return scheduler state and next run times."""
    if scheduler is None:
        return JobsResponse(running=False, jobs=[])
    return JobsResponse(
        running=scheduler.is_running,
        jobs=[ScheduledJob(**job) for job in scheduler.get_jobs_info()],
    )
