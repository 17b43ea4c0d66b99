"""Reminder Scheduler.

APScheduler-based async scheduler that runs the reminder cycle on a cron
schedule (every hour on the hour by default) and once at startup.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from pytz import timezone

from careflow.core.reminders.service import ReminderCycleResult, ReminderService

logger = logging.getLogger(__name__)

REMINDER_JOB_ID = "appointment_reminders"


class ReminderScheduler:
    """Owns the scheduled reminder jobs.

    start() always clears previously registered jobs before registering
    new ones; stop() is safe to call at any time.
    """

    def __init__(
        self,
        service: ReminderService,
        timezone_name: str = "Australia/Perth",
        cron_minute: str = "0",
        cron_hour: str = "*",
        run_on_start: bool = True,
        enabled: bool = True,
    ):
        """Initialize scheduler.

        Args:
            service: Reminder dispatch service invoked by each run.
            timezone_name: Timezone for the cron trigger.
            cron_minute: Cron minute field.
            cron_hour: Cron hour field.
            run_on_start: Fire the first run immediately on start().
            enabled: Whether start() registers anything.
        """
        self.service = service
        self.tz = timezone(timezone_name)
        self.cron_minute = cron_minute
        self.cron_hour = cron_hour
        self.run_on_start = run_on_start
        self.enabled = enabled

        self._scheduler: Optional[AsyncIOScheduler] = None
        self._jobs: list[Job] = []

    async def start(self) -> None:
        """Register the reminder job and start the scheduler."""
        await self.stop()

        if not self.enabled:
            logger.info("ReminderScheduler is disabled, skipping start")
            return

        scheduler = AsyncIOScheduler(timezone=self.tz)
        self._scheduler = scheduler

        job_options: dict[str, Any] = {}
        if self.run_on_start:
            job_options["next_run_time"] = datetime.now(self.tz)

        job = scheduler.add_job(
            self.run_cycle,
            CronTrigger(minute=self.cron_minute, hour=self.cron_hour, timezone=self.tz),
            id=REMINDER_JOB_ID,
            name="Appointment Reminders",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **job_options,
        )
        self._jobs.append(job)

        scheduler.start()
        logger.info(
            f"ReminderScheduler started with timezone {self.tz} "
            f"(minute={self.cron_minute}, hour={self.cron_hour}, run_on_start={self.run_on_start})"
        )

    async def stop(self) -> None:
        """Cancel all registered jobs and shut the scheduler down."""
        for job in self._jobs:
            try:
                job.remove()
            except JobLookupError:
                logger.debug(f"Job {job.id} already removed")
        self._jobs.clear()

        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
                logger.info("ReminderScheduler stopped")
            self._scheduler = None

    async def run_cycle(self) -> Optional[ReminderCycleResult]:
        """Job body: run one reminder cycle and log the outcome."""
        logger.info(f"Running scheduled appointment reminders job: {datetime.now(self.tz).isoformat()}")
        try:
            result = await self.service.run_reminder_cycle()
        except Exception:
            logger.exception("Error in appointment reminders job")
            return None

        if result.success:
            logger.info(
                f"Appointment reminders job completed: {result.sent}/{result.total} reminded"
            )
        else:
            logger.error(f"Appointment reminders job failed: {result.error}")
        return result

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._scheduler is not None and self._scheduler.running

    @property
    def job_count(self) -> int:
        """Number of registered job handles."""
        return len(self._jobs)

    def get_jobs_info(self) -> list[dict[str, Any]]:
        """Get information about scheduled jobs."""
        if not self._scheduler:
            return []

        jobs = []
        for job in self._scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                }
            )
        return jobs
