"""
Reminders Module

Appointment reminder pipeline: repository, composer, dispatch service and
scheduler.

Usage:
    from careflow.core.reminders import build_reminder_service, ReminderScheduler

    service = build_reminder_service(settings)
    result = await service.run_reminder_cycle()
    print(result.total, result.sent)

    scheduler = ReminderScheduler(service)
    await scheduler.start()
"""

from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from careflow.config import Settings

# Records
from careflow.core.reminders.records import (
    AppointmentRecord,
    ParticipantRecord,
    StaffRecord,
    UserProfile,
)

# Repository
from careflow.core.reminders.repository import (
    ReminderRepository,
    SQLAlchemyReminderRepository,
)

# Composer
from careflow.core.reminders.composer import (
    EmailContent,
    ReminderComposer,
)

# Dispatch Service
from careflow.core.reminders.service import (
    ReminderCycleResult,
    ReminderOutcome,
    ReminderService,
)

# Scheduler
from careflow.core.reminders.scheduler import ReminderScheduler

from careflow.infra.notifications import build_email_transport, build_sms_transport


def build_reminder_service(
    settings: Settings,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> ReminderService:
    """Wire a ReminderService from settings.

    Args:
        settings: Application settings
        session_factory: Session factory (defaults to the application database)

    Returns:
        ReminderService with SQLAlchemy repository and Resend/Twilio transports
    """
    if session_factory is None:
        from careflow.infra.database import async_session_factory

        session_factory = async_session_factory

    return ReminderService(
        repository=SQLAlchemyReminderRepository(session_factory),
        composer=ReminderComposer(
            timezone_name=settings.timezone,
            support_email=settings.support_email,
        ),
        email_transport=build_email_transport(settings),
        sms_transport=build_sms_transport(settings),
        lookahead=timedelta(hours=settings.reminder_lookahead_hours),
    )


def build_reminder_scheduler(settings: Settings, service: ReminderService) -> ReminderScheduler:
    """Create the scheduler configured from settings."""
    return ReminderScheduler(
        service=service,
        timezone_name=settings.timezone,
        cron_minute=settings.reminder_cron_minute,
        cron_hour=settings.reminder_cron_hour,
        run_on_start=settings.reminder_run_on_startup,
        enabled=settings.reminders_enabled,
    )


async def close_reminder_service(service: ReminderService) -> None:
    """Close the HTTP clients held by the service's transports."""
    await service.email_transport.close()
    await service.sms_transport.close()


__all__ = [
    # Records
    "AppointmentRecord",
    "ParticipantRecord",
    "StaffRecord",
    "UserProfile",
    # Repository
    "ReminderRepository",
    "SQLAlchemyReminderRepository",
    # Composer
    "EmailContent",
    "ReminderComposer",
    # Dispatch Service
    "ReminderCycleResult",
    "ReminderOutcome",
    "ReminderService",
    # Scheduler
    "ReminderScheduler",
    # Wiring
    "build_reminder_service",
    "build_reminder_scheduler",
    "close_reminder_service",
]
