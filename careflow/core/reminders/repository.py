"""
Reminder Repository

Narrow data access for the reminder pipeline. Queries return plain records
from careflow.core.reminders.records; the only write is the conditional
reminder-sent update.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from careflow.core.reminders.records import (
    AppointmentRecord,
    ParticipantRecord,
    StaffRecord,
)
from careflow.models.database import (
    INACTIVE_APPOINTMENT_STATUSES,
    Appointment,
    Participant,
    User,
)

logger = logging.getLogger(__name__)


class ReminderRepository(Protocol):
    """Read/update interface the reminder service depends on."""

    async def get_due_appointments(
        self, window_start: datetime, window_end: datetime
    ) -> list[AppointmentRecord]:
        ...

    async def get_participant_with_user(
        self, participant_id: uuid.UUID
    ) -> Optional[ParticipantRecord]:
        ...

    async def get_staff(self, staff_id: uuid.UUID) -> Optional[StaffRecord]:
        ...

    async def mark_reminder_sent(self, appointment_id: uuid.UUID) -> bool:
        ...


class SQLAlchemyReminderRepository:
    """ReminderRepository over the async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_due_appointments(
        self, window_start: datetime, window_end: datetime
    ) -> list[AppointmentRecord]:
        """Appointments starting in [window_start, window_end) that still need a reminder.

        Excludes appointments already reminded and those cancelled or
        marked no-show. Ordered by start time.
        """
        stmt = (
            select(Appointment)
            .where(
                Appointment.start_time >= window_start,
                Appointment.start_time < window_end,
                Appointment.reminder_sent.is_(False),
                Appointment.status.not_in(INACTIVE_APPOINTMENT_STATUSES),
            )
            .order_by(Appointment.start_time)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [AppointmentRecord.from_model(a) for a in result.scalars().all()]

    async def get_participant_with_user(
        self, participant_id: uuid.UUID
    ) -> Optional[ParticipantRecord]:
        stmt = (
            select(Participant)
            .options(selectinload(Participant.user))
            .where(Participant.id == participant_id)
        )
        async with self._session_factory() as session:
            participant = (await session.execute(stmt)).scalar_one_or_none()
            if participant is None:
                return None
            return ParticipantRecord.from_model(participant)

    async def get_staff(self, staff_id: uuid.UUID) -> Optional[StaffRecord]:
        async with self._session_factory() as session:
            user = await session.get(User, staff_id)
            if user is None:
                return None
            return StaffRecord.from_model(user)

    async def mark_reminder_sent(self, appointment_id: uuid.UUID) -> bool:
        """Set reminder_sent on one appointment.

        The update only matches rows where the flag is still false, so the
        flag is never reset and a concurrent cycle cannot stamp it twice.

        Returns:
            True if this call flipped the flag
        """
        stmt = (
            update(Appointment)
            .where(
                Appointment.id == appointment_id,
                Appointment.reminder_sent.is_(False),
            )
            .values(reminder_sent=True, reminder_sent_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(stmt)
        updated = result.rowcount > 0
        if not updated:
            logger.debug(f"Appointment {appointment_id} was already marked as reminded")
        return updated
