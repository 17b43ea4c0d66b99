"""
Reminder Dispatch Service

Runs one reminder cycle: finds appointments starting within the lookahead
window that have not been reminded, sends an email (always) and an SMS
(when the participant has a phone number), and flags the appointment as
reminded when at least one channel succeeds.

Failures are contained:
- a missing participant or staff member skips that appointment
- a failed send is recorded on the outcome and leaves the flag unset
- an error while processing one appointment does not stop the cycle
- a failed query ends the cycle with success=False instead of raising
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from careflow.core.reminders.composer import ReminderComposer
from careflow.core.reminders.records import AppointmentRecord
from careflow.core.reminders.repository import ReminderRepository
from careflow.infra.notifications import DeliveryResult, EmailTransport, SmsTransport

logger = logging.getLogger(__name__)

NO_PHONE_NUMBER = "No phone number"


@dataclass
class ReminderOutcome:
    """Per-appointment result of a reminder cycle."""

    appointment_id: uuid.UUID
    participant_id: uuid.UUID
    email_result: Optional[DeliveryResult] = None
    sms_result: Optional[DeliveryResult] = None
    reminder_marked: bool = False
    error: Optional[str] = None

    @property
    def delivered(self) -> bool:
        """True if at least one channel succeeded."""
        return bool(
            (self.email_result and self.email_result.success)
            or (self.sms_result and self.sms_result.success)
        )

    def to_dict(self) -> dict:
        result = {
            "appointment_id": str(self.appointment_id),
            "participant_id": str(self.participant_id),
            "email_result": self.email_result.to_dict() if self.email_result else None,
            "sms_result": self.sms_result.to_dict() if self.sms_result else None,
            "reminder_marked": self.reminder_marked,
        }
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class ReminderCycleResult:
    """Aggregate result of one reminder cycle."""

    success: bool
    total: int = 0
    results: list[ReminderOutcome] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def sent(self) -> int:
        """Number of appointments reminded through at least one channel."""
        return sum(1 for outcome in self.results if outcome.delivered)

    def to_dict(self) -> dict:
        if not self.success:
            return {"success": False, "error": self.error}
        return {
            "success": True,
            "total": self.total,
            "sent": self.sent,
            "results": [outcome.to_dict() for outcome in self.results],
        }


class ReminderService:
    """Dispatches appointment reminders over email and SMS."""

    def __init__(
        self,
        repository: ReminderRepository,
        composer: ReminderComposer,
        email_transport: EmailTransport,
        sms_transport: SmsTransport,
        lookahead: timedelta = timedelta(hours=24),
    ):
        """Initialize service.

        Args:
            repository: Data access for appointments, participants and staff
            composer: Renders reminder content
            email_transport: Email sender
            sms_transport: SMS sender
            lookahead: Size of the reminder window starting at "now"
        """
        self.repository = repository
        self.composer = composer
        self.email_transport = email_transport
        self.sms_transport = sms_transport
        self.lookahead = lookahead

    async def run_reminder_cycle(self, now: Optional[datetime] = None) -> ReminderCycleResult:
        """Send reminders for appointments starting in [now, now + lookahead).

        Args:
            now: Window start (defaults to the current UTC time)

        Returns:
            ReminderCycleResult; success=False only when the due
            appointments could not be loaded
        """
        window_start = now or datetime.now(timezone.utc)
        window_end = window_start + self.lookahead

        try:
            appointments = await self.repository.get_due_appointments(window_start, window_end)
        except Exception as e:
            logger.exception("Error loading appointments for reminders")
            return ReminderCycleResult(success=False, error=str(e))

        logger.info(f"Found {len(appointments)} appointments for reminders")

        results: list[ReminderOutcome] = []
        for appointment in appointments:
            outcome = ReminderOutcome(
                appointment_id=appointment.id,
                participant_id=appointment.participant_id,
            )
            try:
                if not await self._remind(appointment, outcome):
                    continue
            except Exception as e:
                # Keep any send results already recorded on the outcome
                logger.exception(f"Error sending reminder for appointment {appointment.id}")
                outcome.error = str(e)
            results.append(outcome)

        result = ReminderCycleResult(success=True, total=len(appointments), results=results)
        logger.info(
            f"Reminder cycle finished: {result.sent}/{result.total} appointments reminded"
        )
        return result

    async def _remind(self, appointment: AppointmentRecord, outcome: ReminderOutcome) -> bool:
        """Send reminders for one appointment, filling in outcome as it goes.

        Returns:
            False when the appointment was skipped for missing data
        """
        participant = await self.repository.get_participant_with_user(appointment.participant_id)
        staff = (
            await self.repository.get_staff(appointment.staff_id)
            if appointment.staff_id
            else None
        )

        if participant is None or participant.user is None or staff is None:
            logger.warning(f"Missing participant or staff data for appointment {appointment.id}")
            return False

        email = self.composer.compose_email(appointment, participant, staff)
        outcome.email_result = await self.email_transport.send_email(
            participant.user.email,
            email.subject,
            email.html,
            email.text,
        )

        if participant.user.phone:
            outcome.sms_result = await self.sms_transport.send_sms(
                participant.user.phone,
                self.composer.compose_sms(appointment, participant, staff),
            )
        else:
            outcome.sms_result = DeliveryResult.skipped(NO_PHONE_NUMBER)

        if outcome.delivered:
            await self.repository.mark_reminder_sent(appointment.id)
            outcome.reminder_marked = True
        else:
            logger.warning(
                f"No reminder channel succeeded for appointment {appointment.id}; "
                "it stays eligible for the next cycle"
            )

        return True
