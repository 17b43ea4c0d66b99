"""
Reminder Composer

Renders appointment reminder content for email and SMS.

Composition is pure: the same appointment, participant and staff records
always produce the same text. Times are shown in the configured display
timezone.
"""

import html
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import pytz

from careflow.core.reminders.records import (
    AppointmentRecord,
    ParticipantRecord,
    StaffRecord,
)
from careflow.infra.notifications import html_to_text

DATETIME_FORMAT = "%A %d %B %Y, %I:%M %p"
TIME_FORMAT = "%I:%M %p"

UNKNOWN_LOCATION = "a location to be confirmed"

EMAIL_SUBJECT = "Reminder: Upcoming Appointment on {start}"

EMAIL_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background-color: #1976d2; color: white; padding: 20px; text-align: center;">
    <h1>Appointment Reminder</h1>
  </div>
  <div style="padding: 20px; border: 1px solid #ddd; border-top: none;">
    <p>Hello {first_name},</p>
    <p>This is a reminder about your upcoming appointment:</p>
    <div style="background-color: #f5f5f5; padding: 15px; margin: 15px 0; border-radius: 5px;">
      <p><strong>Title:</strong> {title}</p>
      <p><strong>Date &amp; Time:</strong> {start} - {end}</p>
      <p><strong>Location:</strong> {location}</p>
      <p><strong>Support Worker:</strong> {staff_name}</p>
{description_block}    </div>
    <p>If you need to reschedule or have any questions, please contact us at {support_email} or call your support coordinator.</p>
    <p>Thank you for using CareFlow!</p>
  </div>
  <div style="background-color: #f5f5f5; padding: 10px; text-align: center; font-size: 12px; color: #666;">
    <p>CareFlow NDIS Support Platform</p>
  </div>
</div>
"""

DESCRIPTION_BLOCK = "      <p><strong>Description:</strong> {description}</p>\n"

SMS_TEMPLATE = (
    'CareFlow Reminder: You have an appointment "{title}" on {start} '
    "at {location} with {staff_name}. Reply Y to confirm."
)


@dataclass(frozen=True)
class EmailContent:
    """Rendered reminder email."""

    subject: str
    html: str
    text: str


class ReminderComposer:
    """Builds reminder email and SMS bodies."""

    def __init__(self, timezone_name: str = "Australia/Perth", support_email: str = ""):
        """Initialize composer.

        Args:
            timezone_name: IANA timezone used to display appointment times
            support_email: Contact address printed in the email body
        """
        self.tz = pytz.timezone(timezone_name)
        self.support_email = support_email

    def _localize(self, value: datetime) -> datetime:
        # Naive values come from databases without timezone support and are UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(self.tz)

    def format_start(self, value: datetime) -> str:
        return self._localize(value).strftime(DATETIME_FORMAT)

    def format_end(self, value: datetime) -> str:
        return self._localize(value).strftime(TIME_FORMAT)

    def compose_email(
        self,
        appointment: AppointmentRecord,
        participant: ParticipantRecord,
        staff: StaffRecord,
    ) -> EmailContent:
        """Render the reminder email for one appointment."""
        start = self.format_start(appointment.start_time)
        greeting_name = participant.user.first_name if participant.user else participant.first_name

        description_block = ""
        if appointment.description:
            description_block = DESCRIPTION_BLOCK.format(
                description=html.escape(appointment.description)
            )

        body = EMAIL_TEMPLATE.format(
            first_name=html.escape(greeting_name),
            title=html.escape(appointment.title),
            start=start,
            end=self.format_end(appointment.end_time),
            location=html.escape(_location(appointment.location)),
            staff_name=html.escape(staff.full_name),
            description_block=description_block,
            support_email=html.escape(self.support_email or "your provider"),
        )

        return EmailContent(
            subject=EMAIL_SUBJECT.format(start=start),
            html=body,
            text=html_to_text(body),
        )

    def compose_sms(
        self,
        appointment: AppointmentRecord,
        participant: ParticipantRecord,
        staff: StaffRecord,
    ) -> str:
        """Render the reminder SMS for one appointment."""
        return SMS_TEMPLATE.format(
            title=appointment.title,
            start=self.format_start(appointment.start_time),
            location=_location(appointment.location),
            staff_name=staff.full_name,
        )


def _location(location: Optional[str]) -> str:
    return location.strip() if location and location.strip() else UNKNOWN_LOCATION
