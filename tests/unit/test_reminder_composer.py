"""Tests for the reminder composer."""

import uuid
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from careflow.core.reminders.composer import ReminderComposer, UNKNOWN_LOCATION
from careflow.core.reminders.records import (
    AppointmentRecord,
    ParticipantRecord,
    StaffRecord,
    UserProfile,
)


@pytest.fixture
def composer():
    """Composer showing times in Perth (UTC+8, no DST)."""
    return ReminderComposer(timezone_name="Australia/Perth", support_email="help@careflow.app")


@pytest.fixture
def appointment():
    return AppointmentRecord(
        id=uuid.uuid4(),
        participant_id=uuid.uuid4(),
        staff_id=uuid.uuid4(),
        title="Community Access",
        start_time=datetime(2026, 10, 20, 1, 30, tzinfo=timezone.utc),
        end_time=datetime(2026, 10, 20, 2, 30, tzinfo=timezone.utc),
        location="Fremantle Library",
        description="Bring your library card",
    )


@pytest.fixture
def participant(appointment):
    return ParticipantRecord(
        id=appointment.participant_id,
        first_name="Jordan",
        last_name="Lee",
        user=UserProfile(
            id=uuid.uuid4(),
            first_name="Jordan",
            last_name="Lee",
            email="jordan@example.com",
            phone="0412 345 678",
        ),
    )


@pytest.fixture
def staff(appointment):
    return StaffRecord(id=appointment.staff_id, first_name="Priya", last_name="Nair")


class TestComposeEmail:
    """Test email rendering."""

    def test_subject_uses_local_start_time(self, composer, appointment, participant, staff):
        """Test subject shows start time in the display timezone."""
        email = composer.compose_email(appointment, participant, staff)

        assert email.subject == "Reminder: Upcoming Appointment on Tuesday 20 October 2026, 09:30 AM"

    def test_body_contains_appointment_details(self, composer, appointment, participant, staff):
        """Test body includes title, times, location, staff and description."""
        email = composer.compose_email(appointment, participant, staff)

        assert "Hello Jordan," in email.html
        assert "Community Access" in email.html
        assert "Tuesday 20 October 2026, 09:30 AM - 10:30 AM" in email.html
        assert "Fremantle Library" in email.html
        assert "Priya Nair" in email.html
        assert "Bring your library card" in email.html
        assert "help@careflow.app" in email.html

    def test_description_omitted_when_empty(self, composer, appointment, participant, staff):
        """Test description block only appears when present."""
        email = composer.compose_email(replace(appointment, description=None), participant, staff)

        assert "Description:" not in email.html

    def test_values_are_escaped(self, composer, appointment, participant, staff):
        """Test user-supplied text is HTML-escaped."""
        email = composer.compose_email(
            replace(appointment, title="Art & Craft <group>"), participant, staff
        )

        assert "Art &amp; Craft &lt;group&gt;" in email.html
        assert "<group>" not in email.html

    def test_plain_text_alternative(self, composer, appointment, participant, staff):
        """Test plain text is derived from the HTML."""
        email = composer.compose_email(appointment, participant, staff)

        assert "Hello Jordan," in email.text
        assert "Priya Nair" in email.text
        assert "<" not in email.text

    def test_missing_location(self, composer, appointment, participant, staff):
        """Test missing location renders a placeholder."""
        email = composer.compose_email(replace(appointment, location=None), participant, staff)

        assert UNKNOWN_LOCATION in email.html

    def test_naive_datetimes_treated_as_utc(self, composer, appointment, participant, staff):
        """Test naive datetimes render the same as UTC-aware ones."""
        naive = replace(
            appointment,
            start_time=appointment.start_time.replace(tzinfo=None),
            end_time=appointment.end_time.replace(tzinfo=None),
        )

        assert composer.compose_email(naive, participant, staff) == composer.compose_email(
            appointment, participant, staff
        )

    def test_deterministic(self, composer, appointment, participant, staff):
        """Test identical inputs produce identical output."""
        first = composer.compose_email(appointment, participant, staff)
        second = composer.compose_email(appointment, participant, staff)

        assert first == second


class TestComposeSms:
    """Test SMS rendering."""

    def test_sms_text(self, composer, appointment, participant, staff):
        """Test full SMS text."""
        text = composer.compose_sms(appointment, participant, staff)

        assert text == (
            'CareFlow Reminder: You have an appointment "Community Access" on '
            "Tuesday 20 October 2026, 09:30 AM at Fremantle Library with Priya Nair. "
            "Reply Y to confirm."
        )

    def test_sms_missing_location(self, composer, appointment, participant, staff):
        """Test SMS placeholder for missing location."""
        text = composer.compose_sms(replace(appointment, location="  "), participant, staff)

        assert f"at {UNKNOWN_LOCATION} with" in text

    def test_sms_other_timezone(self, appointment, participant, staff):
        """Test display timezone changes the rendered time."""
        composer = ReminderComposer(timezone_name="UTC")

        text = composer.compose_sms(appointment, participant, staff)

        assert "Tuesday 20 October 2026, 01:30 AM" in text
