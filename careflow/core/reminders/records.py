"""Plain data records handed to the reminder pipeline.

The pipeline never touches ORM objects; the repository converts rows into
these records before returning them.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from careflow.models.database import (
    Appointment,
    AppointmentStatus,
    Participant,
    User,
)


@dataclass(frozen=True)
class UserProfile:
    """Contact profile linked to a participant."""

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def from_model(cls, user: User) -> "UserProfile":
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone=user.phone or None,
        )


@dataclass(frozen=True)
class ParticipantRecord:
    """Participant with its (optional) linked user profile."""

    id: uuid.UUID
    first_name: str
    last_name: str
    user: Optional[UserProfile] = None
    ndis_number: Optional[str] = None

    @classmethod
    def from_model(cls, participant: Participant) -> "ParticipantRecord":
        return cls(
            id=participant.id,
            first_name=participant.first_name,
            last_name=participant.last_name,
            user=UserProfile.from_model(participant.user) if participant.user else None,
            ndis_number=participant.ndis_number,
        )


@dataclass(frozen=True)
class StaffRecord:
    """Staff member assigned to an appointment."""

    id: uuid.UUID
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def from_model(cls, user: User) -> "StaffRecord":
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone=user.phone,
        )


@dataclass(frozen=True)
class AppointmentRecord:
    """Appointment fields the reminder pipeline needs."""

    id: uuid.UUID
    participant_id: uuid.UUID
    staff_id: Optional[uuid.UUID]
    title: str
    start_time: datetime
    end_time: datetime
    location: Optional[str] = None
    description: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    reminder_sent: bool = False
    is_recurring: bool = False
    recurring_pattern: Optional[str] = None

    @classmethod
    def from_model(cls, appointment: Appointment) -> "AppointmentRecord":
        return cls(
            id=appointment.id,
            participant_id=appointment.participant_id,
            staff_id=appointment.staff_id,
            title=appointment.title,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            location=appointment.location,
            description=appointment.description,
            status=appointment.status,
            reminder_sent=appointment.reminder_sent,
            is_recurring=appointment.is_recurring,
            recurring_pattern=appointment.recurring_pattern,
        )
