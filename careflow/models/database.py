"""
Database Models

SQLAlchemy ORM models for the CareFlow NDIS support platform.

Only the tables the reminder pipeline reads or writes are modelled here:
users (participant profiles and staff), participants and appointments.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import (
    Boolean, Date, DateTime, ForeignKey, Index, Numeric, String, Text, Uuid,
    Enum as SQLEnum, text
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class UserRole(str, Enum):
    """User role enumeration."""
    ADMIN = "admin"
    STAFF = "staff"
    PARTICIPANT = "participant"


class ParticipantStatus(str, Enum):
    """Participant status enumeration."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


class PlanType(str, Enum):
    """How the participant's NDIS plan is managed."""
    SELF_MANAGED = "self_managed"
    PLAN_MANAGED = "plan_managed"
    NDIA_MANAGED = "ndia_managed"


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that never receive a reminder
INACTIVE_APPOINTMENT_STATUSES = (AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW)


class User(Base, TimestampMixin):
    """
    User model.

    Holds the contact profile for participants and the identity of staff
    (support workers, coordinators and admins).
    """

    __tablename__ = "users"
    __table_args__ = (
        Index("idx_user_role", "role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name="user_role", values_callable=_enum_values),
        default=UserRole.PARTICIPANT
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Relationships
    participant: Mapped[Optional["Participant"]] = relationship(
        "Participant",
        back_populates="user",
        uselist=False
    )
    assigned_appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment",
        back_populates="staff"
    )

    @property
    def full_name(self) -> str:
        """Return full name."""
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name='{self.full_name}', role={self.role.value})>"


class Participant(Base, TimestampMixin):
    """
    Participant model.

    The care recipient. Contact details live on the linked User profile.
    """

    __tablename__ = "participants"
    __table_args__ = (
        Index("idx_participant_ndis", "ndis_number", unique=True),
        Index("idx_participant_status", "status"),
        Index("idx_participant_user", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    ndis_number: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    plan_type: Mapped[Optional[PlanType]] = mapped_column(
        SQLEnum(PlanType, name="plan_type", values_callable=_enum_values),
        nullable=True
    )
    plan_budget: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    plan_review_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    preferred_language: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    interpreter_required: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[ParticipantStatus] = mapped_column(
        SQLEnum(ParticipantStatus, name="participant_status", values_callable=_enum_values),
        default=ParticipantStatus.ACTIVE
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    user: Mapped[Optional["User"]] = relationship("User", back_populates="participant")
    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment",
        back_populates="participant"
    )

    @property
    def full_name(self) -> str:
        """Return full name."""
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Participant(id={self.id}, name='{self.full_name}', ndis='{self.ndis_number}')>"


class Appointment(Base, TimestampMixin):
    """
    Appointment model.

    A support session between a participant and an assigned staff member.
    Appointments are never deleted; they move between statuses.
    """

    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointment_start", "start_time"),
        Index("idx_appointment_reminder", "reminder_sent", "status", "start_time"),
        Index("idx_appointment_participant", "participant_id"),
        Index("idx_appointment_staff", "staff_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    participant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("participants.id", ondelete="RESTRICT"),
        nullable=False
    )
    staff_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[AppointmentStatus] = mapped_column(
        SQLEnum(AppointmentStatus, name="appointment_status", values_callable=_enum_values),
        default=AppointmentStatus.SCHEDULED
    )
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False)
    recurring_pattern: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    ndis_line_item: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reminder_sent_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    # Relationships
    participant: Mapped["Participant"] = relationship("Participant", back_populates="appointments")
    staff: Mapped[Optional["User"]] = relationship("User", back_populates="assigned_appointments")

    def __repr__(self) -> str:
        return (
            f"<Appointment(id={self.id}, participant_id={self.participant_id}, "
            f"staff_id={self.staff_id}, start={self.start_time}, "
            f"status={self.status.value})>"
        )
