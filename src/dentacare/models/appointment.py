"""
Appointment Domain Models.

Architecture:
    - Treatment: clinic price list entry with a default chair time
    - Appointment: a patient's slot with a dentist

Status lifecycle:
    booked -> checked_in -> in_progress -> completed
    booked | checked_in -> cancelled | no_show
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base
from .base import TimestampMixin
from .enums import AppointmentStatus, BookingType


class Treatment(TimestampMixin, Base):
    """Treatment offered by a clinic."""

    __tablename__ = "treatments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clinic_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    default_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    default_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Treatment(id={self.id}, name='{self.name}')>"


class Appointment(TimestampMixin, Base):
    """
    Appointment entity.

    Attributes:
        scheduled_time: Start of the slot (UTC)
        duration_minutes: Planned chair time
        status: AppointmentStatus value
        booking_type: BookingType value; drives queue priority
        qr_code: Signed appointment check-in code, when generated
        actual_start_time / actual_end_time: Stamped by status transitions
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clinic_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    patient_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    dentist_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    treatment_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("treatments.id", ondelete="SET NULL"),
        nullable=True,
    )

    scheduled_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AppointmentStatus.BOOKED.value,
        index=True,
    )
    booking_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BookingType.ONLINE.value,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    qr_code: Mapped[str | None] = mapped_column(Text, nullable=True)

    actual_start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_appointments_clinic_time", "clinic_id", "scheduled_time"),
        Index("ix_appointments_dentist_time", "dentist_id", "scheduled_time"),
    )

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, patient_id={self.patient_id}, status='{self.status}')>"
