"""Treatment record model: what was actually done in the chair."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base
from .base import TimestampMixin
from .enums import TreatmentRecordStatus


class TreatmentRecord(TimestampMixin, Base):
    """
    Clinical record of one treatment performed on a patient.

    Opened when the dentist starts work (in_progress) and closed with
    end_time and the measured duration (completed), or cancelled.
    """

    __tablename__ = "treatment_records"

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
    dentist_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    treatment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("treatments.id", ondelete="RESTRICT"),
        nullable=False,
    )
    appointment_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("appointments.id", ondelete="SET NULL"),
        nullable=True,
    )

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TreatmentRecordStatus.IN_PROGRESS.value,
        index=True,
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    complications: Mapped[str | None] = mapped_column(Text, nullable=True)
    follow_up_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    follow_up_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    price_charged: Mapped[float | None] = mapped_column(Float, nullable=True)

    __table_args__ = (
        Index("ix_treatment_records_patient_start", "patient_id", "start_time"),
    )

    def __repr__(self) -> str:
        return f"<TreatmentRecord(id={self.id}, patient_id={self.patient_id}, status='{self.status}')>"
