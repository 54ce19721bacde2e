"""Queue entry model: one row per checked-in appointment."""
from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base
from .base import utc_now
from .enums import QueuePriority, QueueStatus


class QueueEntry(Base):
    """
    Patient wait-list entry.

    Serving order is priority rank, then manual_order (if set), then position.
    position is assigned on check-in and unique within (clinic_id, queue_date).
    """

    __tablename__ = "queue"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clinic_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    appointment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    queue_date: Mapped[date] = mapped_column(Date, nullable=False, comment="UTC day of check-in")
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    priority: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=QueuePriority.SCHEDULED.value,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=QueueStatus.WAITING.value,
        index=True,
    )
    manual_order: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Staff override of order within a priority band"
    )
    override_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    estimated_wait_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    treatment_duration_override: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Expected chair minutes for this patient, replaces the per-patient default"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        comment="Check-in time"
    )
    called_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_queue_clinic_status", "clinic_id", "status"),
        Index("ix_queue_clinic_created", "clinic_id", "created_at"),
        UniqueConstraint("clinic_id", "queue_date", "position", name="uq_queue_clinic_day_position"),
    )

    def __repr__(self) -> str:
        return (
            f"<QueueEntry(id={self.id}, position={self.position}, "
            f"priority='{self.priority}', status='{self.status}')>"
        )

    @property
    def sort_key(self) -> tuple[int, int, int]:
        rank = QueuePriority(self.priority).rank
        manual = self.manual_order if self.manual_order is not None else 2**31
        return (rank, manual, self.position)
