"""Queue Repository - Data access layer for the patient wait-list."""
from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.clinic import Clinic
from ..models.enums import QueueStatus
from ..models.queue import QueueEntry

log = structlog.get_logger(__name__)

ACTIVE_QUEUE_STATUSES = (QueueStatus.WAITING.value, QueueStatus.CALLED.value)


class QueueRepository:
    """Repository for QueueEntry operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def get_by_id(self, entry_id: int) -> QueueEntry | None:
        result = await self.session.execute(select(QueueEntry).where(QueueEntry.id == entry_id))
        return result.scalar_one_or_none()

    async def get_by_appointment(self, appointment_id: int) -> QueueEntry | None:
        result = await self.session.execute(
            select(QueueEntry).where(QueueEntry.appointment_id == appointment_id)
        )
        return result.scalar_one_or_none()

    async def max_position(self, clinic_id: int, queue_date: date) -> int:
        """Highest position handed out in a clinic on queue_date; 0 if none."""
        result = await self.session.execute(
            select(func.max(QueueEntry.position)).where(
                QueueEntry.clinic_id == clinic_id,
                QueueEntry.queue_date == queue_date,
            )
        )
        return result.scalar_one_or_none() or 0

    async def list_active(self, clinic_id: int, queue_date: date) -> Sequence[QueueEntry]:
        """Waiting and called entries of a clinic day, unordered."""
        result = await self.session.execute(
            select(QueueEntry).where(
                QueueEntry.clinic_id == clinic_id,
                QueueEntry.queue_date == queue_date,
                QueueEntry.status.in_(ACTIVE_QUEUE_STATUSES),
            )
        )
        return result.scalars().all()

    async def list_between(
        self,
        start: datetime,
        end: datetime,
        clinic_ids: Sequence[int] | None = None,
        status: str | None = None,
    ) -> Sequence[QueueEntry]:
        """Entries checked in during [start, end)."""
        query = select(QueueEntry).where(QueueEntry.created_at >= start, QueueEntry.created_at < end)
        if clinic_ids is not None:
            query = query.where(QueueEntry.clinic_id.in_(clinic_ids))
        if status:
            query = query.where(QueueEntry.status == status)
        result = await self.session.execute(query.order_by(QueueEntry.created_at))
        return result.scalars().all()

    async def count_by_status(self, clinic_id: int, status: str, queue_date: date) -> int:
        result = await self.session.execute(
            select(func.count(QueueEntry.id)).where(
                QueueEntry.clinic_id == clinic_id,
                QueueEntry.queue_date == queue_date,
                QueueEntry.status == status,
            )
        )
        return result.scalar_one()

    async def list_stale_waiting(self, before: date) -> Sequence[QueueEntry]:
        """Entries still waiting from a day earlier than before."""
        result = await self.session.execute(
            select(QueueEntry).where(
                QueueEntry.queue_date < before,
                QueueEntry.status == QueueStatus.WAITING.value,
            )
        )
        return result.scalars().all()

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    async def lock_clinic(self, clinic_id: int) -> None:
        """Serialize check-ins of a clinic until the transaction ends."""
        await self.session.execute(select(Clinic.id).where(Clinic.id == clinic_id).with_for_update())

    async def create(self, **fields: object) -> QueueEntry:
        entry = QueueEntry(**fields)
        self.session.add(entry)
        await self.session.flush()
        await self.session.refresh(entry)
        log.info(
            "queue_entry_created",
            entry_id=entry.id,
            clinic_id=entry.clinic_id,
            position=entry.position,
            priority=entry.priority,
        )
        return entry

    async def save(self, entry: QueueEntry) -> QueueEntry:
        await self.session.flush()
        await self.session.refresh(entry)
        return entry
