"""Treatment Record Repository - Data access layer for clinical treatment records."""
from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.enums import TreatmentRecordStatus
from ..models.treatment_record import TreatmentRecord

log = structlog.get_logger(__name__)


class TreatmentRecordRepository:
    """Repository for TreatmentRecord operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, record_id: int) -> TreatmentRecord | None:
        result = await self.session.execute(select(TreatmentRecord).where(TreatmentRecord.id == record_id))
        return result.scalar_one_or_none()

    async def get_open_for_appointment(self, appointment_id: int) -> TreatmentRecord | None:
        result = await self.session.execute(
            select(TreatmentRecord).where(
                TreatmentRecord.appointment_id == appointment_id,
                TreatmentRecord.status == TreatmentRecordStatus.IN_PROGRESS.value,
            )
        )
        return result.scalars().first()

    async def list_all(
        self,
        clinic_ids: Sequence[int] | None = None,
        patient_id: int | None = None,
        dentist_id: int | None = None,
        status: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[TreatmentRecord], int]:
        """Records newest first."""
        filters = []
        if clinic_ids is not None:
            filters.append(TreatmentRecord.clinic_id.in_(clinic_ids))
        if patient_id is not None:
            filters.append(TreatmentRecord.patient_id == patient_id)
        if dentist_id is not None:
            filters.append(TreatmentRecord.dentist_id == dentist_id)
        if status:
            filters.append(TreatmentRecord.status == status)

        total = (await self.session.execute(select(func.count(TreatmentRecord.id)).where(*filters))).scalar_one()
        result = await self.session.execute(
            select(TreatmentRecord)
            .where(*filters)
            .order_by(TreatmentRecord.start_time.desc(), TreatmentRecord.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return result.scalars().all(), total

    async def create(self, **fields: object) -> TreatmentRecord:
        record = TreatmentRecord(**fields)
        self.session.add(record)
        await self.session.flush()
        await self.session.refresh(record)
        log.info(
            "treatment_record_created",
            record_id=record.id,
            patient_id=record.patient_id,
            dentist_id=record.dentist_id,
        )
        return record

    async def update(self, record: TreatmentRecord, **fields: object) -> TreatmentRecord:
        for key, value in fields.items():
            if hasattr(record, key):
                setattr(record, key, value)
        await self.session.flush()
        await self.session.refresh(record)
        return record
