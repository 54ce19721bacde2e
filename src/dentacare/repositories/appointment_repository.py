"""
Appointment Repository.

Data access layer for Appointment and Treatment entities.
"""
from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.appointment import Appointment, Treatment
from ..models.base import ensure_utc
from ..models.enums import AppointmentStatus

log = structlog.get_logger(__name__)

# Statuses that still occupy a dentist's chair time.
ACTIVE_STATUSES = (
    AppointmentStatus.BOOKED.value,
    AppointmentStatus.CHECKED_IN.value,
    AppointmentStatus.IN_PROGRESS.value,
)


class AppointmentRepository:
    """Repository for Appointment entity operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def get_by_id(self, appointment_id: int) -> Appointment | None:
        result = await self.session.execute(select(Appointment).where(Appointment.id == appointment_id))
        return result.scalar_one_or_none()

    async def list_all(
        self,
        clinic_ids: Sequence[int] | None = None,
        patient_id: int | None = None,
        dentist_id: int | None = None,
        status: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[Appointment], int]:
        """List appointments ordered by scheduled time."""
        filters = []
        if clinic_ids is not None:
            filters.append(Appointment.clinic_id.in_(clinic_ids))
        if patient_id is not None:
            filters.append(Appointment.patient_id == patient_id)
        if dentist_id is not None:
            filters.append(Appointment.dentist_id == dentist_id)
        if status:
            filters.append(Appointment.status == status)
        if start is not None:
            filters.append(Appointment.scheduled_time >= start)
        if end is not None:
            filters.append(Appointment.scheduled_time < end)

        total = (await self.session.execute(select(func.count(Appointment.id)).where(*filters))).scalar_one()
        result = await self.session.execute(
            select(Appointment)
            .where(*filters)
            .order_by(Appointment.scheduled_time, Appointment.id)
            .offset(skip)
            .limit(limit)
        )
        return result.scalars().all(), total

    async def list_between(
        self,
        start: datetime,
        end: datetime,
        clinic_ids: Sequence[int] | None = None,
        statuses: Sequence[str] | None = None,
        start_inclusive: bool = True,
    ) -> Sequence[Appointment]:
        """All appointments scheduled in [start, end) (or (start, end] when start_inclusive=False)."""
        if start_inclusive:
            filters = [Appointment.scheduled_time >= start, Appointment.scheduled_time < end]
        else:
            filters = [Appointment.scheduled_time > start, Appointment.scheduled_time <= end]
        if clinic_ids is not None:
            filters.append(Appointment.clinic_id.in_(clinic_ids))
        if statuses:
            filters.append(Appointment.status.in_(statuses))
        result = await self.session.execute(
            select(Appointment).where(*filters).order_by(Appointment.scheduled_time)
        )
        return result.scalars().all()

    async def find_overlapping(
        self,
        dentist_id: int,
        start: datetime,
        end: datetime,
        exclude_id: int | None = None,
    ) -> Appointment | None:
        """First active appointment of a dentist that intersects [start, end)."""
        # Longest plausible slot bounds the candidate window; exact overlap is checked in Python.
        query = select(Appointment).where(
            Appointment.dentist_id == dentist_id,
            Appointment.status.in_(ACTIVE_STATUSES),
            Appointment.scheduled_time < end,
            Appointment.scheduled_time > start - timedelta(hours=12),
        )
        if exclude_id is not None:
            query = query.where(Appointment.id != exclude_id)
        result = await self.session.execute(query.order_by(Appointment.scheduled_time))
        for candidate in result.scalars().all():
            candidate_start = ensure_utc(candidate.scheduled_time)
            candidate_end = candidate_start + timedelta(minutes=candidate.duration_minutes)
            if candidate_start < ensure_utc(end) and ensure_utc(start) < candidate_end:
                return candidate
        return None

    async def list_overdue_booked(self, cutoff: datetime, clinic_ids: Sequence[int] | None = None) -> Sequence[Appointment]:
        """Booked appointments scheduled before cutoff."""
        query = select(Appointment).where(
            Appointment.status == AppointmentStatus.BOOKED.value,
            Appointment.scheduled_time < cutoff,
        )
        if clinic_ids is not None:
            query = query.where(Appointment.clinic_id.in_(clinic_ids))
        result = await self.session.execute(query)
        return result.scalars().all()

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    async def create(self, **fields: object) -> Appointment:
        appointment = Appointment(**fields)
        self.session.add(appointment)
        await self.session.flush()
        await self.session.refresh(appointment)
        log.info(
            "appointment_created",
            appointment_id=appointment.id,
            clinic_id=appointment.clinic_id,
            booking_type=appointment.booking_type,
        )
        return appointment

    async def update(self, appointment: Appointment, **fields: object) -> Appointment:
        for key, value in fields.items():
            if value is not None and hasattr(appointment, key):
                setattr(appointment, key, value)
        await self.session.flush()
        await self.session.refresh(appointment)
        return appointment


class TreatmentRepository:
    """Repository for a clinic's treatment catalogue."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, treatment_id: int) -> Treatment | None:
        result = await self.session.execute(select(Treatment).where(Treatment.id == treatment_id))
        return result.scalar_one_or_none()

    async def list_for_clinic(self, clinic_id: int, active_only: bool = True) -> Sequence[Treatment]:
        query = select(Treatment).where(Treatment.clinic_id == clinic_id)
        if active_only:
            query = query.where(Treatment.is_active.is_(True))
        result = await self.session.execute(query.order_by(Treatment.name))
        return result.scalars().all()

    async def create(self, clinic_id: int, name: str, **fields: object) -> Treatment:
        treatment = Treatment(clinic_id=clinic_id, name=name, **fields)
        self.session.add(treatment)
        await self.session.flush()
        await self.session.refresh(treatment)
        log.info("treatment_created", treatment_id=treatment.id, clinic_id=clinic_id)
        return treatment

    async def update(self, treatment: Treatment, **fields: object) -> Treatment:
        for key, value in fields.items():
            if value is not None and hasattr(treatment, key):
                setattr(treatment, key, value)
        await self.session.flush()
        await self.session.refresh(treatment)
        return treatment
