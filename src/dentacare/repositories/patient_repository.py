"""Patient Repository - Data access layer for patient records."""
from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.patient import Patient

log = structlog.get_logger(__name__)


class PatientRepository:
    """Repository for Patient CRUD and search."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def get_by_id(self, patient_id: int) -> Patient | None:
        result = await self.session.execute(select(Patient).where(Patient.id == patient_id))
        return result.scalar_one_or_none()

    async def get_by_user_id(self, user_id: int) -> Patient | None:
        """Patient record linked to a portal account."""
        result = await self.session.execute(select(Patient).where(Patient.user_id == user_id))
        return result.scalar_one_or_none()

    async def find_by_contact(self, clinic_id: int, contact_number: str) -> Patient | None:
        """Active patient of a clinic with this phone number."""
        result = await self.session.execute(
            select(Patient)
            .where(
                Patient.clinic_id == clinic_id,
                Patient.contact_number == contact_number,
                Patient.is_active.is_(True),
            )
            .order_by(Patient.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def search(
        self,
        clinic_ids: Sequence[int] | None = None,
        query: str | None = None,
        skip: int = 0,
        limit: int = 50,
        active_only: bool = True,
    ) -> tuple[Sequence[Patient], int]:
        """Search patients by name, phone or email."""
        filters = []
        if clinic_ids is not None:
            filters.append(Patient.clinic_id.in_(clinic_ids))
        if active_only:
            filters.append(Patient.is_active.is_(True))
        if query:
            pattern = f"%{query.strip().lower()}%"
            filters.append(
                or_(
                    func.lower(Patient.full_name).like(pattern),
                    func.lower(Patient.email).like(pattern),
                    Patient.contact_number.like(f"%{query.strip()}%"),
                )
            )

        total = (await self.session.execute(select(func.count(Patient.id)).where(*filters))).scalar_one()
        result = await self.session.execute(
            select(Patient).where(*filters).order_by(Patient.full_name, Patient.id).offset(skip).limit(limit)
        )
        return result.scalars().all(), total

    async def count_for_clinics(self, clinic_ids: Sequence[int]) -> dict[int, int]:
        """Active patient count per clinic."""
        result = await self.session.execute(
            select(Patient.clinic_id, func.count(Patient.id))
            .where(Patient.clinic_id.in_(clinic_ids), Patient.is_active.is_(True))
            .group_by(Patient.clinic_id)
        )
        return {clinic_id: count for clinic_id, count in result.all()}

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    async def create(self, clinic_id: int, full_name: str, **fields: object) -> Patient:
        patient = Patient(clinic_id=clinic_id, full_name=full_name, **fields)
        self.session.add(patient)
        await self.session.flush()
        await self.session.refresh(patient)
        log.info("patient_created", patient_id=patient.id, clinic_id=clinic_id)
        return patient

    async def update(self, patient: Patient, **fields: object) -> Patient:
        for key, value in fields.items():
            if value is not None and hasattr(patient, key):
                setattr(patient, key, value)
        await self.session.flush()
        await self.session.refresh(patient)
        log.info("patient_updated", patient_id=patient.id)
        return patient

    async def soft_delete(self, patient: Patient) -> None:
        patient.is_active = False
        await self.session.flush()
        log.info("patient_deactivated", patient_id=patient.id)
