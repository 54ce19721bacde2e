"""
Clinic Repository.

Data access layer for Clinic and ClinicFeatureToggle entities.
Provides CRUD, branch lookups and the tenant visibility set.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.clinic import Clinic, ClinicFeatureToggle

logger = logging.getLogger(__name__)


class ClinicRepository:
    """Repository for Clinic entity operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ==========================================================================
    # CRUD Operations
    # ==========================================================================

    async def create(
        self,
        name: str,
        address: str | None = None,
        phone: str | None = None,
        email: str | None = None,
        parent_clinic_id: int | None = None,
        subscription_package: str = "core",
    ) -> Clinic:
        """Create a clinic, or a branch when parent_clinic_id is given."""
        clinic = Clinic(
            name=name,
            address=address,
            phone=phone,
            email=email,
            parent_clinic_id=parent_clinic_id,
            subscription_package=subscription_package,
        )
        self.session.add(clinic)
        await self.session.flush()
        await self.session.refresh(clinic)
        logger.info(f"Created clinic: id={clinic.id}, name='{clinic.name}', parent={parent_clinic_id}")
        return clinic

    async def get_by_id(self, clinic_id: int) -> Clinic | None:
        """Get a clinic by ID."""
        result = await self.session.execute(select(Clinic).where(Clinic.id == clinic_id))
        return result.scalar_one_or_none()

    async def update(self, clinic: Clinic, **fields: object) -> Clinic:
        """Apply non-None field updates to a clinic."""
        for key, value in fields.items():
            if value is not None and hasattr(clinic, key):
                setattr(clinic, key, value)
        await self.session.flush()
        await self.session.refresh(clinic)
        logger.info(f"Updated clinic: id={clinic.id}, fields={sorted(k for k, v in fields.items() if v is not None)}")
        return clinic

    async def soft_delete(self, clinic: Clinic) -> None:
        """Deactivate a clinic (is_active=False)."""
        clinic.is_active = False
        await self.session.flush()
        logger.info(f"Deactivated clinic: id={clinic.id}")

    # ==========================================================================
    # Listing / Tenancy
    # ==========================================================================

    async def list_all(
        self,
        clinic_ids: Sequence[int] | None = None,
        skip: int = 0,
        limit: int = 50,
        active_only: bool = True,
    ) -> tuple[Sequence[Clinic], int]:
        """List clinics, optionally restricted to a set of ids."""
        query = select(Clinic)
        count_query = select(func.count(Clinic.id))

        if clinic_ids is not None:
            query = query.where(Clinic.id.in_(clinic_ids))
            count_query = count_query.where(Clinic.id.in_(clinic_ids))
        if active_only:
            query = query.where(Clinic.is_active.is_(True))
            count_query = count_query.where(Clinic.is_active.is_(True))

        total = (await self.session.execute(count_query)).scalar_one()
        result = await self.session.execute(query.order_by(Clinic.id).offset(skip).limit(limit))
        return result.scalars().all(), total

    async def list_branches(self, parent_clinic_id: int, active_only: bool = True) -> Sequence[Clinic]:
        """List branches of a head clinic."""
        query = select(Clinic).where(Clinic.parent_clinic_id == parent_clinic_id)
        if active_only:
            query = query.where(Clinic.is_active.is_(True))
        result = await self.session.execute(query.order_by(Clinic.id))
        return result.scalars().all()

    async def tenant_clinic_ids(self, clinic_id: int) -> list[int]:
        """Ids a member of clinic_id may reach: the clinic, plus its branches when it is a head clinic."""
        clinic = await self.get_by_id(clinic_id)
        if clinic is None:
            return []
        if clinic.is_branch:
            return [clinic.id]
        result = await self.session.execute(
            select(Clinic.id).where(or_(Clinic.id == clinic.id, Clinic.parent_clinic_id == clinic.id))
        )
        return sorted(result.scalars().all())

    # ==========================================================================
    # Feature Toggles
    # ==========================================================================

    async def get_toggle(self, clinic_id: int, feature_name: str) -> ClinicFeatureToggle | None:
        result = await self.session.execute(
            select(ClinicFeatureToggle).where(
                ClinicFeatureToggle.clinic_id == clinic_id,
                ClinicFeatureToggle.feature_name == feature_name,
            )
        )
        return result.scalar_one_or_none()

    async def list_toggles(self, clinic_id: int) -> Sequence[ClinicFeatureToggle]:
        result = await self.session.execute(
            select(ClinicFeatureToggle)
            .where(ClinicFeatureToggle.clinic_id == clinic_id)
            .order_by(ClinicFeatureToggle.feature_name)
        )
        return result.scalars().all()

    async def set_toggle(
        self,
        clinic_id: int,
        feature_name: str,
        is_enabled: bool,
        description: str | None = None,
    ) -> ClinicFeatureToggle:
        """Create or update a feature toggle."""
        toggle = await self.get_toggle(clinic_id, feature_name)
        if toggle is None:
            toggle = ClinicFeatureToggle(
                clinic_id=clinic_id,
                feature_name=feature_name,
                is_enabled=is_enabled,
                description=description,
            )
            self.session.add(toggle)
        else:
            toggle.is_enabled = is_enabled
            if description is not None:
                toggle.description = description
        await self.session.flush()
        await self.session.refresh(toggle)
        logger.info(f"Feature toggle set: clinic_id={clinic_id}, {feature_name}={is_enabled}")
        return toggle

    async def is_feature_enabled(self, clinic_id: int, feature_name: str) -> bool:
        """A feature without a toggle row is enabled."""
        toggle = await self.get_toggle(clinic_id, feature_name)
        return True if toggle is None else toggle.is_enabled
