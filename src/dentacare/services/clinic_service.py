"""Clinic Service.

Tenant management rules that sit above ClinicRepository:
- Branch hierarchy (one level deep)
- Who may create clinics and branches
- Feature toggle gate used by optional modules
"""
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    BadRequestError,
    FeatureDisabledError,
    ForbiddenError,
    ResourceNotFoundError,
)
from ..core.rbac import ensure_clinic_access
from ..models.clinic import Clinic
from ..models.user import User
from ..repositories.clinic_repository import ClinicRepository

logger = logging.getLogger(__name__)

FEATURE_AI_ASSISTANT = "ai_assistant"
FEATURE_QR_CHECKIN = "qr_checkin"


class ClinicService:
    """Clinic and branch operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = ClinicRepository(session)

    async def get_visible(self, user: User, clinic_id: int) -> Clinic:
        clinic = await self.repo.get_by_id(clinic_id)
        if clinic is None:
            raise ResourceNotFoundError("clinic", clinic_id)
        await ensure_clinic_access(user, clinic.id, self.session)
        return clinic

    async def create_clinic(
        self,
        user: User,
        name: str,
        address: str | None = None,
        phone: str | None = None,
        email: str | None = None,
        parent_clinic_id: int | None = None,
        subscription_package: str = "core",
    ) -> Clinic:
        """
        Create a head clinic or a branch.

        Super admins may create anything. Clinic admins may only add
        branches under the head clinic they belong to.

        Raises:
            ForbiddenError: Clinic admin creating a head clinic
            BadRequestError: Parent is itself a branch
            ResourceNotFoundError: Parent does not exist
        """
        if parent_clinic_id is None:
            if not user.is_super_admin:
                raise ForbiddenError(
                    message="Only platform administrators can create head clinics",
                    error_code="INSUFFICIENT_PERMISSIONS",
                )
        else:
            parent = await self.repo.get_by_id(parent_clinic_id)
            if parent is None:
                raise ResourceNotFoundError("clinic", parent_clinic_id)
            if parent.is_branch:
                raise BadRequestError(
                    message="A branch cannot have branches of its own",
                    error_code="INVALID_PARENT_CLINIC",
                    details={"parent_clinic_id": parent_clinic_id},
                )
            await ensure_clinic_access(user, parent.id, self.session)

        return await self.repo.create(
            name=name,
            address=address,
            phone=phone,
            email=email,
            parent_clinic_id=parent_clinic_id,
            subscription_package=subscription_package,
        )

    async def is_feature_enabled(self, clinic_id: int, feature_name: str) -> bool:
        return await self.repo.is_feature_enabled(clinic_id, feature_name)

    async def ensure_feature_enabled(self, clinic_id: int, feature_name: str) -> None:
        """Raise FeatureDisabledError when the clinic switched the feature off."""
        if not await self.repo.is_feature_enabled(clinic_id, feature_name):
            logger.info(f"Feature '{feature_name}' disabled for clinic {clinic_id}")
            raise FeatureDisabledError(feature_name, clinic_id)
