"""Branch Sharing Service.

Read-only data sharing between clinics of one organization:
- Sharing groups are owned by a head clinic and managed by its admins
- Members are the head clinic or its branches
- A clinic reads a peer's records only while both have sharing_enabled
  and share an active group; every such read is written to
  data_sharing_audit
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import BadRequestError, ConflictError, ForbiddenError, ResourceNotFoundError, TenantAccessError
from ..core.rbac import visible_clinic_ids
from ..models.clinic import Clinic
from ..models.sharing import BranchGroupMember, BranchSharingGroup, DataSharingAudit
from ..models.user import User
from ..repositories.clinic_repository import ClinicRepository
from ..repositories.sharing_repository import SharingRepository

logger = logging.getLogger(__name__)


class BranchSharingService:
    """Sharing groups, membership, and the cross-branch read check."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = SharingRepository(session)
        self.clinics = ClinicRepository(session)

    async def _clinic(self, clinic_id: int) -> Clinic:
        clinic = await self.clinics.get_by_id(clinic_id)
        if clinic is None:
            raise ResourceNotFoundError("clinic", clinic_id)
        return clinic

    async def _require_manager(self, user: User, main_clinic_id: int) -> None:
        """Only super admins and admins of the head clinic manage its groups."""
        if user.is_super_admin:
            return
        if user.clinic_id != main_clinic_id:
            logger.warning(f"User {user.id} tried to manage sharing of clinic {main_clinic_id}")
            raise ForbiddenError(
                message="Only administrators of the head clinic manage sharing",
                error_code="HEAD_CLINIC_ADMIN_REQUIRED",
                details={"main_clinic_id": main_clinic_id},
            )

    async def main_clinic_for(self, user: User, requested: int | None = None) -> int:
        """Head clinic a management call applies to: the requested one, else the user's own."""
        clinic_id = requested if requested is not None else user.clinic_id
        if clinic_id is None:
            raise ForbiddenError(
                message="clinic_id is required for accounts without a home clinic",
                error_code="CLINIC_REQUIRED",
            )
        clinic = await self._clinic(clinic_id)
        if clinic.is_branch:
            raise BadRequestError(
                message="Sharing groups belong to a head clinic",
                error_code="HEAD_CLINIC_REQUIRED",
                details={"clinic_id": clinic.id, "parent_clinic_id": clinic.parent_clinic_id},
            )
        await self._require_manager(user, clinic.id)
        return clinic.id

    # =========================================================================
    # Groups
    # =========================================================================

    async def create_group(
        self,
        user: User,
        group_name: str,
        description: str | None = None,
        main_clinic_id: int | None = None,
    ) -> BranchSharingGroup:
        main_clinic_id = await self.main_clinic_for(user, main_clinic_id)
        if await self.repo.get_group_by_name(main_clinic_id, group_name) is not None:
            raise ConflictError(
                message=f"A sharing group named '{group_name}' already exists",
                error_code="SHARING_GROUP_EXISTS",
                details={"main_clinic_id": main_clinic_id},
            )
        group = await self.repo.create_group(
            main_clinic_id=main_clinic_id,
            group_name=group_name,
            description=description,
            created_by=user.id,
        )
        logger.info(f"Sharing group {group.id} '{group_name}' created for clinic {main_clinic_id}")
        return group

    async def list_groups(self, user: User) -> Sequence[BranchSharingGroup]:
        """Groups of the caller's organization; every group for super admins."""
        if user.is_super_admin:
            return await self.repo.list_groups()
        if user.clinic_id is None:
            return []
        clinic = await self._clinic(user.clinic_id)
        return await self.repo.list_groups([clinic.organization_id])

    async def get_group(self, user: User, group_id: int) -> BranchSharingGroup:
        group = await self.repo.get_group(group_id)
        if group is None:
            raise ResourceNotFoundError("sharing_group", group_id)
        if not user.is_super_admin:
            clinic = await self._clinic(user.clinic_id) if user.clinic_id is not None else None
            if clinic is None or clinic.organization_id != group.main_clinic_id:
                raise ResourceNotFoundError("sharing_group", group_id)
        return group

    async def update_group(self, user: User, group: BranchSharingGroup, **fields: object) -> BranchSharingGroup:
        await self._require_manager(user, group.main_clinic_id)
        new_name = fields.get("group_name")
        if new_name and new_name != group.group_name:
            if await self.repo.get_group_by_name(group.main_clinic_id, new_name) is not None:
                raise ConflictError(
                    message=f"A sharing group named '{new_name}' already exists",
                    error_code="SHARING_GROUP_EXISTS",
                )
        return await self.repo.update_group(group, **fields)

    async def delete_group(self, user: User, group: BranchSharingGroup) -> None:
        await self._require_manager(user, group.main_clinic_id)
        await self.repo.delete_group(group)

    # =========================================================================
    # Members
    # =========================================================================

    async def list_members(self, group: BranchSharingGroup) -> Sequence[BranchGroupMember]:
        return await self.repo.list_members(group.id)

    async def add_member(self, user: User, group: BranchSharingGroup, branch_id: int) -> BranchGroupMember:
        """
        Add the head clinic or one of its branches to a group.

        Raises:
            BadRequestError: Clinic belongs to another organization
            ConflictError: Clinic is already a member
        """
        await self._require_manager(user, group.main_clinic_id)
        branch = await self._clinic(branch_id)
        if branch.organization_id != group.main_clinic_id:
            raise BadRequestError(
                message="Only the head clinic and its branches can join this group",
                error_code="BRANCH_NOT_IN_ORGANIZATION",
                details={"branch_id": branch_id, "main_clinic_id": group.main_clinic_id},
            )
        if await self.repo.get_member(group.id, branch.id) is not None:
            raise ConflictError(
                message="Clinic is already a member of this group",
                error_code="ALREADY_GROUP_MEMBER",
                details={"group_id": group.id, "branch_id": branch.id},
            )
        return await self.repo.add_member(group.id, branch.id)

    async def remove_member(self, user: User, group: BranchSharingGroup, branch_id: int) -> None:
        await self._require_manager(user, group.main_clinic_id)
        member = await self.repo.get_member(group.id, branch_id)
        if member is None:
            raise ResourceNotFoundError("group_member", branch_id)
        await self.repo.remove_member(member)

    async def set_sharing_enabled(self, user: User, clinic_id: int, enabled: bool) -> Clinic:
        """Switch a clinic's participation in sharing on or off."""
        clinic = await self._clinic(clinic_id)
        await self._require_manager(user, clinic.organization_id)
        clinic.sharing_enabled = enabled
        await self.session.flush()
        await self.session.refresh(clinic)
        logger.info(f"Clinic {clinic.id} sharing_enabled={enabled}")
        return clinic

    # =========================================================================
    # Access checks
    # =========================================================================

    async def sharing_group_for(self, user: User, target_clinic_id: int) -> int | None:
        """Active group through which the user's clinic may read target_clinic_id, if any."""
        if user.clinic_id is None or user.clinic_id == target_clinic_id:
            return None
        source = await self._clinic(user.clinic_id)
        target = await self.clinics.get_by_id(target_clinic_id)
        if target is None or not (source.sharing_enabled and target.sharing_enabled):
            return None
        return await self.repo.shared_group_id(source.id, target.id)

    async def can_access_branch_data(self, user: User, target_clinic_id: int) -> bool:
        """True when the user may read records of target_clinic_id, directly or through sharing."""
        allowed = await visible_clinic_ids(user, self.session)
        if allowed is None or target_clinic_id in allowed:
            return True
        return await self.sharing_group_for(user, target_clinic_id) is not None

    async def shared_clinic_ids(self, user: User) -> list[int]:
        """Peers whose records the user's clinic may currently read through sharing."""
        if user.clinic_id is None:
            return []
        source = await self._clinic(user.clinic_id)
        if not source.sharing_enabled:
            return []
        peers = []
        for clinic_id in await self.repo.peer_clinic_ids(source.id):
            peer = await self.clinics.get_by_id(clinic_id)
            if peer is not None and peer.sharing_enabled:
                peers.append(peer.id)
        return peers

    async def ensure_read_access(
        self,
        user: User,
        clinic_id: int,
        data_type: str,
        data_id: int | str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """
        Allow a read of a record owned by clinic_id.

        Reads inside the tenant scope pass silently. Reads through a
        sharing group pass and are audited.

        Raises:
            TenantAccessError: Neither tenant scope nor a sharing group covers clinic_id
        """
        allowed = await visible_clinic_ids(user, self.session)
        if allowed is None or clinic_id in allowed:
            return
        group_id = await self.sharing_group_for(user, clinic_id)
        if group_id is None:
            logger.warning(f"User {user.id} denied read of {data_type} {data_id} in clinic {clinic_id}")
            raise TenantAccessError(clinic_id=clinic_id)
        await self.repo.record_access(
            user_id=user.id,
            source_branch_id=user.clinic_id,
            target_branch_id=clinic_id,
            sharing_group_id=group_id,
            data_type=data_type,
            data_id=str(data_id),
            action_type="view",
            ip_address=ip_address,
            user_agent=user_agent,
        )

    async def list_access_log(
        self,
        user: User,
        data_type: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[Sequence[DataSharingAudit], int]:
        """Sharing reads into or out of the caller's tenant scope."""
        return await self.repo.list_access(
            clinic_ids=await visible_clinic_ids(user, self.session),
            data_type=data_type,
            skip=skip,
            limit=limit,
        )
