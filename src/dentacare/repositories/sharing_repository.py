"""
Sharing Repository.

Data access for branch sharing groups, their members and the
cross-branch read audit.
"""
from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from ..models.sharing import BranchGroupMember, BranchSharingGroup, DataSharingAudit

log = structlog.get_logger(__name__)


class SharingRepository:
    """Repository for sharing groups, memberships and sharing audit rows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # =========================================================================
    # Groups
    # =========================================================================

    async def create_group(self, **fields: object) -> BranchSharingGroup:
        group = BranchSharingGroup(**fields)
        self.session.add(group)
        await self.session.flush()
        await self.session.refresh(group)
        log.info("sharing_group_created", group_id=group.id, main_clinic_id=group.main_clinic_id)
        return group

    async def get_group(self, group_id: int) -> BranchSharingGroup | None:
        result = await self.session.execute(select(BranchSharingGroup).where(BranchSharingGroup.id == group_id))
        return result.scalar_one_or_none()

    async def get_group_by_name(self, main_clinic_id: int, group_name: str) -> BranchSharingGroup | None:
        result = await self.session.execute(
            select(BranchSharingGroup).where(
                BranchSharingGroup.main_clinic_id == main_clinic_id,
                BranchSharingGroup.group_name == group_name,
            )
        )
        return result.scalar_one_or_none()

    async def list_groups(self, main_clinic_ids: Sequence[int] | None = None) -> Sequence[BranchSharingGroup]:
        query = select(BranchSharingGroup)
        if main_clinic_ids is not None:
            query = query.where(BranchSharingGroup.main_clinic_id.in_(main_clinic_ids))
        result = await self.session.execute(query.order_by(BranchSharingGroup.created_at.desc(), BranchSharingGroup.id.desc()))
        return result.scalars().all()

    async def update_group(self, group: BranchSharingGroup, **fields: object) -> BranchSharingGroup:
        for key, value in fields.items():
            if value is not None and hasattr(group, key):
                setattr(group, key, value)
        await self.session.flush()
        await self.session.refresh(group)
        return group

    async def delete_group(self, group: BranchSharingGroup) -> None:
        """Delete a group together with its memberships."""
        await self.session.execute(delete(BranchGroupMember).where(BranchGroupMember.group_id == group.id))
        await self.session.delete(group)
        await self.session.flush()
        log.info("sharing_group_deleted", group_id=group.id)

    # =========================================================================
    # Members
    # =========================================================================

    async def add_member(self, group_id: int, branch_id: int) -> BranchGroupMember:
        member = BranchGroupMember(group_id=group_id, branch_id=branch_id)
        self.session.add(member)
        await self.session.flush()
        await self.session.refresh(member)
        log.info("sharing_member_added", group_id=group_id, branch_id=branch_id)
        return member

    async def get_member(self, group_id: int, branch_id: int) -> BranchGroupMember | None:
        result = await self.session.execute(
            select(BranchGroupMember).where(
                BranchGroupMember.group_id == group_id,
                BranchGroupMember.branch_id == branch_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_members(self, group_id: int) -> Sequence[BranchGroupMember]:
        result = await self.session.execute(
            select(BranchGroupMember)
            .where(BranchGroupMember.group_id == group_id)
            .order_by(BranchGroupMember.joined_at.desc(), BranchGroupMember.id.desc())
        )
        return result.scalars().all()

    async def remove_member(self, member: BranchGroupMember) -> None:
        await self.session.delete(member)
        await self.session.flush()
        log.info("sharing_member_removed", group_id=member.group_id, branch_id=member.branch_id)

    async def shared_group_id(self, branch_id: int, other_branch_id: int) -> int | None:
        """Id of an active group both clinics belong to, if any."""
        mine = aliased(BranchGroupMember)
        theirs = aliased(BranchGroupMember)
        result = await self.session.execute(
            select(BranchSharingGroup.id)
            .join(mine, mine.group_id == BranchSharingGroup.id)
            .join(theirs, theirs.group_id == BranchSharingGroup.id)
            .where(
                BranchSharingGroup.is_active.is_(True),
                mine.branch_id == branch_id,
                theirs.branch_id == other_branch_id,
            )
            .order_by(BranchSharingGroup.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def peer_clinic_ids(self, branch_id: int) -> list[int]:
        """Clinics sharing an active group with branch_id, excluding branch_id itself."""
        mine = aliased(BranchGroupMember)
        theirs = aliased(BranchGroupMember)
        result = await self.session.execute(
            select(theirs.branch_id)
            .join(BranchSharingGroup, BranchSharingGroup.id == theirs.group_id)
            .join(mine, mine.group_id == theirs.group_id)
            .where(
                BranchSharingGroup.is_active.is_(True),
                mine.branch_id == branch_id,
                theirs.branch_id != branch_id,
            )
            .distinct()
        )
        return sorted(result.scalars().all())

    # =========================================================================
    # Audit
    # =========================================================================

    async def record_access(self, **fields: object) -> DataSharingAudit:
        entry = DataSharingAudit(**fields)
        self.session.add(entry)
        await self.session.flush()
        log.info(
            "shared_data_accessed",
            user_id=entry.user_id,
            source_branch_id=entry.source_branch_id,
            target_branch_id=entry.target_branch_id,
            data_type=entry.data_type,
            data_id=entry.data_id,
        )
        return entry

    async def list_access(
        self,
        clinic_ids: Sequence[int] | None = None,
        data_type: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[Sequence[DataSharingAudit], int]:
        """Audit rows where either side of the read is one of clinic_ids."""
        filters = []
        if clinic_ids is not None:
            filters.append(
                DataSharingAudit.source_branch_id.in_(clinic_ids) | DataSharingAudit.target_branch_id.in_(clinic_ids)
            )
        if data_type:
            filters.append(DataSharingAudit.data_type == data_type)

        total = (await self.session.execute(select(func.count(DataSharingAudit.id)).where(*filters))).scalar_one()
        result = await self.session.execute(
            select(DataSharingAudit).where(*filters).order_by(DataSharingAudit.id.desc()).offset(skip).limit(limit)
        )
        return result.scalars().all(), total
