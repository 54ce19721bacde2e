"""Tests for branch sharing groups and cross-branch reads."""

import pytest
from sqlalchemy import select

from src.dentacare.core.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    ResourceNotFoundError,
    TenantAccessError,
)
from src.dentacare.models.clinic import Clinic
from src.dentacare.models.enums import SharedDataType
from src.dentacare.models.sharing import DataSharingAudit
from src.dentacare.services.sharing_service import BranchSharingService


async def _share(db_session, clinic_admin, *clinics):
    sharing = BranchSharingService(db_session)
    group = await sharing.create_group(clinic_admin, "Downtown network")
    for member in clinics:
        await sharing.add_member(clinic_admin, group, member.id)
        await sharing.set_sharing_enabled(clinic_admin, member.id, True)
    return group


@pytest.mark.asyncio
async def test_head_admin_creates_group_for_own_clinic(db_session, clinic, clinic_admin):
    group = await BranchSharingService(db_session).create_group(clinic_admin, "Downtown network", "Both sites")

    assert group.main_clinic_id == clinic.id
    assert group.created_by == clinic_admin.id
    assert group.is_active is True


@pytest.mark.asyncio
async def test_duplicate_group_name_rejected(db_session, clinic_admin):
    sharing = BranchSharingService(db_session)
    await sharing.create_group(clinic_admin, "Downtown network")

    with pytest.raises(ConflictError) as exc:
        await sharing.create_group(clinic_admin, "Downtown network")
    assert exc.value.error_code == "SHARING_GROUP_EXISTS"


@pytest.mark.asyncio
async def test_branch_admin_cannot_manage_sharing(db_session, clinic, branch, branch_admin):
    sharing = BranchSharingService(db_session)

    with pytest.raises(BadRequestError) as exc:
        await sharing.create_group(branch_admin, "Riverside only")
    assert exc.value.error_code == "HEAD_CLINIC_REQUIRED"

    with pytest.raises(ForbiddenError):
        await sharing.create_group(branch_admin, "Takeover", main_clinic_id=clinic.id)

    with pytest.raises(ForbiddenError):
        await sharing.set_sharing_enabled(branch_admin, branch.id, True)


@pytest.mark.asyncio
async def test_foreign_clinic_cannot_join(db_session, clinic_admin, other_clinic):
    sharing = BranchSharingService(db_session)
    group = await sharing.create_group(clinic_admin, "Downtown network")

    with pytest.raises(BadRequestError) as exc:
        await sharing.add_member(clinic_admin, group, other_clinic.id)
    assert exc.value.error_code == "BRANCH_NOT_IN_ORGANIZATION"


@pytest.mark.asyncio
async def test_member_added_once(db_session, clinic_admin, branch):
    sharing = BranchSharingService(db_session)
    group = await sharing.create_group(clinic_admin, "Downtown network")
    await sharing.add_member(clinic_admin, group, branch.id)

    with pytest.raises(ConflictError):
        await sharing.add_member(clinic_admin, group, branch.id)
    assert [m.branch_id for m in await sharing.list_members(group)] == [branch.id]


@pytest.mark.asyncio
async def test_groups_hidden_from_other_organizations(db_session, clinic_admin, outsider):
    sharing = BranchSharingService(db_session)
    group = await sharing.create_group(clinic_admin, "Downtown network")

    assert await sharing.list_groups(outsider) == []
    with pytest.raises(ResourceNotFoundError):
        await sharing.get_group(outsider, group.id)


@pytest.mark.asyncio
async def test_access_needs_both_flags_and_a_shared_group(db_session, clinic, branch, clinic_admin, branch_staff):
    sharing = BranchSharingService(db_session)
    assert await sharing.can_access_branch_data(branch_staff, clinic.id) is False

    group = await sharing.create_group(clinic_admin, "Downtown network")
    await sharing.add_member(clinic_admin, group, clinic.id)
    await sharing.add_member(clinic_admin, group, branch.id)
    await sharing.set_sharing_enabled(clinic_admin, clinic.id, True)
    assert await sharing.can_access_branch_data(branch_staff, clinic.id) is False

    await sharing.set_sharing_enabled(clinic_admin, branch.id, True)
    assert await sharing.can_access_branch_data(branch_staff, clinic.id) is True
    assert await sharing.shared_clinic_ids(branch_staff) == [clinic.id]


@pytest.mark.asyncio
async def test_inactive_group_grants_nothing(db_session, clinic, branch, clinic_admin, branch_staff):
    sharing = BranchSharingService(db_session)
    group = await _share(db_session, clinic_admin, clinic, branch)

    await sharing.update_group(clinic_admin, group, is_active=False)
    assert await sharing.can_access_branch_data(branch_staff, clinic.id) is False


@pytest.mark.asyncio
async def test_shared_read_is_audited(db_session, clinic, branch, clinic_admin, branch_staff, patient):
    group = await _share(db_session, clinic_admin, clinic, branch)

    await BranchSharingService(db_session).ensure_read_access(
        branch_staff,
        clinic.id,
        SharedDataType.PATIENT.value,
        patient.id,
        ip_address="10.0.0.7",
        user_agent="pytest",
    )

    entry = (await db_session.execute(select(DataSharingAudit))).scalar_one()
    assert entry.source_branch_id == branch.id
    assert entry.target_branch_id == clinic.id
    assert entry.sharing_group_id == group.id
    assert (entry.data_type, entry.data_id, entry.action_type) == ("patient", str(patient.id), "view")
    assert entry.ip_address == "10.0.0.7"


@pytest.mark.asyncio
async def test_read_inside_tenant_scope_not_audited(db_session, clinic, staff, patient):
    await BranchSharingService(db_session).ensure_read_access(staff, clinic.id, "patient", patient.id)

    assert (await db_session.execute(select(DataSharingAudit))).scalars().all() == []


@pytest.mark.asyncio
async def test_read_without_sharing_denied(db_session, clinic, branch_staff, patient):
    with pytest.raises(TenantAccessError):
        await BranchSharingService(db_session).ensure_read_access(branch_staff, clinic.id, "patient", patient.id)


@pytest.mark.asyncio
async def test_removing_member_ends_access(db_session, clinic, branch, clinic_admin, branch_staff):
    sharing = BranchSharingService(db_session)
    group = await _share(db_session, clinic_admin, clinic, branch)

    await sharing.remove_member(clinic_admin, group, branch.id)
    assert await sharing.can_access_branch_data(branch_staff, clinic.id) is False


@pytest.mark.asyncio
async def test_delete_group_drops_members(db_session, clinic, branch, clinic_admin, branch_staff):
    sharing = BranchSharingService(db_session)
    group = await _share(db_session, clinic_admin, clinic, branch)

    await sharing.delete_group(clinic_admin, group)
    assert await sharing.list_groups(clinic_admin) == []
    assert await sharing.can_access_branch_data(branch_staff, clinic.id) is False
    assert (await db_session.get(Clinic, branch.id)).sharing_enabled is True
