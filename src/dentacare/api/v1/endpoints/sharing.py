"""
Branch Sharing API Endpoints.

Head-clinic administrators group their clinics so that members can read
each other's patient and treatment records. Every cross-branch read is
listed in the sharing audit.
"""
from __future__ import annotations

from fastapi import APIRouter, Query

from ....core.rbac import ClinicAdminUser, StaffUser
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....models.enums import SharedDataType
from ....schemas.clinic import ClinicResponse
from ....schemas.sharing import (
    BranchAccessResponse,
    BranchSharingUpdate,
    GroupMemberCreate,
    GroupMemberResponse,
    SharingAuditResponse,
    SharingGroupCreate,
    SharingGroupResponse,
    SharingGroupUpdate,
)
from ....services.sharing_service import BranchSharingService

router = APIRouter(prefix="/sharing", tags=["Branch Sharing"])


# =============================================================================
# Groups
# =============================================================================

@router.get("/groups", response_model=GenericResponse[list[SharingGroupResponse]], summary="List sharing groups")
async def list_groups(admin: ClinicAdminUser, db: DbSession) -> GenericResponse[list[SharingGroupResponse]]:
    groups = await BranchSharingService(db).list_groups(admin)
    return GenericResponse(message="Sharing groups retrieved", data=[SharingGroupResponse.model_validate(g) for g in groups])


@router.post("/groups", response_model=GenericResponse[SharingGroupResponse], status_code=201, summary="Create sharing group")
async def create_group(payload: SharingGroupCreate, admin: ClinicAdminUser, db: DbSession) -> GenericResponse[SharingGroupResponse]:
    group = await BranchSharingService(db).create_group(
        admin, payload.group_name, payload.description, payload.main_clinic_id
    )
    await db.commit()
    return GenericResponse(message="Sharing group created", data=SharingGroupResponse.model_validate(group))


@router.get("/groups/{group_id}", response_model=GenericResponse[SharingGroupResponse], summary="Get sharing group")
async def get_group(group_id: int, admin: ClinicAdminUser, db: DbSession) -> GenericResponse[SharingGroupResponse]:
    group = await BranchSharingService(db).get_group(admin, group_id)
    return GenericResponse(message="Sharing group retrieved", data=SharingGroupResponse.model_validate(group))


@router.patch("/groups/{group_id}", response_model=GenericResponse[SharingGroupResponse], summary="Update sharing group")
async def update_group(
    group_id: int,
    payload: SharingGroupUpdate,
    admin: ClinicAdminUser,
    db: DbSession,
) -> GenericResponse[SharingGroupResponse]:
    service = BranchSharingService(db)
    group = await service.get_group(admin, group_id)
    group = await service.update_group(admin, group, **payload.model_dump(exclude_unset=True))
    await db.commit()
    return GenericResponse(message="Sharing group updated", data=SharingGroupResponse.model_validate(group))


@router.delete("/groups/{group_id}", response_model=GenericResponse[None], summary="Delete sharing group")
async def delete_group(group_id: int, admin: ClinicAdminUser, db: DbSession) -> GenericResponse[None]:
    service = BranchSharingService(db)
    group = await service.get_group(admin, group_id)
    await service.delete_group(admin, group)
    await db.commit()
    return GenericResponse(message="Sharing group deleted", data=None)


# =============================================================================
# Members
# =============================================================================

@router.get(
    "/groups/{group_id}/members",
    response_model=GenericResponse[list[GroupMemberResponse]],
    summary="List group members",
)
async def list_members(group_id: int, admin: ClinicAdminUser, db: DbSession) -> GenericResponse[list[GroupMemberResponse]]:
    service = BranchSharingService(db)
    members = await service.list_members(await service.get_group(admin, group_id))
    return GenericResponse(message="Group members retrieved", data=[GroupMemberResponse.model_validate(m) for m in members])


@router.post(
    "/groups/{group_id}/members",
    response_model=GenericResponse[GroupMemberResponse],
    status_code=201,
    summary="Add clinic to group",
)
async def add_member(
    group_id: int,
    payload: GroupMemberCreate,
    admin: ClinicAdminUser,
    db: DbSession,
) -> GenericResponse[GroupMemberResponse]:
    service = BranchSharingService(db)
    member = await service.add_member(admin, await service.get_group(admin, group_id), payload.branch_id)
    await db.commit()
    return GenericResponse(message="Clinic added to group", data=GroupMemberResponse.model_validate(member))


@router.delete(
    "/groups/{group_id}/members/{branch_id}",
    response_model=GenericResponse[None],
    summary="Remove clinic from group",
)
async def remove_member(group_id: int, branch_id: int, admin: ClinicAdminUser, db: DbSession) -> GenericResponse[None]:
    service = BranchSharingService(db)
    await service.remove_member(admin, await service.get_group(admin, group_id), branch_id)
    await db.commit()
    return GenericResponse(message="Clinic removed from group", data=None)


# =============================================================================
# Branch participation and access
# =============================================================================

@router.put("/branches/{clinic_id}", response_model=GenericResponse[ClinicResponse], summary="Enable or disable sharing")
async def set_branch_sharing(
    clinic_id: int,
    payload: BranchSharingUpdate,
    admin: ClinicAdminUser,
    db: DbSession,
) -> GenericResponse[ClinicResponse]:
    clinic = await BranchSharingService(db).set_sharing_enabled(admin, clinic_id, payload.sharing_enabled)
    await db.commit()
    return GenericResponse(message="Branch sharing updated", data=ClinicResponse.model_validate(clinic))


@router.get("/access/{clinic_id}", response_model=GenericResponse[BranchAccessResponse], summary="Can I read this clinic's data")
async def check_access(clinic_id: int, user: StaffUser, db: DbSession) -> GenericResponse[BranchAccessResponse]:
    allowed = await BranchSharingService(db).can_access_branch_data(user, clinic_id)
    return GenericResponse(message="Access checked", data=BranchAccessResponse(clinic_id=clinic_id, can_access=allowed))


@router.get("/audit", response_model=PaginatedResponse[SharingAuditResponse], summary="Cross-branch read log")
async def list_sharing_audit(
    admin: ClinicAdminUser,
    db: DbSession,
    data_type: SharedDataType | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=500),
) -> PaginatedResponse[SharingAuditResponse]:
    entries, total = await BranchSharingService(db).list_access_log(
        admin,
        data_type=data_type.value if data_type else None,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return PaginatedResponse(
        message="Sharing audit retrieved",
        data=[SharingAuditResponse.model_validate(e) for e in entries],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )
