"""
User Management API Endpoints.

Clinic admins manage the accounts in their tenant scope; super admins
manage everyone. Accounts are deactivated rather than deleted.
"""
from __future__ import annotations

import structlog
from fastapi import APIRouter, Query

from ....core.config import get_settings
from ....core.exceptions import ConflictError, ForbiddenError, ResourceNotFoundError
from ....core.rbac import ClinicAdminUser, ensure_clinic_access, resolve_clinic_id, visible_clinic_ids
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....core.security import hash_password
from ....db.session import DbSession
from ....models.enums import UserRole
from ....models.user import User
from ....repositories.user_repository import UserRepository
from ....schemas.user import UserCreate, UserResponse, UserUpdate

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _check_role_grant(admin: User, role: str) -> None:
    """Only super admins may grant super_admin."""
    if role == UserRole.SUPER_ADMIN.value and not admin.is_super_admin:
        raise ForbiddenError(
            message="Only a super admin can grant the super_admin role",
            error_code="ROLE_NOT_GRANTABLE",
        )


async def _get_managed_user(admin: User, user_id: int, db: DbSession) -> User:
    user = await UserRepository(db).get_by_id(user_id)
    if user is None:
        raise ResourceNotFoundError("user", user_id)
    if not admin.is_super_admin:
        if user.clinic_id is None:
            raise ResourceNotFoundError("user", user_id)
        await ensure_clinic_access(admin, user.clinic_id, db)
    return user


@router.get("", response_model=PaginatedResponse[UserResponse], summary="List users")
async def list_users(
    admin: ClinicAdminUser,
    db: DbSession,
    clinic_id: int | None = Query(None, description="Restrict to one clinic"),
    role: str | None = Query(None, description="Filter by role"),
    is_active: bool | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
) -> PaginatedResponse[UserResponse]:
    if clinic_id is not None:
        await ensure_clinic_access(admin, clinic_id, db)
        clinic_ids = [clinic_id]
    else:
        clinic_ids = await visible_clinic_ids(admin, db)

    users, total = await UserRepository(db).list_all(
        clinic_ids=clinic_ids,
        role=role,
        is_active=is_active,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return PaginatedResponse(
        message="Users retrieved",
        data=[UserResponse.model_validate(u) for u in users],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


@router.post("", response_model=GenericResponse[UserResponse], status_code=201, summary="Create user")
async def create_user(payload: UserCreate, admin: ClinicAdminUser, db: DbSession) -> GenericResponse[UserResponse]:
    _check_role_grant(admin, payload.role)
    clinic_id = None
    if payload.role != UserRole.SUPER_ADMIN.value:
        clinic_id = resolve_clinic_id(admin, payload.clinic_id)
        await ensure_clinic_access(admin, clinic_id, db)

    repo = UserRepository(db)
    if await repo.get_by_email(payload.email):
        raise ConflictError(message="A user with this email already exists", error_code="EMAIL_EXISTS")

    user = await repo.create(
        email=payload.email,
        full_name=payload.full_name,
        password_hash=hash_password(payload.password, iterations=get_settings().PASSWORD_HASH_ITERATIONS),
        role=payload.role,
        clinic_id=clinic_id,
        phone=payload.phone,
    )
    await db.commit()
    return GenericResponse(message="User created", data=UserResponse.model_validate(user))


@router.get("/{user_id}", response_model=GenericResponse[UserResponse], summary="Get user")
async def get_user(user_id: int, admin: ClinicAdminUser, db: DbSession) -> GenericResponse[UserResponse]:
    user = await _get_managed_user(admin, user_id, db)
    return GenericResponse(message="User retrieved", data=UserResponse.model_validate(user))


@router.patch("/{user_id}", response_model=GenericResponse[UserResponse], summary="Update role or status")
async def update_user(
    user_id: int,
    payload: UserUpdate,
    admin: ClinicAdminUser,
    db: DbSession,
) -> GenericResponse[UserResponse]:
    user = await _get_managed_user(admin, user_id, db)
    if payload.role is not None:
        _check_role_grant(admin, payload.role)
    if user.id == admin.id and payload.is_active is False:
        raise ForbiddenError(message="You cannot deactivate your own account", error_code="SELF_DEACTIVATION")

    user = await UserRepository(db).update(user, **payload.model_dump(exclude_unset=True))
    await db.commit()
    return GenericResponse(message="User updated", data=UserResponse.model_validate(user))


@router.delete("/{user_id}", response_model=GenericResponse[UserResponse], summary="Deactivate user")
async def deactivate_user(user_id: int, admin: ClinicAdminUser, db: DbSession) -> GenericResponse[UserResponse]:
    user = await _get_managed_user(admin, user_id, db)
    if user.id == admin.id:
        raise ForbiddenError(message="You cannot deactivate your own account", error_code="SELF_DEACTIVATION")
    user = await UserRepository(db).deactivate(user)
    await db.commit()
    return GenericResponse(message="User deactivated", data=UserResponse.model_validate(user))
