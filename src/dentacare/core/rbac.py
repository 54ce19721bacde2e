"""RBAC (Role-Based Access Control) and tenant-scoping FastAPI dependencies.

Usage:
    @router.get("/clinic/endpoint")
    async def staff_endpoint(user: StaffUser):
        ...

    @router.post("/admin/endpoint")
    async def admin_endpoint(admin: ClinicAdminUser):
        ...

Tenant scoping: a member of a head clinic sees that clinic and its
branches; a member of a branch sees only that branch. Cross-branch reads
go through sharing groups (services/sharing_service.py). Super admins
see everything (``visible_clinic_ids`` -> None).
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Annotated

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import get_db
from ..models.enums import UserRole
from ..models.user import User
from ..repositories.clinic_repository import ClinicRepository
from ..repositories.user_repository import UserRepository
from .config import Settings, get_settings
from .exceptions import ForbiddenError, TenantAccessError, UnauthorizedError
from .security import _decode_jwt

logger = structlog.get_logger(__name__)


async def get_current_user(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode JWT and return the active User record.

    Raises:
        UnauthorizedError: Missing/invalid/expired token, or user not found.
        ForbiddenError: User account is inactive.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.lower().startswith("bearer "):
        raise UnauthorizedError(
            message="Missing or invalid Authorization header",
            error_code="UNAUTHORIZED",
        )

    token = auth_header.split(" ", 1)[1].strip()
    if not token:
        raise UnauthorizedError(message="Missing access token", error_code="UNAUTHORIZED")

    payload = _decode_jwt(token, settings=settings)

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.isdigit():
        raise UnauthorizedError(message="Invalid token subject", error_code="INVALID_TOKEN")

    user = await UserRepository(db).get_by_id(int(subject))

    if not user:
        logger.warning("User not found for token", user_id=subject)
        raise UnauthorizedError(
            message="User not found. Please contact administrator.",
            error_code="USER_NOT_FOUND",
        )

    if not user.is_active:
        logger.warning("Inactive user attempted access", user_id=user.id)
        raise ForbiddenError(
            message="Your account has been deactivated. Please contact administrator.",
            error_code="USER_INACTIVE",
        )

    return user


def require_roles(*roles: UserRole) -> Callable[..., Awaitable[User]]:
    """Build a dependency that admits only the given roles."""
    allowed = {role.value for role in roles}

    async def _dependency(current_user: Annotated[User, Depends(get_current_user)]) -> User:
        if current_user.role not in allowed:
            logger.warning(
                "Insufficient role access attempt",
                user_id=current_user.id,
                role=current_user.role,
                required=sorted(allowed),
            )
            raise ForbiddenError(
                message="You do not have permission to perform this action",
                error_code="INSUFFICIENT_PERMISSIONS",
                details={"required_roles": sorted(allowed)},
            )
        return current_user

    return _dependency


require_staff = require_roles(*UserRole.staff_roles())
require_clinic_admin = require_roles(*UserRole.admin_roles())
require_super_admin = require_roles(UserRole.SUPER_ADMIN)
require_clinician = require_roles(
    UserRole.SUPER_ADMIN, UserRole.CLINIC_ADMIN, UserRole.DENTIST,
)


# ---------------------------------------------------------------------------
# Tenant scoping
# ---------------------------------------------------------------------------

async def visible_clinic_ids(user: User, db: AsyncSession) -> list[int] | None:
    """Clinic ids the user may read; None means unrestricted."""
    if user.is_super_admin:
        return None
    if user.clinic_id is None:
        return []
    return await ClinicRepository(db).tenant_clinic_ids(user.clinic_id)


async def ensure_clinic_access(user: User, clinic_id: int, db: AsyncSession) -> None:
    """Raise TenantAccessError unless clinic_id is inside the user's tenant scope."""
    allowed = await visible_clinic_ids(user, db)
    if allowed is not None and clinic_id not in allowed:
        logger.warning("Cross-tenant access attempt", user_id=user.id, clinic_id=clinic_id)
        raise TenantAccessError(clinic_id=clinic_id)


def resolve_clinic_id(user: User, requested: int | None) -> int:
    """Clinic a write should land in: the requested one, else the user's own."""
    clinic_id = requested if requested is not None else user.clinic_id
    if clinic_id is None:
        raise ForbiddenError(
            message="clinic_id is required for accounts without a home clinic",
            error_code="CLINIC_REQUIRED",
        )
    return clinic_id


@dataclass(frozen=True)
class ClientInfo:
    """Caller address and agent, recorded on cross-branch reads."""
    ip_address: str | None
    user_agent: str | None


def get_client_info(request: Request) -> ClientInfo:
    return ClientInfo(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


# ---------------------------------------------------------------------------
# Convenient type aliases for endpoint signatures
# ---------------------------------------------------------------------------
CurrentUser = Annotated[User, Depends(get_current_user)]
StaffUser = Annotated[User, Depends(require_staff)]
ClinicianUser = Annotated[User, Depends(require_clinician)]
ClinicAdminUser = Annotated[User, Depends(require_clinic_admin)]
SuperAdminUser = Annotated[User, Depends(require_super_admin)]
RequestClient = Annotated[ClientInfo, Depends(get_client_info)]
