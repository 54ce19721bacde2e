"""Tests for role checks and tenant scoping."""

from unittest.mock import MagicMock

import pytest

from src.dentacare.core.config import Settings
from src.dentacare.core.exceptions import ForbiddenError, TenantAccessError, UnauthorizedError
from src.dentacare.core.rbac import (
    ensure_clinic_access,
    get_current_user,
    require_clinic_admin,
    require_clinician,
    require_staff,
    resolve_clinic_id,
    visible_clinic_ids,
)
from src.dentacare.core.security import create_access_token
from src.dentacare.models.enums import UserRole
from src.dentacare.models.user import User


@pytest.fixture
def mock_settings():
    return Settings(SECRET_KEY="test-secret-key-that-is-at-least-32-characters")


def _request(token: str | None) -> MagicMock:
    request = MagicMock()
    request.headers = {"Authorization": f"Bearer {token}"} if token else {}
    return request


@pytest.mark.asyncio
async def test_get_current_user_resolves_token(db_session, staff, mock_settings):
    token, _ = create_access_token(user_id=staff.id, role=staff.role, clinic_id=staff.clinic_id, settings=mock_settings)
    user = await get_current_user(_request(token), mock_settings, db_session)
    assert user.id == staff.id


@pytest.mark.asyncio
async def test_get_current_user_requires_header(db_session, mock_settings):
    with pytest.raises(UnauthorizedError):
        await get_current_user(_request(None), mock_settings, db_session)


@pytest.mark.asyncio
async def test_get_current_user_unknown_user(db_session, mock_settings):
    token, _ = create_access_token(user_id=999, role="staff", clinic_id=None, settings=mock_settings)
    with pytest.raises(UnauthorizedError) as exc_info:
        await get_current_user(_request(token), mock_settings, db_session)
    assert exc_info.value.error_code == "USER_NOT_FOUND"


@pytest.mark.asyncio
async def test_get_current_user_inactive(db_session, staff, mock_settings):
    staff.is_active = False
    await db_session.commit()
    token, _ = create_access_token(user_id=staff.id, role=staff.role, clinic_id=staff.clinic_id, settings=mock_settings)
    with pytest.raises(ForbiddenError) as exc_info:
        await get_current_user(_request(token), mock_settings, db_session)
    assert exc_info.value.error_code == "USER_INACTIVE"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "dependency,role,allowed",
    [
        (require_staff, UserRole.RECEPTIONIST, True),
        (require_staff, UserRole.PATIENT, False),
        (require_clinician, UserRole.DENTIST, True),
        (require_clinician, UserRole.STAFF, False),
        (require_clinic_admin, UserRole.CLINIC_ADMIN, True),
        (require_clinic_admin, UserRole.DENTIST, False),
    ],
)
async def test_role_dependencies(dependency, role, allowed):
    user = User(id=1, email="u@smiledental.com", full_name="U", role=role.value, is_active=True)
    if allowed:
        assert await dependency(user) is user
    else:
        with pytest.raises(ForbiddenError) as exc_info:
            await dependency(user)
        assert exc_info.value.error_code == "INSUFFICIENT_PERMISSIONS"


@pytest.mark.asyncio
async def test_head_clinic_user_sees_branches(db_session, clinic, branch, other_clinic, staff, super_admin):
    assert await visible_clinic_ids(super_admin, db_session) is None
    assert await visible_clinic_ids(staff, db_session) == sorted([clinic.id, branch.id])


@pytest.mark.asyncio
async def test_branch_user_sees_only_its_branch(db_session, clinic, branch):
    branch_user = User(id=50, email="b@smiledental.com", full_name="B", role="staff", clinic_id=branch.id)
    assert await visible_clinic_ids(branch_user, db_session) == [branch.id]
    with pytest.raises(TenantAccessError):
        await ensure_clinic_access(branch_user, clinic.id, db_session)


@pytest.mark.asyncio
async def test_ensure_clinic_access(db_session, branch, other_clinic, staff):
    await ensure_clinic_access(staff, branch.id, db_session)
    with pytest.raises(TenantAccessError):
        await ensure_clinic_access(staff, other_clinic.id, db_session)


def test_resolve_clinic_id():
    staff_user = User(id=1, email="s@smiledental.com", full_name="S", role="staff", clinic_id=3)
    platform = User(id=2, email="p@smiledental.com", full_name="P", role="super_admin", clinic_id=None)

    assert resolve_clinic_id(staff_user, None) == 3
    assert resolve_clinic_id(staff_user, 8) == 8
    assert resolve_clinic_id(platform, 5) == 5
    with pytest.raises(ForbiddenError) as exc_info:
        resolve_clinic_id(platform, None)
    assert exc_info.value.error_code == "CLINIC_REQUIRED"
