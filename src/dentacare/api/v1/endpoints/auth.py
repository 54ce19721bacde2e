"""Authentication endpoints.

- POST /auth/login: email + password, returns a JWT access token
- GET  /auth/me:    the authenticated user
"""
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends

from ....core.config import Settings, get_settings
from ....core.exceptions import UnauthorizedError
from ....core.rbac import CurrentUser
from ....core.responses import GenericResponse
from ....core.security import create_access_token, verify_password
from ....db.session import DbSession
from ....repositories.user_repository import UserRepository
from ....schemas.auth import LoginRequest, TokenResponse
from ....schemas.user import UserResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/login",
    response_model=GenericResponse[TokenResponse],
    summary="Log in with email and password",
)
async def login(
    payload: LoginRequest,
    db: DbSession,
    settings: Annotated[Settings, Depends(get_settings)],
) -> GenericResponse[TokenResponse]:
    repo = UserRepository(db)
    user = await repo.get_by_email(payload.email)

    # Same error for unknown email, wrong password and inactive account
    if user is None or not user.is_active or not verify_password(payload.password, user.password_hash):
        logger.info("login_failed", email=payload.email)
        raise UnauthorizedError(message="Invalid email or password", error_code="INVALID_CREDENTIALS")

    token, expires_in = create_access_token(
        user_id=user.id,
        role=user.role,
        clinic_id=user.clinic_id,
        settings=settings,
    )
    await repo.record_login(user)
    await db.commit()
    logger.info("login_succeeded", user_id=user.id, role=user.role)

    return GenericResponse(
        message="Login successful",
        data=TokenResponse(
            access_token=token,
            expires_in=expires_in,
            user=UserResponse.model_validate(user),
        ),
    )


@router.get("/me", response_model=GenericResponse[UserResponse], summary="Current user")
async def me(current_user: CurrentUser) -> GenericResponse[UserResponse]:
    return GenericResponse(message="User retrieved", data=UserResponse.model_validate(current_user))
