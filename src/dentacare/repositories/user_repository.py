"""User Repository - Data access layer for clinic accounts."""
from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utc_now
from ..models.enums import UserRole
from ..models.user import User

log = structlog.get_logger(__name__)


class UserRepository:
    """Repository for User CRUD operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize with database session."""
        self.session = session

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def get_by_id(self, user_id: int) -> User | None:
        """Get user by ID."""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email address (case-insensitive)."""
        result = await self.session.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def list_all(
        self,
        clinic_ids: Sequence[int] | None = None,
        role: str | list[str] | None = None,
        is_active: bool | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[Sequence[User], int]:
        """List users with optional clinic, role and status filters."""
        filters = []
        if clinic_ids is not None:
            filters.append(User.clinic_id.in_(clinic_ids))
        if role:
            filters.append(User.role.in_(role) if isinstance(role, list) else User.role == role)
        if is_active is not None:
            filters.append(User.is_active.is_(is_active))

        total = (await self.session.execute(select(func.count(User.id)).where(*filters))).scalar_one()
        result = await self.session.execute(
            select(User).where(*filters).order_by(User.id).offset(skip).limit(limit)
        )
        return result.scalars().all(), total

    async def list_dentists(self, clinic_id: int, active_only: bool = True) -> Sequence[User]:
        """Dentists working at a clinic."""
        query = select(User).where(User.clinic_id == clinic_id, User.role == UserRole.DENTIST.value)
        if active_only:
            query = query.where(User.is_active.is_(True))
        result = await self.session.execute(query.order_by(User.full_name))
        return result.scalars().all()

    # =========================================================================
    # CREATE / UPDATE OPERATIONS
    # =========================================================================

    async def create(
        self,
        email: str,
        full_name: str,
        password_hash: str | None,
        role: str = UserRole.STAFF.value,
        clinic_id: int | None = None,
        phone: str | None = None,
        is_active: bool = True,
    ) -> User:
        """Create a new user."""
        user = User(
            email=email.strip().lower(),
            full_name=full_name,
            password_hash=password_hash,
            role=role,
            clinic_id=clinic_id,
            phone=phone,
            is_active=is_active,
        )
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)

        log.info("user_created", user_id=user.id, role=role, clinic_id=clinic_id)
        return user

    async def update(self, user: User, **fields: object) -> User:
        """Apply non-None field updates."""
        changed = []
        for key, value in fields.items():
            if value is not None and hasattr(user, key):
                setattr(user, key, value)
                changed.append(key)
        await self.session.flush()
        await self.session.refresh(user)
        log.info("user_updated", user_id=user.id, fields=changed)
        return user

    async def deactivate(self, user: User) -> User:
        user.is_active = False
        await self.session.flush()
        log.info("user_deactivated", user_id=user.id)
        return user

    async def record_login(self, user: User) -> None:
        user.last_login_at = utc_now()
        await self.session.flush()
