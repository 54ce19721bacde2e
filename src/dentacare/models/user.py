"""
User Model for RBAC (Role-Based Access Control).

SQLAlchemy 2.0 ORM model for clinic accounts.

Design:
    - One table for every account: operators, clinic staff, dentists, patients
    - Scoped to a clinic (super admins have no clinic)
    - Soft delete: is_active flag for deactivation without data loss
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base
from .base import TimestampMixin
from .enums import UserRole


class User(TimestampMixin, Base):
    """
    User entity for authentication and authorization.

    Attributes:
        id: Primary key (JWT subject)
        email: Unique login identifier
        password_hash: PBKDF2 hash, see core.security
        role: One of UserRole
        clinic_id: Tenant the account belongs to (NULL for super admins)
        is_active: Inactive users cannot authenticate
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="Login email address"
    )
    password_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="pbkdf2_sha256$iterations$salt$hash"
    )
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.STAFF.value,
        index=True,
        comment="super_admin, clinic_admin, dentist, staff, receptionist, patient"
    )
    clinic_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
        comment="Active status - inactive users cannot authenticate"
    )
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last successful authentication timestamp"
    )

    __table_args__ = (
        Index("ix_users_clinic_role", "clinic_id", "role"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}', active={self.is_active})>"

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN.value

    @property
    def is_staff(self) -> bool:
        """Any clinic-operating role."""
        return self.role in {r.value for r in UserRole.staff_roles()}

    @property
    def is_dentist(self) -> bool:
        return self.role == UserRole.DENTIST.value

    @property
    def is_patient(self) -> bool:
        return self.role == UserRole.PATIENT.value
