"""
Clinic Domain Models.

SQLAlchemy 2.0 ORM models for tenants.

Architecture:
    - Clinic: tenant root; a clinic with parent_clinic_id set is a branch
    - ClinicFeatureToggle: per-clinic on/off switch for optional modules
    - sharing_enabled: opt-in to reading records of sharing-group peers (see models/sharing.py)

Design Decisions:
    - Branches nest one level only (a branch cannot own branches)
    - Soft delete via is_active
    - A feature with no toggle row is enabled
"""
from __future__ import annotations

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base
from .base import TimestampMixin
from .enums import SubscriptionPackage


class Clinic(TimestampMixin, Base):
    """
    Clinic entity - tenant boundary for every other table.

    Attributes:
        Basic: name, address, phone, email
        Hierarchy: parent_clinic_id (None for a head clinic)
        Billing: subscription_package (core, growth, premium)
        Sharing: sharing_enabled
    """

    __tablename__ = "clinics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Clinic or branch display name"
    )
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    parent_clinic_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="Head clinic of this branch; NULL for a head clinic"
    )
    subscription_package: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SubscriptionPackage.CORE.value,
        comment="Subscription tier: core, growth, premium"
    )
    sharing_enabled: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Clinic reads and exposes records through its sharing groups"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
        comment="Soft delete flag"
    )

    __table_args__ = (
        Index("ix_clinics_parent_active", "parent_clinic_id", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<Clinic(id={self.id}, name='{self.name}', parent={self.parent_clinic_id})>"

    @property
    def is_branch(self) -> bool:
        return self.parent_clinic_id is not None

    @property
    def organization_id(self) -> int:
        """Head clinic id of the organization this clinic belongs to."""
        return self.parent_clinic_id or self.id


class ClinicFeatureToggle(TimestampMixin, Base):
    """Per-clinic feature switch (e.g. ai_assistant, qr_checkin)."""

    __tablename__ = "clinic_feature_toggles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clinic_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    feature_name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("clinic_id", "feature_name", name="uq_clinic_feature"),
    )

    def __repr__(self) -> str:
        return f"<ClinicFeatureToggle(clinic_id={self.clinic_id}, {self.feature_name}={self.is_enabled})>"
