"""
Branch Data Sharing Models.

Architecture:
    - BranchSharingGroup: named group owned by a head clinic
    - BranchGroupMember: a clinic of that organization taking part in a group
    - DataSharingAudit: one row per read of another branch's record

Design Decisions:
    - Sharing is read-only; writes stay inside the tenant scope
    - A branch takes part only while clinics.sharing_enabled is set
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
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base
from .base import TimestampMixin, utc_now


class BranchSharingGroup(TimestampMixin, Base):
    """Group of clinics of one organization that may read each other's records."""

    __tablename__ = "branch_sharing_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    main_clinic_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Head clinic owning the group"
    )
    group_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("main_clinic_id", "group_name", name="uq_sharing_group_name"),
    )

    def __repr__(self) -> str:
        return f"<BranchSharingGroup(id={self.id}, name='{self.group_name}', main={self.main_clinic_id})>"


class BranchGroupMember(Base):
    """Membership of a clinic in a sharing group."""

    __tablename__ = "branch_group_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("branch_sharing_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    branch_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("group_id", "branch_id", name="uq_group_member"),
    )

    def __repr__(self) -> str:
        return f"<BranchGroupMember(group_id={self.group_id}, branch_id={self.branch_id})>"


class DataSharingAudit(Base):
    """A user of source_branch_id read a record owned by target_branch_id."""

    __tablename__ = "data_sharing_audit"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    source_branch_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
    )
    target_branch_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
    )
    sharing_group_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("branch_sharing_groups.id", ondelete="SET NULL"),
        nullable=True,
    )
    data_type: Mapped[str] = mapped_column(String(50), nullable=False)
    data_id: Mapped[str] = mapped_column(String(50), nullable=False)
    action_type: Mapped[str] = mapped_column(String(20), nullable=False, default="view")
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_sharing_audit_source", "source_branch_id", "created_at"),
        Index("ix_sharing_audit_target", "target_branch_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<DataSharingAudit(id={self.id}, {self.source_branch_id}->{self.target_branch_id}, "
            f"{self.data_type}:{self.data_id})>"
        )
