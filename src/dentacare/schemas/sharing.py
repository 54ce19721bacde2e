"""Schemas for branch sharing groups and the sharing audit."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SharingGroupCreate(BaseModel):
    group_name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    main_clinic_id: int | None = Field(None, description="Head clinic; defaults to the caller's clinic")


class SharingGroupUpdate(BaseModel):
    group_name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    is_active: bool | None = None


class SharingGroupResponse(BaseModel):
    id: int
    main_clinic_id: int
    group_name: str
    description: str | None = None
    is_active: bool
    created_by: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class GroupMemberCreate(BaseModel):
    branch_id: int


class GroupMemberResponse(BaseModel):
    id: int
    group_id: int
    branch_id: int
    joined_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BranchSharingUpdate(BaseModel):
    sharing_enabled: bool


class BranchAccessResponse(BaseModel):
    clinic_id: int
    can_access: bool


class SharingAuditResponse(BaseModel):
    id: int
    user_id: int | None = None
    source_branch_id: int
    target_branch_id: int
    sharing_group_id: int | None = None
    data_type: str
    data_id: str
    action_type: str
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
