"""
User Schemas for RBAC.

Pydantic models for staff account management requests and responses.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..models.enums import UserRole


def _validate_role(v: str) -> str:
    allowed = [r.value for r in UserRole]
    if v not in allowed:
        raise ValueError(f"Role must be one of: {', '.join(allowed)}")
    return v


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class UserCreate(BaseModel):
    """Schema for creating a new user."""

    email: EmailStr = Field(..., description="Login email", examples=["dr.rao@smiledental.example"])
    full_name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8, max_length=128, description="Initial password")
    role: str = Field(
        default=UserRole.STAFF.value,
        description="User role: super_admin, clinic_admin, dentist, staff, receptionist, patient",
        examples=["dentist", "receptionist"],
    )
    clinic_id: int | None = Field(None, description="Clinic the user works at; defaults to the caller's clinic")
    phone: str | None = Field(None, max_length=20)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        """Validate role is one of the allowed values."""
        return _validate_role(v)


class UserUpdate(BaseModel):
    """Schema for updating a user."""

    full_name: str | None = Field(None, min_length=1, max_length=255)
    phone: str | None = Field(None, max_length=20)
    role: str | None = Field(None, description="Updated role")
    is_active: bool | None = Field(None, description="Updated active status")

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str | None) -> str | None:
        return _validate_role(v) if v is not None else v


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class UserResponse(BaseModel):
    """Schema for user response."""

    id: int
    email: str
    full_name: str
    phone: str | None = None
    role: str
    clinic_id: int | None = None
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
