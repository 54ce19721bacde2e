"""Schemas for clinics, branches and feature toggles."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..models.enums import SubscriptionPackage


class ClinicBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: str | None = None
    phone: str | None = Field(None, max_length=20)
    email: EmailStr | None = None


class ClinicCreate(ClinicBase):
    """Create a head clinic, or a branch when parent_clinic_id is set."""

    parent_clinic_id: int | None = Field(None, description="Head clinic this branch belongs to")
    subscription_package: SubscriptionPackage = SubscriptionPackage.CORE

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Smile Dental - Indiranagar",
                "address": "12 CMH Road, Bengaluru",
                "phone": "+91 80 4000 1234",
                "parent_clinic_id": 1,
            }
        }
    )


class ClinicUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    address: str | None = None
    phone: str | None = Field(None, max_length=20)
    email: EmailStr | None = None
    subscription_package: SubscriptionPackage | None = None


class ClinicResponse(ClinicBase):
    id: int
    email: str | None = None
    parent_clinic_id: int | None = None
    subscription_package: str
    sharing_enabled: bool = False
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class FeatureToggleUpdate(BaseModel):
    is_enabled: bool
    description: str | None = None


class FeatureToggleResponse(BaseModel):
    id: int
    clinic_id: int
    feature_name: str
    is_enabled: bool
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)
