"""Schemas for patient records."""
from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class PatientBase(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    contact_number: str | None = Field(None, max_length=20)
    email: EmailStr | None = None
    date_of_birth: date | None = None
    address: str | None = None
    emergency_contact: str | None = Field(None, max_length=255)
    medical_history: str | None = None
    allergies: str | None = None


class PatientCreate(PatientBase):
    clinic_id: int | None = Field(None, description="Defaults to the caller's clinic")
    user_id: int | None = Field(None, description="Portal account to link")


class PatientUpdate(BaseModel):
    full_name: str | None = Field(None, min_length=1, max_length=255)
    contact_number: str | None = Field(None, max_length=20)
    email: EmailStr | None = None
    date_of_birth: date | None = None
    address: str | None = None
    emergency_contact: str | None = Field(None, max_length=255)
    medical_history: str | None = None
    allergies: str | None = None


class PatientResponse(PatientBase):
    id: int
    clinic_id: int
    email: str | None = None
    user_id: int | None = None
    is_active: bool
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
