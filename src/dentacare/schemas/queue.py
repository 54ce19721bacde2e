"""Schemas for the patient queue and walk-ins."""
from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..models.enums import WalkInUrgency
from .appointment import AppointmentResponse
from .patient import PatientResponse


class CheckInRequest(BaseModel):
    appointment_id: int


class WalkInCreate(BaseModel):
    """Register a walk-in; an existing patient is matched by contact number."""

    full_name: str = Field(..., min_length=1, max_length=255)
    contact_number: str = Field(..., min_length=7, max_length=20)
    email: EmailStr | None = None
    clinic_id: int | None = None
    dentist_id: int | None = None
    treatment_id: int | None = None
    urgency: WalkInUrgency = WalkInUrgency.NORMAL
    notes: str | None = None


class EmergencyOverrideRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class ReorderRequest(BaseModel):
    manual_order: int = Field(..., ge=1)


class DurationOverrideRequest(BaseModel):
    minutes: int | None = Field(None, ge=1, le=480, description="Null clears the override")


class QueueEntryResponse(BaseModel):
    id: int
    clinic_id: int
    appointment_id: int
    queue_date: date
    position: int
    priority: str
    status: str
    manual_order: int | None = None
    override_reason: str | None = None
    estimated_wait_minutes: int | None = None
    treatment_duration_override: int | None = None
    created_at: datetime
    called_at: datetime | None = None
    completed_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class WalkInResponse(BaseModel):
    patient: PatientResponse
    appointment: AppointmentResponse
    entry: QueueEntryResponse
    estimated_wait_minutes: int
    is_new_patient: bool

    model_config = ConfigDict(from_attributes=True)


class QueueStats(BaseModel):
    clinic_id: int
    date: str
    waiting: int
    called: int
    completed_today: int
    average_wait_minutes: float
