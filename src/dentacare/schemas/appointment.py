"""Schemas for appointments and treatments."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..models.enums import AppointmentStatus, BookingType


class TreatmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    default_price: float = Field(0.0, ge=0)
    default_duration_minutes: int | None = Field(None, ge=5, le=480)
    clinic_id: int | None = None


class TreatmentUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    default_price: float | None = Field(None, ge=0)
    default_duration_minutes: int | None = Field(None, ge=5, le=480)
    is_active: bool | None = None


class TreatmentResponse(BaseModel):
    id: int
    clinic_id: int
    name: str
    description: str | None = None
    default_price: float
    default_duration_minutes: int | None = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class AppointmentCreate(BaseModel):
    """Book an appointment. Patients may omit patient_id to book for themselves."""

    patient_id: int | None = None
    clinic_id: int | None = None
    dentist_id: int | None = None
    treatment_id: int | None = None
    scheduled_time: datetime = Field(..., description="Start time; naive values are taken as UTC")
    duration_minutes: int | None = Field(None, ge=5, le=480)
    booking_type: BookingType = BookingType.ONLINE
    notes: str | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "patient_id": 42,
                "dentist_id": 5,
                "treatment_id": 3,
                "scheduled_time": "2026-01-05T10:30:00Z",
                "booking_type": "online",
            }
        }
    )


class AppointmentUpdate(BaseModel):
    scheduled_time: datetime | None = None
    duration_minutes: int | None = Field(None, ge=5, le=480)
    dentist_id: int | None = None
    notes: str | None = None


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentCancel(BaseModel):
    reason: str | None = Field(None, max_length=1000)


class AppointmentResponse(BaseModel):
    id: int
    clinic_id: int
    patient_id: int
    dentist_id: int | None = None
    treatment_id: int | None = None
    scheduled_time: datetime
    duration_minutes: int
    status: str
    booking_type: str
    notes: str | None = None
    qr_code: str | None = None
    actual_start_time: datetime | None = None
    actual_end_time: datetime | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class NoShowSweepResult(BaseModel):
    marked_no_show: int
