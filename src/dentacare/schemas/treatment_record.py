"""Schemas for treatment records."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class TreatmentRecordCreate(BaseModel):
    """Open a record. Treatment and dentist default to the appointment's when one is given."""

    patient_id: int
    treatment_id: int | None = None
    appointment_id: int | None = None
    dentist_id: int | None = None
    notes: str | None = None
    price_charged: float | None = Field(None, ge=0)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"patient_id": 42, "appointment_id": 310, "notes": "Upper left molar, composite filling"}
        }
    )


class TreatmentRecordUpdate(BaseModel):
    notes: str | None = None
    complications: str | None = None
    follow_up_required: bool | None = None
    follow_up_notes: str | None = None
    price_charged: float | None = Field(None, ge=0)


class TreatmentRecordComplete(TreatmentRecordUpdate):
    pass


class TreatmentRecordCancel(BaseModel):
    reason: str = Field(..., min_length=1)


class TreatmentRecordResponse(BaseModel):
    id: int
    clinic_id: int
    patient_id: int
    dentist_id: int
    treatment_id: int
    appointment_id: int | None = None
    start_time: datetime
    end_time: datetime | None = None
    actual_duration_minutes: int | None = None
    status: str
    notes: str | None = None
    complications: str | None = None
    follow_up_required: bool
    follow_up_notes: str | None = None
    price_charged: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
