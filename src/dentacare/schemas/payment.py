"""Schemas for invoices and payment proofs."""
from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class InvoiceCreate(BaseModel):
    patient_id: int
    total_amount: float = Field(..., gt=0)
    appointment_id: int | None = None
    clinic_id: int | None = None
    due_date: date | None = None
    notes: str | None = None


class InvoiceResponse(BaseModel):
    id: int
    clinic_id: int
    patient_id: int
    appointment_id: int | None = None
    invoice_number: str
    total_amount: float
    amount_paid: float
    balance_due: float
    payment_status: str
    due_date: date | None = None
    notes: str | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class PaymentProofResponse(BaseModel):
    id: int
    clinic_id: int
    invoice_id: int
    patient_id: int
    payment_method: str
    amount: float
    proof_file_url: str
    notes: str | None = None
    status: str
    submitted_at: datetime
    verified_at: datetime | None = None
    verified_by: int | None = None
    verification_notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class PaymentVerifyRequest(BaseModel):
    action: Literal["approve", "reject"]
    notes: str | None = Field(None, max_length=2000, description="Required when rejecting")
