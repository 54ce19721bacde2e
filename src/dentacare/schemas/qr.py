"""Schemas for QR check-in codes."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class QRCodeResponse(BaseModel):
    code: str = Field(..., description="Signed token to render as a QR image")
    type: str
    expires_at: datetime
    payload: dict[str, Any]


class QRScanRequest(BaseModel):
    code: str = Field(..., min_length=1)
    appointment_id: int | None = Field(None, description="Required for daily clinic codes")


class QRScanResponse(BaseModel):
    type: str
    clinic_id: int | None = None
    appointment_id: int | None = None
    queue_entry_id: int | None = None
    position: int | None = None
    estimated_wait_minutes: int | None = None
    user_id: int | None = None
    timed_in_at: datetime | None = None
