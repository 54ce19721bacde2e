"""Schemas for the AI assistant endpoint."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..models.enums import AIRequestType


class AssistRequest(BaseModel):
    type: AIRequestType = Field(..., description="What the assistant should produce")
    payload: dict[str, Any] = Field(default_factory=dict, description="Request data, e.g. findings or form fields")
    context: dict[str, Any] = Field(default_factory=dict, description="Extra clinic context")
    clinic_id: int | None = None
    patient_id: int | None = None
    document_id: int | None = Field(
        None, description="Stored document to attach (insurance_extract, document_analyze)"
    )
