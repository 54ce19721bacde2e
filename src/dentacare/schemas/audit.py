"""Schemas for audit log listing."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class AuditLogResponse(BaseModel):
    id: int
    clinic_id: int | None = None
    user_id: int | None = None
    patient_id: int | None = None
    action_type: str
    action_description: str
    entity_type: str | None = None
    entity_id: str | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
