"""Schemas for patient documents, their audit trail and notifications."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class DocumentResponse(BaseModel):
    id: int
    clinic_id: int
    patient_id: int
    document_type: str
    title: str
    file_url: str
    mime_type: str | None = None
    file_size: int | None = None
    content_hash: str | None = None
    verification_status: str
    verified_by: int | None = None
    verified_at: datetime | None = None
    rejection_reason: str | None = None
    requires_dentist_signature: bool
    uploaded_by: int | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class DocumentAuditEntry(BaseModel):
    id: int
    document_id: int
    action: str
    performed_by: int | None = None
    notes: str | None = None
    old_status: str | None = None
    new_status: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationResponse(BaseModel):
    id: int
    clinic_id: int
    title: str
    message: str
    notification_type: str
    related_entity_type: str | None = None
    related_entity_id: int | None = None
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
