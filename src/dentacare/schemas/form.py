"""Schemas for digital forms and their responses."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.enums import FormFieldType


class FormField(BaseModel):
    """One entry of a form's field list."""

    id: str = Field(..., min_length=1, max_length=100)
    label: str = Field(..., min_length=1, max_length=255)
    type: FormFieldType = FormFieldType.TEXT
    required: bool = False
    options: list[Any] | None = Field(None, description="Choices for select, radio and checkbox fields")

    model_config = ConfigDict(use_enum_values=True)


def _unique_field_ids(fields: list[FormField]) -> list[FormField]:
    ids = [field.id for field in fields]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ValueError(f"Duplicate field ids: {', '.join(duplicates)}")
    return fields


class FormCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    category: str | None = Field(None, max_length=100)
    form_type: str = Field("intake", max_length=50)
    form_fields: list[FormField] = Field(default_factory=list)
    requires_signature: bool = False
    requires_dentist_signature: bool = False
    requires_verification: bool = True
    clinic_id: int | None = None

    @field_validator("form_fields")
    @classmethod
    def validate_fields(cls, v: list[FormField]) -> list[FormField]:
        return _unique_field_ids(v)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Medical history",
                "form_type": "intake",
                "requires_signature": True,
                "requires_dentist_signature": True,
                "form_fields": [
                    {"id": "allergies", "label": "Allergies", "type": "textarea", "required": True},
                    {"id": "smoker", "label": "Do you smoke?", "type": "radio", "options": ["yes", "no"]},
                ],
            }
        }
    )


class FormUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    category: str | None = Field(None, max_length=100)
    form_fields: list[FormField] | None = None
    requires_signature: bool | None = None
    requires_dentist_signature: bool | None = None
    requires_verification: bool | None = None
    is_active: bool | None = None

    @field_validator("form_fields")
    @classmethod
    def validate_fields(cls, v: list[FormField] | None) -> list[FormField] | None:
        return _unique_field_ids(v) if v is not None else v


class FormResponseSchema(BaseModel):
    id: int
    clinic_id: int
    name: str
    description: str | None = None
    category: str | None = None
    form_type: str
    form_fields: list[dict[str, Any]]
    requires_signature: bool
    requires_dentist_signature: bool
    requires_verification: bool
    is_active: bool
    version: int
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class FormSubmission(BaseModel):
    patient_id: int | None = Field(None, description="Staff submitting on behalf of a patient; patients omit it")
    appointment_id: int | None = None
    responses: dict[str, Any]
    signature_data: str | None = Field(None, description="Signature image as a data URL")


class VerifyRequest(BaseModel):
    """Review decision for a form response or document."""

    action: Literal["approve", "reject", "request_correction"]
    reason: str | None = Field(None, max_length=2000)
    dentist_signature: str | None = None


class SubmittedFormResponse(BaseModel):
    id: int
    clinic_id: int
    form_id: int
    form_version: int
    patient_id: int
    appointment_id: int | None = None
    responses: dict[str, Any]
    signed_at: datetime | None = None
    requires_verification: bool
    verification_status: str
    verified_by: int | None = None
    verified_at: datetime | None = None
    rejection_reason: str | None = None
    requires_dentist_signature: bool
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
