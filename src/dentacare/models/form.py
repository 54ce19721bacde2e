"""
Digital Form Models.

Architecture:
    - DigitalForm: JSON-described form (list of typed fields)
    - FormResponse: a patient's answers plus signature and review state
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base
from .base import TimestampMixin
from .enums import VerificationStatus


class DigitalForm(TimestampMixin, Base):
    """
    Form definition.

    form_fields items look like:
        {"id": "allergies", "label": "Allergies", "type": "textarea",
         "required": true, "options": null}
    """

    __tablename__ = "digital_forms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clinic_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    form_type: Mapped[str] = mapped_column(String(50), nullable=False, default="intake")
    form_fields: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    requires_signature: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    requires_dentist_signature: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Approving a response needs the reviewing dentist's signature"
    )
    requires_verification: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Responses must be approved before treatment can start"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<DigitalForm(id={self.id}, name='{self.name}', v{self.version})>"


class FormResponse(TimestampMixin, Base):
    """Submitted answers to a DigitalForm."""

    __tablename__ = "form_responses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clinic_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    form_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("digital_forms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    form_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    patient_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    appointment_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("appointments.id", ondelete="SET NULL"),
        nullable=True,
    )
    responses: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    signature_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    requires_verification: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    verification_status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=VerificationStatus.PENDING.value,
        index=True,
    )
    verified_by: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    requires_dentist_signature: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    dentist_signature_data: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_form_responses_patient_status", "patient_id", "verification_status"),
    )

    def __repr__(self) -> str:
        return f"<FormResponse(id={self.id}, form_id={self.form_id}, status='{self.verification_status}')>"
