"""
Digital Form Service.

Business logic for JSON-described patient forms:
- Validating submitted answers against the form's field list
- Submission with optional e-signature
- Staff verification workflow (approve / reject / request correction)
"""
from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    BadRequestError,
    FormValidationError,
    ResourceNotFoundError,
    VerificationStateError,
)
from ..core.rbac import ensure_clinic_access
from ..models.base import utc_now
from ..models.enums import FormFieldType, VerificationStatus
from ..models.form import DigitalForm, FormResponse
from ..models.user import User
from ..repositories.audit_repository import AuditRepository
from ..repositories.form_repository import FormRepository
from ..repositories.patient_repository import PatientRepository
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]{7,20}$")

VERIFY_ACTIONS = {
    "approve": VerificationStatus.APPROVED,
    "reject": VerificationStatus.REJECTED,
    "request_correction": VerificationStatus.NEEDS_CORRECTION,
}


# =============================================================================
# Validation
# =============================================================================

def _is_empty(value: Any) -> bool:
    return value is None or value is False or (isinstance(value, str | list | dict) and len(value) == 0)


def _option_values(options: list[Any] | None) -> list[str]:
    """Options may be plain strings or {"value": ..., "label": ...} objects."""
    values = []
    for option in options or []:
        if isinstance(option, dict):
            values.append(str(option.get("value", option.get("label", ""))))
        else:
            values.append(str(option))
    return values


def _check_field(field: dict[str, Any], value: Any) -> str | None:
    """Return an error message for a non-empty value, or None when valid."""
    field_type = field.get("type", FormFieldType.TEXT.value)

    if field_type == FormFieldType.EMAIL.value:
        try:
            validate_email(str(value), check_deliverability=False)
        except EmailNotValidError:
            return "Invalid email address"

    elif field_type == FormFieldType.PHONE.value:
        digits = re.sub(r"\D", "", str(value))
        if not PHONE_PATTERN.match(str(value)) or not 7 <= len(digits) <= 15:
            return "Invalid phone number"

    elif field_type in (FormFieldType.SELECT.value, FormFieldType.RADIO.value):
        allowed = _option_values(field.get("options"))
        if str(value) not in allowed:
            return f"Value must be one of: {', '.join(allowed)}"

    elif field_type == FormFieldType.CHECKBOX.value and field.get("options"):
        allowed = _option_values(field.get("options"))
        chosen = value if isinstance(value, list) else [value]
        invalid = [str(v) for v in chosen if str(v) not in allowed]
        if invalid:
            return f"Invalid choices: {', '.join(invalid)}"

    elif field_type == FormFieldType.DATE.value:
        try:
            date.fromisoformat(str(value))
        except ValueError:
            return "Date must be in YYYY-MM-DD format"

    elif field_type == FormFieldType.NUMBER.value:
        if isinstance(value, bool):
            return "Must be a number"
        try:
            float(value)
        except (TypeError, ValueError):
            return "Must be a number"

    return None


def validate_responses(
    form: DigitalForm,
    responses: dict[str, Any],
    signature_data: str | None = None,
) -> list[dict[str, Any]]:
    """Collect every problem with a submission; an empty list means valid."""
    errors: list[dict[str, Any]] = []

    for field in form.form_fields or []:
        field_id = field.get("id")
        if not field_id:
            continue
        label = field.get("label", field_id)
        value = responses.get(field_id)

        if _is_empty(value):
            if field.get("required"):
                errors.append({"field": field_id, "label": label, "message": f"{label} is required"})
            continue

        message = _check_field(field, value)
        if message:
            errors.append({"field": field_id, "label": label, "message": message})

    if form.requires_signature and not (signature_data and signature_data.strip()):
        errors.append({"field": "signature", "label": "Signature", "message": "Signature is required"})

    return errors


# =============================================================================
# Service
# =============================================================================

class FormService:
    """Form definitions, submissions and verification."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = FormRepository(session)
        self.patients = PatientRepository(session)
        self.audit = AuditRepository(session)
        self.notifications = NotificationService(session)

    async def get_form(self, user: User, form_id: int) -> DigitalForm:
        form = await self.repo.get_form(form_id)
        if form is None:
            raise ResourceNotFoundError("form", form_id)
        await ensure_clinic_access(user, form.clinic_id, self.session)
        return form

    async def get_response(self, user: User, response_id: int) -> FormResponse:
        response = await self.repo.get_response(response_id)
        if response is None:
            raise ResourceNotFoundError("form_response", response_id)
        if user.is_patient:
            patient = await self.patients.get_by_user_id(user.id)
            if patient is None or patient.id != response.patient_id:
                raise ResourceNotFoundError("form_response", response_id)
            return response
        await ensure_clinic_access(user, response.clinic_id, self.session)
        return response

    async def update_form(self, form: DigitalForm, **fields: Any) -> DigitalForm:
        """Update a form definition; a changed field list bumps the version."""
        new_fields = fields.pop("form_fields", None)
        if new_fields is not None and new_fields != form.form_fields:
            form.form_fields = new_fields
            form.version += 1
        return await self.repo.update_form(form, **fields)

    async def submit(
        self,
        form: DigitalForm,
        patient_id: int,
        responses: dict[str, Any],
        signature_data: str | None = None,
        appointment_id: int | None = None,
        submitted_by: User | None = None,
    ) -> FormResponse:
        """
        Validate and store a patient's answers.

        Raises:
            BadRequestError: Inactive form or patient of another clinic
            FormValidationError: Field-level problems, all collected
        """
        if not form.is_active:
            raise BadRequestError(message="Form is no longer accepting responses", error_code="FORM_INACTIVE")

        patient = await self.patients.get_by_id(patient_id)
        if patient is None:
            raise ResourceNotFoundError("patient", patient_id)
        if patient.clinic_id != form.clinic_id:
            raise BadRequestError(
                message="Patient is registered with a different clinic",
                error_code="PATIENT_CLINIC_MISMATCH",
            )

        errors = validate_responses(form, responses, signature_data)
        if errors:
            logger.info(f"Form {form.id} submission rejected with {len(errors)} error(s)")
            raise FormValidationError(form.id, errors)

        signed = bool(signature_data and signature_data.strip())
        response = await self.repo.create_response(
            clinic_id=form.clinic_id,
            form_id=form.id,
            form_version=form.version,
            patient_id=patient_id,
            appointment_id=appointment_id,
            responses=responses,
            signature_data=signature_data if signed else None,
            signed_at=utc_now() if signed else None,
            requires_verification=form.requires_verification,
            verification_status=VerificationStatus.PENDING.value,
            requires_dentist_signature=form.requires_dentist_signature,
        )
        await self.audit.record(
            action_type="form_submitted",
            action_description=f"Form '{form.name}' submitted",
            clinic_id=form.clinic_id,
            user_id=submitted_by.id if submitted_by else None,
            patient_id=patient_id,
            entity_type="form_response",
            entity_id=response.id,
        )
        return response

    async def verify(
        self,
        response: FormResponse,
        action: str,
        reviewer: User,
        reason: str | None = None,
        dentist_signature: str | None = None,
    ) -> FormResponse:
        """
        Apply a review decision to a pending response.

        Raises:
            BadRequestError: Unknown action, missing reason or dentist signature
            VerificationStateError: Response already approved or rejected
        """
        new_status = VERIFY_ACTIONS.get(action)
        if new_status is None:
            raise BadRequestError(
                message=f"Unknown verification action '{action}'",
                error_code="INVALID_VERIFICATION_ACTION",
                details={"allowed_actions": sorted(VERIFY_ACTIONS)},
            )
        if response.verification_status not in {s.value for s in VerificationStatus.reviewable()}:
            raise VerificationStateError("form_response", response.id, response.verification_status)
        if new_status is not VerificationStatus.APPROVED and not (reason and reason.strip()):
            raise BadRequestError(message="A reason is required for this action", error_code="REASON_REQUIRED")
        if (
            new_status is VerificationStatus.APPROVED
            and response.requires_dentist_signature
            and not (dentist_signature and dentist_signature.strip())
        ):
            raise BadRequestError(message="Dentist signature is required to approve", error_code="DENTIST_SIGNATURE_REQUIRED")

        old_status = response.verification_status
        response.verification_status = new_status.value
        response.verified_by = reviewer.id
        response.verified_at = utc_now()
        response.rejection_reason = None if new_status is VerificationStatus.APPROVED else reason
        if dentist_signature:
            response.dentist_signature_data = dentist_signature
        response = await self.repo.save_response(response)

        await self.audit.record(
            action_type="form_verified",
            action_description=f"Form response {response.id} {action.replace('_', ' ')}",
            clinic_id=response.clinic_id,
            user_id=reviewer.id,
            patient_id=response.patient_id,
            entity_type="form_response",
            entity_id=response.id,
            old_values={"verification_status": old_status},
            new_values={"verification_status": response.verification_status, "reason": reason},
        )
        messages = {
            VerificationStatus.APPROVED: "Your form has been approved.",
            VerificationStatus.REJECTED: f"Your form was rejected: {reason}",
            VerificationStatus.NEEDS_CORRECTION: f"Your form needs corrections: {reason}",
        }
        await self.notifications.notify_patient(
            response.patient_id,
            title="Form review update",
            message=messages[new_status],
            notification_type="form_verification",
            related_entity_type="form_response",
            related_entity_id=response.id,
        )
        logger.info(f"Form response {response.id}: {old_status} -> {response.verification_status}")
        return response
