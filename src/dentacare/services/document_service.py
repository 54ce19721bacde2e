"""
Patient Document Service.

Upload and review workflow for patient documents. Every state change is
written to the document's audit trail and the uploader is notified.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.exceptions import (
    BadRequestError,
    InternalServerError,
    ResourceNotFoundError,
    VerificationStateError,
)
from ..core.rbac import ensure_clinic_access
from ..models.base import utc_now
from ..models.document import PatientDocument
from ..models.enums import VerificationStatus
from ..models.user import User
from ..repositories.document_repository import DocumentRepository
from ..repositories.patient_repository import PatientRepository
from .blob_storage_service import LocalBlobStorageService, validate_upload
from .form_service import VERIFY_ACTIONS
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


class DocumentService:
    """Patient document uploads and verification."""

    def __init__(self, session: AsyncSession, storage: LocalBlobStorageService) -> None:
        self.session = session
        self.settings = get_settings()
        self.storage = storage
        self.repo = DocumentRepository(session)
        self.patients = PatientRepository(session)
        self.notifications = NotificationService(session)

    async def get_visible(self, user: User, document_id: int) -> PatientDocument:
        document = await self.repo.get_by_id(document_id)
        if document is None:
            raise ResourceNotFoundError("document", document_id)
        if user.is_patient:
            patient = await self.patients.get_by_user_id(user.id)
            if patient is None or patient.id != document.patient_id:
                raise ResourceNotFoundError("document", document_id)
            return document
        await ensure_clinic_access(user, document.clinic_id, self.session)
        return document

    async def upload(
        self,
        patient_id: int,
        file_name: str | None,
        content: bytes,
        document_type: str,
        title: str | None,
        uploaded_by: User,
        requires_dentist_signature: bool = False,
    ) -> PatientDocument:
        """
        Validate, store and register a document.

        Raises:
            FileValidationError: Disallowed extension or size
            ResourceNotFoundError: Unknown patient
        """
        validate_upload(
            file_name,
            len(content),
            self.settings.allowed_extensions_list,
            self.settings.max_file_size_bytes,
        )
        patient = await self.patients.get_by_id(patient_id)
        if patient is None:
            raise ResourceNotFoundError("patient", patient_id)

        result = await self.storage.upload_from_bytes(
            content=content,
            file_name=file_name,
            clinic_id=patient.clinic_id,
            category="documents",
        )
        if not result.success:
            raise InternalServerError(message="Failed to store document", error_code="STORAGE_ERROR")

        try:
            document = await self.repo.create(
                clinic_id=patient.clinic_id,
                patient_id=patient.id,
                document_type=document_type,
                title=title or file_name,
                file_path=result.file_path,
                file_url=result.file_uri,
                mime_type=result.mime_type,
                file_size=result.file_size,
                content_hash=result.content_hash,
                verification_status=VerificationStatus.PENDING.value,
                requires_dentist_signature=requires_dentist_signature,
                uploaded_by=uploaded_by.id,
            )
            await self.repo.add_audit_entry(
                document_id=document.id,
                action="uploaded",
                performed_by=uploaded_by.id,
                new_status=document.verification_status,
            )
        except SQLAlchemyError:
            await self.storage.delete_blob(result.file_path)
            logger.warning(f"Removed orphaned document file {result.file_path}")
            raise
        return document

    async def read_content(self, document: PatientDocument) -> bytes:
        return await self.storage.get_blob(document.file_path)

    async def verify(
        self,
        document: PatientDocument,
        action: str,
        reviewer: User,
        reason: str | None = None,
        dentist_signature: str | None = None,
    ) -> PatientDocument:
        """
        Approve, reject or send back a document.

        Raises:
            BadRequestError: Unknown action, missing reason or dentist signature
            VerificationStateError: Document is no longer reviewable
        """
        new_status = VERIFY_ACTIONS.get(action)
        if new_status is None:
            raise BadRequestError(
                message=f"Unknown verification action '{action}'",
                error_code="INVALID_VERIFICATION_ACTION",
                details={"allowed_actions": sorted(VERIFY_ACTIONS)},
            )
        if document.verification_status not in {s.value for s in VerificationStatus.reviewable()}:
            raise VerificationStateError("document", document.id, document.verification_status)
        if new_status is not VerificationStatus.APPROVED and not (reason and reason.strip()):
            raise BadRequestError(message="A reason is required for this action", error_code="REASON_REQUIRED")
        if (
            new_status is VerificationStatus.APPROVED
            and document.requires_dentist_signature
            and not (dentist_signature and dentist_signature.strip())
        ):
            raise BadRequestError(message="Dentist signature is required to approve", error_code="DENTIST_SIGNATURE_REQUIRED")

        old_status = document.verification_status
        document.verification_status = new_status.value
        document.verified_by = reviewer.id
        document.verified_at = utc_now()
        document.rejection_reason = None if new_status is VerificationStatus.APPROVED else reason
        if dentist_signature:
            document.dentist_signature_data = dentist_signature
        document = await self.repo.save(document)

        await self.repo.add_audit_entry(
            document_id=document.id,
            action=action,
            performed_by=reviewer.id,
            old_status=old_status,
            new_status=document.verification_status,
            notes=reason,
        )
        await self.notifications.notify_user(
            clinic_id=document.clinic_id,
            user_id=document.uploaded_by,
            title=f"Document '{document.title}' reviewed",
            message=(
                "The document was approved."
                if new_status is VerificationStatus.APPROVED
                else f"Status changed to {document.verification_status}: {reason}"
            ),
            notification_type="document_verification",
            related_entity_type="document",
            related_entity_id=document.id,
        )
        logger.info(f"Document {document.id}: {old_status} -> {document.verification_status}")
        return document
