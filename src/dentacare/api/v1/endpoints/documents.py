"""
Patient Document API Endpoints.

Multipart upload of patient documents, listing, download, clinician
verification and the per-document audit trail.
"""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, File, Form, Query, UploadFile
from fastapi.responses import Response

from ....core.exceptions import BadRequestError, ResourceNotFoundError
from ....core.rbac import ClinicianUser, CurrentUser, StaffUser, ensure_clinic_access, visible_clinic_ids
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....models.enums import DocumentType, VerificationStatus
from ....repositories.document_repository import DocumentRepository
from ....repositories.patient_repository import PatientRepository
from ....schemas.document import DocumentAuditEntry, DocumentResponse
from ....schemas.form import VerifyRequest
from ....services import get_blob_storage_service
from ....services.blob_storage_service import BlobNotFoundError
from ....services.document_service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


def _service(db: DbSession) -> DocumentService:
    return DocumentService(db, get_blob_storage_service())


@router.post("", response_model=GenericResponse[DocumentResponse], status_code=201, summary="Upload document")
async def upload_document(
    user: CurrentUser,
    db: DbSession,
    file: Annotated[UploadFile, File(description="Document file (PDF, PNG, JPG)")],
    document_type: Annotated[DocumentType, Form()] = DocumentType.OTHER,
    title: Annotated[str | None, Form()] = None,
    patient_id: Annotated[int | None, Form(description="Required for staff uploads")] = None,
    requires_dentist_signature: Annotated[bool, Form()] = False,
) -> GenericResponse[DocumentResponse]:
    patients = PatientRepository(db)
    if user.is_patient:
        patient = await patients.get_by_user_id(user.id)
        if patient is None:
            raise ResourceNotFoundError("patient", f"user:{user.id}")
    else:
        if patient_id is None:
            raise BadRequestError(message="patient_id is required", error_code="PATIENT_REQUIRED")
        patient = await patients.get_by_id(patient_id)
        if patient is None:
            raise ResourceNotFoundError("patient", patient_id)
        await ensure_clinic_access(user, patient.clinic_id, db)

    content = await file.read()
    document = await _service(db).upload(
        patient_id=patient.id,
        file_name=file.filename,
        content=content,
        document_type=document_type.value,
        title=title,
        uploaded_by=user,
        requires_dentist_signature=requires_dentist_signature,
    )
    await db.commit()
    return GenericResponse(message="Document uploaded", data=DocumentResponse.model_validate(document))


@router.get("", response_model=PaginatedResponse[DocumentResponse], summary="List documents")
async def list_documents(
    user: CurrentUser,
    db: DbSession,
    patient_id: int | None = Query(None),
    verification_status: VerificationStatus | None = Query(None),
    document_type: DocumentType | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
) -> PaginatedResponse[DocumentResponse]:
    clinic_ids = await visible_clinic_ids(user, db)
    if user.is_patient:
        patient = await PatientRepository(db).get_by_user_id(user.id)
        if patient is None:
            raise ResourceNotFoundError("patient", f"user:{user.id}")
        patient_id, clinic_ids = patient.id, None

    documents, total = await DocumentRepository(db).list_all(
        clinic_ids=clinic_ids,
        patient_id=patient_id,
        verification_status=verification_status.value if verification_status else None,
        document_type=document_type.value if document_type else None,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return PaginatedResponse(
        message="Documents retrieved",
        data=[DocumentResponse.model_validate(d) for d in documents],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


@router.get("/{document_id}", response_model=GenericResponse[DocumentResponse], summary="Get document")
async def get_document(document_id: int, user: CurrentUser, db: DbSession) -> GenericResponse[DocumentResponse]:
    document = await _service(db).get_visible(user, document_id)
    return GenericResponse(message="Document retrieved", data=DocumentResponse.model_validate(document))


@router.get("/{document_id}/content", summary="Download document", response_class=Response)
async def download_document(document_id: int, user: CurrentUser, db: DbSession) -> Response:
    service = _service(db)
    document = await service.get_visible(user, document_id)
    try:
        content = await service.read_content(document)
    except BlobNotFoundError:
        logger.warning(f"Stored file missing for document {document.id}: {document.file_path}")
        raise ResourceNotFoundError("document_content", document.id)
    await service.repo.add_audit_entry(document_id=document.id, action="downloaded", performed_by=user.id)
    await db.commit()
    return Response(
        content=content,
        media_type=document.mime_type or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{document.title}"'},
    )


@router.post("/{document_id}/verify", response_model=GenericResponse[DocumentResponse], summary="Review document")
async def verify_document(
    document_id: int,
    payload: VerifyRequest,
    reviewer: ClinicianUser,
    db: DbSession,
) -> GenericResponse[DocumentResponse]:
    service = _service(db)
    document = await service.get_visible(reviewer, document_id)
    document = await service.verify(
        document,
        payload.action,
        reviewer,
        reason=payload.reason,
        dentist_signature=payload.dentist_signature,
    )
    await db.commit()
    return GenericResponse(message="Document reviewed", data=DocumentResponse.model_validate(document))


@router.get("/{document_id}/audit", response_model=GenericResponse[list[DocumentAuditEntry]], summary="Document audit trail")
async def document_audit_trail(document_id: int, user: StaffUser, db: DbSession) -> GenericResponse[list[DocumentAuditEntry]]:
    service = _service(db)
    document = await service.get_visible(user, document_id)
    entries = await service.repo.list_audit_trail(document.id)
    return GenericResponse(
        message="Audit trail retrieved",
        data=[DocumentAuditEntry.model_validate(e) for e in entries],
    )
