"""
AI Assistant Endpoint.

Drafting aids for staff: form autofill, treatment notes, invoice lines,
insurance card extraction and more. Results are suggestions that a
person must review before saving anything.
"""
from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter

from ....core.rbac import StaffUser, ensure_clinic_access, resolve_clinic_id
from ....core.responses import GenericResponse
from ....db.session import DbSession
from ....schemas.assistant import AssistRequest
from ....services import get_blob_storage_service
from ....services.ai_assistant_service import AIAssistantService
from ....services.document_service import DocumentService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/assistant", tags=["AI Assistant"])


@router.post(
    "",
    response_model=GenericResponse[dict[str, Any]],
    summary="Ask the clinic assistant",
    responses={
        403: {"description": "Assistant disabled for this clinic"},
        503: {"description": "AI unavailable; details.suggestion describes the manual fallback"},
    },
)
async def assist(payload: AssistRequest, user: StaffUser, db: DbSession) -> GenericResponse[dict[str, Any]]:
    clinic_id = resolve_clinic_id(user, payload.clinic_id)
    await ensure_clinic_access(user, clinic_id, db)

    patient_id = payload.patient_id
    file_content = mime_type = None
    if payload.document_id is not None:
        documents = DocumentService(db, get_blob_storage_service())
        document = await documents.get_visible(user, payload.document_id)
        file_content = await documents.read_content(document)
        mime_type = document.mime_type
        patient_id = patient_id or document.patient_id

    result = await AIAssistantService(db).assist(
        user,
        clinic_id=clinic_id,
        request_type=payload.type.value,
        payload=payload.payload,
        context=payload.context,
        patient_id=patient_id,
        file_content=file_content,
        mime_type=mime_type,
    )
    await db.commit()
    logger.info("assistant_request_served", request_type=payload.type.value, clinic_id=clinic_id, user_id=user.id)
    return GenericResponse(message="Suggestion generated; review before saving", data=result)
