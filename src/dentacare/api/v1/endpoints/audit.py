"""Audit log endpoint for clinic administrators."""
from __future__ import annotations

from fastapi import APIRouter, Query

from ....core.rbac import ClinicAdminUser, visible_clinic_ids
from ....core.responses import PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....repositories.audit_repository import AuditRepository
from ....schemas.audit import AuditLogResponse

router = APIRouter(prefix="/audit-logs", tags=["Audit"])


@router.get("", response_model=PaginatedResponse[AuditLogResponse], summary="Browse audit log")
async def list_audit_logs(
    admin: ClinicAdminUser,
    db: DbSession,
    action_type: str | None = Query(None),
    entity_type: str | None = Query(None),
    entity_id: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=500),
) -> PaginatedResponse[AuditLogResponse]:
    entries, total = await AuditRepository(db).list_all(
        clinic_ids=await visible_clinic_ids(admin, db),
        action_type=action_type,
        entity_type=entity_type,
        entity_id=entity_id,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return PaginatedResponse(
        message="Audit log retrieved",
        data=[AuditLogResponse.model_validate(e) for e in entries],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )
