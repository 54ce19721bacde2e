"""
Blob Storage Endpoints.

Serves files kept in local blob storage (patient documents, payment
proofs) to staff of the owning clinic. Patients download their own
documents through /documents/{id}/content instead.
"""
import logging
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter
from fastapi import Path as PathParam
from fastapi.responses import FileResponse, Response

from ....core.exceptions import ResourceNotFoundError
from ....core.rbac import StaffUser, SuperAdminUser, ensure_clinic_access
from ....core.responses import GenericResponse
from ....db.session import DbSession
from ....services import get_blob_storage_service
from ....services.blob_storage_service import LocalBlobStorageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blobs", tags=["Blob Storage"])

ClinicPath = Annotated[int, PathParam(description="Owning clinic")]
CategoryPath = Annotated[str, PathParam(description="Storage category, e.g. documents or payment_proofs")]
FilenamePath = Annotated[str, PathParam(description="Blob filename with extension")]


def _locate(storage: LocalBlobStorageService, clinic_id: int, category: str, filename: str) -> Path:
    relative = f"{clinic_id}/{category}/{filename}"
    if not storage.blob_exists(relative):
        logger.warning(f"Blob not found: {relative}")
        raise ResourceNotFoundError("blob", relative)
    return storage.resolve_path(relative)


@router.get("/stats", response_model=GenericResponse[dict], summary="Blob storage statistics")
async def get_storage_stats(_: SuperAdminUser) -> GenericResponse[dict]:
    stats = get_blob_storage_service().get_storage_stats()
    return GenericResponse(message="Storage statistics retrieved", data=stats)


@router.get("/{clinic_id}/{category}/{filename}", summary="Retrieve a blob file")
async def get_blob(
    clinic_id: ClinicPath,
    category: CategoryPath,
    filename: FilenamePath,
    user: StaffUser,
    db: DbSession,
) -> FileResponse:
    await ensure_clinic_access(user, clinic_id, db)
    storage = get_blob_storage_service()
    path = _locate(storage, clinic_id, category, filename)
    return FileResponse(path=path, media_type=storage.detect_mime_type(filename), filename=filename)


@router.head("/{clinic_id}/{category}/{filename}", summary="Check if blob exists")
async def check_blob_exists(
    clinic_id: ClinicPath,
    category: CategoryPath,
    filename: FilenamePath,
    user: StaffUser,
    db: DbSession,
) -> Response:
    await ensure_clinic_access(user, clinic_id, db)
    path = _locate(get_blob_storage_service(), clinic_id, category, filename)
    return Response(headers={"Content-Length": str(path.stat().st_size)})
