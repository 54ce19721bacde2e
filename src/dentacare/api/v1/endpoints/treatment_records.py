"""
Treatment Record API Endpoints.

Clinicians open a record when chair work starts and complete or cancel
it afterwards. Staff read records of their tenant scope and, with
include_shared, those of sharing-group peers.
"""
from __future__ import annotations

from fastapi import APIRouter, Query

from ....core.rbac import ClinicianUser, CurrentUser, RequestClient
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....models.enums import TreatmentRecordStatus
from ....schemas.treatment_record import (
    TreatmentRecordCancel,
    TreatmentRecordComplete,
    TreatmentRecordCreate,
    TreatmentRecordResponse,
    TreatmentRecordUpdate,
)
from ....services.treatment_record_service import TreatmentRecordService

router = APIRouter(prefix="/treatment-records", tags=["Treatment Records"])


@router.post("", response_model=GenericResponse[TreatmentRecordResponse], status_code=201, summary="Start treatment")
async def start_treatment(
    payload: TreatmentRecordCreate,
    user: ClinicianUser,
    db: DbSession,
) -> GenericResponse[TreatmentRecordResponse]:
    record = await TreatmentRecordService(db).start(user, **payload.model_dump())
    await db.commit()
    return GenericResponse(message="Treatment started", data=TreatmentRecordResponse.model_validate(record))


@router.get("", response_model=PaginatedResponse[TreatmentRecordResponse], summary="List treatment records")
async def list_treatment_records(
    user: CurrentUser,
    client: RequestClient,
    db: DbSession,
    patient_id: int | None = Query(None),
    dentist_id: int | None = Query(None),
    status: TreatmentRecordStatus | None = Query(None),
    include_shared: bool = Query(False, description="Include records of sharing-group peers"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
) -> PaginatedResponse[TreatmentRecordResponse]:
    records, total = await TreatmentRecordService(db).list_for_user(
        user,
        patient_id=patient_id,
        dentist_id=dentist_id,
        status=status.value if status else None,
        include_shared=include_shared,
        ip_address=client.ip_address,
        user_agent=client.user_agent,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    # shared reads are audited
    await db.commit()
    return PaginatedResponse(
        message="Treatment records retrieved",
        data=[TreatmentRecordResponse.model_validate(r) for r in records],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


@router.get("/{record_id}", response_model=GenericResponse[TreatmentRecordResponse], summary="Get treatment record")
async def get_treatment_record(
    record_id: int,
    user: CurrentUser,
    client: RequestClient,
    db: DbSession,
) -> GenericResponse[TreatmentRecordResponse]:
    record = await TreatmentRecordService(db).get_visible(
        user, record_id, ip_address=client.ip_address, user_agent=client.user_agent
    )
    await db.commit()
    return GenericResponse(message="Treatment record retrieved", data=TreatmentRecordResponse.model_validate(record))


@router.patch("/{record_id}", response_model=GenericResponse[TreatmentRecordResponse], summary="Update treatment record")
async def update_treatment_record(
    record_id: int,
    payload: TreatmentRecordUpdate,
    user: ClinicianUser,
    db: DbSession,
) -> GenericResponse[TreatmentRecordResponse]:
    service = TreatmentRecordService(db)
    record = await service.get_for_update(user, record_id)
    record = await service.update(record, **payload.model_dump(exclude_unset=True))
    await db.commit()
    return GenericResponse(message="Treatment record updated", data=TreatmentRecordResponse.model_validate(record))


@router.post(
    "/{record_id}/complete",
    response_model=GenericResponse[TreatmentRecordResponse],
    summary="Complete treatment",
)
async def complete_treatment(
    record_id: int,
    payload: TreatmentRecordComplete,
    user: ClinicianUser,
    db: DbSession,
) -> GenericResponse[TreatmentRecordResponse]:
    service = TreatmentRecordService(db)
    record = await service.get_for_update(user, record_id)
    record = await service.complete(user, record, **payload.model_dump(exclude_unset=True))
    await db.commit()
    return GenericResponse(message="Treatment completed", data=TreatmentRecordResponse.model_validate(record))


@router.post(
    "/{record_id}/cancel",
    response_model=GenericResponse[TreatmentRecordResponse],
    summary="Cancel treatment",
)
async def cancel_treatment(
    record_id: int,
    payload: TreatmentRecordCancel,
    user: ClinicianUser,
    db: DbSession,
) -> GenericResponse[TreatmentRecordResponse]:
    service = TreatmentRecordService(db)
    record = await service.get_for_update(user, record_id)
    record = await service.cancel(user, record, payload.reason)
    await db.commit()
    return GenericResponse(message="Treatment cancelled", data=TreatmentRecordResponse.model_validate(record))
