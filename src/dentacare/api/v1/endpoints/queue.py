"""
Queue API Endpoints.

Front-desk operations on the live patient queue of a clinic:
check-in, walk-ins, calling, completing, skipping and reordering.
"""
from __future__ import annotations

from datetime import date

import structlog
from fastapi import APIRouter, Query

from ....core.rbac import StaffUser, ensure_clinic_access, resolve_clinic_id
from ....core.responses import GenericResponse
from ....db.session import DbSession
from ....schemas.appointment import AppointmentResponse
from ....schemas.patient import PatientResponse
from ....schemas.queue import (
    CheckInRequest,
    DurationOverrideRequest,
    EmergencyOverrideRequest,
    QueueEntryResponse,
    QueueStats,
    ReorderRequest,
    WalkInCreate,
    WalkInResponse,
)
from ....services.appointment_service import AppointmentService
from ....services.queue_service import QueueService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/queue", tags=["Queue"])


@router.get("", response_model=GenericResponse[list[QueueEntryResponse]], summary="Active queue in serving order")
async def get_queue(
    user: StaffUser,
    db: DbSession,
    clinic_id: int | None = Query(None),
    day: date | None = Query(None, alias="date", description="Queue day, defaults to today (UTC)"),
) -> GenericResponse[list[QueueEntryResponse]]:
    target = resolve_clinic_id(user, clinic_id)
    await ensure_clinic_access(user, target, db)
    entries = await QueueService(db).ordered(target, day)
    await db.commit()
    return GenericResponse(
        message="Queue retrieved",
        data=[QueueEntryResponse.model_validate(e) for e in entries],
    )


@router.get("/stats", response_model=GenericResponse[QueueStats], summary="Queue counters for a day")
async def queue_stats(
    user: StaffUser,
    db: DbSession,
    clinic_id: int | None = Query(None),
    day: date | None = Query(None, alias="date"),
) -> GenericResponse[QueueStats]:
    target = resolve_clinic_id(user, clinic_id)
    await ensure_clinic_access(user, target, db)
    return GenericResponse(message="Queue stats retrieved", data=QueueStats(**await QueueService(db).stats(target, day)))


@router.post("/check-in", response_model=GenericResponse[QueueEntryResponse], status_code=201, summary="Check in a booked appointment")
async def check_in(payload: CheckInRequest, user: StaffUser, db: DbSession) -> GenericResponse[QueueEntryResponse]:
    appointment = await AppointmentService(db).get_visible(user, payload.appointment_id)
    entry = await QueueService(db).check_in(appointment)
    await db.commit()
    return GenericResponse(message="Patient checked in", data=QueueEntryResponse.model_validate(entry))


@router.post("/walk-ins", response_model=GenericResponse[WalkInResponse], status_code=201, summary="Register a walk-in")
async def register_walk_in(payload: WalkInCreate, user: StaffUser, db: DbSession) -> GenericResponse[WalkInResponse]:
    clinic_id = resolve_clinic_id(user, payload.clinic_id)
    await ensure_clinic_access(user, clinic_id, db)
    result = await QueueService(db).register_walk_in(
        clinic_id=clinic_id,
        full_name=payload.full_name,
        contact_number=payload.contact_number,
        email=payload.email,
        dentist_id=payload.dentist_id,
        treatment_id=payload.treatment_id,
        urgency=payload.urgency.value,
        notes=payload.notes,
    )
    await db.commit()
    return GenericResponse(
        message="Walk-in registered",
        data=WalkInResponse(
            patient=PatientResponse.model_validate(result.patient),
            appointment=AppointmentResponse.model_validate(result.appointment),
            entry=QueueEntryResponse.model_validate(result.entry),
            estimated_wait_minutes=result.estimated_wait_minutes,
            is_new_patient=result.is_new_patient,
        ),
    )


@router.post("/{entry_id}/call", response_model=GenericResponse[QueueEntryResponse], summary="Call next patient")
async def call_entry(entry_id: int, user: StaffUser, db: DbSession) -> GenericResponse[QueueEntryResponse]:
    service = QueueService(db)
    entry = await service.call(await service.get_visible(user, entry_id))
    await db.commit()
    return GenericResponse(message="Patient called", data=QueueEntryResponse.model_validate(entry))


@router.post("/{entry_id}/complete", response_model=GenericResponse[QueueEntryResponse], summary="Finish a called entry")
async def complete_entry(entry_id: int, user: StaffUser, db: DbSession) -> GenericResponse[QueueEntryResponse]:
    service = QueueService(db)
    entry = await service.complete(await service.get_visible(user, entry_id))
    await db.commit()
    return GenericResponse(message="Queue entry completed", data=QueueEntryResponse.model_validate(entry))


@router.post("/{entry_id}/skip", response_model=GenericResponse[QueueEntryResponse], summary="Skip a waiting patient")
async def skip_entry(entry_id: int, user: StaffUser, db: DbSession) -> GenericResponse[QueueEntryResponse]:
    service = QueueService(db)
    entry = await service.skip(await service.get_visible(user, entry_id))
    await db.commit()
    return GenericResponse(message="Queue entry skipped", data=QueueEntryResponse.model_validate(entry))


@router.post("/{entry_id}/emergency", response_model=GenericResponse[QueueEntryResponse], summary="Emergency override")
async def emergency_override(
    entry_id: int,
    payload: EmergencyOverrideRequest,
    user: StaffUser,
    db: DbSession,
) -> GenericResponse[QueueEntryResponse]:
    service = QueueService(db)
    entry = await service.emergency_override(await service.get_visible(user, entry_id), payload.reason)
    await db.commit()
    logger.info("emergency_override_applied", entry_id=entry_id, by=user.id)
    return GenericResponse(message="Entry moved to the front", data=QueueEntryResponse.model_validate(entry))


@router.put("/{entry_id}/order", response_model=GenericResponse[QueueEntryResponse], summary="Set manual order")
async def reorder_entry(
    entry_id: int,
    payload: ReorderRequest,
    user: StaffUser,
    db: DbSession,
) -> GenericResponse[QueueEntryResponse]:
    service = QueueService(db)
    entry = await service.reorder(await service.get_visible(user, entry_id), payload.manual_order)
    await db.commit()
    return GenericResponse(message="Queue reordered", data=QueueEntryResponse.model_validate(entry))


@router.put("/{entry_id}/duration", response_model=GenericResponse[QueueEntryResponse], summary="Override treatment duration")
async def override_duration(
    entry_id: int,
    payload: DurationOverrideRequest,
    user: StaffUser,
    db: DbSession,
) -> GenericResponse[QueueEntryResponse]:
    service = QueueService(db)
    entry = await service.set_duration_override(await service.get_visible(user, entry_id), payload.minutes)
    await db.commit()
    return GenericResponse(message="Duration override saved", data=QueueEntryResponse.model_validate(entry))
