"""
Appointment API Endpoints.

Booking, listing and lifecycle of appointments plus the clinic's
treatment catalogue. Checking in goes through the queue so every
checked-in appointment has a queue entry.
"""
from __future__ import annotations

from datetime import date

import structlog
from fastapi import APIRouter, Query

from ....core.exceptions import BadRequestError, ResourceNotFoundError
from ....core.rbac import (
    ClinicAdminUser,
    CurrentUser,
    StaffUser,
    ensure_clinic_access,
    resolve_clinic_id,
    visible_clinic_ids,
)
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....models.base import day_bounds
from ....models.enums import AppointmentStatus
from ....repositories.appointment_repository import TreatmentRepository
from ....repositories.patient_repository import PatientRepository
from ....schemas.appointment import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    NoShowSweepResult,
    TreatmentCreate,
    TreatmentResponse,
    TreatmentUpdate,
)
from ....schemas.qr import QRCodeResponse
from ....services.appointment_service import AppointmentService
from ....services.qr_service import QRService
from ....services.queue_service import QueueService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Appointments"])


# =============================================================================
# Treatments
# =============================================================================

@router.get("/treatments", response_model=GenericResponse[list[TreatmentResponse]], summary="List treatments")
async def list_treatments(
    user: CurrentUser,
    db: DbSession,
    clinic_id: int | None = Query(None),
    include_inactive: bool = Query(False),
) -> GenericResponse[list[TreatmentResponse]]:
    if user.is_patient:
        patient = await PatientRepository(db).get_by_user_id(user.id)
        if patient is None:
            raise ResourceNotFoundError("patient", f"user:{user.id}")
        target = patient.clinic_id
    else:
        target = resolve_clinic_id(user, clinic_id)
        await ensure_clinic_access(user, target, db)
    treatments = await TreatmentRepository(db).list_for_clinic(target, active_only=not include_inactive)
    return GenericResponse(
        message="Treatments retrieved",
        data=[TreatmentResponse.model_validate(t) for t in treatments],
    )


@router.post("/treatments", response_model=GenericResponse[TreatmentResponse], status_code=201, summary="Create treatment")
async def create_treatment(payload: TreatmentCreate, admin: ClinicAdminUser, db: DbSession) -> GenericResponse[TreatmentResponse]:
    clinic_id = resolve_clinic_id(admin, payload.clinic_id)
    await ensure_clinic_access(admin, clinic_id, db)
    treatment = await TreatmentRepository(db).create(
        clinic_id,
        payload.name,
        description=payload.description,
        default_price=payload.default_price,
        default_duration_minutes=payload.default_duration_minutes,
    )
    await db.commit()
    return GenericResponse(message="Treatment created", data=TreatmentResponse.model_validate(treatment))


@router.patch("/treatments/{treatment_id}", response_model=GenericResponse[TreatmentResponse], summary="Update treatment")
async def update_treatment(
    treatment_id: int,
    payload: TreatmentUpdate,
    admin: ClinicAdminUser,
    db: DbSession,
) -> GenericResponse[TreatmentResponse]:
    treatment = await AppointmentService(db).get_treatment(admin, treatment_id)
    treatment = await TreatmentRepository(db).update(treatment, **payload.model_dump(exclude_unset=True))
    await db.commit()
    return GenericResponse(message="Treatment updated", data=TreatmentResponse.model_validate(treatment))


# =============================================================================
# Appointments
# =============================================================================

@router.post("/appointments", response_model=GenericResponse[AppointmentResponse], status_code=201, summary="Book appointment")
async def book_appointment(payload: AppointmentCreate, user: CurrentUser, db: DbSession) -> GenericResponse[AppointmentResponse]:
    service = AppointmentService(db)
    if user.is_patient:
        patient = await PatientRepository(db).get_by_user_id(user.id)
        if patient is None:
            raise ResourceNotFoundError("patient", f"user:{user.id}")
        await service.ensure_patient_owns(user, payload.patient_id or patient.id)
        patient_id, clinic_id = patient.id, patient.clinic_id
    else:
        if payload.patient_id is None:
            raise BadRequestError(message="patient_id is required", error_code="PATIENT_REQUIRED")
        patient_id = payload.patient_id
        clinic_id = resolve_clinic_id(user, payload.clinic_id)
        await ensure_clinic_access(user, clinic_id, db)

    appointment = await service.book(
        clinic_id=clinic_id,
        patient_id=patient_id,
        scheduled_time=payload.scheduled_time,
        dentist_id=payload.dentist_id,
        treatment_id=payload.treatment_id,
        duration_minutes=payload.duration_minutes,
        booking_type=payload.booking_type.value,
        notes=payload.notes,
    )
    await db.commit()
    logger.info("appointment_booked", appointment_id=appointment.id, clinic_id=clinic_id, by=user.id)
    return GenericResponse(message="Appointment booked", data=AppointmentResponse.model_validate(appointment))


@router.get("/appointments", response_model=PaginatedResponse[AppointmentResponse], summary="List appointments")
async def list_appointments(
    user: CurrentUser,
    db: DbSession,
    clinic_id: int | None = Query(None),
    dentist_id: int | None = Query(None),
    status: AppointmentStatus | None = Query(None),
    day: date | None = Query(None, alias="date", description="Only appointments on this UTC date"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
) -> PaginatedResponse[AppointmentResponse]:
    start, end = day_bounds(day) if day else (None, None)
    appointments, total = await AppointmentService(db).list_for_user(
        user,
        clinic_id=clinic_id,
        dentist_id=dentist_id,
        status=status.value if status else None,
        start=start,
        end=end,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return PaginatedResponse(
        message="Appointments retrieved",
        data=[AppointmentResponse.model_validate(a) for a in appointments],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


@router.post("/appointments/no-show-sweep", response_model=GenericResponse[NoShowSweepResult], summary="Mark overdue bookings as no-show")
async def no_show_sweep(admin: ClinicAdminUser, db: DbSession) -> GenericResponse[NoShowSweepResult]:
    count = await AppointmentService(db).mark_no_shows(clinic_ids=await visible_clinic_ids(admin, db))
    await db.commit()
    return GenericResponse(message=f"{count} appointment(s) marked as no-show", data=NoShowSweepResult(marked_no_show=count))


@router.get("/appointments/{appointment_id}", response_model=GenericResponse[AppointmentResponse], summary="Get appointment")
async def get_appointment(appointment_id: int, user: CurrentUser, db: DbSession) -> GenericResponse[AppointmentResponse]:
    appointment = await AppointmentService(db).get_visible(user, appointment_id)
    return GenericResponse(message="Appointment retrieved", data=AppointmentResponse.model_validate(appointment))


@router.patch("/appointments/{appointment_id}", response_model=GenericResponse[AppointmentResponse], summary="Reschedule or annotate")
async def update_appointment(
    appointment_id: int,
    payload: AppointmentUpdate,
    user: StaffUser,
    db: DbSession,
) -> GenericResponse[AppointmentResponse]:
    service = AppointmentService(db)
    appointment = await service.get_visible(user, appointment_id)
    appointment = await service.reschedule(appointment, **payload.model_dump(exclude_unset=True))
    await db.commit()
    return GenericResponse(message="Appointment updated", data=AppointmentResponse.model_validate(appointment))


@router.post("/appointments/{appointment_id}/status", response_model=GenericResponse[AppointmentResponse], summary="Change status")
async def change_status(
    appointment_id: int,
    payload: AppointmentStatusUpdate,
    user: StaffUser,
    db: DbSession,
) -> GenericResponse[AppointmentResponse]:
    service = AppointmentService(db)
    appointment = await service.get_visible(user, appointment_id)
    if payload.status is AppointmentStatus.CHECKED_IN:
        await QueueService(db).check_in(appointment)
    else:
        appointment = await service.transition(appointment, payload.status.value)
    await db.commit()
    return GenericResponse(message="Appointment status updated", data=AppointmentResponse.model_validate(appointment))


@router.post("/appointments/{appointment_id}/cancel", response_model=GenericResponse[AppointmentResponse], summary="Cancel appointment")
async def cancel_appointment(
    appointment_id: int,
    payload: AppointmentCancel,
    user: CurrentUser,
    db: DbSession,
) -> GenericResponse[AppointmentResponse]:
    service = AppointmentService(db)
    appointment = await service.get_visible(user, appointment_id)
    appointment = await service.cancel(appointment, payload.reason)
    await db.commit()
    return GenericResponse(message="Appointment cancelled", data=AppointmentResponse.model_validate(appointment))


@router.get("/appointments/{appointment_id}/pending-forms", response_model=GenericResponse[list[dict]], summary="Forms blocking treatment")
async def pending_forms(appointment_id: int, user: CurrentUser, db: DbSession) -> GenericResponse[list[dict]]:
    service = AppointmentService(db)
    appointment = await service.get_visible(user, appointment_id)
    return GenericResponse(message="Pending forms retrieved", data=await service.pending_forms(appointment.patient_id))


@router.post("/appointments/{appointment_id}/qr", response_model=GenericResponse[QRCodeResponse], summary="Issue check-in code")
async def generate_appointment_qr(appointment_id: int, user: CurrentUser, db: DbSession) -> GenericResponse[QRCodeResponse]:
    appointment = await AppointmentService(db).get_visible(user, appointment_id)
    issued = await QRService(db).generate_for_appointment(appointment)
    await db.commit()
    return GenericResponse(message="Check-in code issued", data=QRCodeResponse(**issued))
