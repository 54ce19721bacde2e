"""
Digital Form API Endpoints.

Clinic admins build forms; patients (or staff on their behalf) submit
answers; clinicians review submissions. Pending or rejected submissions
of verification-gated forms block treatment.
"""
from __future__ import annotations

from fastapi import APIRouter, Query

from ....core.exceptions import BadRequestError, ResourceNotFoundError
from ....core.rbac import (
    ClinicAdminUser,
    ClinicianUser,
    CurrentUser,
    ensure_clinic_access,
    resolve_clinic_id,
    visible_clinic_ids,
)
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....models.enums import VerificationStatus
from ....models.user import User
from ....repositories.form_repository import FormRepository
from ....repositories.patient_repository import PatientRepository
from ....schemas.form import (
    FormCreate,
    FormResponseSchema,
    FormSubmission,
    FormUpdate,
    SubmittedFormResponse,
    VerifyRequest,
)
from ....services.form_service import FormService

router = APIRouter(prefix="/forms", tags=["Forms"])


async def _own_patient_id(user: User, db: DbSession) -> int:
    patient = await PatientRepository(db).get_by_user_id(user.id)
    if patient is None:
        raise ResourceNotFoundError("patient", f"user:{user.id}")
    return patient.id


@router.get("", response_model=GenericResponse[list[FormResponseSchema]], summary="List forms")
async def list_forms(
    user: CurrentUser,
    db: DbSession,
    category: str | None = Query(None),
    include_inactive: bool = Query(False),
) -> GenericResponse[list[FormResponseSchema]]:
    if user.is_patient:
        patient = await PatientRepository(db).get_by_user_id(user.id)
        clinic_ids = [patient.clinic_id] if patient else []
        include_inactive = False
    else:
        clinic_ids = await visible_clinic_ids(user, db)
    forms = await FormRepository(db).list_forms(clinic_ids, category=category, active_only=not include_inactive)
    return GenericResponse(message="Forms retrieved", data=[FormResponseSchema.model_validate(f) for f in forms])


@router.post("", response_model=GenericResponse[FormResponseSchema], status_code=201, summary="Create form")
async def create_form(payload: FormCreate, admin: ClinicAdminUser, db: DbSession) -> GenericResponse[FormResponseSchema]:
    clinic_id = resolve_clinic_id(admin, payload.clinic_id)
    await ensure_clinic_access(admin, clinic_id, db)
    data = payload.model_dump(exclude={"clinic_id", "name"})
    form = await FormRepository(db).create_form(clinic_id, payload.name, **data)
    await db.commit()
    return GenericResponse(message="Form created", data=FormResponseSchema.model_validate(form))


# Responses are registered before /{form_id} so the literal path wins.

@router.get("/responses", response_model=PaginatedResponse[SubmittedFormResponse], summary="List submissions")
async def list_responses(
    user: CurrentUser,
    db: DbSession,
    form_id: int | None = Query(None),
    patient_id: int | None = Query(None),
    verification_status: VerificationStatus | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
) -> PaginatedResponse[SubmittedFormResponse]:
    clinic_ids = await visible_clinic_ids(user, db)
    if user.is_patient:
        patient_id = await _own_patient_id(user, db)
        clinic_ids = None
    responses, total = await FormRepository(db).list_responses(
        clinic_ids=clinic_ids,
        patient_id=patient_id,
        form_id=form_id,
        verification_status=verification_status.value if verification_status else None,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return PaginatedResponse(
        message="Form submissions retrieved",
        data=[SubmittedFormResponse.model_validate(r) for r in responses],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


@router.get("/responses/{response_id}", response_model=GenericResponse[SubmittedFormResponse], summary="Get submission")
async def get_response(response_id: int, user: CurrentUser, db: DbSession) -> GenericResponse[SubmittedFormResponse]:
    response = await FormService(db).get_response(user, response_id)
    return GenericResponse(message="Form submission retrieved", data=SubmittedFormResponse.model_validate(response))


@router.post("/responses/{response_id}/verify", response_model=GenericResponse[SubmittedFormResponse], summary="Review submission")
async def verify_response(
    response_id: int,
    payload: VerifyRequest,
    reviewer: ClinicianUser,
    db: DbSession,
) -> GenericResponse[SubmittedFormResponse]:
    service = FormService(db)
    response = await service.get_response(reviewer, response_id)
    response = await service.verify(
        response,
        payload.action,
        reviewer,
        reason=payload.reason,
        dentist_signature=payload.dentist_signature,
    )
    await db.commit()
    return GenericResponse(message="Form submission reviewed", data=SubmittedFormResponse.model_validate(response))


@router.get("/{form_id}", response_model=GenericResponse[FormResponseSchema], summary="Get form")
async def get_form(form_id: int, user: CurrentUser, db: DbSession) -> GenericResponse[FormResponseSchema]:
    if user.is_patient:
        form = await FormRepository(db).get_form(form_id)
        patient = await PatientRepository(db).get_by_user_id(user.id)
        if form is None or patient is None or form.clinic_id != patient.clinic_id:
            raise ResourceNotFoundError("form", form_id)
    else:
        form = await FormService(db).get_form(user, form_id)
    return GenericResponse(message="Form retrieved", data=FormResponseSchema.model_validate(form))


@router.patch("/{form_id}", response_model=GenericResponse[FormResponseSchema], summary="Update form")
async def update_form(
    form_id: int,
    payload: FormUpdate,
    admin: ClinicAdminUser,
    db: DbSession,
) -> GenericResponse[FormResponseSchema]:
    service = FormService(db)
    form = await service.get_form(admin, form_id)
    form = await service.update_form(form, **payload.model_dump(exclude_unset=True))
    await db.commit()
    return GenericResponse(message="Form updated", data=FormResponseSchema.model_validate(form))


@router.post("/{form_id}/submit", response_model=GenericResponse[SubmittedFormResponse], status_code=201, summary="Submit answers")
async def submit_form(
    form_id: int,
    payload: FormSubmission,
    user: CurrentUser,
    db: DbSession,
) -> GenericResponse[SubmittedFormResponse]:
    service = FormService(db)
    form = await FormRepository(db).get_form(form_id)
    if form is None:
        raise ResourceNotFoundError("form", form_id)

    if user.is_patient:
        patient_id = await _own_patient_id(user, db)
        if payload.patient_id not in (None, patient_id):
            raise ResourceNotFoundError("patient", payload.patient_id)
    else:
        await ensure_clinic_access(user, form.clinic_id, db)
        if payload.patient_id is None:
            raise BadRequestError(message="patient_id is required", error_code="PATIENT_REQUIRED")
        patient_id = payload.patient_id

    response = await service.submit(
        form,
        patient_id=patient_id,
        responses=payload.responses,
        signature_data=payload.signature_data,
        appointment_id=payload.appointment_id,
        submitted_by=user,
    )
    await db.commit()
    return GenericResponse(message="Form submitted", data=SubmittedFormResponse.model_validate(response))
