"""
Patient API Endpoints.

Staff manage patient records of their tenant scope and can read those
of sharing-group peers. A patient account can read its own record only.
"""
from __future__ import annotations

from fastapi import APIRouter, Query

from ....core.exceptions import ResourceNotFoundError
from ....core.rbac import (
    CurrentUser,
    RequestClient,
    StaffUser,
    ensure_clinic_access,
    resolve_clinic_id,
    visible_clinic_ids,
)
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....models.enums import SharedDataType
from ....models.patient import Patient
from ....models.user import User
from ....repositories.patient_repository import PatientRepository
from ....schemas.patient import PatientCreate, PatientResponse, PatientUpdate
from ....services.sharing_service import BranchSharingService

router = APIRouter(prefix="/patients", tags=["Patients"])


async def _get_visible_patient(user: User, patient_id: int, db: DbSession) -> Patient:
    patient = await PatientRepository(db).get_by_id(patient_id)
    if patient is None:
        raise ResourceNotFoundError("patient", patient_id)
    if user.is_patient:
        if patient.user_id != user.id:
            raise ResourceNotFoundError("patient", patient_id)
        return patient
    await ensure_clinic_access(user, patient.clinic_id, db)
    return patient


@router.post("", response_model=GenericResponse[PatientResponse], status_code=201, summary="Register patient")
async def create_patient(payload: PatientCreate, user: StaffUser, db: DbSession) -> GenericResponse[PatientResponse]:
    clinic_id = resolve_clinic_id(user, payload.clinic_id)
    await ensure_clinic_access(user, clinic_id, db)
    fields = payload.model_dump(exclude={"clinic_id", "full_name"}, exclude_none=True)
    patient = await PatientRepository(db).create(clinic_id=clinic_id, full_name=payload.full_name, **fields)
    await db.commit()
    return GenericResponse(message="Patient registered", data=PatientResponse.model_validate(patient))


@router.get("", response_model=PaginatedResponse[PatientResponse], summary="Search patients")
async def search_patients(
    user: StaffUser,
    client: RequestClient,
    db: DbSession,
    q: str | None = Query(None, description="Name, phone or email fragment"),
    clinic_id: int | None = Query(None),
    include_shared: bool = Query(False, description="Include patients of sharing-group peers"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
) -> PaginatedResponse[PatientResponse]:
    sharing = BranchSharingService(db)
    shared: list[int] = []
    if clinic_id is not None:
        if not await sharing.can_access_branch_data(user, clinic_id):
            await ensure_clinic_access(user, clinic_id, db)
        clinic_ids = [clinic_id]
    else:
        clinic_ids = await visible_clinic_ids(user, db)
        if include_shared and clinic_ids is not None:
            shared = await sharing.shared_clinic_ids(user)
            clinic_ids = sorted(set(clinic_ids) | set(shared))

    patients, total = await PatientRepository(db).search(
        clinic_ids=clinic_ids,
        query=q,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    for patient in patients:
        if clinic_id is not None or patient.clinic_id in shared:
            await sharing.ensure_read_access(
                user,
                patient.clinic_id,
                SharedDataType.PATIENT.value,
                patient.id,
                ip_address=client.ip_address,
                user_agent=client.user_agent,
            )
    await db.commit()
    return PaginatedResponse(
        message="Patients retrieved",
        data=[PatientResponse.model_validate(p) for p in patients],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


@router.get("/me", response_model=GenericResponse[PatientResponse], summary="Own patient record")
async def get_my_record(user: CurrentUser, db: DbSession) -> GenericResponse[PatientResponse]:
    patient = await PatientRepository(db).get_by_user_id(user.id)
    if patient is None:
        raise ResourceNotFoundError("patient", f"user:{user.id}")
    return GenericResponse(message="Patient retrieved", data=PatientResponse.model_validate(patient))


@router.get("/{patient_id}", response_model=GenericResponse[PatientResponse], summary="Get patient")
async def get_patient(
    patient_id: int,
    user: CurrentUser,
    client: RequestClient,
    db: DbSession,
) -> GenericResponse[PatientResponse]:
    patient = await PatientRepository(db).get_by_id(patient_id)
    if patient is None or (user.is_patient and patient.user_id != user.id):
        raise ResourceNotFoundError("patient", patient_id)
    if not user.is_patient:
        await BranchSharingService(db).ensure_read_access(
            user,
            patient.clinic_id,
            SharedDataType.PATIENT.value,
            patient.id,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )
        await db.commit()
    return GenericResponse(message="Patient retrieved", data=PatientResponse.model_validate(patient))


@router.patch("/{patient_id}", response_model=GenericResponse[PatientResponse], summary="Update patient")
async def update_patient(
    patient_id: int,
    payload: PatientUpdate,
    user: StaffUser,
    db: DbSession,
) -> GenericResponse[PatientResponse]:
    patient = await _get_visible_patient(user, patient_id, db)
    patient = await PatientRepository(db).update(patient, **payload.model_dump(exclude_unset=True))
    await db.commit()
    return GenericResponse(message="Patient updated", data=PatientResponse.model_validate(patient))


@router.delete("/{patient_id}", response_model=GenericResponse[PatientResponse], summary="Deactivate patient")
async def deactivate_patient(patient_id: int, user: StaffUser, db: DbSession) -> GenericResponse[PatientResponse]:
    patient = await _get_visible_patient(user, patient_id, db)
    await PatientRepository(db).soft_delete(patient)
    await db.commit()
    return GenericResponse(message="Patient deactivated", data=PatientResponse.model_validate(patient))
