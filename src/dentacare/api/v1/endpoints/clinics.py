"""
Clinic API Endpoints.

Clinics, branches and per-clinic feature toggles.
"""
from __future__ import annotations

from fastapi import APIRouter, Query

from ....core.rbac import ClinicAdminUser, CurrentUser, StaffUser, visible_clinic_ids
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....repositories.clinic_repository import ClinicRepository
from ....schemas.clinic import (
    ClinicCreate,
    ClinicResponse,
    ClinicUpdate,
    FeatureToggleResponse,
    FeatureToggleUpdate,
)
from ....services.clinic_service import ClinicService

router = APIRouter(prefix="/clinics", tags=["Clinics"])


@router.post("", response_model=GenericResponse[ClinicResponse], status_code=201, summary="Create clinic or branch")
async def create_clinic(payload: ClinicCreate, admin: ClinicAdminUser, db: DbSession) -> GenericResponse[ClinicResponse]:
    clinic = await ClinicService(db).create_clinic(
        admin,
        name=payload.name,
        address=payload.address,
        phone=payload.phone,
        email=payload.email,
        parent_clinic_id=payload.parent_clinic_id,
        subscription_package=payload.subscription_package.value,
    )
    await db.commit()
    return GenericResponse(message="Clinic created", data=ClinicResponse.model_validate(clinic))


@router.get("", response_model=PaginatedResponse[ClinicResponse], summary="List visible clinics")
async def list_clinics(
    user: CurrentUser,
    db: DbSession,
    include_inactive: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
) -> PaginatedResponse[ClinicResponse]:
    clinics, total = await ClinicRepository(db).list_all(
        clinic_ids=await visible_clinic_ids(user, db),
        skip=(page - 1) * page_size,
        limit=page_size,
        active_only=not include_inactive,
    )
    return PaginatedResponse(
        message="Clinics retrieved",
        data=[ClinicResponse.model_validate(c) for c in clinics],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


@router.get("/{clinic_id}", response_model=GenericResponse[ClinicResponse], summary="Get clinic")
async def get_clinic(clinic_id: int, user: CurrentUser, db: DbSession) -> GenericResponse[ClinicResponse]:
    clinic = await ClinicService(db).get_visible(user, clinic_id)
    return GenericResponse(message="Clinic retrieved", data=ClinicResponse.model_validate(clinic))


@router.patch("/{clinic_id}", response_model=GenericResponse[ClinicResponse], summary="Update clinic")
async def update_clinic(
    clinic_id: int,
    payload: ClinicUpdate,
    admin: ClinicAdminUser,
    db: DbSession,
) -> GenericResponse[ClinicResponse]:
    clinic = await ClinicService(db).get_visible(admin, clinic_id)
    fields = payload.model_dump(exclude_unset=True, mode="json")
    clinic = await ClinicRepository(db).update(clinic, **fields)
    await db.commit()
    return GenericResponse(message="Clinic updated", data=ClinicResponse.model_validate(clinic))


@router.delete("/{clinic_id}", response_model=GenericResponse[ClinicResponse], summary="Deactivate clinic")
async def deactivate_clinic(clinic_id: int, admin: ClinicAdminUser, db: DbSession) -> GenericResponse[ClinicResponse]:
    clinic = await ClinicService(db).get_visible(admin, clinic_id)
    await ClinicRepository(db).soft_delete(clinic)
    await db.commit()
    return GenericResponse(message="Clinic deactivated", data=ClinicResponse.model_validate(clinic))


@router.get("/{clinic_id}/branches", response_model=GenericResponse[list[ClinicResponse]], summary="List branches")
async def list_branches(clinic_id: int, user: CurrentUser, db: DbSession) -> GenericResponse[list[ClinicResponse]]:
    clinic = await ClinicService(db).get_visible(user, clinic_id)
    branches = await ClinicRepository(db).list_branches(clinic.id)
    return GenericResponse(
        message="Branches retrieved",
        data=[ClinicResponse.model_validate(b) for b in branches],
    )


# =============================================================================
# Feature toggles
# =============================================================================

@router.get(
    "/{clinic_id}/features",
    response_model=GenericResponse[list[FeatureToggleResponse]],
    summary="List feature toggles",
)
async def list_features(clinic_id: int, user: StaffUser, db: DbSession) -> GenericResponse[list[FeatureToggleResponse]]:
    await ClinicService(db).get_visible(user, clinic_id)
    toggles = await ClinicRepository(db).list_toggles(clinic_id)
    return GenericResponse(
        message="Feature toggles retrieved",
        data=[FeatureToggleResponse.model_validate(t) for t in toggles],
    )


@router.put(
    "/{clinic_id}/features/{feature_name}",
    response_model=GenericResponse[FeatureToggleResponse],
    summary="Enable or disable a feature",
)
async def set_feature(
    clinic_id: int,
    feature_name: str,
    payload: FeatureToggleUpdate,
    admin: ClinicAdminUser,
    db: DbSession,
) -> GenericResponse[FeatureToggleResponse]:
    await ClinicService(db).get_visible(admin, clinic_id)
    toggle = await ClinicRepository(db).set_toggle(clinic_id, feature_name, payload.is_enabled, payload.description)
    await db.commit()
    return GenericResponse(message="Feature toggle updated", data=FeatureToggleResponse.model_validate(toggle))
