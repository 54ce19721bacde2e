"""
Analytics API Endpoints.

Dashboard counters for staff and trend reports for clinic admins.
Every report is scoped to one clinic; the organization overview covers
the head clinic and its branches.
"""
from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Query

from ....core.rbac import ClinicAdminUser, StaffUser, ensure_clinic_access, resolve_clinic_id
from ....core.responses import GenericResponse
from ....db.session import DbSession
from ....models.user import User
from ....services.analytics_service import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["Analytics"])


async def _clinic(user: User, clinic_id: int | None, db: DbSession) -> int:
    target = resolve_clinic_id(user, clinic_id)
    await ensure_clinic_access(user, target, db)
    return target


@router.get("/dashboard", response_model=GenericResponse[dict[str, Any]], summary="Today's counters")
async def dashboard(
    user: StaffUser,
    db: DbSession,
    clinic_id: int | None = Query(None),
    day: date | None = Query(None, alias="date"),
) -> GenericResponse[dict[str, Any]]:
    data = await AnalyticsService(db).dashboard(await _clinic(user, clinic_id, db), day)
    return GenericResponse(message="Dashboard retrieved", data=data)


@router.get("/dentists", response_model=GenericResponse[list[dict[str, Any]]], summary="Dentist workload")
async def dentist_workload(
    admin: ClinicAdminUser,
    db: DbSession,
    clinic_id: int | None = Query(None),
    day: date | None = Query(None, alias="date"),
) -> GenericResponse[list[dict[str, Any]]]:
    data = await AnalyticsService(db).dentist_workload(await _clinic(admin, clinic_id, db), day)
    return GenericResponse(message="Dentist workload retrieved", data=data)


@router.get("/revenue", response_model=GenericResponse[list[dict[str, Any]]], summary="Daily revenue trend")
async def revenue_trend(
    admin: ClinicAdminUser,
    db: DbSession,
    clinic_id: int | None = Query(None),
    days: int = Query(30, ge=1, le=365),
) -> GenericResponse[list[dict[str, Any]]]:
    data = await AnalyticsService(db).revenue_trend(await _clinic(admin, clinic_id, db), days)
    return GenericResponse(message="Revenue trend retrieved", data=data)


@router.get("/queue-heatmap", response_model=GenericResponse[dict[str, Any]], summary="Check-ins by weekday and hour")
async def queue_heatmap(
    admin: ClinicAdminUser,
    db: DbSession,
    clinic_id: int | None = Query(None),
    days: int = Query(30, ge=1, le=365),
) -> GenericResponse[dict[str, Any]]:
    data = await AnalyticsService(db).queue_heatmap(await _clinic(admin, clinic_id, db), days)
    return GenericResponse(message="Queue heatmap retrieved", data=data)


@router.get("/overview", response_model=GenericResponse[list[dict[str, Any]]], summary="Organization overview")
async def multi_clinic_overview(
    admin: ClinicAdminUser,
    db: DbSession,
    clinic_id: int | None = Query(None),
) -> GenericResponse[list[dict[str, Any]]]:
    data = await AnalyticsService(db).multi_clinic_overview(await _clinic(admin, clinic_id, db))
    return GenericResponse(message="Organization overview retrieved", data=data)
