"""QR check-in endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Query

from ....core.rbac import CurrentUser, StaffUser, ensure_clinic_access, resolve_clinic_id
from ....core.responses import GenericResponse
from ....db.session import DbSession
from ....schemas.qr import QRCodeResponse, QRScanRequest, QRScanResponse
from ....services.clinic_service import FEATURE_QR_CHECKIN, ClinicService
from ....services.qr_service import QRService

router = APIRouter(prefix="/qr", tags=["QR Check-in"])


@router.get("/daily", response_model=GenericResponse[QRCodeResponse], summary="Today's front-desk code")
async def daily_code(
    user: StaffUser,
    db: DbSession,
    clinic_id: int | None = Query(None),
) -> GenericResponse[QRCodeResponse]:
    target = resolve_clinic_id(user, clinic_id)
    await ensure_clinic_access(user, target, db)
    await ClinicService(db).ensure_feature_enabled(target, FEATURE_QR_CHECKIN)
    return GenericResponse(message="Daily check-in code issued", data=QRCodeResponse(**QRService(db).generate_daily(target)))


@router.get("/staff", response_model=GenericResponse[QRCodeResponse], summary="Personal time-in code")
async def staff_code(user: StaffUser, db: DbSession) -> GenericResponse[QRCodeResponse]:
    return GenericResponse(message="Time-in code issued", data=QRCodeResponse(**QRService(db).generate_staff_time_in(user)))


@router.post("/scan", response_model=GenericResponse[QRScanResponse], summary="Redeem a code")
async def scan_code(payload: QRScanRequest, user: CurrentUser, db: DbSession) -> GenericResponse[QRScanResponse]:
    result = await QRService(db).scan(payload.code, user, appointment_id=payload.appointment_id)
    await db.commit()
    return GenericResponse(message="Code accepted", data=QRScanResponse(**result))
