"""QR Check-in Service.

Generates and redeems signed check-in codes:
- daily: one code per clinic per day, displayed at the front desk
- appointment: personal code for one appointment
- staff_time_in: shift clock-in for staff
"""
from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.exceptions import BadRequestError, InvalidQRCodeError, ResourceNotFoundError
from ..core.security import sign_payload, unsign_payload
from ..models.appointment import Appointment
from ..models.base import as_utc, day_bounds, ensure_utc, utc_now
from ..models.enums import QRCodeType
from ..models.user import User
from ..repositories.appointment_repository import AppointmentRepository
from ..repositories.audit_repository import AuditRepository
from ..repositories.patient_repository import PatientRepository
from .clinic_service import FEATURE_QR_CHECKIN, ClinicService
from .queue_service import QueueService

log = structlog.get_logger(__name__)


class QRService:
    """Signed check-in codes."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.settings = get_settings()
        self.appointments = AppointmentRepository(session)
        self.audit = AuditRepository(session)
        self.patients = PatientRepository(session)
        self.queue_service = QueueService(session)
        self.clinics = ClinicService(session)

    def _issue(self, payload: dict[str, Any], expires_at: datetime) -> dict[str, Any]:
        payload = {**payload, "exp": int(expires_at.timestamp())}
        return {
            "code": sign_payload(payload, secret=self.settings.SECRET_KEY),
            "type": payload["type"],
            "expires_at": expires_at,
            "payload": payload,
        }

    # =========================================================================
    # Generation
    # =========================================================================

    def generate_daily(self, clinic_id: int, now: datetime | None = None) -> dict[str, Any]:
        """Clinic code valid until the end of the current day."""
        now = as_utc(now) if now else utc_now()
        expires_at = datetime.combine(
            now.date(),
            time(self.settings.DAILY_QR_EXPIRY_HOUR, 59, 59),
            tzinfo=now.tzinfo,
        )
        return self._issue(
            {"type": QRCodeType.DAILY.value, "clinic_id": clinic_id, "date": now.date().isoformat()},
            expires_at,
        )

    async def generate_for_appointment(self, appointment: Appointment, now: datetime | None = None) -> dict[str, Any]:
        """Personal code for one appointment; stored on the appointment."""
        now = as_utc(now) if now else utc_now()
        issued = self._issue(
            {
                "type": QRCodeType.APPOINTMENT.value,
                "clinic_id": appointment.clinic_id,
                "appointment_id": appointment.id,
            },
            now + timedelta(hours=self.settings.APPOINTMENT_QR_TTL_HOURS),
        )
        appointment.qr_code = issued["code"]
        await self.session.flush()
        return issued

    def generate_staff_time_in(self, user: User, now: datetime | None = None) -> dict[str, Any]:
        now = as_utc(now) if now else utc_now()
        return self._issue(
            {"type": QRCodeType.STAFF_TIME_IN.value, "clinic_id": user.clinic_id, "user_id": user.id},
            now + timedelta(hours=self.settings.STAFF_QR_TTL_HOURS),
        )

    # =========================================================================
    # Redemption
    # =========================================================================

    def decode(self, code: str, now: datetime | None = None) -> dict[str, Any]:
        """Verify signature and expiry; return the payload.

        Raises:
            InvalidQRCodeError: Tampered, malformed or expired code
        """
        now = as_utc(now) if now else utc_now()
        payload = unsign_payload(code.strip(), secret=self.settings.SECRET_KEY)
        if payload is None:
            raise InvalidQRCodeError()
        exp = payload.get("exp")
        if not isinstance(exp, int) or payload.get("type") not in {t.value for t in QRCodeType}:
            raise InvalidQRCodeError()
        if int(now.timestamp()) > exp:
            raise InvalidQRCodeError(message="Check-in code has expired", error_code="QR_CODE_EXPIRED")
        return payload

    async def scan(
        self,
        code: str,
        scanned_by: User,
        appointment_id: int | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Redeem a code.

        Appointment codes check the patient in. Daily codes need the
        appointment_id of a same-clinic appointment scheduled today. Staff
        codes record a time-in audit entry for the scanning user.
        """
        now = as_utc(now) if now else utc_now()
        payload = self.decode(code, now)
        code_type = payload["type"]
        if code_type != QRCodeType.STAFF_TIME_IN.value:
            await self.clinics.ensure_feature_enabled(payload.get("clinic_id"), FEATURE_QR_CHECKIN)

        if code_type == QRCodeType.STAFF_TIME_IN.value:
            if payload.get("user_id") != scanned_by.id:
                raise InvalidQRCodeError(message="Time-in code belongs to another user", error_code="QR_CODE_USER_MISMATCH")
            await self.audit.record(
                action_type="staff_time_in",
                action_description=f"{scanned_by.full_name} timed in",
                clinic_id=payload.get("clinic_id"),
                user_id=scanned_by.id,
                entity_type="user",
                entity_id=scanned_by.id,
                new_values={"timed_in_at": now.isoformat()},
            )
            log.info("staff_timed_in", user_id=scanned_by.id)
            return {"type": code_type, "user_id": scanned_by.id, "timed_in_at": now}

        if code_type == QRCodeType.APPOINTMENT.value:
            target_id = payload.get("appointment_id")
        else:
            if appointment_id is None:
                raise BadRequestError(
                    message="appointment_id is required with a clinic check-in code",
                    error_code="APPOINTMENT_ID_REQUIRED",
                )
            target_id = appointment_id

        appointment = await self.appointments.get_by_id(target_id)
        if appointment is None:
            raise ResourceNotFoundError("appointment", target_id)
        if appointment.clinic_id != payload.get("clinic_id"):
            raise InvalidQRCodeError(message="Code was issued for another clinic", error_code="QR_CODE_CLINIC_MISMATCH")
        if scanned_by.is_patient:
            patient = await self.patients.get_by_user_id(scanned_by.id)
            if patient is None or patient.id != appointment.patient_id:
                raise ResourceNotFoundError("appointment", target_id)

        if code_type == QRCodeType.DAILY.value:
            if payload.get("date") != now.date().isoformat():
                raise InvalidQRCodeError(message="Check-in code has expired", error_code="QR_CODE_EXPIRED")
            day_start, day_end = day_bounds(now.date())
            if not day_start <= ensure_utc(appointment.scheduled_time) < day_end:
                raise BadRequestError(
                    message="Appointment is not scheduled for today",
                    error_code="APPOINTMENT_NOT_TODAY",
                    details={"appointment_id": appointment.id},
                )

        entry = await self.queue_service.check_in(appointment, now=now)
        log.info("qr_check_in", appointment_id=appointment.id, code_type=code_type, entry_id=entry.id)
        return {
            "type": code_type,
            "appointment_id": appointment.id,
            "queue_entry_id": entry.id,
            "position": entry.position,
            "estimated_wait_minutes": entry.estimated_wait_minutes,
        }
