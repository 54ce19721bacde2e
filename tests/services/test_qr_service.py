"""Tests for signed check-in codes."""

from datetime import UTC, datetime, timedelta

import pytest

from src.dentacare.core.exceptions import (
    BadRequestError,
    FeatureDisabledError,
    InvalidQRCodeError,
    ResourceNotFoundError,
)
from src.dentacare.models.enums import AppointmentStatus
from src.dentacare.repositories.audit_repository import AuditRepository
from src.dentacare.repositories.clinic_repository import ClinicRepository
from src.dentacare.services.appointment_service import AppointmentService
from src.dentacare.services.clinic_service import FEATURE_QR_CHECKIN
from src.dentacare.services.qr_service import QRService

NOW = datetime(2030, 5, 6, 9, 0, tzinfo=UTC)


async def _appointment(db_session, clinic, patient, when=NOW + timedelta(minutes=30)):
    return await AppointmentService(db_session).book(clinic.id, patient.id, when)


@pytest.mark.asyncio
async def test_daily_code_expires_at_end_of_day(db_session, clinic):
    issued = QRService(db_session).generate_daily(clinic.id, now=NOW)

    assert issued["type"] == "daily"
    assert issued["expires_at"] == datetime(2030, 5, 6, 23, 59, 59, tzinfo=UTC)
    assert issued["payload"]["clinic_id"] == clinic.id


@pytest.mark.asyncio
async def test_appointment_code_checks_in_patient(db_session, clinic, patient, patient_user):
    service = QRService(db_session)
    appointment = await _appointment(db_session, clinic, patient)
    issued = await service.generate_for_appointment(appointment, now=NOW)
    assert appointment.qr_code == issued["code"]

    result = await service.scan(issued["code"], patient_user, now=NOW)

    assert result["appointment_id"] == appointment.id
    assert result["position"] == 1
    assert appointment.status == AppointmentStatus.CHECKED_IN.value


@pytest.mark.asyncio
async def test_daily_code_needs_todays_appointment(db_session, clinic, patient, staff):
    service = QRService(db_session)
    code = service.generate_daily(clinic.id, now=NOW)["code"]

    with pytest.raises(BadRequestError) as exc_info:
        await service.scan(code, staff, now=NOW)
    assert exc_info.value.error_code == "APPOINTMENT_ID_REQUIRED"

    later = await _appointment(db_session, clinic, patient, when=NOW + timedelta(days=1))
    with pytest.raises(BadRequestError) as exc_info:
        await service.scan(code, staff, appointment_id=later.id, now=NOW)
    assert exc_info.value.error_code == "APPOINTMENT_NOT_TODAY"

    today = await _appointment(db_session, clinic, patient)
    result = await service.scan(code, staff, appointment_id=today.id, now=NOW)
    assert result["type"] == "daily"
    assert result["appointment_id"] == today.id


@pytest.mark.asyncio
async def test_daily_code_of_other_clinic_rejected(db_session, clinic, other_clinic, patient, staff):
    service = QRService(db_session)
    code = service.generate_daily(other_clinic.id, now=NOW)["code"]
    appointment = await _appointment(db_session, clinic, patient)

    with pytest.raises(InvalidQRCodeError) as exc_info:
        await service.scan(code, staff, appointment_id=appointment.id, now=NOW)
    assert exc_info.value.error_code == "QR_CODE_CLINIC_MISMATCH"


@pytest.mark.asyncio
async def test_expired_code_rejected(db_session, clinic):
    service = QRService(db_session)
    code = service.generate_daily(clinic.id, now=NOW)["code"]

    with pytest.raises(InvalidQRCodeError) as exc_info:
        service.decode(code, now=NOW + timedelta(days=1))
    assert exc_info.value.error_code == "QR_CODE_EXPIRED"


@pytest.mark.asyncio
async def test_tampered_code_rejected(db_session, clinic):
    service = QRService(db_session)
    code = service.generate_daily(clinic.id, now=NOW)["code"]
    tampered = code[:-2] + ("AA" if not code.endswith("AA") else "BB")

    with pytest.raises(InvalidQRCodeError) as exc_info:
        service.decode(tampered, now=NOW)
    assert exc_info.value.error_code == "INVALID_QR_CODE"
    with pytest.raises(InvalidQRCodeError):
        service.decode("not-a-code", now=NOW)


@pytest.mark.asyncio
async def test_disabled_toggle_blocks_check_in(db_session, clinic, patient, patient_user):
    await ClinicRepository(db_session).set_toggle(clinic.id, FEATURE_QR_CHECKIN, False)
    service = QRService(db_session)
    appointment = await _appointment(db_session, clinic, patient)
    issued = await service.generate_for_appointment(appointment, now=NOW)

    with pytest.raises(FeatureDisabledError):
        await service.scan(issued["code"], patient_user, now=NOW)


@pytest.mark.asyncio
async def test_patient_cannot_redeem_someone_elses_code(db_session, clinic, patient, patient_user):
    service = QRService(db_session)
    other = await service.patients.create(clinic_id=clinic.id, full_name="Sam Lee", contact_number="+15550222")
    appointment = await AppointmentService(db_session).book(clinic.id, other.id, NOW + timedelta(minutes=30))
    issued = await service.generate_for_appointment(appointment, now=NOW)

    with pytest.raises(ResourceNotFoundError):
        await service.scan(issued["code"], patient_user, now=NOW)


@pytest.mark.asyncio
async def test_staff_time_in(db_session, clinic, staff, dentist):
    await ClinicRepository(db_session).set_toggle(clinic.id, FEATURE_QR_CHECKIN, False)
    service = QRService(db_session)
    code = service.generate_staff_time_in(staff, now=NOW)["code"]

    result = await service.scan(code, staff, now=NOW + timedelta(minutes=2))
    assert result["type"] == "staff_time_in"
    assert result["user_id"] == staff.id

    logs, _ = await AuditRepository(db_session).list_all(clinic_ids=[clinic.id], action_type="staff_time_in")
    assert len(logs) == 1

    with pytest.raises(InvalidQRCodeError) as exc_info:
        await service.scan(code, dentist, now=NOW)
    assert exc_info.value.error_code == "QR_CODE_USER_MISMATCH"
