"""Tests for opening, completing and cancelling treatment records."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select

from src.dentacare.core.exceptions import (
    BadRequestError,
    ConflictError,
    InvalidStatusTransitionError,
    ResourceNotFoundError,
    TenantAccessError,
)
from src.dentacare.models.audit import AuditLog
from src.dentacare.models.base import ensure_utc
from src.dentacare.models.enums import TreatmentRecordStatus
from src.dentacare.services.appointment_service import AppointmentService
from src.dentacare.services.treatment_record_service import TreatmentRecordService, chair_minutes

START = datetime(2030, 5, 6, 9, 0, tzinfo=UTC)


async def _appointment(db_session, clinic, patient, dentist, treatment):
    return await AppointmentService(db_session).book(
        clinic.id, patient.id, START, dentist_id=dentist.id, treatment_id=treatment.id
    )


def test_chair_minutes_rounds_and_never_goes_negative():
    assert chair_minutes(START, START + timedelta(minutes=42, seconds=40)) == 43
    assert chair_minutes(START, START - timedelta(minutes=5)) == 0


@pytest.mark.asyncio
async def test_start_takes_defaults_from_appointment(db_session, clinic, patient, dentist, staff, treatment):
    appointment = await _appointment(db_session, clinic, patient, dentist, treatment)

    record = await TreatmentRecordService(db_session).start(staff, patient.id, appointment_id=appointment.id, now=START)

    assert record.treatment_id == treatment.id
    assert record.dentist_id == dentist.id
    assert record.price_charged == 80.0
    assert record.status == TreatmentRecordStatus.IN_PROGRESS.value
    assert ensure_utc(record.start_time) == START


@pytest.mark.asyncio
async def test_dentist_defaults_to_caller(db_session, patient, dentist, treatment):
    record = await TreatmentRecordService(db_session).start(dentist, patient.id, treatment_id=treatment.id)
    assert record.dentist_id == dentist.id


@pytest.mark.asyncio
async def test_start_requires_treatment_and_dentist(db_session, patient, staff, treatment):
    service = TreatmentRecordService(db_session)

    with pytest.raises(BadRequestError) as exc:
        await service.start(staff, patient.id)
    assert exc.value.error_code == "TREATMENT_REQUIRED"

    with pytest.raises(BadRequestError) as exc:
        await service.start(staff, patient.id, treatment_id=treatment.id)
    assert exc.value.error_code == "DENTIST_REQUIRED"

    with pytest.raises(BadRequestError) as exc:
        await service.start(staff, patient.id, treatment_id=treatment.id, dentist_id=staff.id)
    assert exc.value.error_code == "INVALID_DENTIST"


@pytest.mark.asyncio
async def test_one_open_record_per_appointment(db_session, clinic, patient, dentist, treatment):
    appointment = await _appointment(db_session, clinic, patient, dentist, treatment)
    service = TreatmentRecordService(db_session)
    await service.start(dentist, patient.id, appointment_id=appointment.id, now=START)

    with pytest.raises(ConflictError) as exc:
        await service.start(dentist, patient.id, appointment_id=appointment.id, now=START)
    assert exc.value.error_code == "TREATMENT_ALREADY_STARTED"


@pytest.mark.asyncio
async def test_start_outside_tenant_scope_denied(db_session, patient, outsider, treatment):
    with pytest.raises(TenantAccessError):
        await TreatmentRecordService(db_session).start(outsider, patient.id, treatment_id=treatment.id)


@pytest.mark.asyncio
async def test_complete_records_chair_time(db_session, patient, dentist, treatment):
    service = TreatmentRecordService(db_session)
    record = await service.start(dentist, patient.id, treatment_id=treatment.id, now=START)

    record = await service.complete(
        dentist,
        record,
        now=START + timedelta(minutes=50),
        complications="Minor bleeding",
        follow_up_required=True,
    )

    assert record.status == TreatmentRecordStatus.COMPLETED.value
    assert ensure_utc(record.end_time) == START + timedelta(minutes=50)
    assert record.actual_duration_minutes == 50
    assert record.complications == "Minor bleeding"
    assert record.follow_up_required is True

    with pytest.raises(InvalidStatusTransitionError):
        await service.complete(dentist, record)


@pytest.mark.asyncio
async def test_cancel_needs_reason_and_blocks_edits(db_session, patient, dentist, treatment):
    service = TreatmentRecordService(db_session)
    record = await service.start(dentist, patient.id, treatment_id=treatment.id, now=START)

    with pytest.raises(BadRequestError):
        await service.cancel(dentist, record, "  ")

    record = await service.cancel(dentist, record, "Patient felt unwell")
    assert record.status == TreatmentRecordStatus.CANCELLED.value

    with pytest.raises(InvalidStatusTransitionError):
        await service.update(record, notes="late note")

    actions = (await db_session.execute(select(AuditLog.action_type))).scalars().all()
    assert "treatment_started" in actions
    assert "treatment_cancelled" in actions


@pytest.mark.asyncio
async def test_patient_sees_only_own_records(db_session, clinic, patient, patient_user, dentist, treatment):
    service = TreatmentRecordService(db_session)
    record = await service.start(dentist, patient.id, treatment_id=treatment.id, now=START)
    other = await service.patients.create(clinic_id=clinic.id, full_name="Sam Lee", contact_number="+15550222")
    hidden = await service.start(dentist, other.id, treatment_id=treatment.id, now=START)

    records, total = await service.list_for_user(patient_user)
    assert [r.id for r in records] == [record.id]
    assert total == 1

    with pytest.raises(ResourceNotFoundError):
        await service.get_visible(patient_user, hidden.id)
