"""
Treatment Record Service.

Clinical record of treatments performed in the chair. A dentist opens a
record when work starts and completes it afterwards; the measured chair
time is kept on the record. Records are written inside the tenant scope
only, but can be read by sharing-group peers.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import BadRequestError, ConflictError, InvalidStatusTransitionError, ResourceNotFoundError
from ..core.rbac import ensure_clinic_access, visible_clinic_ids
from ..models.base import as_utc, ensure_utc, utc_now
from ..models.enums import SharedDataType, TreatmentRecordStatus, UserRole
from ..models.treatment_record import TreatmentRecord
from ..models.user import User
from ..repositories.appointment_repository import AppointmentRepository, TreatmentRepository
from ..repositories.audit_repository import AuditRepository
from ..repositories.patient_repository import PatientRepository
from ..repositories.treatment_record_repository import TreatmentRecordRepository
from ..repositories.user_repository import UserRepository
from .sharing_service import BranchSharingService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("notes", "complications", "follow_up_required", "follow_up_notes", "price_charged")


def chair_minutes(start_time: datetime, end_time: datetime) -> int:
    """Whole minutes between start and end, never negative."""
    seconds = (ensure_utc(end_time) - ensure_utc(start_time)).total_seconds()
    return max(0, round(seconds / 60))


class TreatmentRecordService:
    """Open, edit, complete and read treatment records."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = TreatmentRecordRepository(session)
        self.patients = PatientRepository(session)
        self.treatments = TreatmentRepository(session)
        self.appointments = AppointmentRepository(session)
        self.users = UserRepository(session)
        self.audit = AuditRepository(session)
        self.sharing = BranchSharingService(session)

    async def _resolve_dentist(self, user: User, clinic_id: int, dentist_id: int | None, fallback: int | None) -> int:
        if dentist_id is None:
            dentist_id = user.id if user.is_dentist else fallback
        if dentist_id is None:
            raise BadRequestError(message="A treating dentist is required", error_code="DENTIST_REQUIRED")
        dentist = await self.users.get_by_id(dentist_id)
        if dentist is None or dentist.role != UserRole.DENTIST.value or dentist.clinic_id != clinic_id:
            raise BadRequestError(
                message="Dentist must be an active dentist of the patient's clinic",
                error_code="INVALID_DENTIST",
                details={"dentist_id": dentist_id, "clinic_id": clinic_id},
            )
        if not dentist.is_active:
            raise BadRequestError(message="Dentist account is inactive", error_code="INVALID_DENTIST")
        return dentist.id

    async def start(
        self,
        user: User,
        patient_id: int,
        treatment_id: int | None = None,
        appointment_id: int | None = None,
        dentist_id: int | None = None,
        notes: str | None = None,
        price_charged: float | None = None,
        now: datetime | None = None,
    ) -> TreatmentRecord:
        """
        Open an in-progress record for a patient.

        Treatment and dentist default to those of the linked appointment;
        the price defaults to the treatment's list price.

        Raises:
            ResourceNotFoundError: Unknown patient, treatment or appointment
            BadRequestError: Missing treatment or dentist, appointment of another patient
            ConflictError: The appointment already has an open record
        """
        now = as_utc(now) if now else utc_now()
        patient = await self.patients.get_by_id(patient_id)
        if patient is None:
            raise ResourceNotFoundError("patient", patient_id)
        await ensure_clinic_access(user, patient.clinic_id, self.session)

        appointment = None
        if appointment_id is not None:
            appointment = await self.appointments.get_by_id(appointment_id)
            if appointment is None or appointment.clinic_id != patient.clinic_id:
                raise ResourceNotFoundError("appointment", appointment_id)
            if appointment.patient_id != patient.id:
                raise BadRequestError(
                    message="Appointment belongs to another patient",
                    error_code="APPOINTMENT_PATIENT_MISMATCH",
                )
            if await self.repo.get_open_for_appointment(appointment.id) is not None:
                raise ConflictError(
                    message="A treatment is already in progress for this appointment",
                    error_code="TREATMENT_ALREADY_STARTED",
                    details={"appointment_id": appointment.id},
                )
            treatment_id = treatment_id if treatment_id is not None else appointment.treatment_id

        if treatment_id is None:
            raise BadRequestError(message="A treatment is required", error_code="TREATMENT_REQUIRED")
        treatment = await self.treatments.get_by_id(treatment_id)
        if treatment is None or treatment.clinic_id != patient.clinic_id:
            raise ResourceNotFoundError("treatment", treatment_id)

        dentist_id = await self._resolve_dentist(
            user, patient.clinic_id, dentist_id, appointment.dentist_id if appointment else None
        )
        record = await self.repo.create(
            clinic_id=patient.clinic_id,
            patient_id=patient.id,
            dentist_id=dentist_id,
            treatment_id=treatment.id,
            appointment_id=appointment.id if appointment else None,
            start_time=now,
            status=TreatmentRecordStatus.IN_PROGRESS.value,
            notes=notes,
            price_charged=price_charged if price_charged is not None else treatment.default_price,
        )
        await self.audit.record(
            action_type="treatment_started",
            action_description=f"Treatment '{treatment.name}' started",
            clinic_id=record.clinic_id,
            user_id=user.id,
            patient_id=record.patient_id,
            entity_type="treatment_record",
            entity_id=record.id,
        )
        return record

    async def get_visible(
        self,
        user: User,
        record_id: int,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> TreatmentRecord:
        """Patients see their own records; staff see their tenant scope and sharing peers."""
        record = await self.repo.get_by_id(record_id)
        if record is None:
            raise ResourceNotFoundError("treatment_record", record_id)
        if user.is_patient:
            patient = await self.patients.get_by_user_id(user.id)
            if patient is None or patient.id != record.patient_id:
                raise ResourceNotFoundError("treatment_record", record_id)
            return record
        await self.sharing.ensure_read_access(
            user,
            record.clinic_id,
            SharedDataType.TREATMENT_RECORD.value,
            record.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return record

    async def get_for_update(self, user: User, record_id: int) -> TreatmentRecord:
        record = await self.repo.get_by_id(record_id)
        if record is None:
            raise ResourceNotFoundError("treatment_record", record_id)
        await ensure_clinic_access(user, record.clinic_id, self.session)
        return record

    async def list_for_user(
        self,
        user: User,
        patient_id: int | None = None,
        dentist_id: int | None = None,
        status: str | None = None,
        include_shared: bool = False,
        ip_address: str | None = None,
        user_agent: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[TreatmentRecord], int]:
        if user.is_patient:
            patient = await self.patients.get_by_user_id(user.id)
            if patient is None:
                return [], 0
            return await self.repo.list_all(patient_id=patient.id, status=status, skip=skip, limit=limit)

        clinic_ids = await visible_clinic_ids(user, self.session)
        shared: list[int] = []
        if include_shared and clinic_ids is not None:
            shared = await self.sharing.shared_clinic_ids(user)
            clinic_ids = sorted(set(clinic_ids) | set(shared))
        records, total = await self.repo.list_all(
            clinic_ids=clinic_ids,
            patient_id=patient_id,
            dentist_id=dentist_id,
            status=status,
            skip=skip,
            limit=limit,
        )
        for record in records:
            if record.clinic_id in shared:
                await self.sharing.ensure_read_access(
                    user,
                    record.clinic_id,
                    SharedDataType.TREATMENT_RECORD.value,
                    record.id,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
        return records, total

    async def update(self, record: TreatmentRecord, **fields: object) -> TreatmentRecord:
        if record.status == TreatmentRecordStatus.CANCELLED.value:
            raise InvalidStatusTransitionError("treatment_record", record.status, "updated")
        changes = {key: value for key, value in fields.items() if key in EDITABLE_FIELDS}
        return await self.repo.update(record, **changes)

    async def complete(self, user: User, record: TreatmentRecord, now: datetime | None = None, **fields: object) -> TreatmentRecord:
        """Close an in-progress record, stamping end_time and the chair minutes."""
        if record.status != TreatmentRecordStatus.IN_PROGRESS.value:
            raise InvalidStatusTransitionError("treatment_record", record.status, TreatmentRecordStatus.COMPLETED.value)
        end_time = as_utc(now) if now else utc_now()
        changes = {key: value for key, value in fields.items() if key in EDITABLE_FIELDS and value is not None}
        record = await self.repo.update(
            record,
            status=TreatmentRecordStatus.COMPLETED.value,
            end_time=end_time,
            actual_duration_minutes=chair_minutes(record.start_time, end_time),
            **changes,
        )
        await self.audit.record(
            action_type="treatment_completed",
            action_description=f"Treatment record {record.id} completed after {record.actual_duration_minutes} min",
            clinic_id=record.clinic_id,
            user_id=user.id,
            patient_id=record.patient_id,
            entity_type="treatment_record",
            entity_id=record.id,
            new_values={"actual_duration_minutes": record.actual_duration_minutes, "price_charged": record.price_charged},
        )
        logger.info(f"Treatment record {record.id} completed ({record.actual_duration_minutes} min)")
        return record

    async def cancel(self, user: User, record: TreatmentRecord, reason: str) -> TreatmentRecord:
        if not reason or not reason.strip():
            raise BadRequestError(message="A cancellation reason is required", error_code="REASON_REQUIRED")
        if record.status != TreatmentRecordStatus.IN_PROGRESS.value:
            raise InvalidStatusTransitionError("treatment_record", record.status, TreatmentRecordStatus.CANCELLED.value)
        record = await self.repo.update(record, status=TreatmentRecordStatus.CANCELLED.value, end_time=utc_now())
        await self.audit.record(
            action_type="treatment_cancelled",
            action_description=f"Treatment record {record.id} cancelled: {reason.strip()}",
            clinic_id=record.clinic_id,
            user_id=user.id,
            patient_id=record.patient_id,
            entity_type="treatment_record",
            entity_id=record.id,
        )
        return record
