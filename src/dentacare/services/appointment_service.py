"""Appointment Service.

Booking and lifecycle rules for appointments:
- Dentist validation and double-booking detection
- Status transition table with timestamps
- Treatment blocking on unverified required forms
- No-show sweep
"""
from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InvalidStatusTransitionError,
    ResourceNotFoundError,
    TreatmentBlockedError,
)
from ..core.rbac import ensure_clinic_access, visible_clinic_ids
from ..models.appointment import Appointment, Treatment
from ..models.base import as_utc, ensure_utc, utc_now
from ..models.enums import AppointmentStatus, BookingType, QueueStatus, UserRole, VerificationStatus
from ..models.form import FormResponse
from ..models.patient import Patient
from ..models.user import User
from ..repositories.appointment_repository import AppointmentRepository, TreatmentRepository
from ..repositories.form_repository import FormRepository
from ..repositories.patient_repository import PatientRepository
from ..repositories.queue_repository import QueueRepository
from ..repositories.user_repository import UserRepository

log = structlog.get_logger(__name__)

S = AppointmentStatus

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    S.BOOKED.value: frozenset({S.CHECKED_IN.value, S.CANCELLED.value, S.NO_SHOW.value}),
    S.CHECKED_IN.value: frozenset({S.IN_PROGRESS.value, S.CANCELLED.value, S.NO_SHOW.value}),
    S.IN_PROGRESS.value: frozenset({S.COMPLETED.value}),
    S.COMPLETED.value: frozenset(),
    S.CANCELLED.value: frozenset(),
    S.NO_SHOW.value: frozenset(),
}


def can_transition(current: str, requested: str) -> bool:
    return requested in ALLOWED_TRANSITIONS.get(current, frozenset())


class AppointmentService:
    """Appointment booking and lifecycle."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.settings = get_settings()
        self.repo = AppointmentRepository(session)
        self.treatments = TreatmentRepository(session)
        self.patients = PatientRepository(session)
        self.users = UserRepository(session)
        self.forms = FormRepository(session)
        self.queue = QueueRepository(session)

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_patient_in_clinic(self, patient_id: int, clinic_id: int) -> Patient:
        patient = await self.patients.get_by_id(patient_id)
        if patient is None or not patient.is_active:
            raise ResourceNotFoundError("patient", patient_id)
        if patient.clinic_id != clinic_id:
            raise BadRequestError(
                message="Patient is registered with a different clinic",
                error_code="PATIENT_CLINIC_MISMATCH",
                details={"patient_id": patient_id, "clinic_id": clinic_id},
            )
        return patient

    async def validate_dentist(self, dentist_id: int, clinic_id: int) -> User:
        """The dentist must be an active dentist of the clinic."""
        dentist = await self.users.get_by_id(dentist_id)
        if dentist is None or not dentist.is_active:
            raise ResourceNotFoundError("dentist", dentist_id)
        if dentist.role != UserRole.DENTIST.value or dentist.clinic_id != clinic_id:
            raise BadRequestError(
                message="Selected user is not a dentist of this clinic",
                error_code="INVALID_DENTIST",
                details={"dentist_id": dentist_id, "clinic_id": clinic_id},
            )
        return dentist

    async def get_visible(self, user: User, appointment_id: int) -> Appointment:
        """Load an appointment the caller may see.

        Patients only reach their own appointments; everyone else is
        limited to their tenant scope.
        """
        appointment = await self.repo.get_by_id(appointment_id)
        if appointment is None:
            raise ResourceNotFoundError("appointment", appointment_id)
        if user.is_patient:
            patient = await self.patients.get_by_user_id(user.id)
            if patient is None or patient.id != appointment.patient_id:
                raise ResourceNotFoundError("appointment", appointment_id)
            return appointment
        await ensure_clinic_access(user, appointment.clinic_id, self.session)
        return appointment

    async def list_for_user(
        self,
        user: User,
        clinic_id: int | None = None,
        dentist_id: int | None = None,
        status: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[Appointment], int]:
        """Role-filtered listing: patients see their own, dentists their own."""
        patient_id = None
        clinic_ids = await visible_clinic_ids(user, self.session)

        if user.is_patient:
            patient = await self.patients.get_by_user_id(user.id)
            if patient is None:
                return [], 0
            patient_id = patient.id
            clinic_ids = None
        elif user.is_dentist:
            dentist_id = user.id

        if clinic_id is not None:
            if clinic_ids is not None and clinic_id not in clinic_ids:
                await ensure_clinic_access(user, clinic_id, self.session)
            clinic_ids = [clinic_id]

        return await self.repo.list_all(
            clinic_ids=clinic_ids,
            patient_id=patient_id,
            dentist_id=dentist_id,
            status=status,
            start=as_utc(start) if start else None,
            end=as_utc(end) if end else None,
            skip=skip,
            limit=limit,
        )

    # =========================================================================
    # Booking
    # =========================================================================

    async def _ensure_slot_free(
        self,
        dentist_id: int,
        start: datetime,
        duration_minutes: int,
        exclude_id: int | None = None,
    ) -> None:
        end = start + timedelta(minutes=duration_minutes)
        clash = await self.repo.find_overlapping(dentist_id, start, end, exclude_id=exclude_id)
        if clash is not None:
            raise ConflictError(
                message="Dentist already has an appointment in this time slot",
                error_code="APPOINTMENT_CONFLICT",
                details={
                    "dentist_id": dentist_id,
                    "conflicting_appointment_id": clash.id,
                    "conflicting_time": ensure_utc(clash.scheduled_time).isoformat(),
                },
            )

    async def book(
        self,
        clinic_id: int,
        patient_id: int,
        scheduled_time: datetime,
        dentist_id: int | None = None,
        treatment_id: int | None = None,
        duration_minutes: int | None = None,
        booking_type: str = BookingType.ONLINE.value,
        notes: str | None = None,
        check_overlap: bool = True,
    ) -> Appointment:
        """
        Book an appointment.

        Duration falls back to the treatment's default chair time, then to
        DEFAULT_APPOINTMENT_DURATION_MINUTES.

        Raises:
            ConflictError: Dentist is double-booked
            BadRequestError: Dentist or patient belongs elsewhere
        """
        await self.get_patient_in_clinic(patient_id, clinic_id)

        treatment: Treatment | None = None
        if treatment_id is not None:
            treatment = await self.treatments.get_by_id(treatment_id)
            if treatment is None or treatment.clinic_id != clinic_id:
                raise ResourceNotFoundError("treatment", treatment_id)

        if duration_minutes is None:
            duration_minutes = (
                treatment.default_duration_minutes
                if treatment and treatment.default_duration_minutes
                else self.settings.DEFAULT_APPOINTMENT_DURATION_MINUTES
            )

        start = as_utc(scheduled_time)
        if dentist_id is not None:
            await self.validate_dentist(dentist_id, clinic_id)
            if check_overlap:
                await self._ensure_slot_free(dentist_id, start, duration_minutes)

        return await self.repo.create(
            clinic_id=clinic_id,
            patient_id=patient_id,
            dentist_id=dentist_id,
            treatment_id=treatment_id,
            scheduled_time=start,
            duration_minutes=duration_minutes,
            status=S.BOOKED.value,
            booking_type=booking_type,
            notes=notes,
        )

    async def reschedule(
        self,
        appointment: Appointment,
        scheduled_time: datetime | None = None,
        duration_minutes: int | None = None,
        dentist_id: int | None = None,
        notes: str | None = None,
    ) -> Appointment:
        """Move, reassign or annotate a booked appointment."""
        if appointment.status != S.BOOKED.value and (scheduled_time or duration_minutes or dentist_id):
            raise InvalidStatusTransitionError("appointment", appointment.status, "rescheduled")

        new_start = as_utc(scheduled_time) if scheduled_time else ensure_utc(appointment.scheduled_time)
        new_duration = duration_minutes or appointment.duration_minutes
        new_dentist = dentist_id or appointment.dentist_id

        if dentist_id is not None:
            await self.validate_dentist(dentist_id, appointment.clinic_id)
        if new_dentist is not None and (scheduled_time or duration_minutes or dentist_id):
            await self._ensure_slot_free(new_dentist, new_start, new_duration, exclude_id=appointment.id)

        return await self.repo.update(
            appointment,
            scheduled_time=new_start if scheduled_time else None,
            duration_minutes=duration_minutes,
            dentist_id=dentist_id,
            notes=notes,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def pending_forms(self, patient_id: int) -> list[dict]:
        """Latest response per gating form that is not yet approved."""
        latest: dict[int, FormResponse] = {}
        for response in await self.forms.list_required_for_patient(patient_id):
            latest[response.form_id] = response
        return [
            {
                "form_response_id": response.id,
                "form_id": form_id,
                "verification_status": response.verification_status,
            }
            for form_id, response in latest.items()
            if response.verification_status != VerificationStatus.APPROVED.value
        ]

    async def ensure_treatment_allowed(self, appointment: Appointment) -> None:
        pending = await self.pending_forms(appointment.patient_id)
        if pending:
            log.info("treatment_blocked", appointment_id=appointment.id, pending=len(pending))
            raise TreatmentBlockedError(appointment.id, pending)

    async def transition(self, appointment: Appointment, new_status: str) -> Appointment:
        """
        Move an appointment to a new status.

        in_progress stamps actual_start_time and requires every gating form
        of the patient to be approved; completed stamps actual_end_time.

        Raises:
            InvalidStatusTransitionError: Not allowed from the current status
            TreatmentBlockedError: Required forms still await verification
        """
        current = appointment.status
        if not can_transition(current, new_status):
            raise InvalidStatusTransitionError("appointment", current, new_status)

        now = utc_now()
        if new_status == S.IN_PROGRESS.value:
            await self.ensure_treatment_allowed(appointment)
            appointment.actual_start_time = now
        elif new_status == S.COMPLETED.value:
            appointment.actual_end_time = now

        appointment.status = new_status
        await self._sync_queue_entry(appointment, now)
        await self.session.flush()
        await self.session.refresh(appointment)

        log.info(
            "appointment_status_changed",
            appointment_id=appointment.id,
            old_status=current,
            new_status=new_status,
        )
        return appointment

    async def _sync_queue_entry(self, appointment: Appointment, now: datetime) -> None:
        """Close an active queue entry when the appointment ends outside the queue."""
        if appointment.status not in (S.COMPLETED.value, S.CANCELLED.value, S.NO_SHOW.value):
            return
        entry = await self.queue.get_by_appointment(appointment.id)
        if entry is None or entry.status not in (QueueStatus.WAITING.value, QueueStatus.CALLED.value):
            return
        if appointment.status == S.COMPLETED.value:
            entry.status = QueueStatus.COMPLETED.value
            entry.completed_at = now
        else:
            entry.status = QueueStatus.SKIPPED.value

    async def complete_with_supplies(self, appointment: Appointment) -> Appointment:
        """Close an appointment once its consumables are booked out.

        Unlike ``transition`` this also accepts checked_in, for visits that
        never went through the call step.
        """
        if appointment.status not in (S.CHECKED_IN.value, S.IN_PROGRESS.value):
            raise InvalidStatusTransitionError("appointment", appointment.status, S.COMPLETED.value)
        now = utc_now()
        if appointment.actual_start_time is None:
            appointment.actual_start_time = now
        appointment.actual_end_time = now
        appointment.status = S.COMPLETED.value
        await self._sync_queue_entry(appointment, now)
        await self.session.flush()
        await self.session.refresh(appointment)
        return appointment

    async def cancel(self, appointment: Appointment, reason: str | None = None) -> Appointment:
        if reason:
            appointment.notes = f"{appointment.notes}\nCancelled: {reason}" if appointment.notes else f"Cancelled: {reason}"
        return await self.transition(appointment, S.CANCELLED.value)

    async def mark_no_shows(self, now: datetime | None = None, clinic_ids: Sequence[int] | None = None) -> int:
        """Mark booked appointments past scheduled_time + grace as no_show."""
        now = as_utc(now) if now else utc_now()
        cutoff = now - timedelta(minutes=self.settings.NO_SHOW_GRACE_MINUTES)
        overdue = await self.repo.list_overdue_booked(cutoff, clinic_ids)
        for appointment in overdue:
            appointment.status = S.NO_SHOW.value
        await self.session.flush()
        log.info("no_shows_marked", count=len(overdue), cutoff=cutoff.isoformat())
        return len(overdue)

    # =========================================================================
    # Treatments
    # =========================================================================

    async def get_treatment(self, user: User, treatment_id: int) -> Treatment:
        treatment = await self.treatments.get_by_id(treatment_id)
        if treatment is None:
            raise ResourceNotFoundError("treatment", treatment_id)
        await ensure_clinic_access(user, treatment.clinic_id, self.session)
        return treatment

    async def ensure_patient_owns(self, user: User, patient_id: int) -> None:
        """Patients may only act on their own record."""
        if not user.is_patient:
            return
        patient = await self.patients.get_by_user_id(user.id)
        if patient is None or patient.id != patient_id:
            raise ForbiddenError(
                message="Patients can only access their own records",
                error_code="PATIENT_SCOPE",
            )
