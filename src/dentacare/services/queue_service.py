"""Queue Service.

Patient wait-list management:
- Check-in with per-clinic, per-day positions
- Walk-in registration
- Serving order (priority rank, manual order, position) and wait estimates
- Staff actions: call, complete, skip, emergency override, reorder
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt

from ..core.config import get_settings
from ..core.exceptions import (
    BadRequestError,
    ConflictError,
    InvalidStatusTransitionError,
    ResourceNotFoundError,
)
from ..core.rbac import ensure_clinic_access
from ..models.appointment import Appointment
from ..models.base import as_utc, day_bounds, ensure_utc, utc_now
from ..models.enums import (
    AppointmentStatus,
    BookingType,
    QueuePriority,
    QueueStatus,
    WalkInUrgency,
)
from ..models.patient import Patient
from ..models.queue import QueueEntry
from ..models.user import User
from ..repositories.appointment_repository import AppointmentRepository
from ..repositories.patient_repository import PatientRepository
from ..repositories.queue_repository import QueueRepository
from .appointment_service import AppointmentService

log = structlog.get_logger(__name__)

POSITION_ATTEMPTS = 3


def _log_position_retry(retry_state: RetryCallState) -> None:
    log.warning("queue_position_taken", attempt=retry_state.attempt_number)


def priority_for_booking(booking_type: str) -> QueuePriority:
    if booking_type == BookingType.EMERGENCY.value:
        return QueuePriority.EMERGENCY
    if booking_type == BookingType.WALK_IN.value:
        return QueuePriority.WALK_IN
    return QueuePriority.SCHEDULED


def order_entries(entries: Sequence[QueueEntry]) -> list[QueueEntry]:
    """Serving order: emergency < scheduled < walk_in, then manual_order (nulls last), then position."""
    return sorted(entries, key=lambda entry: entry.sort_key)


def estimate_queue_waits(entries: Sequence[QueueEntry], minutes_per_patient: int) -> list[int]:
    """Minutes until each (already ordered) entry is seen.

    Each patient ahead contributes its treatment_duration_override, or the
    per-patient default when none is set.
    """
    waits = []
    elapsed = 0
    for entry in entries:
        waits.append(elapsed)
        elapsed += entry.treatment_duration_override or minutes_per_patient
    return waits


def average_wait_minutes(entries: Sequence[QueueEntry]) -> float:
    """Mean minutes from check-in to being called, over entries that were called."""
    waits = [
        (ensure_utc(entry.called_at) - ensure_utc(entry.created_at)).total_seconds() / 60
        for entry in entries
        if entry.called_at is not None
    ]
    return round(sum(waits) / len(waits), 1) if waits else 0.0


def estimate_walk_in_wait(waiting_count: int, urgency: str, minutes_per_patient: int) -> int:
    base = waiting_count * minutes_per_patient
    if urgency == WalkInUrgency.EMERGENCY.value:
        return 0
    if urgency == WalkInUrgency.URGENT.value:
        return max(5, round(base * 0.3))
    return base


@dataclass
class WalkInResult:
    patient: Patient
    appointment: Appointment
    entry: QueueEntry
    estimated_wait_minutes: int
    is_new_patient: bool


class QueueService:
    """Queue operations for a clinic day."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.settings = get_settings()
        self.repo = QueueRepository(session)
        self.appointments = AppointmentRepository(session)
        self.patients = PatientRepository(session)
        self.appointment_service = AppointmentService(session)

    async def get_visible(self, user: User, entry_id: int) -> QueueEntry:
        entry = await self.repo.get_by_id(entry_id)
        if entry is None:
            raise ResourceNotFoundError("queue_entry", entry_id)
        await ensure_clinic_access(user, entry.clinic_id, self.session)
        return entry

    # =========================================================================
    # Check-in
    # =========================================================================

    async def check_in(self, appointment: Appointment, now: datetime | None = None) -> QueueEntry:
        """
        Put a booked appointment into today's queue.

        Raises:
            ConflictError: Appointment already has a queue entry
            InvalidStatusTransitionError: Appointment is not booked
        """
        now = as_utc(now) if now else utc_now()

        if await self.repo.get_by_appointment(appointment.id) is not None:
            raise ConflictError(
                message="Patient is already checked in for this appointment",
                error_code="ALREADY_CHECKED_IN",
                details={"appointment_id": appointment.id},
            )
        if appointment.status != AppointmentStatus.BOOKED.value:
            raise InvalidStatusTransitionError("appointment", appointment.status, AppointmentStatus.CHECKED_IN.value)

        queue_date = now.date()
        await self.repo.lock_clinic(appointment.clinic_id)
        try:
            entry = await self._insert_entry(appointment, queue_date, now)
        except IntegrityError:
            if await self.repo.get_by_appointment(appointment.id) is not None:
                raise ConflictError(
                    message="Patient is already checked in for this appointment",
                    error_code="ALREADY_CHECKED_IN",
                    details={"appointment_id": appointment.id},
                ) from None
            raise ConflictError(
                message="Could not assign a queue position, try again",
                error_code="QUEUE_POSITION_CONFLICT",
                details={"clinic_id": appointment.clinic_id},
            ) from None
        await self.appointment_service.transition(appointment, AppointmentStatus.CHECKED_IN.value)
        await self.refresh_estimates(appointment.clinic_id, queue_date)
        return entry

    @retry(
        stop=stop_after_attempt(POSITION_ATTEMPTS),
        retry=retry_if_exception_type(IntegrityError),
        before_sleep=_log_position_retry,
        reraise=True,
    )
    async def _insert_entry(self, appointment: Appointment, queue_date: date, now: datetime) -> QueueEntry:
        """Take the next free position of the clinic day; a concurrent check-in forces a retry."""
        position = await self.repo.max_position(appointment.clinic_id, queue_date) + 1
        async with self.session.begin_nested():
            return await self.repo.create(
                clinic_id=appointment.clinic_id,
                appointment_id=appointment.id,
                queue_date=queue_date,
                position=position,
                priority=priority_for_booking(appointment.booking_type).value,
                status=QueueStatus.WAITING.value,
                created_at=now,
            )

    async def register_walk_in(
        self,
        clinic_id: int,
        full_name: str,
        contact_number: str,
        email: str | None = None,
        dentist_id: int | None = None,
        treatment_id: int | None = None,
        urgency: str = WalkInUrgency.NORMAL.value,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> WalkInResult:
        """Register a patient without a booking and queue them immediately.

        Returning patients are matched by contact number within the clinic.
        """
        now = as_utc(now) if now else utc_now()

        waiting_before = await self.repo.count_by_status(clinic_id, QueueStatus.WAITING.value, now.date())

        patient = await self.patients.find_by_contact(clinic_id, contact_number)
        is_new = patient is None
        if patient is None:
            patient = await self.patients.create(
                clinic_id=clinic_id,
                full_name=full_name,
                contact_number=contact_number,
                email=email,
            )

        booking_type = (
            BookingType.EMERGENCY.value if urgency == WalkInUrgency.EMERGENCY.value else BookingType.WALK_IN.value
        )
        appointment = await self.appointment_service.book(
            clinic_id=clinic_id,
            patient_id=patient.id,
            scheduled_time=now,
            dentist_id=dentist_id,
            treatment_id=treatment_id,
            booking_type=booking_type,
            notes=notes,
            check_overlap=False,
        )
        entry = await self.check_in(appointment, now=now)

        estimate = estimate_walk_in_wait(waiting_before, urgency, self.settings.WALK_IN_MINUTES_PER_PATIENT)
        entry.estimated_wait_minutes = estimate
        entry = await self.repo.save(entry)

        log.info(
            "walk_in_registered",
            clinic_id=clinic_id,
            patient_id=patient.id,
            entry_id=entry.id,
            urgency=urgency,
            estimated_wait=estimate,
        )
        return WalkInResult(
            patient=patient,
            appointment=appointment,
            entry=entry,
            estimated_wait_minutes=estimate,
            is_new_patient=is_new,
        )

    # =========================================================================
    # Ordering
    # =========================================================================

    async def ordered(self, clinic_id: int, day: date | None = None) -> list[QueueEntry]:
        """Active entries of a clinic day (today by default) in serving order, with estimated waits filled in."""
        return await self.refresh_estimates(clinic_id, day or utc_now().date())

    async def refresh_estimates(self, clinic_id: int, queue_date: date) -> list[QueueEntry]:
        entries = order_entries(await self.repo.list_active(clinic_id, queue_date))
        waits = estimate_queue_waits(entries, self.settings.QUEUE_MINUTES_PER_PATIENT)
        for entry, wait in zip(entries, waits):
            entry.estimated_wait_minutes = wait
        await self.session.flush()
        return entries

    # =========================================================================
    # Staff actions
    # =========================================================================

    async def _appointment_for(self, entry: QueueEntry) -> Appointment:
        appointment = await self.appointments.get_by_id(entry.appointment_id)
        if appointment is None:
            raise ResourceNotFoundError("appointment", entry.appointment_id)
        return appointment

    @staticmethod
    def _require_status(entry: QueueEntry, allowed: QueueStatus, requested: QueueStatus) -> None:
        if entry.status != allowed.value:
            raise InvalidStatusTransitionError("queue_entry", entry.status, requested.value)

    async def call(self, entry: QueueEntry) -> QueueEntry:
        """Call a waiting patient; the appointment moves to in_progress."""
        self._require_status(entry, QueueStatus.WAITING, QueueStatus.CALLED)
        appointment = await self._appointment_for(entry)
        await self.appointment_service.transition(appointment, AppointmentStatus.IN_PROGRESS.value)

        entry.status = QueueStatus.CALLED.value
        entry.called_at = utc_now()
        entry = await self.repo.save(entry)
        await self.refresh_estimates(entry.clinic_id, entry.queue_date)
        log.info("queue_entry_called", entry_id=entry.id, appointment_id=appointment.id)
        return entry

    async def complete(self, entry: QueueEntry) -> QueueEntry:
        self._require_status(entry, QueueStatus.CALLED, QueueStatus.COMPLETED)
        entry.status = QueueStatus.COMPLETED.value
        entry.completed_at = utc_now()

        appointment = await self._appointment_for(entry)
        if appointment.status == AppointmentStatus.IN_PROGRESS.value:
            await self.appointment_service.transition(appointment, AppointmentStatus.COMPLETED.value)

        entry = await self.repo.save(entry)
        await self.refresh_estimates(entry.clinic_id, entry.queue_date)
        log.info("queue_entry_completed", entry_id=entry.id)
        return entry

    async def skip(self, entry: QueueEntry) -> QueueEntry:
        self._require_status(entry, QueueStatus.WAITING, QueueStatus.SKIPPED)
        entry.status = QueueStatus.SKIPPED.value
        entry = await self.repo.save(entry)
        await self.refresh_estimates(entry.clinic_id, entry.queue_date)
        log.info("queue_entry_skipped", entry_id=entry.id)
        return entry

    async def emergency_override(self, entry: QueueEntry, reason: str) -> QueueEntry:
        """Move an entry to the front of the emergency band."""
        if not reason or not reason.strip():
            raise BadRequestError(message="An override reason is required", error_code="OVERRIDE_REASON_REQUIRED")
        if entry.status not in (QueueStatus.WAITING.value, QueueStatus.CALLED.value):
            raise InvalidStatusTransitionError("queue_entry", entry.status, QueuePriority.EMERGENCY.value)

        entry.priority = QueuePriority.EMERGENCY.value
        entry.manual_order = 1
        entry.override_reason = reason.strip()
        entry = await self.repo.save(entry)
        await self.refresh_estimates(entry.clinic_id, entry.queue_date)
        log.info("queue_emergency_override", entry_id=entry.id, reason=entry.override_reason)
        return entry

    async def reorder(self, entry: QueueEntry, manual_order: int) -> QueueEntry:
        if manual_order < 1:
            raise BadRequestError(message="manual_order must be at least 1", error_code="INVALID_MANUAL_ORDER")
        if entry.status != QueueStatus.WAITING.value:
            raise InvalidStatusTransitionError("queue_entry", entry.status, "reordered")
        entry.manual_order = manual_order
        entry = await self.repo.save(entry)
        await self.refresh_estimates(entry.clinic_id, entry.queue_date)
        return entry

    async def set_duration_override(self, entry: QueueEntry, minutes: int | None) -> QueueEntry:
        entry.treatment_duration_override = minutes
        entry = await self.repo.save(entry)
        await self.refresh_estimates(entry.clinic_id, entry.queue_date)
        return entry

    # =========================================================================
    # Stats
    # =========================================================================

    async def stats(self, clinic_id: int, day: date | None = None) -> dict:
        """Waiting/called counts, today's completions and their average wait."""
        day = day or utc_now().date()
        day_start, day_end = day_bounds(day)
        completed = await self.repo.list_between(
            day_start, day_end, clinic_ids=[clinic_id], status=QueueStatus.COMPLETED.value
        )
        return {
            "clinic_id": clinic_id,
            "date": day.isoformat(),
            "waiting": await self.repo.count_by_status(clinic_id, QueueStatus.WAITING.value, day),
            "called": await self.repo.count_by_status(clinic_id, QueueStatus.CALLED.value, day),
            "completed_today": len(completed),
            "average_wait_minutes": average_wait_minutes(completed),
        }

    # =========================================================================
    # Housekeeping
    # =========================================================================

    async def expire_stale_entries(self, today: date | None = None) -> int:
        """Skip entries left waiting on an earlier day; returns how many were closed."""
        today = today or utc_now().date()
        stale = await self.repo.list_stale_waiting(today)
        for entry in stale:
            entry.status = QueueStatus.SKIPPED.value
        if stale:
            await self.session.flush()
            log.info("queue_stale_entries_skipped", count=len(stale), before=today.isoformat())
        return len(stale)
