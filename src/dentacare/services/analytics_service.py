"""
Analytics Service.

Read-only aggregates for the staff and admin dashboards. Money figures
come from verified payments: an approved proof is counted on the day it
was verified, which is the day the invoice's amount_paid moved.

All days are UTC calendar days.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import day_bounds, ensure_utc, utc_now
from ..models.enums import AppointmentStatus, QueueStatus
from ..repositories.appointment_repository import AppointmentRepository
from ..repositories.clinic_repository import ClinicRepository
from ..repositories.patient_repository import PatientRepository
from ..repositories.payment_repository import InvoiceRepository, PaymentProofRepository
from ..repositories.queue_repository import QueueRepository
from ..repositories.user_repository import UserRepository
from .queue_service import average_wait_minutes

log = structlog.get_logger(__name__)

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class AnalyticsService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.appointments = AppointmentRepository(session)
        self.queue = QueueRepository(session)
        self.proofs = PaymentProofRepository(session)
        self.invoices = InvoiceRepository(session)
        self.clinics = ClinicRepository(session)
        self.patients = PatientRepository(session)
        self.users = UserRepository(session)

    async def _revenue_between(self, clinic_ids: list[int], start, end) -> float:
        proofs = await self.proofs.list_verified_between(start, end, clinic_ids=clinic_ids)
        return round(sum(proof.amount for proof in proofs), 2)

    async def dashboard(self, clinic_id: int, day: date | None = None) -> dict[str, Any]:
        """Today's counters for one clinic."""
        day = day or utc_now().date()
        start, end = day_bounds(day)

        appointments = await self.appointments.list_between(start, end, clinic_ids=[clinic_id])
        statuses = [appointment.status for appointment in appointments]
        completed_entries = await self.queue.list_between(
            start, end, clinic_ids=[clinic_id], status=QueueStatus.COMPLETED.value
        )

        return {
            "clinic_id": clinic_id,
            "date": day.isoformat(),
            "today_appointments": len(appointments),
            "checked_in": sum(
                status in (AppointmentStatus.CHECKED_IN.value, AppointmentStatus.IN_PROGRESS.value)
                for status in statuses
            ),
            "queue_waiting": await self.queue.count_by_status(clinic_id, QueueStatus.WAITING.value, day),
            "completed_today": statuses.count(AppointmentStatus.COMPLETED.value),
            "revenue_today": await self._revenue_between([clinic_id], start, end),
            "avg_wait_minutes": average_wait_minutes(completed_entries),
        }

    async def dentist_workload(self, clinic_id: int, day: date | None = None) -> list[dict[str, Any]]:
        """
        Per-dentist load for a day and its ISO week (Monday to Sunday).

        Revenue is amount_paid on invoices linked to the dentist's
        appointments of that week.
        """
        day = day or utc_now().date()
        day_start, day_end = day_bounds(day)
        week_start, _ = day_bounds(day - timedelta(days=day.weekday()))
        week_end = week_start + timedelta(days=7)

        week_appointments = await self.appointments.list_between(week_start, week_end, clinic_ids=[clinic_id])
        by_dentist: dict[int, list] = defaultdict(list)
        for appointment in week_appointments:
            if appointment.dentist_id is not None:
                by_dentist[appointment.dentist_id].append(appointment)

        invoices = await self.invoices.list_for_appointments([a.id for a in week_appointments])
        paid_by_appointment: dict[int, float] = defaultdict(float)
        for invoice in invoices:
            paid_by_appointment[invoice.appointment_id] += invoice.amount_paid

        workload = []
        for dentist in await self.users.list_dentists(clinic_id):
            mine = by_dentist.get(dentist.id, [])
            today = [a for a in mine if day_start <= ensure_utc(a.scheduled_time) < day_end]
            workload.append(
                {
                    "dentist_id": dentist.id,
                    "dentist_name": dentist.full_name,
                    "today_count": len(today),
                    "week_count": len(mine),
                    "completed_today": sum(a.status == AppointmentStatus.COMPLETED.value for a in today),
                    "revenue": round(sum(paid_by_appointment.get(a.id, 0.0) for a in mine), 2),
                }
            )
        return workload

    async def revenue_trend(self, clinic_id: int, days: int = 30, today: date | None = None) -> list[dict[str, Any]]:
        """Daily verified revenue for the last `days` days, oldest first, zero-filled."""
        today = today or utc_now().date()
        first_day = today - timedelta(days=days - 1)
        start, _ = day_bounds(first_day)
        _, end = day_bounds(today)

        totals: dict[date, float] = defaultdict(float)
        for proof in await self.proofs.list_verified_between(start, end, clinic_ids=[clinic_id]):
            totals[ensure_utc(proof.verified_at).date()] += proof.amount

        return [
            {"date": (first_day + timedelta(days=offset)).isoformat(),
             "revenue": round(totals.get(first_day + timedelta(days=offset), 0.0), 2)}
            for offset in range(days)
        ]

    async def queue_heatmap(self, clinic_id: int, days: int = 30, today: date | None = None) -> dict[str, Any]:
        """Check-in counts by weekday and hour; cells is a 7x24 grid, Monday first."""
        today = today or utc_now().date()
        start, _ = day_bounds(today - timedelta(days=days - 1))
        _, end = day_bounds(today)

        cells = [[0] * 24 for _ in WEEKDAYS]
        entries = await self.queue.list_between(start, end, clinic_ids=[clinic_id])
        for entry in entries:
            created = ensure_utc(entry.created_at)
            cells[created.weekday()][created.hour] += 1

        return {
            "clinic_id": clinic_id,
            "days": days,
            "weekdays": list(WEEKDAYS),
            "cells": cells,
            "total_entries": len(entries),
        }

    async def multi_clinic_overview(self, clinic_id: int, today: date | None = None) -> list[dict[str, Any]]:
        """One row for clinic_id and, when it is a head clinic, one per branch."""
        today = today or utc_now().date()
        day_start, day_end = day_bounds(today)
        month_start, _ = day_bounds(today - timedelta(days=29))

        clinic_ids = await self.clinics.tenant_clinic_ids(clinic_id)
        clinics, _ = await self.clinics.list_all(clinic_ids=clinic_ids, limit=len(clinic_ids) or 1)
        patient_counts = await self.patients.count_for_clinics(clinic_ids)

        overview = []
        for clinic in clinics:
            appointments = await self.appointments.list_between(day_start, day_end, clinic_ids=[clinic.id])
            overview.append(
                {
                    "clinic_id": clinic.id,
                    "clinic_name": clinic.name,
                    "is_branch": clinic.parent_clinic_id is not None,
                    "appointments_today": len(appointments),
                    "revenue_30d": await self._revenue_between([clinic.id], month_start, day_end),
                    "patient_count": patient_counts.get(clinic.id, 0),
                }
            )
        log.debug("multi_clinic_overview_built", clinic_id=clinic_id, clinics=len(overview))
        return overview
