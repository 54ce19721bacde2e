"""Appointment reminder endpoints, normally driven by a scheduler."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from ....core.rbac import ClinicAdminUser, visible_clinic_ids
from ....core.responses import GenericResponse
from ....db.session import DbSession
from ....services.reminder_service import ReminderService

router = APIRouter(prefix="/reminders", tags=["Reminders"])


@router.get("/due", response_model=GenericResponse[list[dict[str, Any]]], summary="Reminders due now")
async def due_reminders(admin: ClinicAdminUser, db: DbSession) -> GenericResponse[list[dict[str, Any]]]:
    due = await ReminderService(db).due_reminders(clinic_ids=await visible_clinic_ids(admin, db))
    return GenericResponse(
        message="Due reminders retrieved",
        data=[
            {
                "appointment_id": reminder.appointment.id,
                "patient_id": reminder.appointment.patient_id,
                "scheduled_time": reminder.appointment.scheduled_time,
                "window": reminder.window.value,
            }
            for reminder in due
        ],
    )


@router.post("/dispatch", response_model=GenericResponse[dict[str, int]], summary="Send due reminders")
async def dispatch_reminders(admin: ClinicAdminUser, db: DbSession) -> GenericResponse[dict[str, int]]:
    sent = await ReminderService(db).dispatch(clinic_ids=await visible_clinic_ids(admin, db))
    await db.commit()
    return GenericResponse(message=f"{sent} reminder(s) sent", data={"sent": sent})
