"""
Appointment Reminder Service.

Finds booked appointments entering a reminder window and turns each one
into a portal notification. Windows are half-open on the near side:

    24h: (now + 23h,  now + 24h]
    1h:  (now + 30m,  now + 1h]

A reminder is sent at most once per (appointment, window); the dedupe key
lives on the notification row, so repeated sweeps are harmless.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.prompts import get_prompt_manager
from ..models.appointment import Appointment
from ..models.base import as_utc, ensure_utc, utc_now
from ..models.enums import AppointmentStatus, ReminderWindow
from ..repositories.appointment_repository import AppointmentRepository
from .notification_service import NotificationService

log = structlog.get_logger(__name__)

REMINDER_WINDOWS: dict[ReminderWindow, tuple[timedelta, timedelta]] = {
    ReminderWindow.DAY_BEFORE: (timedelta(hours=23), timedelta(hours=24)),
    ReminderWindow.HOUR_BEFORE: (timedelta(minutes=30), timedelta(hours=1)),
}

TEMPLATE_KEYS = {
    ReminderWindow.DAY_BEFORE: "reminders.day_before",
    ReminderWindow.HOUR_BEFORE: "reminders.hour_before",
}


@dataclass
class DueReminder:
    appointment: Appointment
    window: ReminderWindow

    @property
    def dedupe_key(self) -> str:
        return f"reminder:{self.appointment.id}:{self.window.value}"


def render_reminder(window: ReminderWindow, scheduled_time: datetime) -> str:
    scheduled = ensure_utc(scheduled_time)
    return get_prompt_manager().format(
        TEMPLATE_KEYS[window],
        date=scheduled.strftime("%b %d, %Y"),
        time=scheduled.strftime("%I:%M %p"),
    )


class ReminderService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.appointments = AppointmentRepository(session)
        self.notifications = NotificationService(session)

    async def due_reminders(
        self,
        now: datetime | None = None,
        clinic_ids: Sequence[int] | None = None,
    ) -> list[DueReminder]:
        now = as_utc(now) if now else utc_now()
        due: list[DueReminder] = []
        for window, (near, far) in REMINDER_WINDOWS.items():
            appointments = await self.appointments.list_between(
                now + near,
                now + far,
                clinic_ids=clinic_ids,
                statuses=[AppointmentStatus.BOOKED.value],
                start_inclusive=False,
            )
            due.extend(DueReminder(appointment, window) for appointment in appointments)
        return due

    async def dispatch(self, now: datetime | None = None, clinic_ids: Sequence[int] | None = None) -> int:
        """Send every due reminder not sent before. Returns the number created."""
        title = get_prompt_manager().get("reminders.title")
        sent = 0
        for reminder in await self.due_reminders(now, clinic_ids):
            notification = await self.notifications.notify_patient(
                reminder.appointment.patient_id,
                title=title,
                message=render_reminder(reminder.window, reminder.appointment.scheduled_time),
                notification_type="appointment_reminder",
                related_entity_type="appointment",
                related_entity_id=reminder.appointment.id,
                dedupe_key=reminder.dedupe_key,
            )
            if notification is not None:
                sent += 1
        log.info("reminders_dispatched", count=sent)
        return sent
