"""Tests for reminder windows and de-duplication."""

from datetime import UTC, datetime, timedelta

import pytest

from src.dentacare.models.enums import ReminderWindow
from src.dentacare.repositories.notification_repository import NotificationRepository
from src.dentacare.services.appointment_service import AppointmentService
from src.dentacare.services.reminder_service import ReminderService, render_reminder

NOW = datetime(2030, 5, 6, 8, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_due_reminders_by_window(db_session, clinic, patient):
    booking = AppointmentService(db_session)
    tomorrow = await booking.book(clinic.id, patient.id, NOW + timedelta(hours=23, minutes=30))
    soon = await booking.book(clinic.id, patient.id, NOW + timedelta(minutes=45))
    await booking.book(clinic.id, patient.id, NOW + timedelta(hours=23))
    await booking.book(clinic.id, patient.id, NOW + timedelta(hours=5))

    due = await ReminderService(db_session).due_reminders(now=NOW)

    assert {(r.appointment.id, r.window) for r in due} == {
        (tomorrow.id, ReminderWindow.DAY_BEFORE),
        (soon.id, ReminderWindow.HOUR_BEFORE),
    }


@pytest.mark.asyncio
async def test_window_far_edge_is_inclusive(db_session, clinic, patient):
    appointment = await AppointmentService(db_session).book(clinic.id, patient.id, NOW + timedelta(hours=1))
    due = await ReminderService(db_session).due_reminders(now=NOW)
    assert [(r.appointment.id, r.window) for r in due] == [(appointment.id, ReminderWindow.HOUR_BEFORE)]


@pytest.mark.asyncio
async def test_cancelled_appointments_get_no_reminder(db_session, clinic, patient):
    booking = AppointmentService(db_session)
    appointment = await booking.book(clinic.id, patient.id, NOW + timedelta(minutes=45))
    await booking.cancel(appointment)
    assert await ReminderService(db_session).due_reminders(now=NOW) == []


@pytest.mark.asyncio
async def test_dispatch_sends_once(db_session, clinic, patient, patient_user):
    appointment = await AppointmentService(db_session).book(clinic.id, patient.id, NOW + timedelta(minutes=45))
    service = ReminderService(db_session)

    assert await service.dispatch(now=NOW) == 1
    assert await service.dispatch(now=NOW + timedelta(minutes=5)) == 0

    notifications, total = await NotificationRepository(db_session).list_for_user(patient_user.id)
    assert total == 1
    assert notifications[0].dedupe_key == f"reminder:{appointment.id}:{ReminderWindow.HOUR_BEFORE.value}"
    assert notifications[0].related_entity_id == appointment.id


@pytest.mark.asyncio
async def test_dispatch_limited_to_clinics(db_session, clinic, other_clinic, patient):
    await AppointmentService(db_session).book(clinic.id, patient.id, NOW + timedelta(minutes=45))
    assert await ReminderService(db_session).dispatch(now=NOW, clinic_ids=[other_clinic.id]) == 0


def test_render_reminder_mentions_time():
    message = render_reminder(ReminderWindow.HOUR_BEFORE, datetime(2030, 5, 6, 14, 30, tzinfo=UTC))
    assert "02:30 PM" in message
