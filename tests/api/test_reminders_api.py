"""Tests for appointment reminder endpoints."""

from datetime import timedelta

import pytest

from src.dentacare.models.base import utc_now


async def _book_in(client, headers, patient_id, delta):
    when = (utc_now() + delta).isoformat()
    response = await client.post(
        "/api/v1/appointments", json={"scheduled_time": when, "patient_id": patient_id}, headers=headers
    )
    return response.json()["data"]["id"]


@pytest.mark.asyncio
async def test_due_and_dispatch(client, clinic, patient, patient_user, clinic_admin, headers_for):
    appointment_id = await _book_in(client, headers_for(clinic_admin), patient.id, timedelta(hours=23, minutes=40))
    await _book_in(client, headers_for(clinic_admin), patient.id, timedelta(hours=6))

    due = await client.get("/api/v1/reminders/due", headers=headers_for(clinic_admin))
    assert [(r["appointment_id"], r["window"]) for r in due.json()["data"]] == [(appointment_id, "day_before")]

    first = await client.post("/api/v1/reminders/dispatch", headers=headers_for(clinic_admin))
    second = await client.post("/api/v1/reminders/dispatch", headers=headers_for(clinic_admin))
    assert first.json()["data"] == {"sent": 1}
    assert second.json()["data"] == {"sent": 0}

    inbox = await client.get("/api/v1/notifications", headers=headers_for(patient_user))
    assert inbox.json()["data"][0]["related_entity_id"] == appointment_id


@pytest.mark.asyncio
async def test_reminders_are_admin_only(client, clinic, staff, headers_for):
    assert (await client.post("/api/v1/reminders/dispatch", headers=headers_for(staff))).status_code == 403
