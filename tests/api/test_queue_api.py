"""Tests for the front-desk queue endpoints."""

import pytest


async def _booked(client, headers, patient_id, when="2030-05-06T10:00:00Z", booking_type="online"):
    response = await client.post(
        "/api/v1/appointments",
        json={"patient_id": patient_id, "scheduled_time": when, "booking_type": booking_type},
        headers=headers,
    )
    return response.json()["data"]["id"]


async def _check_in(client, headers, appointment_id):
    response = await client.post("/api/v1/queue/check-in", json={"appointment_id": appointment_id}, headers=headers)
    assert response.status_code == 201
    return response.json()["data"]


@pytest.mark.asyncio
async def test_check_in_and_serving_order(client, clinic, patient, staff, headers_for):
    headers = headers_for(staff)
    routine = await _check_in(client, headers, await _booked(client, headers, patient.id))
    emergency = await _check_in(
        client, headers, await _booked(client, headers, patient.id, "2030-05-06T11:00:00Z", "emergency")
    )

    assert routine["position"] == 1
    assert emergency["position"] == 2
    assert emergency["priority"] == "emergency"

    queue = (await client.get("/api/v1/queue", headers=headers)).json()["data"]
    assert [e["id"] for e in queue] == [emergency["id"], routine["id"]]
    assert [e["estimated_wait_minutes"] for e in queue] == [0, 30]


@pytest.mark.asyncio
async def test_double_check_in_conflicts(client, clinic, patient, staff, headers_for):
    headers = headers_for(staff)
    appointment_id = await _booked(client, headers, patient.id)
    await _check_in(client, headers, appointment_id)

    again = await client.post("/api/v1/queue/check-in", json={"appointment_id": appointment_id}, headers=headers)
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "ALREADY_CHECKED_IN"


@pytest.mark.asyncio
async def test_walk_in_registration(client, clinic, patient, staff, headers_for):
    headers = headers_for(staff)
    await _check_in(client, headers, await _booked(client, headers, patient.id))

    response = await client.post(
        "/api/v1/queue/walk-ins",
        json={"full_name": "Arjun Mehta", "contact_number": "+15550999", "urgency": "urgent"},
        headers=headers,
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["is_new_patient"] is True
    assert data["estimated_wait_minutes"] == 6
    assert data["appointment"]["booking_type"] == "walk_in"
    assert data["entry"]["status"] == "waiting"


@pytest.mark.asyncio
async def test_walk_in_validates_contact(client, clinic, staff, headers_for):
    response = await client.post(
        "/api/v1/queue/walk-ins",
        json={"full_name": "Arjun Mehta", "contact_number": "123"},
        headers=headers_for(staff),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_call_complete_and_stats(client, clinic, patient, staff, headers_for):
    headers = headers_for(staff)
    entry = await _check_in(client, headers, await _booked(client, headers, patient.id))

    called = await client.post(f"/api/v1/queue/{entry['id']}/call", headers=headers)
    assert called.json()["data"]["status"] == "called"
    done = await client.post(f"/api/v1/queue/{entry['id']}/complete", headers=headers)
    assert done.json()["data"]["status"] == "completed"

    appointment = await client.get(f"/api/v1/appointments/{entry['appointment_id']}", headers=headers)
    assert appointment.json()["data"]["status"] == "completed"

    stats = (await client.get("/api/v1/queue/stats", headers=headers)).json()["data"]
    assert stats["completed_today"] == 1
    assert stats["waiting"] == 0


@pytest.mark.asyncio
async def test_emergency_override_and_reorder(client, clinic, patient, staff, headers_for):
    headers = headers_for(staff)
    first = await _check_in(client, headers, await _booked(client, headers, patient.id))
    second = await _check_in(client, headers, await _booked(client, headers, patient.id, "2030-05-06T11:00:00Z"))

    missing_reason = await client.post(f"/api/v1/queue/{second['id']}/emergency", json={"reason": ""}, headers=headers)
    assert missing_reason.status_code == 422

    override = await client.post(
        f"/api/v1/queue/{second['id']}/emergency", json={"reason": "Severe bleeding"}, headers=headers
    )
    assert override.json()["data"]["priority"] == "emergency"

    await client.put(f"/api/v1/queue/{first['id']}/duration", json={"minutes": 15}, headers=headers)
    queue = (await client.get("/api/v1/queue", headers=headers)).json()["data"]
    assert [e["id"] for e in queue] == [second["id"], first["id"]]

    skipped = await client.post(f"/api/v1/queue/{first['id']}/skip", headers=headers)
    assert skipped.json()["data"]["status"] == "skipped"
    again = await client.put(f"/api/v1/queue/{first['id']}/order", json={"manual_order": 1}, headers=headers)
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_queue_is_staff_only(client, clinic, patient_user, outsider, staff, patient, headers_for):
    assert (await client.get("/api/v1/queue", headers=headers_for(patient_user))).status_code == 403

    entry = await _check_in(client, headers_for(staff), await _booked(client, headers_for(staff), patient.id))
    foreign = await client.post(f"/api/v1/queue/{entry['id']}/call", headers=headers_for(outsider))
    assert foreign.status_code == 403
