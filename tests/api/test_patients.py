"""Tests for patient records."""

import pytest

from src.dentacare.models.patient import Patient


@pytest.mark.asyncio
async def test_register_defaults_to_callers_clinic(client, clinic, staff, headers_for):
    response = await client.post(
        "/api/v1/patients",
        json={"full_name": "Ravi Kumar", "contact_number": "+15550444", "allergies": "Latex"},
        headers=headers_for(staff),
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["clinic_id"] == clinic.id
    assert data["allergies"] == "Latex"


@pytest.mark.asyncio
async def test_register_in_foreign_clinic_denied(client, other_clinic, staff, headers_for):
    response = await client.post(
        "/api/v1/patients",
        json={"full_name": "Ravi Kumar", "clinic_id": other_clinic.id},
        headers=headers_for(staff),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_super_admin_must_name_a_clinic(client, super_admin, headers_for):
    response = await client.post("/api/v1/patients", json={"full_name": "Ravi Kumar"}, headers=headers_for(super_admin))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "CLINIC_REQUIRED"


@pytest.mark.asyncio
async def test_search_by_name_fragment(client, patient, staff, outsider, headers_for):
    found = await client.get("/api/v1/patients", params={"q": "jane"}, headers=headers_for(staff))
    assert [p["id"] for p in found.json()["data"]] == [patient.id]
    assert found.json()["pagination"]["total"] == 1

    hidden = await client.get("/api/v1/patients", params={"q": "jane"}, headers=headers_for(outsider))
    assert hidden.json()["data"] == []


@pytest.mark.asyncio
async def test_patient_sees_only_own_record(client, db_session, clinic, patient, patient_user, headers_for):
    me = await client.get("/api/v1/patients/me", headers=headers_for(patient_user))
    assert me.json()["data"]["id"] == patient.id

    own = await client.get(f"/api/v1/patients/{patient.id}", headers=headers_for(patient_user))
    assert own.status_code == 200

    stranger = Patient(clinic_id=clinic.id, full_name="Sam Lee", contact_number="+15550222", is_active=True)
    db_session.add(stranger)
    await db_session.commit()

    other = await client.get(f"/api/v1/patients/{stranger.id}", headers=headers_for(patient_user))
    assert other.status_code == 404
    assert other.json()["error"]["code"] == "PATIENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_patient_cannot_search(client, patient_user, headers_for):
    response = await client.get("/api/v1/patients", headers=headers_for(patient_user))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_and_deactivate(client, patient, staff, headers_for):
    updated = await client.patch(
        f"/api/v1/patients/{patient.id}",
        json={"medical_history": "Type 2 diabetes"},
        headers=headers_for(staff),
    )
    assert updated.json()["data"]["medical_history"] == "Type 2 diabetes"

    removed = await client.delete(f"/api/v1/patients/{patient.id}", headers=headers_for(staff))
    assert removed.json()["data"]["is_active"] is False
