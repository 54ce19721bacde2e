"""Tests for clinics, branches, feature toggles and tenant isolation."""

import pytest


@pytest.mark.asyncio
async def test_super_admin_creates_head_clinic(client, super_admin, headers_for):
    response = await client.post(
        "/api/v1/clinics",
        json={"name": "Pearl Dental", "phone": "+15550300", "subscription_package": "premium"},
        headers=headers_for(super_admin),
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["parent_clinic_id"] is None
    assert data["subscription_package"] == "premium"


@pytest.mark.asyncio
async def test_clinic_admin_cannot_create_head_clinic(client, clinic_admin, headers_for):
    response = await client.post("/api/v1/clinics", json={"name": "Rogue Dental"}, headers=headers_for(clinic_admin))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"


@pytest.mark.asyncio
async def test_clinic_admin_adds_branch(client, clinic, clinic_admin, headers_for):
    response = await client.post(
        "/api/v1/clinics",
        json={"name": "Smile Dental - Lakeside", "parent_clinic_id": clinic.id},
        headers=headers_for(clinic_admin),
    )
    assert response.status_code == 201
    branch_id = response.json()["data"]["id"]

    branches = await client.get(f"/api/v1/clinics/{clinic.id}/branches", headers=headers_for(clinic_admin))
    assert [b["id"] for b in branches.json()["data"]] == [branch_id]


@pytest.mark.asyncio
async def test_branch_of_branch_rejected(client, branch, super_admin, headers_for):
    response = await client.post(
        "/api/v1/clinics",
        json={"name": "Too deep", "parent_clinic_id": branch.id},
        headers=headers_for(super_admin),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_PARENT_CLINIC"


@pytest.mark.asyncio
async def test_clinic_list_is_scoped_to_organization(
    client, clinic, branch, other_clinic, staff, super_admin, headers_for
):
    mine = await client.get("/api/v1/clinics", headers=headers_for(staff))
    assert {c["id"] for c in mine.json()["data"]} == {clinic.id, branch.id}

    everything = await client.get("/api/v1/clinics", headers=headers_for(super_admin))
    assert {c["id"] for c in everything.json()["data"]} == {clinic.id, branch.id, other_clinic.id}


@pytest.mark.asyncio
async def test_cross_tenant_read_denied(client, other_clinic, staff, headers_for):
    response = await client.get(f"/api/v1/clinics/{other_clinic.id}", headers=headers_for(staff))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "TENANT_ACCESS_DENIED"


@pytest.mark.asyncio
async def test_feature_toggle_round_trip(client, clinic, clinic_admin, staff, headers_for):
    update = await client.put(
        f"/api/v1/clinics/{clinic.id}/features/ai_assistant",
        json={"is_enabled": False, "description": "Pilot paused"},
        headers=headers_for(clinic_admin),
    )
    assert update.status_code == 200
    assert update.json()["data"]["is_enabled"] is False

    listing = await client.get(f"/api/v1/clinics/{clinic.id}/features", headers=headers_for(staff))
    assert [(t["feature_name"], t["is_enabled"]) for t in listing.json()["data"]] == [("ai_assistant", False)]

    forbidden = await client.put(
        f"/api/v1/clinics/{clinic.id}/features/ai_assistant",
        json={"is_enabled": True},
        headers=headers_for(staff),
    )
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_patient_cannot_list_features(client, clinic, patient_user, headers_for):
    response = await client.get(f"/api/v1/clinics/{clinic.id}/features", headers=headers_for(patient_user))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_branch_staff_cannot_read_head_clinic_patients(client, clinic, branch, patient, branch_staff, headers_for):
    response = await client.get(f"/api/v1/patients/{patient.id}", headers=headers_for(branch_staff))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "TENANT_ACCESS_DENIED"

    listing = await client.get("/api/v1/patients", headers=headers_for(branch_staff))
    assert listing.json()["data"] == []


@pytest.mark.asyncio
async def test_branch_admin_cannot_edit_head_clinic(client, clinic, branch, branch_admin, headers_for):
    response = await client.patch(
        f"/api/v1/clinics/{clinic.id}", json={"name": "Hijacked"}, headers=headers_for(branch_admin)
    )
    assert response.status_code == 403

    sibling = await client.post(
        "/api/v1/clinics",
        json={"name": "Smile Dental - Uptown", "parent_clinic_id": clinic.id},
        headers=headers_for(branch_admin),
    )
    assert sibling.status_code == 403


@pytest.mark.asyncio
async def test_branch_admin_sees_only_own_branch(client, clinic, branch, branch_admin, headers_for):
    response = await client.get("/api/v1/clinics", headers=headers_for(branch_admin))
    assert [c["id"] for c in response.json()["data"]] == [branch.id]

    own = await client.patch(f"/api/v1/clinics/{branch.id}", json={"phone": "+15550777"}, headers=headers_for(branch_admin))
    assert own.status_code == 200
