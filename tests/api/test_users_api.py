"""Tests for account management endpoints."""

import pytest

NEW_DENTIST = {
    "email": "dr.iyer@smiledental.com",
    "full_name": "Dr. Iyer",
    "password": "s3cure-passphrase",
    "role": "dentist",
}


@pytest.mark.asyncio
async def test_clinic_admin_creates_dentist(client, clinic, clinic_admin, headers_for):
    response = await client.post("/api/v1/users", json=NEW_DENTIST, headers=headers_for(clinic_admin))

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["clinic_id"] == clinic.id
    assert data["role"] == "dentist"
    assert "password_hash" not in data

    login = await client.post(
        "/api/v1/auth/login", json={"email": NEW_DENTIST["email"], "password": NEW_DENTIST["password"]}
    )
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_duplicate_email_conflicts(client, clinic, clinic_admin, dentist, headers_for):
    response = await client.post(
        "/api/v1/users", json={**NEW_DENTIST, "email": dentist.email}, headers=headers_for(clinic_admin)
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "EMAIL_EXISTS"


@pytest.mark.asyncio
async def test_clinic_admin_cannot_grant_super_admin(client, clinic, clinic_admin, headers_for):
    response = await client.post(
        "/api/v1/users", json={**NEW_DENTIST, "role": "super_admin"}, headers=headers_for(clinic_admin)
    )
    assert response.json()["error"]["code"] == "ROLE_NOT_GRANTABLE"


@pytest.mark.asyncio
async def test_cannot_manage_other_clinic_users(client, clinic, clinic_admin, outsider, headers_for):
    response = await client.get(f"/api/v1/users/{outsider.id}", headers=headers_for(clinic_admin))
    assert response.status_code == 403

    listing = await client.get("/api/v1/users", headers=headers_for(clinic_admin))
    assert outsider.id not in [u["id"] for u in listing.json()["data"]]


@pytest.mark.asyncio
async def test_deactivation(client, clinic, clinic_admin, staff, headers_for):
    self_response = await client.delete(f"/api/v1/users/{clinic_admin.id}", headers=headers_for(clinic_admin))
    assert self_response.json()["error"]["code"] == "SELF_DEACTIVATION"

    response = await client.delete(f"/api/v1/users/{staff.id}", headers=headers_for(clinic_admin))
    assert response.json()["data"]["is_active"] is False

    locked_out = await client.get("/api/v1/auth/me", headers=headers_for(staff))
    assert locked_out.status_code == 403
    assert locked_out.json()["error"]["code"] == "USER_INACTIVE"


@pytest.mark.asyncio
async def test_invalid_role_rejected(client, clinic, clinic_admin, staff, headers_for):
    response = await client.patch(
        f"/api/v1/users/{staff.id}", json={"role": "janitor"}, headers=headers_for(clinic_admin)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_staff_cannot_manage_users(client, clinic, staff, headers_for):
    assert (await client.get("/api/v1/users", headers=headers_for(staff))).status_code == 403
