"""Tests for login and the current-user endpoint."""

import pytest

TEST_PASSWORD = "correct-horse-battery"


@pytest.mark.asyncio
async def test_login_returns_token(client, staff):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "desk@smiledental.com", "password": TEST_PASSWORD},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["expires_in"] > 0
    assert data["user"]["role"] == "receptionist"

    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "desk@smiledental.com"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "email,password",
    [
        ("desk@smiledental.com", "wrong-password"),
        ("nobody@smiledental.com", TEST_PASSWORD),
    ],
)
async def test_login_rejects_bad_credentials(client, staff, email, password):
    response = await client.post("/api/v1/auth/login", json={"email": email, "password": password})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_inactive_account_cannot_log_in(client, db_session, staff):
    staff.is_active = False
    await db_session.commit()

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "desk@smiledental.com", "password": TEST_PASSWORD},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_validates_payload(client):
    response = await client.post("/api/v1/auth/login", json={"email": "not-an-email"})

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    fields = {e["field"] for e in error["details"]["validation_errors"]}
    assert {"body.email", "body.password"} <= fields


@pytest.mark.asyncio
async def test_me_rejects_garbage_token(client):
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not.a.token"})
    assert response.status_code == 401
