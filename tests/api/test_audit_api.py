"""Tests for the audit log endpoint."""

import pytest


@pytest.mark.asyncio
async def test_assistant_use_is_logged(client, clinic, clinic_admin, staff, mock_gemini, headers_for):
    await client.post("/api/v1/assistant", json={"type": "form_autofill"}, headers=headers_for(staff))

    response = await client.get(
        "/api/v1/audit-logs", params={"action_type": "ai_assistance"}, headers=headers_for(clinic_admin)
    )

    assert response.status_code == 200
    entries = response.json()["data"]
    assert len(entries) == 1
    assert entries[0]["user_id"] == staff.id
    assert entries[0]["clinic_id"] == clinic.id
    assert entries[0]["new_values"]["request_type"] == "form_autofill"


@pytest.mark.asyncio
async def test_audit_log_is_admin_only(client, clinic, staff, headers_for):
    assert (await client.get("/api/v1/audit-logs", headers=headers_for(staff))).status_code == 403
