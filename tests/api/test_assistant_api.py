"""Tests for the clinic assistant endpoint."""

import pytest


@pytest.mark.asyncio
async def test_treatment_draft(client, clinic, staff, mock_gemini, headers_for):
    mock_gemini.generate_structured.return_value = {"diagnosis": "Caries 36", "procedure": "Composite filling"}

    response = await client.post(
        "/api/v1/assistant",
        json={"type": "treatment_draft", "payload": {"findings": "Occlusal caries on 36"}},
        headers=headers_for(staff),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["request_type"] == "treatment_draft"
    assert data["draft"]["procedure"] == "Composite filling"
    assert data["requires_review"] is True
    mock_gemini.generate_structured.assert_awaited_once()


@pytest.mark.asyncio
async def test_unconfigured_model_returns_fallback(client, clinic, staff, headers_for):
    response = await client.post(
        "/api/v1/assistant", json={"type": "reminder_draft", "payload": {}}, headers=headers_for(staff)
    )

    assert response.status_code == 503
    error = response.json()["error"]
    assert error["code"] == "AI_SERVICE_ERROR"
    assert "manually" in error["details"]["suggestion"]


@pytest.mark.asyncio
async def test_disabled_for_clinic(client, clinic, clinic_admin, staff, mock_gemini, headers_for):
    await client.put(
        f"/api/v1/clinics/{clinic.id}/features/ai_assistant",
        json={"is_enabled": False},
        headers=headers_for(clinic_admin),
    )

    response = await client.post(
        "/api/v1/assistant", json={"type": "invoice_draft", "payload": {}}, headers=headers_for(staff)
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FEATURE_DISABLED"
    mock_gemini.generate_structured.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_type_rejected(client, clinic, staff, headers_for):
    response = await client.post("/api/v1/assistant", json={"type": "diagnose"}, headers=headers_for(staff))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_patients_cannot_use_assistant(client, clinic, patient_user, headers_for):
    response = await client.post(
        "/api/v1/assistant", json={"type": "form_autofill"}, headers=headers_for(patient_user)
    )
    assert response.status_code == 403
