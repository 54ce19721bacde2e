"""Tests for serving stored blobs."""

import pytest


async def _stored_file_url(client, headers, patient_id):
    response = await client.post(
        "/api/v1/documents",
        files={"file": ("xray.png", b"\x89PNG\r\n\x1a\nfake", "image/png")},
        data={"patient_id": str(patient_id), "document_type": "xray"},
        headers=headers,
    )
    return response.json()["data"]["file_url"]


@pytest.mark.asyncio
async def test_staff_fetch_blob(client, clinic, patient, staff, headers_for):
    url = await _stored_file_url(client, headers_for(staff), patient.id)

    response = await client.get(url, headers=headers_for(staff))
    assert response.status_code == 200
    assert response.content.startswith(b"\x89PNG")


@pytest.mark.asyncio
async def test_blob_of_other_clinic_denied(client, clinic, patient, staff, outsider, headers_for):
    url = await _stored_file_url(client, headers_for(staff), patient.id)
    assert (await client.get(url, headers=headers_for(outsider))).status_code == 403


@pytest.mark.asyncio
async def test_patients_use_document_download_instead(client, clinic, patient, staff, patient_user, headers_for):
    url = await _stored_file_url(client, headers_for(staff), patient.id)
    assert (await client.get(url, headers=headers_for(patient_user))).status_code == 403


@pytest.mark.asyncio
async def test_missing_blob_is_404(client, clinic, staff, headers_for):
    response = await client.get(f"/api/v1/blobs/{clinic.id}/documents/missing.pdf", headers=headers_for(staff))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_stats_for_super_admin_only(client, staff, super_admin, headers_for):
    assert (await client.get("/api/v1/blobs/stats", headers=headers_for(staff))).status_code == 403
    assert (await client.get("/api/v1/blobs/stats", headers=headers_for(super_admin))).status_code == 200


@pytest.mark.asyncio
async def test_head_reports_size(client, clinic, patient, staff, headers_for):
    url = await _stored_file_url(client, headers_for(staff), patient.id)

    present = await client.head(url, headers=headers_for(staff))
    assert present.status_code == 200
    assert present.headers["content-length"] == str(len(b"\x89PNG\r\n\x1a\nfake"))

    missing = await client.head(f"/api/v1/blobs/{clinic.id}/documents/missing.pdf", headers=headers_for(staff))
    assert missing.status_code == 404
