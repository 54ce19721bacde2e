"""Tests for the treatment record endpoints."""

import pytest

from src.dentacare.services.sharing_service import BranchSharingService


async def _start(client, headers, patient, treatment):
    response = await client.post(
        "/api/v1/treatment-records",
        json={"patient_id": patient.id, "treatment_id": treatment.id, "notes": "Full mouth scaling"},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["data"]


@pytest.mark.asyncio
async def test_dentist_starts_and_completes(client, dentist, patient, treatment, headers_for):
    headers = headers_for(dentist)
    record = await _start(client, headers, patient, treatment)
    assert record["status"] == "in_progress"
    assert record["dentist_id"] == dentist.id

    completed = await client.post(
        f"/api/v1/treatment-records/{record['id']}/complete",
        json={"follow_up_required": True, "follow_up_notes": "Review in 6 months"},
        headers=headers,
    )
    data = completed.json()["data"]
    assert data["status"] == "completed"
    assert data["end_time"] is not None
    assert data["actual_duration_minutes"] >= 0
    assert data["follow_up_notes"] == "Review in 6 months"

    again = await client.post(f"/api/v1/treatment-records/{record['id']}/complete", json={}, headers=headers)
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_receptionist_cannot_start(client, staff, patient, treatment, headers_for):
    response = await client.post(
        "/api/v1/treatment-records",
        json={"patient_id": patient.id, "treatment_id": treatment.id},
        headers=headers_for(staff),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cancel_requires_reason(client, dentist, patient, treatment, headers_for):
    headers = headers_for(dentist)
    record = await _start(client, headers, patient, treatment)

    missing = await client.post(f"/api/v1/treatment-records/{record['id']}/cancel", json={"reason": ""}, headers=headers)
    assert missing.status_code == 422

    cancelled = await client.post(
        f"/api/v1/treatment-records/{record['id']}/cancel", json={"reason": "Patient left"}, headers=headers
    )
    assert cancelled.json()["data"]["status"] == "cancelled"


@pytest.mark.asyncio
async def test_patient_lists_own_records(client, dentist, patient, patient_user, treatment, headers_for):
    record = await _start(client, headers_for(dentist), patient, treatment)

    response = await client.get("/api/v1/treatment-records", headers=headers_for(patient_user))
    assert [r["id"] for r in response.json()["data"]] == [record["id"]]


@pytest.mark.asyncio
async def test_branch_reads_record_through_sharing(
    client, db_session, clinic, branch, clinic_admin, branch_staff, dentist, patient, treatment, headers_for
):
    record = await _start(client, headers_for(dentist), patient, treatment)
    url = f"/api/v1/treatment-records/{record['id']}"

    assert (await client.get(url, headers=headers_for(branch_staff))).status_code == 403
    listed = await client.get("/api/v1/treatment-records", params={"include_shared": True}, headers=headers_for(branch_staff))
    assert listed.json()["data"] == []

    sharing = BranchSharingService(db_session)
    group = await sharing.create_group(clinic_admin, "Downtown network")
    for member in (clinic, branch):
        await sharing.add_member(clinic_admin, group, member.id)
        await sharing.set_sharing_enabled(clinic_admin, member.id, True)
    await db_session.commit()

    shared = await client.get(url, headers=headers_for(branch_staff))
    assert shared.status_code == 200
    listed = await client.get("/api/v1/treatment-records", params={"include_shared": True}, headers=headers_for(branch_staff))
    assert [r["id"] for r in listed.json()["data"]] == [record["id"]]

    audit = await client.get(
        "/api/v1/sharing/audit", params={"data_type": "treatment_record"}, headers=headers_for(clinic_admin)
    )
    assert audit.json()["pagination"]["total"] == 2

    edit = await client.patch(url, json={"notes": "changed"}, headers=headers_for(branch_staff))
    assert edit.status_code == 403
