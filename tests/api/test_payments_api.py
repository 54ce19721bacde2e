"""Tests for invoices and payment proofs over HTTP."""

import pytest

RECEIPT = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


async def _invoice(client, headers, patient_id, total=200.0):
    response = await client.post(
        "/api/v1/payments/invoices", json={"patient_id": patient_id, "total_amount": total}, headers=headers
    )
    assert response.status_code == 201
    return response.json()["data"]


async def _proof(client, headers, invoice_id, amount, name="receipt.png"):
    return await client.post(
        f"/api/v1/payments/invoices/{invoice_id}/proofs",
        files={"file": (name, RECEIPT, "image/png")},
        data={"amount": str(amount), "payment_method": "upi"},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_proof_approval_updates_invoice(client, clinic, patient, patient_user, staff, headers_for):
    invoice = await _invoice(client, headers_for(staff), patient.id)
    assert invoice["invoice_number"].startswith("INV-")

    proof = await _proof(client, headers_for(patient_user), invoice["id"], 150)
    assert proof.status_code == 201
    proof_id = proof.json()["data"]["id"]

    approved = await client.post(
        f"/api/v1/payments/proofs/{proof_id}/verify", json={"action": "approve"}, headers=headers_for(staff)
    )
    assert approved.json()["data"]["status"] == "approved"

    refreshed = (await client.get(f"/api/v1/payments/invoices/{invoice['id']}", headers=headers_for(patient_user))).json()
    assert refreshed["data"]["amount_paid"] == 150.0
    assert refreshed["data"]["balance_due"] == 50.0
    assert refreshed["data"]["payment_status"] == "partial"


@pytest.mark.asyncio
async def test_proof_over_balance_rejected(client, clinic, patient, patient_user, staff, headers_for):
    invoice = await _invoice(client, headers_for(staff), patient.id, total=100.0)
    response = await _proof(client, headers_for(patient_user), invoice["id"], 100.5)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "AMOUNT_EXCEEDS_BALANCE"


@pytest.mark.asyncio
async def test_proof_must_be_an_image(client, clinic, patient, patient_user, staff, headers_for):
    invoice = await _invoice(client, headers_for(staff), patient.id)
    response = await _proof(client, headers_for(patient_user), invoice["id"], 20, name="receipt.pdf")
    assert response.json()["error"]["code"] == "FILE_VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_reject_requires_notes(client, clinic, patient, patient_user, staff, headers_for):
    invoice = await _invoice(client, headers_for(staff), patient.id)
    proof_id = (await _proof(client, headers_for(patient_user), invoice["id"], 20)).json()["data"]["id"]

    response = await client.post(
        f"/api/v1/payments/proofs/{proof_id}/verify", json={"action": "reject"}, headers=headers_for(staff)
    )
    assert response.json()["error"]["code"] == "REASON_REQUIRED"


@pytest.mark.asyncio
async def test_patients_only_see_their_invoices(client, clinic, patient, patient_user, staff, headers_for):
    other = await client.post(
        "/api/v1/patients", json={"full_name": "Sam Lee", "contact_number": "+15550222"}, headers=headers_for(staff)
    )
    await _invoice(client, headers_for(staff), patient.id)
    foreign = await _invoice(client, headers_for(staff), other.json()["data"]["id"])

    mine = await client.get("/api/v1/payments/invoices", headers=headers_for(patient_user))
    assert [i["patient_id"] for i in mine.json()["data"]] == [patient.id]

    hidden = await client.get(f"/api/v1/payments/invoices/{foreign['id']}", headers=headers_for(patient_user))
    assert hidden.status_code == 404


@pytest.mark.asyncio
async def test_patient_cannot_raise_invoice(client, clinic, patient, patient_user, headers_for):
    response = await client.post(
        "/api/v1/payments/invoices", json={"patient_id": patient.id, "total_amount": 10}, headers=headers_for(patient_user)
    )
    assert response.status_code == 403
