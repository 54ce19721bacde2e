"""Tests for invoices and payment-proof verification."""

import re

import pytest
from sqlalchemy.exc import SQLAlchemyError

from src.dentacare.core.exceptions import (
    BadRequestError,
    FileValidationError,
    ResourceNotFoundError,
    VerificationStateError,
)
from src.dentacare.repositories.notification_repository import NotificationRepository
from src.dentacare.services.blob_storage_service import get_blob_storage_service
from src.dentacare.services.payment_service import PaymentService

RECEIPT = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def payments(db_session):
    return PaymentService(db_session, get_blob_storage_service())


@pytest.mark.asyncio
async def test_invoice_numbers_follow_daily_sequence(payments, clinic, patient):
    first = await payments.create_invoice(clinic.id, patient.id, 120.0)
    second = await payments.create_invoice(clinic.id, patient.id, 80.0)

    assert re.fullmatch(r"INV-\d{8}-0001", first.invoice_number)
    assert second.invoice_number.endswith("-0002")
    assert first.balance_due == 120.0
    assert first.payment_status == "unpaid"


@pytest.mark.asyncio
async def test_invoice_requires_positive_total_and_own_patient(payments, clinic, other_clinic, patient):
    with pytest.raises(BadRequestError):
        await payments.create_invoice(clinic.id, patient.id, 0)
    with pytest.raises(ResourceNotFoundError) as exc_info:
        await payments.create_invoice(other_clinic.id, patient.id, 50.0)
    assert exc_info.value.error_code == "PATIENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_proof_upload_is_validated(payments, clinic, patient):
    invoice = await payments.create_invoice(clinic.id, patient.id, 100.0)

    with pytest.raises(FileValidationError):
        await payments.submit_proof(invoice, patient.id, 50.0, "upi", "receipt.pdf", RECEIPT)
    with pytest.raises(BadRequestError) as exc_info:
        await payments.submit_proof(invoice, patient.id, 150.0, "upi", "receipt.png", RECEIPT)
    assert exc_info.value.error_code == "AMOUNT_EXCEEDS_BALANCE"
    with pytest.raises(BadRequestError):
        await payments.submit_proof(invoice, patient.id + 1, 50.0, "upi", "receipt.png", RECEIPT)


@pytest.mark.asyncio
async def test_partial_then_full_payment(payments, clinic, patient, patient_user, staff):
    invoice = await payments.create_invoice(clinic.id, patient.id, 100.0)

    proof = await payments.submit_proof(invoice, patient.id, 40.0, "upi", "receipt.png", RECEIPT, notes="First half")
    assert proof.status == "pending"
    assert proof.proof_file_path

    await payments.verify_proof(proof, "approve", staff)
    assert invoice.amount_paid == 40.0
    assert invoice.balance_due == 60.0
    assert invoice.payment_status == "partial"

    rest = await payments.submit_proof(invoice, patient.id, 60.0, "card", "receipt.jpg", RECEIPT)
    await payments.verify_proof(rest, "approve", staff)
    assert invoice.balance_due == 0.0
    assert invoice.payment_status == "paid"

    _, total = await NotificationRepository(payments.session).list_for_user(patient_user.id)
    assert total == 2


@pytest.mark.asyncio
async def test_rejection_leaves_invoice_untouched(payments, clinic, patient, staff):
    invoice = await payments.create_invoice(clinic.id, patient.id, 100.0)
    proof = await payments.submit_proof(invoice, patient.id, 100.0, "upi", "receipt.png", RECEIPT)

    with pytest.raises(BadRequestError):
        await payments.verify_proof(proof, "reject", staff)

    proof = await payments.verify_proof(proof, "reject", staff, notes="Reference number unreadable")
    assert proof.status == "rejected"
    assert invoice.amount_paid == 0.0

    with pytest.raises(VerificationStateError):
        await payments.verify_proof(proof, "approve", staff)


@pytest.mark.asyncio
async def test_approval_rechecks_balance(payments, clinic, patient, staff):
    invoice = await payments.create_invoice(clinic.id, patient.id, 100.0)
    first = await payments.submit_proof(invoice, patient.id, 80.0, "upi", "receipt.png", RECEIPT)
    second = await payments.submit_proof(invoice, patient.id, 80.0, "upi", "receipt.png", RECEIPT)

    await payments.verify_proof(first, "approve", staff)
    with pytest.raises(BadRequestError) as exc_info:
        await payments.verify_proof(second, "approve", staff)

    assert exc_info.value.error_code == "AMOUNT_EXCEEDS_BALANCE"
    assert second.status == "pending"
    assert invoice.amount_paid == 80.0
    assert invoice.balance_due == 20.0


@pytest.mark.asyncio
async def test_failed_proof_insert_removes_stored_file(payments, clinic, patient, monkeypatch):
    invoice = await payments.create_invoice(clinic.id, patient.id, 100.0)
    stored = []
    upload = payments.storage.upload_from_bytes

    async def tracking_upload(**kwargs):
        result = await upload(**kwargs)
        stored.append(result.file_path)
        return result

    async def failing_create(**kwargs):
        raise SQLAlchemyError("insert failed")

    monkeypatch.setattr(payments.storage, "upload_from_bytes", tracking_upload)
    monkeypatch.setattr(payments.proofs, "create", failing_create)

    with pytest.raises(SQLAlchemyError):
        await payments.submit_proof(invoice, patient.id, 50.0, "upi", "receipt.png", RECEIPT)

    assert len(stored) == 1
    assert not payments.storage.blob_exists(stored[0])
