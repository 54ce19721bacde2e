"""
Payment Service.

Invoices and patient-submitted payment proofs:
- Invoice numbering INV-YYYYMMDD-#### with a per-day sequence
- Proof upload validation (image types, size, amount within balance)
- Staff verification; approval is applied to the invoice balance
"""
from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.exceptions import (
    BadRequestError,
    InternalServerError,
    ResourceNotFoundError,
    VerificationStateError,
)
from ..core.rbac import ensure_clinic_access
from ..models.base import utc_now
from ..models.enums import PaymentProofStatus, PaymentStatus
from ..models.payment import Invoice, PaymentProof
from ..models.user import User
from ..repositories.audit_repository import AuditRepository
from ..repositories.patient_repository import PatientRepository
from ..repositories.payment_repository import InvoiceRepository, PaymentProofRepository
from .blob_storage_service import LocalBlobStorageService, validate_upload
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


def payment_status_for(total_amount: float, amount_paid: float) -> PaymentStatus:
    if amount_paid <= 0:
        return PaymentStatus.UNPAID
    if amount_paid < total_amount:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PAID


class PaymentService:
    """Invoice and payment-proof workflow."""

    def __init__(self, session: AsyncSession, storage: LocalBlobStorageService | None = None) -> None:
        self.session = session
        self.settings = get_settings()
        self.storage = storage
        self.invoices = InvoiceRepository(session)
        self.proofs = PaymentProofRepository(session)
        self.patients = PatientRepository(session)
        self.audit = AuditRepository(session)
        self.notifications = NotificationService(session)

    # =========================================================================
    # Invoices
    # =========================================================================

    async def get_invoice(self, user: User, invoice_id: int) -> Invoice:
        invoice = await self.invoices.get_by_id(invoice_id)
        if invoice is None:
            raise ResourceNotFoundError("invoice", invoice_id)
        if user.is_patient:
            patient = await self.patients.get_by_user_id(user.id)
            if patient is None or patient.id != invoice.patient_id:
                raise ResourceNotFoundError("invoice", invoice_id)
            return invoice
        await ensure_clinic_access(user, invoice.clinic_id, self.session)
        return invoice

    async def create_invoice(
        self,
        clinic_id: int,
        patient_id: int,
        total_amount: float,
        appointment_id: int | None = None,
        due_date: date | None = None,
        notes: str | None = None,
    ) -> Invoice:
        if total_amount <= 0:
            raise BadRequestError(message="Invoice total must be greater than zero", error_code="INVALID_AMOUNT")
        patient = await self.patients.get_by_id(patient_id)
        if patient is None or patient.clinic_id != clinic_id:
            raise ResourceNotFoundError("patient", patient_id)

        return await self.invoices.create(
            clinic_id=clinic_id,
            patient_id=patient_id,
            appointment_id=appointment_id,
            invoice_number=await self.invoices.next_invoice_number(utc_now().date()),
            total_amount=round(total_amount, 2),
            amount_paid=0.0,
            balance_due=round(total_amount, 2),
            payment_status=PaymentStatus.UNPAID.value,
            due_date=due_date,
            notes=notes,
        )

    # =========================================================================
    # Proofs
    # =========================================================================

    async def get_proof(self, user: User, proof_id: int) -> PaymentProof:
        proof = await self.proofs.get_by_id(proof_id)
        if proof is None:
            raise ResourceNotFoundError("payment_proof", proof_id)
        if user.is_patient:
            patient = await self.patients.get_by_user_id(user.id)
            if patient is None or patient.id != proof.patient_id:
                raise ResourceNotFoundError("payment_proof", proof_id)
            return proof
        await ensure_clinic_access(user, proof.clinic_id, self.session)
        return proof

    @staticmethod
    def _ensure_within_balance(invoice: Invoice, amount: float) -> None:
        if amount > invoice.balance_due + 0.005:
            raise BadRequestError(
                message="Amount exceeds the invoice balance",
                error_code="AMOUNT_EXCEEDS_BALANCE",
                details={"balance_due": invoice.balance_due, "amount": amount},
            )

    async def submit_proof(
        self,
        invoice: Invoice,
        patient_id: int,
        amount: float,
        payment_method: str,
        file_name: str | None,
        content: bytes,
        notes: str | None = None,
    ) -> PaymentProof:
        """
        Store a proof-of-payment image against an invoice.

        Raises:
            FileValidationError: Not an image or larger than PAYMENT_PROOF_MAX_SIZE_MB
            BadRequestError: Amount not positive or above the balance, invoice of another patient
        """
        validate_upload(
            file_name,
            len(content),
            self.settings.payment_proof_extensions_list,
            self.settings.payment_proof_max_bytes,
        )
        if invoice.patient_id != patient_id:
            raise BadRequestError(
                message="Invoice does not belong to this patient",
                error_code="INVOICE_PATIENT_MISMATCH",
            )
        if amount <= 0:
            raise BadRequestError(message="Amount must be greater than zero", error_code="INVALID_AMOUNT")
        self._ensure_within_balance(invoice, amount)
        if self.storage is None:
            raise InternalServerError(message="Storage is not configured", error_code="STORAGE_ERROR")

        result = await self.storage.upload_from_bytes(
            content=content,
            file_name=file_name,
            clinic_id=invoice.clinic_id,
            category="payment_proofs",
        )
        if not result.success:
            raise InternalServerError(message="Failed to store payment proof", error_code="STORAGE_ERROR")

        try:
            return await self.proofs.create(
                clinic_id=invoice.clinic_id,
                invoice_id=invoice.id,
                patient_id=patient_id,
                payment_method=payment_method,
                amount=round(amount, 2),
                proof_file_path=result.file_path,
                proof_file_url=result.file_uri,
                notes=notes,
                status=PaymentProofStatus.PENDING.value,
            )
        except SQLAlchemyError:
            await self.storage.delete_blob(result.file_path)
            logger.warning(f"Removed orphaned payment proof file {result.file_path}")
            raise

    async def verify_proof(
        self,
        proof: PaymentProof,
        action: str,
        reviewer: User,
        notes: str | None = None,
    ) -> PaymentProof:
        """
        Approve or reject a pending proof.

        Approval adds the amount to the invoice and recomputes its balance
        and payment status.

        Raises:
            BadRequestError: Unknown action, rejection without notes, or an
                approval larger than the current balance
            VerificationStateError: Proof already processed
        """
        if action not in ("approve", "reject"):
            raise BadRequestError(
                message=f"Unknown verification action '{action}'",
                error_code="INVALID_VERIFICATION_ACTION",
                details={"allowed_actions": ["approve", "reject"]},
            )
        if proof.status != PaymentProofStatus.PENDING.value:
            raise VerificationStateError("payment_proof", proof.id, proof.status)
        if action == "reject" and not (notes and notes.strip()):
            raise BadRequestError(message="Notes are required when rejecting", error_code="REASON_REQUIRED")

        invoice = await self.invoices.get_by_id(proof.invoice_id, for_update=action == "approve")
        if invoice is None:
            raise ResourceNotFoundError("invoice", proof.invoice_id)
        # Other proofs may have been approved since this one was submitted.
        if action == "approve":
            self._ensure_within_balance(invoice, proof.amount)

        proof.status = (PaymentProofStatus.APPROVED if action == "approve" else PaymentProofStatus.REJECTED).value
        proof.verified_by = reviewer.id
        proof.verified_at = utc_now()
        proof.verification_notes = notes

        old_invoice = {"amount_paid": invoice.amount_paid, "payment_status": invoice.payment_status}
        if action == "approve":
            invoice.amount_paid = round(invoice.amount_paid + proof.amount, 2)
            invoice.balance_due = round(max(invoice.total_amount - invoice.amount_paid, 0.0), 2)
            invoice.payment_status = payment_status_for(invoice.total_amount, invoice.amount_paid).value
            await self.invoices.save(invoice)
        proof = await self.proofs.save(proof)

        await self.audit.record(
            action_type="payment_verified" if action == "approve" else "payment_rejected",
            action_description=f"Payment proof {proof.id} {proof.status} for invoice {invoice.invoice_number}",
            clinic_id=proof.clinic_id,
            user_id=reviewer.id,
            patient_id=proof.patient_id,
            entity_type="payment_proof",
            entity_id=proof.id,
            old_values=old_invoice,
            new_values={
                "status": proof.status,
                "amount": proof.amount,
                "amount_paid": invoice.amount_paid,
                "payment_status": invoice.payment_status,
            },
        )
        await self.notifications.notify_patient(
            proof.patient_id,
            title="Payment update",
            message=(
                f"Your payment of {proof.amount:.2f} for invoice {invoice.invoice_number} was approved."
                if action == "approve"
                else f"Your payment for invoice {invoice.invoice_number} was rejected: {notes}"
            ),
            notification_type="payment_verification",
            related_entity_type="payment_proof",
            related_entity_id=proof.id,
        )
        logger.info(f"Payment proof {proof.id} {proof.status}; invoice {invoice.invoice_number} -> {invoice.payment_status}")
        return proof
