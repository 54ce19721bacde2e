"""
Payment API Endpoints.

Invoices are raised by staff. Patients pay outside the system and upload
a proof image; staff approve or reject the proof, and approval moves the
invoice balance.
"""
from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, File, Form, Query, UploadFile

from ....core.exceptions import ResourceNotFoundError
from ....core.rbac import CurrentUser, StaffUser, ensure_clinic_access, resolve_clinic_id, visible_clinic_ids
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....models.enums import PaymentProofStatus, PaymentStatus
from ....models.user import User
from ....repositories.patient_repository import PatientRepository
from ....schemas.payment import InvoiceCreate, InvoiceResponse, PaymentProofResponse, PaymentVerifyRequest
from ....services import get_blob_storage_service
from ....services.payment_service import PaymentService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])


async def _scope(user: User, db: DbSession, patient_id: int | None) -> tuple[list[int] | None, int | None]:
    """Clinic ids and patient filter for a listing; patients are pinned to themselves."""
    if not user.is_patient:
        return await visible_clinic_ids(user, db), patient_id
    patient = await PatientRepository(db).get_by_user_id(user.id)
    if patient is None:
        raise ResourceNotFoundError("patient", f"user:{user.id}")
    return None, patient.id


# =============================================================================
# Invoices
# =============================================================================

@router.post("/invoices", response_model=GenericResponse[InvoiceResponse], status_code=201, summary="Raise invoice")
async def create_invoice(payload: InvoiceCreate, user: StaffUser, db: DbSession) -> GenericResponse[InvoiceResponse]:
    clinic_id = resolve_clinic_id(user, payload.clinic_id)
    await ensure_clinic_access(user, clinic_id, db)
    invoice = await PaymentService(db).create_invoice(
        clinic_id=clinic_id,
        patient_id=payload.patient_id,
        total_amount=payload.total_amount,
        appointment_id=payload.appointment_id,
        due_date=payload.due_date,
        notes=payload.notes,
    )
    await db.commit()
    logger.info("invoice_created", invoice_id=invoice.id, clinic_id=clinic_id, by=user.id)
    return GenericResponse(message="Invoice created", data=InvoiceResponse.model_validate(invoice))


@router.get("/invoices", response_model=PaginatedResponse[InvoiceResponse], summary="List invoices")
async def list_invoices(
    user: CurrentUser,
    db: DbSession,
    patient_id: int | None = Query(None),
    payment_status: PaymentStatus | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
) -> PaginatedResponse[InvoiceResponse]:
    clinic_ids, patient_id = await _scope(user, db, patient_id)
    invoices, total = await PaymentService(db).invoices.list_all(
        clinic_ids=clinic_ids,
        patient_id=patient_id,
        payment_status=payment_status.value if payment_status else None,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return PaginatedResponse(
        message="Invoices retrieved",
        data=[InvoiceResponse.model_validate(i) for i in invoices],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


@router.get("/invoices/{invoice_id}", response_model=GenericResponse[InvoiceResponse], summary="Get invoice")
async def get_invoice(invoice_id: int, user: CurrentUser, db: DbSession) -> GenericResponse[InvoiceResponse]:
    invoice = await PaymentService(db).get_invoice(user, invoice_id)
    return GenericResponse(message="Invoice retrieved", data=InvoiceResponse.model_validate(invoice))


@router.post(
    "/invoices/{invoice_id}/proofs",
    response_model=GenericResponse[PaymentProofResponse],
    status_code=201,
    summary="Upload proof of payment",
)
async def submit_proof(
    invoice_id: int,
    user: CurrentUser,
    db: DbSession,
    file: Annotated[UploadFile, File(description="Receipt or transfer screenshot (JPG, PNG)")],
    amount: Annotated[float, Form(gt=0)],
    payment_method: Annotated[str, Form(max_length=50)] = "bank_transfer",
    notes: Annotated[str | None, Form()] = None,
) -> GenericResponse[PaymentProofResponse]:
    service = PaymentService(db, get_blob_storage_service())
    invoice = await service.get_invoice(user, invoice_id)
    proof = await service.submit_proof(
        invoice,
        patient_id=invoice.patient_id,
        amount=amount,
        payment_method=payment_method,
        file_name=file.filename,
        content=await file.read(),
        notes=notes,
    )
    await db.commit()
    return GenericResponse(message="Payment proof submitted", data=PaymentProofResponse.model_validate(proof))


# =============================================================================
# Proofs
# =============================================================================

@router.get("/proofs", response_model=PaginatedResponse[PaymentProofResponse], summary="List payment proofs")
async def list_proofs(
    user: CurrentUser,
    db: DbSession,
    invoice_id: int | None = Query(None),
    patient_id: int | None = Query(None),
    status: PaymentProofStatus | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
) -> PaginatedResponse[PaymentProofResponse]:
    clinic_ids, patient_id = await _scope(user, db, patient_id)
    proofs, total = await PaymentService(db).proofs.list_all(
        clinic_ids=clinic_ids,
        patient_id=patient_id,
        invoice_id=invoice_id,
        status=status.value if status else None,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return PaginatedResponse(
        message="Payment proofs retrieved",
        data=[PaymentProofResponse.model_validate(p) for p in proofs],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


@router.get("/proofs/{proof_id}", response_model=GenericResponse[PaymentProofResponse], summary="Get payment proof")
async def get_proof(proof_id: int, user: CurrentUser, db: DbSession) -> GenericResponse[PaymentProofResponse]:
    proof = await PaymentService(db).get_proof(user, proof_id)
    return GenericResponse(message="Payment proof retrieved", data=PaymentProofResponse.model_validate(proof))


@router.post("/proofs/{proof_id}/verify", response_model=GenericResponse[PaymentProofResponse], summary="Approve or reject proof")
async def verify_proof(
    proof_id: int,
    payload: PaymentVerifyRequest,
    user: StaffUser,
    db: DbSession,
) -> GenericResponse[PaymentProofResponse]:
    service = PaymentService(db)
    proof = await service.get_proof(user, proof_id)
    proof = await service.verify_proof(proof, payload.action, user, notes=payload.notes)
    await db.commit()
    return GenericResponse(message=f"Payment proof {proof.status}", data=PaymentProofResponse.model_validate(proof))
