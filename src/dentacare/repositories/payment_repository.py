"""
Payment Repository.

Data access layer for Invoice and PaymentProof entities.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.payment import Invoice, PaymentProof

logger = logging.getLogger(__name__)


class InvoiceRepository:
    """Repository for invoices."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, invoice_id: int, for_update: bool = False) -> Invoice | None:
        """Fetch an invoice; row-locked when for_update (ignored by SQLite)."""
        query = select(Invoice).where(Invoice.id == invoice_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def next_invoice_number(self, issued_on: date) -> str:
        """INV-YYYYMMDD-#### with a per-day sequence."""
        prefix = f"INV-{issued_on:%Y%m%d}-"
        result = await self.session.execute(
            select(func.count(Invoice.id)).where(Invoice.invoice_number.like(f"{prefix}%"))
        )
        return f"{prefix}{result.scalar_one() + 1:04d}"

    async def list_all(
        self,
        clinic_ids: Sequence[int] | None = None,
        patient_id: int | None = None,
        payment_status: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[Invoice], int]:
        filters = []
        if clinic_ids is not None:
            filters.append(Invoice.clinic_id.in_(clinic_ids))
        if patient_id is not None:
            filters.append(Invoice.patient_id == patient_id)
        if payment_status:
            filters.append(Invoice.payment_status == payment_status)

        total = (await self.session.execute(select(func.count(Invoice.id)).where(*filters))).scalar_one()
        result = await self.session.execute(
            select(Invoice).where(*filters).order_by(Invoice.id.desc()).offset(skip).limit(limit)
        )
        return result.scalars().all(), total

    async def list_for_appointments(self, appointment_ids: Sequence[int]) -> Sequence[Invoice]:
        if not appointment_ids:
            return []
        result = await self.session.execute(select(Invoice).where(Invoice.appointment_id.in_(appointment_ids)))
        return result.scalars().all()

    async def create(self, **fields: object) -> Invoice:
        invoice = Invoice(**fields)
        self.session.add(invoice)
        await self.session.flush()
        await self.session.refresh(invoice)
        logger.info(f"Invoice created: {invoice.invoice_number} total={invoice.total_amount}")
        return invoice

    async def save(self, invoice: Invoice) -> Invoice:
        await self.session.flush()
        await self.session.refresh(invoice)
        return invoice


class PaymentProofRepository:
    """Repository for payment proofs."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, proof_id: int) -> PaymentProof | None:
        result = await self.session.execute(select(PaymentProof).where(PaymentProof.id == proof_id))
        return result.scalar_one_or_none()

    async def list_all(
        self,
        clinic_ids: Sequence[int] | None = None,
        patient_id: int | None = None,
        invoice_id: int | None = None,
        status: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[PaymentProof], int]:
        filters = []
        if clinic_ids is not None:
            filters.append(PaymentProof.clinic_id.in_(clinic_ids))
        if patient_id is not None:
            filters.append(PaymentProof.patient_id == patient_id)
        if invoice_id is not None:
            filters.append(PaymentProof.invoice_id == invoice_id)
        if status:
            filters.append(PaymentProof.status == status)

        total = (await self.session.execute(select(func.count(PaymentProof.id)).where(*filters))).scalar_one()
        result = await self.session.execute(
            select(PaymentProof).where(*filters).order_by(PaymentProof.submitted_at.desc(), PaymentProof.id.desc())
            .offset(skip).limit(limit)
        )
        return result.scalars().all(), total

    async def list_verified_between(
        self,
        start: datetime,
        end: datetime,
        clinic_ids: Sequence[int] | None = None,
        status: str = "approved",
    ) -> Sequence[PaymentProof]:
        """Proofs with the given outcome verified during [start, end)."""
        query = select(PaymentProof).where(
            PaymentProof.status == status,
            PaymentProof.verified_at >= start,
            PaymentProof.verified_at < end,
        )
        if clinic_ids is not None:
            query = query.where(PaymentProof.clinic_id.in_(clinic_ids))
        result = await self.session.execute(query)
        return result.scalars().all()

    async def create(self, **fields: object) -> PaymentProof:
        proof = PaymentProof(**fields)
        self.session.add(proof)
        await self.session.flush()
        await self.session.refresh(proof)
        logger.info(f"Payment proof submitted: id={proof.id}, invoice_id={proof.invoice_id}, amount={proof.amount}")
        return proof

    async def save(self, proof: PaymentProof) -> PaymentProof:
        await self.session.flush()
        await self.session.refresh(proof)
        return proof
