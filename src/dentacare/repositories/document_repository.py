"""
Document Repository.

Data access layer for PatientDocument and its DocumentAuditTrail.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.document import DocumentAuditTrail, PatientDocument

logger = logging.getLogger(__name__)


class DocumentRepository:
    """Repository for patient documents."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, document_id: int) -> PatientDocument | None:
        result = await self.session.execute(select(PatientDocument).where(PatientDocument.id == document_id))
        return result.scalar_one_or_none()

    async def list_all(
        self,
        clinic_ids: Sequence[int] | None = None,
        patient_id: int | None = None,
        verification_status: str | None = None,
        document_type: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[PatientDocument], int]:
        filters = []
        if clinic_ids is not None:
            filters.append(PatientDocument.clinic_id.in_(clinic_ids))
        if patient_id is not None:
            filters.append(PatientDocument.patient_id == patient_id)
        if verification_status:
            filters.append(PatientDocument.verification_status == verification_status)
        if document_type:
            filters.append(PatientDocument.document_type == document_type)

        total = (await self.session.execute(select(func.count(PatientDocument.id)).where(*filters))).scalar_one()
        result = await self.session.execute(
            select(PatientDocument).where(*filters).order_by(PatientDocument.id.desc()).offset(skip).limit(limit)
        )
        return result.scalars().all(), total

    async def create(self, **fields: object) -> PatientDocument:
        document = PatientDocument(**fields)
        self.session.add(document)
        await self.session.flush()
        await self.session.refresh(document)
        logger.info(f"Document stored: id={document.id}, patient_id={document.patient_id}, type={document.document_type}")
        return document

    async def save(self, document: PatientDocument) -> PatientDocument:
        await self.session.flush()
        await self.session.refresh(document)
        return document

    # ==========================================================================
    # Audit trail
    # ==========================================================================

    async def add_audit_entry(
        self,
        document_id: int,
        action: str,
        performed_by: int | None,
        old_status: str | None = None,
        new_status: str | None = None,
        notes: str | None = None,
    ) -> DocumentAuditTrail:
        entry = DocumentAuditTrail(
            document_id=document_id,
            action=action,
            performed_by=performed_by,
            old_status=old_status,
            new_status=new_status,
            notes=notes,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_audit_trail(self, document_id: int) -> Sequence[DocumentAuditTrail]:
        result = await self.session.execute(
            select(DocumentAuditTrail)
            .where(DocumentAuditTrail.document_id == document_id)
            .order_by(DocumentAuditTrail.id)
        )
        return result.scalars().all()
