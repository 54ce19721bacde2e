"""
Form Repository.

Data access layer for DigitalForm definitions and FormResponse submissions.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.form import DigitalForm, FormResponse

logger = logging.getLogger(__name__)


class FormRepository:
    """Repository for form definitions and responses."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ==========================================================================
    # Form definitions
    # ==========================================================================

    async def get_form(self, form_id: int) -> DigitalForm | None:
        result = await self.session.execute(select(DigitalForm).where(DigitalForm.id == form_id))
        return result.scalar_one_or_none()

    async def list_forms(
        self,
        clinic_ids: Sequence[int] | None = None,
        category: str | None = None,
        active_only: bool = True,
    ) -> Sequence[DigitalForm]:
        query = select(DigitalForm)
        if clinic_ids is not None:
            query = query.where(DigitalForm.clinic_id.in_(clinic_ids))
        if category:
            query = query.where(DigitalForm.category == category)
        if active_only:
            query = query.where(DigitalForm.is_active.is_(True))
        result = await self.session.execute(query.order_by(DigitalForm.name, DigitalForm.id))
        return result.scalars().all()

    async def create_form(self, clinic_id: int, name: str, **fields: object) -> DigitalForm:
        form = DigitalForm(clinic_id=clinic_id, name=name, **fields)
        self.session.add(form)
        await self.session.flush()
        await self.session.refresh(form)
        logger.info(f"Created form: id={form.id}, name='{form.name}', clinic_id={clinic_id}")
        return form

    async def update_form(self, form: DigitalForm, **fields: object) -> DigitalForm:
        for key, value in fields.items():
            if value is not None and hasattr(form, key):
                setattr(form, key, value)
        await self.session.flush()
        await self.session.refresh(form)
        logger.info(f"Updated form: id={form.id}, version={form.version}")
        return form

    # ==========================================================================
    # Responses
    # ==========================================================================

    async def get_response(self, response_id: int) -> FormResponse | None:
        result = await self.session.execute(select(FormResponse).where(FormResponse.id == response_id))
        return result.scalar_one_or_none()

    async def list_responses(
        self,
        clinic_ids: Sequence[int] | None = None,
        patient_id: int | None = None,
        form_id: int | None = None,
        verification_status: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[FormResponse], int]:
        filters = []
        if clinic_ids is not None:
            filters.append(FormResponse.clinic_id.in_(clinic_ids))
        if patient_id is not None:
            filters.append(FormResponse.patient_id == patient_id)
        if form_id is not None:
            filters.append(FormResponse.form_id == form_id)
        if verification_status:
            filters.append(FormResponse.verification_status == verification_status)

        total = (await self.session.execute(select(func.count(FormResponse.id)).where(*filters))).scalar_one()
        result = await self.session.execute(
            select(FormResponse).where(*filters).order_by(FormResponse.created_at.desc(), FormResponse.id.desc())
            .offset(skip).limit(limit)
        )
        return result.scalars().all(), total

    async def list_required_for_patient(self, patient_id: int) -> Sequence[FormResponse]:
        """Responses of a patient whose forms gate treatment, oldest first."""
        result = await self.session.execute(
            select(FormResponse)
            .where(
                FormResponse.patient_id == patient_id,
                FormResponse.requires_verification.is_(True),
            )
            .order_by(FormResponse.id)
        )
        return result.scalars().all()

    async def create_response(self, **fields: object) -> FormResponse:
        response = FormResponse(**fields)
        self.session.add(response)
        await self.session.flush()
        await self.session.refresh(response)
        logger.info(f"Form submitted: response_id={response.id}, form_id={response.form_id}")
        return response

    async def save_response(self, response: FormResponse) -> FormResponse:
        await self.session.flush()
        await self.session.refresh(response)
        return response
