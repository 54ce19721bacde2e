"""Audit Repository - append-only audit log."""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.audit import AuditLog

log = structlog.get_logger(__name__)


class AuditRepository:
    """Repository for AuditLog rows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def record(
        self,
        action_type: str,
        action_description: str,
        clinic_id: int | None = None,
        user_id: int | None = None,
        patient_id: int | None = None,
        entity_type: str | None = None,
        entity_id: int | str | None = None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Append an audit row."""
        entry = AuditLog(
            action_type=action_type,
            action_description=action_description,
            clinic_id=clinic_id,
            user_id=user_id,
            patient_id=patient_id,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            old_values=old_values,
            new_values=new_values,
        )
        self.session.add(entry)
        await self.session.flush()
        log.info("audit_recorded", action_type=action_type, entity_type=entity_type, entity_id=entity_id)
        return entry

    async def list_all(
        self,
        clinic_ids: Sequence[int] | None = None,
        action_type: str | None = None,
        entity_type: str | None = None,
        entity_id: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[Sequence[AuditLog], int]:
        filters = []
        if clinic_ids is not None:
            filters.append(AuditLog.clinic_id.in_(clinic_ids))
        if action_type:
            filters.append(AuditLog.action_type == action_type)
        if entity_type:
            filters.append(AuditLog.entity_type == entity_type)
        if entity_id:
            filters.append(AuditLog.entity_id == entity_id)

        total = (await self.session.execute(select(func.count(AuditLog.id)).where(*filters))).scalar_one()
        result = await self.session.execute(
            select(AuditLog).where(*filters).order_by(AuditLog.id.desc()).offset(skip).limit(limit)
        )
        return result.scalars().all(), total
