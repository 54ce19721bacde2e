"""Workflow notification helpers shared by review workflows and reminders."""
from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.document import WorkflowNotification
from ..repositories.notification_repository import NotificationRepository
from ..repositories.patient_repository import PatientRepository

log = structlog.get_logger(__name__)


class NotificationService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = NotificationRepository(session)
        self.patients = PatientRepository(session)

    async def notify_user(
        self,
        clinic_id: int,
        user_id: int | None,
        title: str,
        message: str,
        notification_type: str,
        related_entity_type: str | None = None,
        related_entity_id: int | None = None,
        dedupe_key: str | None = None,
    ) -> WorkflowNotification | None:
        """Create a notification; None when there is no recipient or it was already sent."""
        if user_id is None:
            return None
        if dedupe_key and await self.repo.exists(dedupe_key):
            log.debug("notification_deduplicated", dedupe_key=dedupe_key)
            return None
        return await self.repo.create(
            clinic_id=clinic_id,
            recipient_user_id=user_id,
            title=title,
            message=message,
            notification_type=notification_type,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            dedupe_key=dedupe_key,
        )

    async def notify_patient(
        self,
        patient_id: int,
        title: str,
        message: str,
        notification_type: str,
        related_entity_type: str | None = None,
        related_entity_id: int | None = None,
        dedupe_key: str | None = None,
    ) -> WorkflowNotification | None:
        """Notify the portal account of a patient, if the patient has one."""
        patient = await self.patients.get_by_id(patient_id)
        if patient is None or patient.user_id is None:
            return None
        return await self.notify_user(
            clinic_id=patient.clinic_id,
            user_id=patient.user_id,
            title=title,
            message=message,
            notification_type=notification_type,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            dedupe_key=dedupe_key,
        )
