"""Notification Repository - in-app workflow notifications."""
from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.document import WorkflowNotification

log = structlog.get_logger(__name__)


class NotificationRepository:
    """Repository for WorkflowNotification rows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, notification_id: int) -> WorkflowNotification | None:
        result = await self.session.execute(
            select(WorkflowNotification).where(WorkflowNotification.id == notification_id)
        )
        return result.scalar_one_or_none()

    async def exists(self, dedupe_key: str) -> bool:
        result = await self.session.execute(
            select(func.count(WorkflowNotification.id)).where(WorkflowNotification.dedupe_key == dedupe_key)
        )
        return result.scalar_one() > 0

    async def list_for_user(
        self,
        user_id: int,
        unread_only: bool = False,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[WorkflowNotification], int]:
        filters = [WorkflowNotification.recipient_user_id == user_id]
        if unread_only:
            filters.append(WorkflowNotification.is_read.is_(False))
        total = (
            await self.session.execute(select(func.count(WorkflowNotification.id)).where(*filters))
        ).scalar_one()
        result = await self.session.execute(
            select(WorkflowNotification)
            .where(*filters)
            .order_by(WorkflowNotification.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return result.scalars().all(), total

    async def create(
        self,
        clinic_id: int,
        recipient_user_id: int,
        title: str,
        message: str,
        notification_type: str,
        related_entity_type: str | None = None,
        related_entity_id: int | None = None,
        dedupe_key: str | None = None,
    ) -> WorkflowNotification:
        notification = WorkflowNotification(
            clinic_id=clinic_id,
            recipient_user_id=recipient_user_id,
            title=title,
            message=message,
            notification_type=notification_type,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            dedupe_key=dedupe_key,
        )
        self.session.add(notification)
        await self.session.flush()
        await self.session.refresh(notification)
        log.info(
            "notification_created",
            notification_id=notification.id,
            recipient=recipient_user_id,
            notification_type=notification_type,
        )
        return notification

    async def mark_read(self, notification: WorkflowNotification) -> WorkflowNotification:
        notification.is_read = True
        await self.session.flush()
        return notification

    async def mark_all_read(self, user_id: int) -> int:
        result = await self.session.execute(
            update(WorkflowNotification)
            .where(
                WorkflowNotification.recipient_user_id == user_id,
                WorkflowNotification.is_read.is_(False),
            )
            .values(is_read=True)
        )
        return result.rowcount or 0
