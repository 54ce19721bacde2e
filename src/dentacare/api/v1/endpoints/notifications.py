"""In-app notification endpoints for the signed-in user."""
from __future__ import annotations

from fastapi import APIRouter, Query

from ....core.exceptions import ResourceNotFoundError
from ....core.rbac import CurrentUser
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....repositories.notification_repository import NotificationRepository
from ....schemas.document import NotificationResponse

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=PaginatedResponse[NotificationResponse], summary="My notifications")
async def list_notifications(
    user: CurrentUser,
    db: DbSession,
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
) -> PaginatedResponse[NotificationResponse]:
    notifications, total = await NotificationRepository(db).list_for_user(
        user.id, unread_only=unread_only, skip=(page - 1) * page_size, limit=page_size
    )
    return PaginatedResponse(
        message="Notifications retrieved",
        data=[NotificationResponse.model_validate(n) for n in notifications],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


@router.post("/read-all", response_model=GenericResponse[dict], summary="Mark all as read")
async def mark_all_read(user: CurrentUser, db: DbSession) -> GenericResponse[dict]:
    updated = await NotificationRepository(db).mark_all_read(user.id)
    await db.commit()
    return GenericResponse(message="Notifications marked as read", data={"updated": updated})


@router.post("/{notification_id}/read", response_model=GenericResponse[NotificationResponse], summary="Mark as read")
async def mark_read(notification_id: int, user: CurrentUser, db: DbSession) -> GenericResponse[NotificationResponse]:
    repo = NotificationRepository(db)
    notification = await repo.get_by_id(notification_id)
    if notification is None or notification.recipient_user_id != user.id:
        raise ResourceNotFoundError("notification", notification_id)
    notification = await repo.mark_read(notification)
    await db.commit()
    return GenericResponse(message="Notification marked as read", data=NotificationResponse.model_validate(notification))
