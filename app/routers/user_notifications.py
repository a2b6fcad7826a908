from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.core.db import get_db
from app.models.user import User
from app.schemas.user_notification import (
    NotificationListResponse,
    NotificationMarkReadRequest,
    NotificationResponse,
    NotificationUnreadCount,
)
from app.services.user_notification import UserNotificationService

router = APIRouter()


def _service(db: AsyncSession = Depends(get_db)) -> UserNotificationService:
    return UserNotificationService(db)


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    unread_only: bool = False,
    user: User = Depends(get_current_user),
    service: UserNotificationService = Depends(_service),
) -> NotificationListResponse:
    """List notifications for the current user, including company broadcasts."""
    notifications, total, unread_count = await service.list_notifications(
        company_id=user.company_id,
        user_id=user.id,
        limit=limit,
        offset=offset,
        unread_only=unread_only,
    )

    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        unread_count=unread_count,
    )


@router.get("/unread-count", response_model=NotificationUnreadCount)
async def get_unread_count(
    user: User = Depends(get_current_user),
    service: UserNotificationService = Depends(_service),
) -> NotificationUnreadCount:
    """Get just the unread notification count (for badge display)."""
    count = await service.get_unread_count(company_id=user.company_id, user_id=user.id)
    return NotificationUnreadCount(unread_count=count)


@router.post("/mark-read")
async def mark_notifications_read(
    payload: NotificationMarkReadRequest,
    user: User = Depends(get_current_user),
    service: UserNotificationService = Depends(_service),
) -> dict:
    updated = await service.mark_as_read(
        company_id=user.company_id,
        user_id=user.id,
        notification_ids=payload.notification_ids,
    )
    return {"updated": updated}


@router.post("/mark-all-read")
async def mark_all_notifications_read(
    user: User = Depends(get_current_user),
    service: UserNotificationService = Depends(_service),
) -> dict:
    updated = await service.mark_all_as_read(company_id=user.company_id, user_id=user.id)
    return {"updated": updated}
