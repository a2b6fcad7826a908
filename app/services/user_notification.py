import uuid
from datetime import datetime

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user_notification import UserNotification
from app.schemas.user_notification import NotificationCreate


class UserNotificationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_notification(
        self,
        company_id: str,
        payload: NotificationCreate,
    ) -> UserNotification:
        """Create a notification for a specific user, or for everyone in the company when user_id is None."""
        notification = UserNotification(
            id=str(uuid.uuid4()),
            company_id=company_id,
            user_id=payload.user_id,
            type=payload.type,
            title=payload.title,
            message=payload.message,
            link=payload.link,
            entity_type=payload.entity_type,
            entity_id=payload.entity_id,
            priority=payload.priority,
        )
        self.db.add(notification)
        await self.db.commit()
        await self.db.refresh(notification)
        return notification

    def _visible_to(self, company_id: str, user_id: str):
        return and_(
            UserNotification.company_id == company_id,
            or_(
                UserNotification.user_id == user_id,
                UserNotification.user_id.is_(None),  # Broadcasts
            ),
        )

    async def list_notifications(
        self,
        company_id: str,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        unread_only: bool = False,
    ) -> tuple[list[UserNotification], int, int]:
        """
        List notifications for a user.
        Returns: (notifications, total_count, unread_count)
        """
        full_filter = self._visible_to(company_id, user_id)
        unread_filter = and_(full_filter, UserNotification.read.is_(False))

        total_result = await self.db.execute(
            select(func.count()).select_from(UserNotification).where(full_filter)
        )
        total = total_result.scalar() or 0

        unread_result = await self.db.execute(
            select(func.count()).select_from(UserNotification).where(unread_filter)
        )
        unread_count = unread_result.scalar() or 0

        query = (
            select(UserNotification)
            .where(unread_filter if unread_only else full_filter)
            .order_by(UserNotification.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(query)
        notifications = list(result.scalars().all())

        return notifications, total, unread_count

    async def get_unread_count(self, company_id: str, user_id: str) -> int:
        query = (
            select(func.count())
            .select_from(UserNotification)
            .where(self._visible_to(company_id, user_id), UserNotification.read.is_(False))
        )
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def mark_as_read(
        self,
        company_id: str,
        user_id: str,
        notification_ids: list[str],
    ) -> int:
        """Mark specific notifications as read. Returns count of updated rows."""
        if not notification_ids:
            return 0
        stmt = (
            update(UserNotification)
            .where(
                UserNotification.id.in_(notification_ids),
                self._visible_to(company_id, user_id),
                UserNotification.read.is_(False),
            )
            .values(read=True, read_at=datetime.utcnow())
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount

    async def mark_all_as_read(self, company_id: str, user_id: str) -> int:
        stmt = (
            update(UserNotification)
            .where(self._visible_to(company_id, user_id), UserNotification.read.is_(False))
            .values(read=True, read_at=datetime.utcnow())
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount
