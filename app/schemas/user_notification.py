from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


NotificationType = Literal["quote", "project_request", "product", "system"]
NotificationPriority = Literal["low", "normal", "high", "urgent"]


class NotificationBase(BaseModel):
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    link: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    priority: NotificationPriority = "normal"


class NotificationCreate(NotificationBase):
    """Create a notification for a user or all users in a company."""
    user_id: Optional[str] = None  # NULL = broadcast to all users in company


class NotificationResponse(NotificationBase):
    id: str
    company_id: str
    user_id: Optional[str]
    read: bool
    read_at: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    unread_count: int


class NotificationMarkReadRequest(BaseModel):
    notification_ids: list[str]


class NotificationUnreadCount(BaseModel):
    unread_count: int
