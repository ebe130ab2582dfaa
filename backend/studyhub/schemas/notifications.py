"""Notification schemas."""

from datetime import datetime
from uuid import UUID

from studyhub.schemas.base import BaseSchema


class NotificationRead(BaseSchema):
    id: UUID
    user_id: UUID
    type: str
    title: str
    message: str
    related_id: UUID | None
    related_type: str | None
    is_read: bool
    priority: str
    created_at: datetime


class NotificationList(BaseSchema):
    notifications: list[NotificationRead]
    unread_count: int


class UnreadCount(BaseSchema):
    count: int
