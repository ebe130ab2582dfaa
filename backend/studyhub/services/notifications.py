"""Notification emitter: de-duplicated in-app notices."""

import logging
from datetime import timedelta
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.config import get_settings
from studyhub.db.models import (
    Notification,
    NotificationType,
    Priority,
    RelatedType,
    utcnow,
)

logger = logging.getLogger(__name__)
settings = get_settings()


def _value(item: object | None) -> str | None:
    """Accept either an enum member or its raw string value."""
    if item is None:
        return None
    return getattr(item, "value", item)  # type: ignore[return-value]


async def notify(
    db: AsyncSession,
    user_id: UUID,
    type: NotificationType | str,
    title: str,
    message: str,
    related_id: UUID | None = None,
    related_type: RelatedType | str | None = None,
    priority: Priority | str = Priority.MEDIUM,
) -> Notification:
    """
    Record a notice for a user.

    When related_id is given and the user still has an unread notice with the
    same (type, related_id), that notice is refreshed in place (title,
    message, priority, timestamp) instead of inserting a duplicate.

    Flushes but does not commit: the caller's transaction decides whether the
    notice is kept together with the change that caused it.
    """
    type_value = _value(type)
    existing: Notification | None = None

    if related_id is not None:
        result = await db.execute(
            select(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.type == type_value,
                Notification.related_id == related_id,
                Notification.is_read.is_(False),
            )
            .order_by(Notification.created_at.desc())
            .limit(1)
        )
        existing = result.scalar_one_or_none()

    if existing is not None:
        existing.title = title
        existing.message = message
        existing.priority = _value(priority)
        existing.created_at = utcnow()
        await db.flush()
        logger.debug("Notification refreshed: %s for user %s", type_value, user_id)
        return existing

    notification = Notification(
        user_id=user_id,
        type=type_value,
        title=title,
        message=message,
        related_id=related_id,
        related_type=_value(related_type),
        priority=_value(priority),
        is_read=False,
    )
    db.add(notification)
    await db.flush()
    logger.debug("Notification created: %s for user %s", type_value, user_id)
    return notification


async def notify_many(
    db: AsyncSession,
    user_ids: list[UUID],
    type: NotificationType | str,
    title: str,
    message: str,
    related_id: UUID | None = None,
    related_type: RelatedType | str | None = None,
    priority: Priority | str = Priority.MEDIUM,
) -> int:
    """Insert the same notice for several users. No de-duplication."""
    db.add_all(
        Notification(
            user_id=user_id,
            type=_value(type),
            title=title,
            message=message,
            related_id=related_id,
            related_type=_value(related_type),
            priority=_value(priority),
            is_read=False,
        )
        for user_id in user_ids
    )
    await db.flush()
    logger.info("%d notifications created (%s)", len(user_ids), _value(type))
    return len(user_ids)


async def cleanup_old_notifications(db: AsyncSession, days_old: int | None = None) -> int:
    """Delete read notices older than the retention window. Returns rows removed."""
    days = settings.notification_retention_days if days_old is None else days_old
    cutoff = utcnow() - timedelta(days=days)
    result = await db.execute(
        delete(Notification).where(
            Notification.is_read.is_(True),
            Notification.created_at < cutoff,
        )
    )
    await db.commit()
    logger.info("Cleaned up %d old notifications", result.rowcount)
    return result.rowcount
