"""Notification inbox routes."""

from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from studyhub.config import get_settings
from studyhub.db.models import Notification
from studyhub.schemas.notifications import NotificationList, NotificationRead, UnreadCount

router = APIRouter(prefix="/notifications", tags=["notifications"])
settings = get_settings()


async def _unread_count(db: AsyncSession, user_id: UUID) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
    )
    return result.scalar_one()


@router.get("", response_model=NotificationList)
async def list_notifications(current_user: CurrentUser, db: DbSession) -> NotificationList:
    """Newest notifications (up to the configured limit) and the unread count."""
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == current_user.id)
        .order_by(Notification.created_at.desc())
        .limit(settings.notification_list_limit)
    )
    return NotificationList(
        notifications=[NotificationRead.model_validate(n) for n in result.scalars()],
        unread_count=await _unread_count(db, current_user.id),
    )


@router.get("/unread-count", response_model=UnreadCount)
async def get_unread_count(current_user: CurrentUser, db: DbSession) -> UnreadCount:
    return UnreadCount(count=await _unread_count(db, current_user.id))


@router.patch("/read-all", response_model=UnreadCount)
async def mark_all_read(current_user: CurrentUser, db: DbSession) -> UnreadCount:
    """Mark every unread notification as read. Returns how many changed."""
    result = await db.execute(
        update(Notification)
        .where(
            Notification.user_id == current_user.id,
            Notification.is_read.is_(False),
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return UnreadCount(count=result.rowcount)


@router.patch("/{notification_id}/read", response_model=NotificationRead)
async def mark_read(
    notification_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> NotificationRead:
    notification = await get_user_resource_or_404(db, Notification, notification_id, current_user.id)
    notification.is_read = True
    await db.commit()
    await db.refresh(notification)
    return NotificationRead.model_validate(notification)


@router.delete("/read", response_model=UnreadCount)
async def delete_read(current_user: CurrentUser, db: DbSession) -> UnreadCount:
    """Delete all of the caller's read notifications. Returns how many were removed."""
    result = await db.execute(
        delete(Notification).where(
            Notification.user_id == current_user.id,
            Notification.is_read.is_(True),
        )
    )
    await db.commit()
    return UnreadCount(count=result.rowcount)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    notification = await get_user_resource_or_404(db, Notification, notification_id, current_user.id)
    await db.delete(notification)
    await db.commit()
