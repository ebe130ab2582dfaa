"""Notification emitter de-duplication and cleanup."""

from datetime import timedelta
from uuid import uuid4

from sqlalchemy import func, select

from studyhub.db.models import Notification, NotificationType, Priority, RelatedType, utcnow
from studyhub.services.notifications import cleanup_old_notifications, notify, notify_many


async def _count(db, user_id) -> int:
    result = await db.execute(select(func.count(Notification.id)).where(Notification.user_id == user_id))
    return result.scalar_one()


async def test_same_event_refreshes_unread_notice(db_session, student):
    related = uuid4()
    first = await notify(
        db_session, student.id, NotificationType.TASK_DUE_SOON, "Task Due Soon", "due in 24h",
        related_id=related, related_type=RelatedType.TASK,
    )
    await db_session.commit()

    second = await notify(
        db_session, student.id, NotificationType.TASK_DUE_SOON, "Task Due Soon", "due in 2h",
        related_id=related, related_type=RelatedType.TASK, priority=Priority.HIGH,
    )
    await db_session.commit()

    assert second.id == first.id
    assert second.message == "due in 2h"
    assert second.priority == "high"
    assert await _count(db_session, student.id) == 1


async def test_read_notice_is_not_reused(db_session, student):
    related = uuid4()
    first = await notify(db_session, student.id, NotificationType.TASK_OVERDUE, "Overdue", "x", related_id=related)
    first.is_read = True
    await db_session.commit()

    second = await notify(db_session, student.id, NotificationType.TASK_OVERDUE, "Overdue", "x", related_id=related)
    await db_session.commit()

    assert second.id != first.id
    assert await _count(db_session, student.id) == 2


async def test_different_type_or_related_id_inserts(db_session, student):
    related = uuid4()
    await notify(db_session, student.id, NotificationType.TASK_DUE_SOON, "a", "a", related_id=related)
    await notify(db_session, student.id, NotificationType.TASK_OVERDUE, "b", "b", related_id=related)
    await notify(db_session, student.id, NotificationType.TASK_OVERDUE, "c", "c", related_id=uuid4())
    await db_session.commit()
    assert await _count(db_session, student.id) == 3


async def test_without_related_id_always_inserts(db_session, student):
    await notify(db_session, student.id, NotificationType.ACHIEVEMENT, "Hi", "one")
    await notify(db_session, student.id, NotificationType.ACHIEVEMENT, "Hi", "two")
    await db_session.commit()
    assert await _count(db_session, student.id) == 2


async def test_notify_many(db_session, make_student):
    students = [await make_student() for _ in range(3)]
    created = await notify_many(
        db_session, [s.id for s in students], NotificationType.TASK_ASSIGNED, "New Task", "Read ch. 3"
    )
    await db_session.commit()

    assert created == 3
    for s in students:
        assert await _count(db_session, s.id) == 1


async def test_cleanup_removes_only_old_read_notices(db_session, student):
    old_read = await notify(db_session, student.id, NotificationType.ACHIEVEMENT, "old", "read")
    old_unread = await notify(db_session, student.id, NotificationType.ACHIEVEMENT, "old", "unread")
    fresh_read = await notify(db_session, student.id, NotificationType.ACHIEVEMENT, "new", "read")
    old_read.is_read = True
    fresh_read.is_read = True
    old_read.created_at = utcnow() - timedelta(days=40)
    old_unread.created_at = utcnow() - timedelta(days=40)
    await db_session.commit()

    removed = await cleanup_old_notifications(db_session, days_old=30)

    assert removed == 1
    assert await _count(db_session, student.id) == 2
