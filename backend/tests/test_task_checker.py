"""Due-soon / overdue task scanner."""

from datetime import timedelta

from sqlalchemy import select

from studyhub.db.models import Notification, NotificationType, Task, TaskStatus, utcnow
from studyhub.services.task_checker import check_overdue_tasks, check_tasks_due_soon, run_task_checks


async def _task(db, teacher, student, due_in: timedelta | None, status=TaskStatus.PENDING) -> Task:
    task = Task(
        title="Read chapter 4",
        due_at=utcnow() + due_in if due_in is not None else None,
        status=status.value,
        assigned_by=teacher.id,
        assigned_to=student.id,
    )
    db.add(task)
    await db.commit()
    return task


async def _notices(db, user_id, type_):
    result = await db.execute(
        select(Notification).where(Notification.user_id == user_id, Notification.type == type_.value)
    )
    return list(result.scalars())


async def test_due_soon_notifies_assignee(db_session, teacher, student):
    soon = await _task(db_session, teacher, student, timedelta(hours=3))
    await _task(db_session, teacher, student, timedelta(days=3))
    await _task(db_session, teacher, student, None)
    await _task(db_session, teacher, student, timedelta(hours=2), status=TaskStatus.COMPLETED)

    assert await check_tasks_due_soon(db_session) == 1

    notices = await _notices(db_session, student.id, NotificationType.TASK_DUE_SOON)
    assert [n.related_id for n in notices] == [soon.id]


async def test_due_soon_rerun_does_not_duplicate(db_session, teacher, student):
    await _task(db_session, teacher, student, timedelta(hours=3))
    await check_tasks_due_soon(db_session)
    await check_tasks_due_soon(db_session)
    assert len(await _notices(db_session, student.id, NotificationType.TASK_DUE_SOON)) == 1


async def test_overdue_notifies_student_and_teacher(db_session, teacher, student):
    await _task(db_session, teacher, student, timedelta(hours=-1))

    assert await check_overdue_tasks(db_session) == 1

    (to_student,) = await _notices(db_session, student.id, NotificationType.TASK_OVERDUE)
    (to_teacher,) = await _notices(db_session, teacher.id, NotificationType.TASK_OVERDUE)
    assert to_student.priority == "high"
    assert to_teacher.priority == "medium"
    assert student.name in to_teacher.message


async def test_overdue_self_task_notifies_once(db_session, student):
    await _task(db_session, student, student, timedelta(hours=-1))
    await check_overdue_tasks(db_session)
    assert len(await _notices(db_session, student.id, NotificationType.TASK_OVERDUE)) == 1


async def test_run_task_checks_uses_fresh_sessions(session_factory, db_session, teacher, student):
    await _task(db_session, teacher, student, timedelta(hours=2))
    await _task(db_session, teacher, student, timedelta(hours=-2))

    await run_task_checks(session_factory)

    assert len(await _notices(db_session, student.id, NotificationType.TASK_DUE_SOON)) == 1
    assert len(await _notices(db_session, student.id, NotificationType.TASK_OVERDUE)) == 1
