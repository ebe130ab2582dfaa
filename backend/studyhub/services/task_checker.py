"""Periodic scan for tasks that are due soon or overdue."""

import asyncio
import logging
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from studyhub.config import get_settings
from studyhub.db.models import (
    NotificationType,
    Priority,
    RelatedType,
    Task,
    TaskStatus,
    utcnow,
)
from studyhub.services.notifications import notify

logger = logging.getLogger(__name__)
settings = get_settings()


async def check_tasks_due_soon(db: AsyncSession) -> int:
    """Notify assignees of pending tasks due within the due-soon window."""
    now = utcnow()
    window_end = now + timedelta(hours=settings.task_due_soon_hours)

    result = await db.execute(
        select(Task).where(
            Task.status != TaskStatus.COMPLETED.value,
            Task.due_at >= now,
            Task.due_at <= window_end,
        )
    )
    tasks = list(result.scalars())

    for task in tasks:
        await notify(
            db,
            user_id=task.assigned_to,
            type=NotificationType.TASK_DUE_SOON,
            title="Task Due Soon",
            message=f'"{task.title}" is due in less than {settings.task_due_soon_hours} hours',
            related_id=task.id,
            related_type=RelatedType.TASK,
            priority=Priority.HIGH,
        )

    await db.commit()
    logger.info("Checked %d tasks due soon", len(tasks))
    return len(tasks)


async def check_overdue_tasks(db: AsyncSession) -> int:
    """Notify assignees (and the assigning teacher) of pending tasks past due."""
    result = await db.execute(
        select(Task)
        .options(selectinload(Task.assignee))
        .where(
            Task.status != TaskStatus.COMPLETED.value,
            Task.due_at < utcnow(),
        )
    )
    tasks = list(result.scalars())

    for task in tasks:
        await notify(
            db,
            user_id=task.assigned_to,
            type=NotificationType.TASK_OVERDUE,
            title="Task Overdue",
            message=f'"{task.title}" is overdue!',
            related_id=task.id,
            related_type=RelatedType.TASK,
            priority=Priority.HIGH,
        )
        if task.assigned_by != task.assigned_to:
            await notify(
                db,
                user_id=task.assigned_by,
                type=NotificationType.TASK_OVERDUE,
                title="Student Task Overdue",
                message=f'{task.assignee.name}\'s task "{task.title}" is overdue',
                related_id=task.id,
                related_type=RelatedType.TASK,
                priority=Priority.MEDIUM,
            )

    await db.commit()
    logger.info("Checked %d overdue tasks", len(tasks))
    return len(tasks)


async def run_task_checks(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """One pass of every check, each in its own session."""
    logger.info("Running background task checks")
    async with session_factory() as db:
        await check_tasks_due_soon(db)
    async with session_factory() as db:
        await check_overdue_tasks(db)


async def task_checker_loop(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """
    Run the checks immediately, then every configured interval, until cancelled.

    A failing pass is logged and retried at the next tick.
    """
    interval = settings.task_checker_interval_minutes * 60
    while True:
        try:
            await run_task_checks(session_factory)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Background task check failed")
        await asyncio.sleep(interval)
