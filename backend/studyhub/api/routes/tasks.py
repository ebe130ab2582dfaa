"""
Task routes.

Students keep their own to-do items; teachers assign tasks to students they
have an accepted connection with. Either the assigner or the assignee may
edit or delete a task.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studyhub.api.deps import CurrentActor, DbSession, TeacherActor
from studyhub.db.models import (
    NotificationType,
    Priority,
    RelatedType,
    Task,
    TaskStatus,
    User,
)
from studyhub.schemas.base import total_pages
from studyhub.schemas.tasks import TaskAssign, TaskCreate, TaskPage, TaskRead, TaskUpdate
from studyhub.services.actors import Actor, Student, Teacher
from studyhub.services.connections import connection_service
from studyhub.services.errors import ForbiddenError, InvalidOperationError, NotFoundError
from studyhub.services.notifications import notify

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/tasks", tags=["tasks"])


def _with_users(query):
    return query.options(selectinload(Task.assigner), selectinload(Task.assignee))


async def _load_task(db: AsyncSession, task_id: UUID) -> Task | None:
    result = await db.execute(
        _with_users(select(Task))
        .where(Task.id == task_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_task_for_party(db: AsyncSession, actor: Actor, task_id: UUID) -> Task:
    """Fetch a task the actor assigned or was assigned. 404 otherwise."""
    task = await _load_task(db, task_id)
    if task is None or actor.user_id not in (task.assigned_by, task.assigned_to):
        raise NotFoundError("Task", task_id)
    return task


async def _require_connected(db: AsyncSession, teacher: Teacher, student_id: UUID) -> None:
    if not await connection_service.is_connected(db, teacher.user_id, student_id):
        raise ForbiddenError(
            "Can only assign tasks to connected students",
            code="NOT_CONNECTED",
            details={"student_id": str(student_id)},
        )


async def _notify_assigned(db: AsyncSession, task: Task, teacher_name: str) -> None:
    await notify(
        db,
        user_id=task.assigned_to,
        type=NotificationType.TASK_ASSIGNED,
        title="New Task Assigned",
        message=f'{teacher_name} assigned you "{task.title}"',
        related_id=task.id,
        related_type=RelatedType.TASK,
        priority=task.priority,
    )


@router.post("", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    actor: CurrentActor,
    db: DbSession,
) -> TaskRead:
    """
    Create a task.

    Students create tasks for themselves only. Teachers must name a connected
    student in assigned_to.
    """
    fields = data.model_dump(exclude={"assigned_to"})

    match actor:
        case Student(user_id=student_id):
            if data.assigned_to not in (None, student_id):
                raise ForbiddenError("Students can only create tasks for themselves", code="NOT_OWN_TASK")
            task = Task(**fields, assigned_by=student_id, assigned_to=student_id)
            db.add(task)
        case Teacher() as teacher:
            if data.assigned_to is None:
                raise InvalidOperationError("assigned_to is required for teachers", code="ASSIGNEE_REQUIRED")
            await _require_connected(db, teacher, data.assigned_to)
            task = Task(**fields, assigned_by=teacher.user_id, assigned_to=data.assigned_to)
            db.add(task)
            await db.flush()
            assigner = await db.get(User, teacher.user_id)
            await _notify_assigned(db, task, assigner.name)

    await db.commit()
    return TaskRead.model_validate(await _load_task(db, task.id))


@router.post("/assign", response_model=list[TaskRead], status_code=status.HTTP_201_CREATED)
async def assign_task(
    data: TaskAssign,
    teacher: TeacherActor,
    db: DbSession,
) -> list[TaskRead]:
    """Assign the same task to several connected students."""
    student_ids = list(dict.fromkeys(data.assigned_to))
    for student_id in student_ids:
        await _require_connected(db, teacher, student_id)

    assigner = await db.get(User, teacher.user_id)
    fields = data.model_dump(exclude={"assigned_to"})
    tasks = [
        Task(**fields, assigned_by=teacher.user_id, assigned_to=student_id)
        for student_id in student_ids
    ]
    db.add_all(tasks)
    await db.flush()

    for task in tasks:
        await _notify_assigned(db, task, assigner.name)

    await db.commit()
    logger.info("Teacher %s assigned %d tasks", teacher.user_id, len(tasks))

    result = await db.execute(
        _with_users(select(Task)).where(Task.id.in_([t.id for t in tasks])).order_by(Task.created_at)
    )
    return [TaskRead.model_validate(t) for t in result.scalars()]


@router.get("", response_model=TaskPage)
async def list_tasks(
    actor: CurrentActor,
    db: DbSession,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: str | None = None,
    student_id: UUID | None = None,
) -> TaskPage:
    """
    Teachers see tasks they assigned (optionally for one student); students
    see tasks assigned to them.
    """
    query = select(Task)
    match actor:
        case Teacher(user_id=teacher_id):
            query = query.where(Task.assigned_by == teacher_id)
            if student_id:
                query = query.where(Task.assigned_to == student_id)
        case Student(user_id=own_id):
            query = query.where(Task.assigned_to == own_id)

    if status:
        query = query.where(Task.status == status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()

    query = (
        _with_users(query)
        .order_by(Task.due_at.asc().nullslast(), Task.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)
    return TaskPage(
        tasks=[TaskRead.model_validate(t) for t in result.scalars()],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(task_id: UUID, actor: CurrentActor, db: DbSession) -> TaskRead:
    return TaskRead.model_validate(await _get_task_for_party(db, actor, task_id))


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: UUID,
    data: TaskUpdate,
    actor: CurrentActor,
    db: DbSession,
) -> TaskRead:
    """Update a task. Completing a teacher-assigned task notifies the teacher."""
    task = await _get_task_for_party(db, actor, task_id)
    was_completed = task.status == TaskStatus.COMPLETED.value

    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(task, key, value)

    if (
        not was_completed
        and task.status == TaskStatus.COMPLETED.value
        and task.assigned_by != task.assigned_to
    ):
        await notify(
            db,
            user_id=task.assigned_by,
            type=NotificationType.TASK_COMPLETED,
            title="Task Completed",
            message=f'{task.assignee.name} completed "{task.title}"',
            related_id=task.id,
            related_type=RelatedType.TASK,
            priority=Priority.LOW,
        )

    await db.commit()
    return TaskRead.model_validate(await _load_task(db, task.id))


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: UUID, actor: CurrentActor, db: DbSession) -> None:
    task = await _get_task_for_party(db, actor, task_id)
    await db.delete(task)
    await db.commit()
