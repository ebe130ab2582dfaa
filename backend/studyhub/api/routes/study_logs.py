"""
Study session, streak and statistics routes.

Endpoints:
- POST /study-logs/sessions/start - Echo a session start (timer lives on the client)
- POST /study-logs/sessions/stop - Save a finished session for today (UTC)
- POST /study-logs/manual - Log time for a given day
- GET /study-logs - Paginated history
- GET /study-logs/streak - Streak counters (own, or an accepted student's for teachers)
- GET /study-logs/stats - Aggregates for a preset range
- POST /study-logs/streak/reconcile - Zero a lapsed streak
- DELETE /study-logs/{id} - Remove a log and refresh totals
"""

from datetime import date, timedelta
from uuid import UUID

from fastapi import APIRouter, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.api.deps import CurrentActor, CurrentUser, DbSession, get_user_resource_or_404
from studyhub.db.models import StudyLog
from studyhub.schemas.base import total_pages
from studyhub.schemas.study_logs import (
    ManualLogCreate,
    SessionSaved,
    SessionStart,
    SessionStartRead,
    SessionStop,
    StreakRead,
    StreakStatus,
    StudyLogPage,
    StudyLogRead,
    StatsRangeType,
    StudyStatsRead,
)
from studyhub.services.actors import Student, Teacher
from studyhub.services.connections import connection_service
from studyhub.services.errors import ForbiddenError
from studyhub.services.streaks import (
    as_utc,
    resolve_range,
    streak_service,
    utc_day_start,
    utc_now,
    utc_today,
)

router = APIRouter(prefix="/study-logs", tags=["study-logs"])


async def _save_and_update(db: AsyncSession, log: StudyLog) -> SessionSaved:
    """Commit the log first; the streak update runs against committed data."""
    db.add(log)
    await db.commit()
    await db.refresh(log)

    streak = await streak_service.record_session_and_update_streak(
        db, log.user_id, log.duration, log.date
    )
    return SessionSaved(
        study_log=StudyLogRead.model_validate(log),
        streak=StreakRead.model_validate(streak),
    )


@router.post("/sessions/start", response_model=SessionStartRead)
async def start_session(data: SessionStart, current_user: CurrentUser) -> SessionStartRead:
    """Acknowledge a session start. Nothing is stored until the session stops."""
    return SessionStartRead(user_id=current_user.id, subject=data.subject, start_time=utc_now())


@router.post("/sessions/stop", response_model=SessionSaved, status_code=status.HTTP_201_CREATED)
async def stop_session(
    data: SessionStop,
    current_user: CurrentUser,
    db: DbSession,
) -> SessionSaved:
    """Save a timed session as today's log and update the streak."""
    log = StudyLog(
        user_id=current_user.id,
        subject=data.subject,
        duration=data.duration,
        start_time=as_utc(data.start_time),
        end_time=utc_now(),
        notes=data.notes,
        date=utc_today(),
    )
    return await _save_and_update(db, log)


@router.post("/manual", response_model=SessionSaved, status_code=status.HTTP_201_CREATED)
async def create_manual_log(
    data: ManualLogCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> SessionSaved:
    """Log study time on a given day, starting at that day's UTC midnight."""
    start_time = utc_day_start(data.date)
    log = StudyLog(
        user_id=current_user.id,
        subject=data.subject,
        duration=data.duration,
        start_time=start_time,
        end_time=start_time + timedelta(minutes=data.duration),
        notes=data.notes,
        date=data.date,
    )
    return await _save_and_update(db, log)


@router.get("", response_model=StudyLogPage)
async def list_study_logs(
    current_user: CurrentUser,
    db: DbSession,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    subject: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> StudyLogPage:
    """
    List the caller's logs, newest day first.

    Filters:
    - subject: exact subject
    - start_date/end_date: inclusive day range
    """
    query = select(StudyLog).where(StudyLog.user_id == current_user.id)

    if subject:
        query = query.where(StudyLog.subject == subject)
    if start_date:
        query = query.where(StudyLog.date >= start_date)
    if end_date:
        query = query.where(StudyLog.date <= end_date)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()

    query = (
        query.order_by(StudyLog.date.desc(), StudyLog.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)

    return StudyLogPage(
        logs=[StudyLogRead.model_validate(log) for log in result.scalars()],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )


@router.get("/streak", response_model=StreakStatus)
async def get_streak(
    actor: CurrentActor,
    db: DbSession,
    user_id: UUID | None = None,
) -> StreakStatus:
    """
    Streak counters plus whether the user has studied today.

    Students read their own; teachers may also read an accepted student's.
    """
    target_id = user_id or actor.user_id
    if target_id != actor.user_id:
        match actor:
            case Student():
                raise ForbiddenError("Students can only view their own streak", code="NOT_OWN_STREAK")
            case Teacher(user_id=teacher_id):
                if not await connection_service.is_connected(db, teacher_id, target_id):
                    raise ForbiddenError("Not connected to this student", code="NOT_CONNECTED")

    streak = await streak_service.get_or_create_streak(db, target_id)
    studied_today = await streak_service.has_studied_today(db, target_id)
    await db.commit()

    return StreakStatus(
        **StreakRead.model_validate(streak).model_dump(),
        has_studied_today=studied_today,
    )


@router.post("/streak/reconcile", response_model=StreakRead)
async def reconcile_streak(current_user: CurrentUser, db: DbSession) -> StreakRead:
    """Re-run the streak transition for today; zeroes a lapsed streak."""
    streak = await streak_service.reconcile_streak(db, current_user.id)
    return StreakRead.model_validate(streak)


@router.get("/stats", response_model=StudyStatsRead)
async def get_stats(
    current_user: CurrentUser,
    db: DbSession,
    range_name: StatsRangeType = Query("week", alias="range"),
) -> StudyStatsRead:
    """Totals, per-day and per-subject buckets over day/week/month/year."""
    start, end = resolve_range(range_name)
    stats = await streak_service.compute_stats(db, current_user.id, start, end)

    return StudyStatsRead(
        range=range_name,
        start_date=start,
        end_date=end,
        total_duration=stats.total_duration,
        total_hours=stats.total_hours,
        total_sessions=stats.total_sessions,
        avg_duration=stats.avg_duration,
        by_date={day: vars(bucket) for day, bucket in stats.by_date.items()},
        by_subject={name: vars(bucket) for name, bucket in stats.by_subject.items()},
        logs=[StudyLogRead.model_validate(log) for log in stats.logs],
    )


@router.delete("/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_study_log(
    log_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    """Delete one of the caller's logs and recompute totals."""
    log = await get_user_resource_or_404(db, StudyLog, log_id, current_user.id)
    await db.delete(log)
    await db.commit()
    await streak_service.refresh_totals(db, current_user.id)
