"""
Study streak and statistics engine.

All day arithmetic is done on UTC calendar days (`datetime.date` values):
"today", "yesterday" and StudyLog.date are compared as dates derived from
UTC, never from server-local time.

Streak update (run after a study log is committed):

    studied today?  last_study_date     studied yesterday   result
    --------------  ---------------     -----------------   ------
    yes             unset               -                   current = 1
    yes             today               -                   unchanged (day already counted)
    yes             set                 yes                 current + 1
    yes             set, gap == 1 day   no                  current + 1
    yes             set, gap > 1 day    no                  current = 1
    no              set, gap > 1 day    -                   current = 0

longest_streak only ever grows. Totals are recomputed from all logs on every
run, so re-running after a partial failure converges.
"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID, uuid5

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.config import get_settings
from studyhub.db.models import (
    NotificationType,
    Priority,
    RelatedType,
    StudyLog,
    StudyStreak,
)
from studyhub.services.locks import KeyedLock
from studyhub.services.notifications import notify

logger = logging.getLogger(__name__)
settings = get_settings()

UNSPECIFIED_SUBJECT = "Unspecified"


# =============================================================================
# UTC DAY HELPERS
# =============================================================================


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """The canonical "today": the current UTC calendar day."""
    return utc_now().date()


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_day_start(day: date) -> datetime:
    """UTC midnight at the start of a calendar day."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def utc_day_end(day: date) -> datetime:
    """23:59:59.999 UTC on a calendar day (millisecond precision)."""
    return datetime.combine(day, time(23, 59, 59, 999000), tzinfo=timezone.utc)


def _first_day_on_or_after(value: date | datetime) -> date:
    """Earliest calendar day whose UTC midnight is >= value."""
    if not isinstance(value, datetime):
        return value
    moment = as_utc(value)
    day = moment.date()
    if moment > utc_day_start(day):
        day += timedelta(days=1)
    return day


def _last_day_on_or_before(value: date | datetime) -> date:
    """Latest calendar day whose UTC midnight is <= value."""
    if not isinstance(value, datetime):
        return value
    return as_utc(value).date()


def _shift_months(day: date, months: int) -> date:
    """Move by whole months, clamping to the last day of a shorter month."""
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def resolve_range(range_name: str, now: datetime | None = None) -> tuple[datetime, datetime]:
    """
    Preset statistics windows.

    Start is UTC midnight of today / today - 7 days / today - 1 month /
    today - 1 year; end is 23:59:59.999 UTC today. Unknown names fall back
    to the week window.
    """
    today = as_utc(now or utc_now()).date()
    if range_name == "day":
        start = today
    elif range_name == "month":
        start = _shift_months(today, -1)
    elif range_name == "year":
        start = _shift_months(today, -12)
    else:
        start = today - timedelta(days=7)
    return utc_day_start(start), utc_day_end(today)


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round like a person would (2.5 -> 3), not banker's rounding."""
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def minutes_to_hours(minutes: int) -> float:
    return round_half_up(minutes / 60, 2)


# =============================================================================
# STREAK TRANSITIONS
# =============================================================================


def advance_streak(streak: StudyStreak, today: date, studied_yesterday: bool) -> bool:
    """
    Apply a day with study to the counters. Returns False if today was already counted.

    Only call when a log exists for `today`.
    """
    before = streak.current_streak or 0
    last = streak.last_study_date

    if last is None:
        streak.current_streak = 1
    elif last >= today:
        # Today already counted by an earlier session
        return False
    elif studied_yesterday:
        streak.current_streak = before + 1
    elif (today - last).days == 1:
        streak.current_streak = before + 1
    else:
        streak.current_streak = 1

    streak.last_study_date = today
    if streak.current_streak > (streak.longest_streak or 0):
        streak.longest_streak = streak.current_streak
    return True


def lapse_streak(streak: StudyStreak, today: date) -> bool:
    """
    Reset a broken streak on a day without study. Returns True if it was reset.

    longest_streak is left untouched.
    """
    last = streak.last_study_date
    if last is not None and (today - last).days > 1 and streak.current_streak != 0:
        streak.current_streak = 0
        return True
    return False


def is_milestone(current_streak: int, interval: int | None = None) -> bool:
    step = interval or settings.streak_milestone_interval
    return current_streak > 0 and current_streak % step == 0


def milestone_key(streak: StudyStreak) -> UUID:
    """Stable notification related_id for one streak length of one user."""
    return uuid5(streak.id, f"streak-{streak.current_streak}")


# =============================================================================
# STATISTICS
# =============================================================================


@dataclass
class Bucket:
    """Minutes and session count for one group."""

    duration: int = 0
    sessions: int = 0


@dataclass
class StudyStats:
    """Aggregates over a set of study logs."""

    total_duration: int = 0  # minutes
    total_hours: float = 0.0
    total_sessions: int = 0
    avg_duration: int = 0  # minutes
    by_date: dict[str, Bucket] = field(default_factory=dict)
    by_subject: dict[str, Bucket] = field(default_factory=dict)
    logs: list[StudyLog] = field(default_factory=list)


def aggregate_logs(logs: list[StudyLog]) -> StudyStats:
    """
    Pure aggregation: same logs in, same stats out.

    by_date is keyed on the log's `date` (ISO day), not its start_time;
    logs without a subject are grouped under "Unspecified".
    """
    stats = StudyStats(logs=list(logs))

    for log in logs:
        stats.total_duration += log.duration
        stats.total_sessions += 1

        day = stats.by_date.setdefault(log.date.isoformat(), Bucket())
        day.duration += log.duration
        day.sessions += 1

        subject = stats.by_subject.setdefault(log.subject or UNSPECIFIED_SUBJECT, Bucket())
        subject.duration += log.duration
        subject.sessions += 1

    if stats.total_sessions:
        stats.avg_duration = int(round_half_up(stats.total_duration / stats.total_sessions))
    stats.total_hours = minutes_to_hours(stats.total_duration)
    return stats


# =============================================================================
# SERVICE
# =============================================================================


class StreakService:
    """Maintains StudyStreak rows and answers statistics queries."""

    def __init__(self) -> None:
        self._locks = KeyedLock()

    async def _has_log_on(self, db: AsyncSession, user_id: UUID, day: date) -> bool:
        result = await db.execute(
            select(StudyLog.id).where(StudyLog.user_id == user_id, StudyLog.date == day).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def has_studied_today(self, db: AsyncSession, user_id: UUID, today: date | None = None) -> bool:
        return await self._has_log_on(db, user_id, today or utc_today())

    async def get_or_create_streak(
        self,
        db: AsyncSession,
        user_id: UUID,
        *,
        for_update: bool = False,
    ) -> StudyStreak:
        """
        Fetch the user's streak row, creating a zeroed one on first use.

        Creation races resolve through the unique constraint on user_id. The
        caller must not have uncommitted work in the session, since losing
        that race rolls the session back.
        """
        query = select(StudyStreak).where(StudyStreak.user_id == user_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        streak = result.scalar_one_or_none()
        if streak is not None:
            return streak

        streak = StudyStreak(
            user_id=user_id,
            current_streak=0,
            longest_streak=0,
            total_hours=0.0,
            total_sessions=0,
        )
        db.add(streak)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            result = await db.execute(query)
            streak = result.scalar_one()
        return streak

    async def recompute_totals(self, db: AsyncSession, streak: StudyStreak) -> None:
        """All-time hours and session count, recomputed from scratch."""
        result = await db.execute(
            select(
                func.coalesce(func.sum(StudyLog.duration), 0),
                func.count(StudyLog.id),
            ).where(StudyLog.user_id == streak.user_id)
        )
        total_minutes, total_sessions = result.one()
        streak.total_hours = minutes_to_hours(int(total_minutes))
        streak.total_sessions = int(total_sessions)

    async def update_streak(
        self,
        db: AsyncSession,
        user_id: UUID,
        *,
        today: date | None = None,
    ) -> StudyStreak:
        """
        Run the streak transition for `today` and persist it with fresh totals.

        Serialized per user: an in-process lock plus a row lock on the
        streak record, so two sessions stopping together cannot lose an update.
        """
        today = today or utc_today()

        async with self._locks.hold(user_id):
            streak = await self.get_or_create_streak(db, user_id, for_update=True)
            studied_today = await self._has_log_on(db, user_id, today)
            advanced = False

            if studied_today:
                studied_yesterday = await self._has_log_on(db, user_id, today - timedelta(days=1))
                advanced = advance_streak(streak, today, studied_yesterday)
                if advanced:
                    logger.info(
                        "Streak for user %s advanced to %d (longest %d)",
                        user_id, streak.current_streak, streak.longest_streak,
                    )
            elif lapse_streak(streak, today):
                logger.info("Streak for user %s reset (last study %s)", user_id, streak.last_study_date)

            await self.recompute_totals(db, streak)

            # One notice per streak length; later sessions on the same day do not re-send it
            if advanced and is_milestone(streak.current_streak):
                await self._notify_milestone(db, streak)

            await db.commit()
            return streak

    async def record_session_and_update_streak(
        self,
        db: AsyncSession,
        user_id: UUID,
        duration_minutes: int,
        log_date: date,
        *,
        today: date | None = None,
    ) -> StudyStreak:
        """
        Post-log hook: update the streak after a StudyLog has been committed.

        The just-created log's own date does not drive the transition; only
        whether a log exists for the canonical today does. A backdated log
        therefore refreshes totals without advancing (or breaking) the streak.
        """
        logger.info(
            "Recording %d-minute session on %s for user %s", duration_minutes, log_date, user_id
        )
        return await self.update_streak(db, user_id, today=today)

    async def reconcile_streak(
        self,
        db: AsyncSession,
        user_id: UUID,
        *,
        today: date | None = None,
    ) -> StudyStreak:
        """Periodic/on-demand pass that zeroes streaks whose last day is too old."""
        return await self.update_streak(db, user_id, today=today)

    async def refresh_totals(self, db: AsyncSession, user_id: UUID) -> StudyStreak:
        """Recompute totals only (e.g. after a log is deleted)."""
        async with self._locks.hold(user_id):
            streak = await self.get_or_create_streak(db, user_id, for_update=True)
            await self.recompute_totals(db, streak)
            await db.commit()
            return streak

    async def _notify_milestone(self, db: AsyncSession, streak: StudyStreak) -> None:
        days = streak.current_streak
        await notify(
            db,
            user_id=streak.user_id,
            type=NotificationType.ACHIEVEMENT,
            title=f"{days}-Day Streak!",
            message=f"Amazing! You've maintained a {days}-day study streak!",
            related_id=milestone_key(streak),
            related_type=RelatedType.STREAK,
            priority=Priority.HIGH,
        )
        logger.info("Streak milestone %d reached by user %s", days, streak.user_id)

    async def compute_stats(
        self,
        db: AsyncSession,
        user_id: UUID,
        start: date | datetime,
        end: date | datetime,
    ) -> StudyStats:
        """
        Aggregate the user's logs whose `date` lies in [start, end].

        Read-only. Bounds may be dates or datetimes; datetimes are compared
        against each log day's UTC midnight.
        """
        first_day = _first_day_on_or_after(start)
        last_day = _last_day_on_or_before(end)
        if first_day > last_day:
            return StudyStats()

        result = await db.execute(
            select(StudyLog)
            .where(
                StudyLog.user_id == user_id,
                StudyLog.date >= first_day,
                StudyLog.date <= last_day,
            )
            .order_by(StudyLog.date.asc(), StudyLog.created_at.asc(), StudyLog.id.asc())
        )
        return aggregate_logs(list(result.scalars()))


streak_service = StreakService()
