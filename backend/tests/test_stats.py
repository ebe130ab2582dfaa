"""computeStats aggregation and range presets."""

from datetime import date, datetime, timedelta, timezone

import pytest

from studyhub.db.models import StudyLog
from studyhub.services.streaks import (
    UNSPECIFIED_SUBJECT,
    aggregate_logs,
    resolve_range,
    round_half_up,
    streak_service,
    utc_day_start,
)

DAY = date(2026, 5, 11)


async def add_log(db, user, day: date, minutes: int, subject: str | None = None) -> StudyLog:
    start = utc_day_start(day)
    log = StudyLog(
        user_id=user.id,
        subject=subject,
        duration=minutes,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        date=day,
    )
    db.add(log)
    await db.commit()
    return log


async def test_no_logs_gives_empty_stats(db_session, student):
    now = datetime.now(timezone.utc)
    stats = await streak_service.compute_stats(db_session, student.id, now - timedelta(days=7), now)

    assert stats.total_duration == 0
    assert stats.total_sessions == 0
    assert stats.avg_duration == 0
    assert stats.total_hours == 0
    assert stats.by_date == {}
    assert stats.by_subject == {}
    assert stats.logs == []


async def test_same_day_logs_bucket_together(db_session, student):
    await add_log(db_session, student, DAY, 60, "Math")
    await add_log(db_session, student, DAY, 90, "Physics")

    stats = await streak_service.compute_stats(db_session, student.id, DAY, DAY)

    bucket = stats.by_date[DAY.isoformat()]
    assert (bucket.duration, bucket.sessions) == (150, 2)
    assert stats.total_hours == 2.5
    assert stats.avg_duration == 75
    assert set(stats.by_subject) == {"Math", "Physics"}


async def test_missing_subject_grouped_as_unspecified(db_session, student):
    await add_log(db_session, student, DAY, 20)
    await add_log(db_session, student, DAY, 25, "Chemistry")

    stats = await streak_service.compute_stats(db_session, student.id, DAY, DAY)
    assert stats.by_subject[UNSPECIFIED_SUBJECT].duration == 20
    assert stats.by_subject["Chemistry"].sessions == 1


async def test_range_bounds_are_inclusive(db_session, student):
    await add_log(db_session, student, DAY - timedelta(days=1), 10)
    await add_log(db_session, student, DAY, 20)
    await add_log(db_session, student, DAY + timedelta(days=2), 30)
    await add_log(db_session, student, DAY + timedelta(days=3), 40)

    stats = await streak_service.compute_stats(
        db_session, student.id, utc_day_start(DAY), utc_day_start(DAY + timedelta(days=2))
    )
    assert stats.total_duration == 50
    assert list(stats.by_date) == [DAY.isoformat(), (DAY + timedelta(days=2)).isoformat()]


async def test_only_own_logs_counted(db_session, student, make_student):
    other = await make_student()
    await add_log(db_session, student, DAY, 30)
    await add_log(db_session, other, DAY, 45)

    stats = await streak_service.compute_stats(db_session, student.id, DAY, DAY)
    assert stats.total_duration == 30


async def test_compute_stats_is_idempotent(db_session, student):
    await add_log(db_session, student, DAY, 40, "Math")
    await add_log(db_session, student, DAY + timedelta(days=1), 35, "History")

    first = await streak_service.compute_stats(db_session, student.id, DAY, DAY + timedelta(days=1))
    second = await streak_service.compute_stats(db_session, student.id, DAY, DAY + timedelta(days=1))

    assert first.total_duration == second.total_duration
    assert first.by_date == second.by_date
    assert first.by_subject == second.by_subject
    assert [log.id for log in first.logs] == [log.id for log in second.logs]


async def test_inverted_range_is_empty(db_session, student):
    await add_log(db_session, student, DAY, 40)
    stats = await streak_service.compute_stats(db_session, student.id, DAY + timedelta(days=1), DAY)
    assert stats.total_sessions == 0


def test_average_rounds_half_up():
    logs = [StudyLog(duration=1, date=DAY), StudyLog(duration=2, date=DAY)]
    assert aggregate_logs(logs).avg_duration == 2


@pytest.mark.parametrize(
    "range_name,expected_start",
    [
        ("day", date(2026, 3, 31)),
        ("week", date(2026, 3, 24)),
        ("month", date(2026, 2, 28)),
        ("year", date(2025, 3, 31)),
        ("fortnight", date(2026, 3, 24)),
    ],
)
def test_resolve_range_presets(range_name, expected_start):
    now = datetime(2026, 3, 31, 15, 30, tzinfo=timezone.utc)
    start, end = resolve_range(range_name, now=now)

    assert start == datetime.combine(expected_start, datetime.min.time(), tzinfo=timezone.utc)
    assert end == datetime(2026, 3, 31, 23, 59, 59, 999000, tzinfo=timezone.utc)


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.125, 2) == 0.13
