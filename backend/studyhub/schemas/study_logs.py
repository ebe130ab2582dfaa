"""Study log, streak and statistics schemas."""

import datetime as dt
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field

from studyhub.schemas.base import BaseSchema, PageMixin

StatsRangeType = Literal["day", "week", "month", "year"]


class SessionStart(BaseSchema):
    """Start a timed session (timer state lives on the client)."""

    subject: str | None = Field(None, max_length=255)


class SessionStartRead(BaseSchema):
    user_id: UUID
    subject: str | None
    start_time: datetime


class SessionStop(BaseSchema):
    """Finish a timed session and store it as a log for today (UTC)."""

    duration: int = Field(..., ge=1, description="Minutes studied")
    start_time: datetime
    subject: str | None = Field(None, max_length=255)
    notes: str | None = None


class ManualLogCreate(BaseSchema):
    """Log study time for a given day after the fact."""

    duration: int = Field(..., ge=1, description="Minutes studied")
    date: dt.date
    subject: str | None = Field(None, max_length=255)
    notes: str | None = None


class StudyLogRead(BaseSchema):
    id: UUID
    user_id: UUID
    subject: str | None
    duration: int
    start_time: datetime
    end_time: datetime
    notes: str | None
    date: dt.date
    created_at: datetime


class StudyLogPage(BaseSchema, PageMixin):
    logs: list[StudyLogRead]


class StreakRead(BaseSchema):
    current_streak: int
    longest_streak: int
    last_study_date: dt.date | None
    total_hours: float
    total_sessions: int


class StreakStatus(StreakRead):
    """Streak plus whether the user already has a log for today."""

    has_studied_today: bool


class SessionSaved(BaseSchema):
    study_log: StudyLogRead
    streak: StreakRead


class Bucket(BaseSchema):
    duration: int
    sessions: int


class StudyStatsRead(BaseSchema):
    range: StatsRangeType | None = None
    start_date: datetime
    end_date: datetime
    total_duration: int
    total_hours: float
    total_sessions: int
    avg_duration: int
    by_date: dict[str, Bucket]
    by_subject: dict[str, Bucket]
    logs: list[StudyLogRead]
