"""
SQLAlchemy 2.0 Models for StudyHub.

Uses modern declarative syntax with Mapped[] type annotations.
All models use UUID primary keys and proper relationship definitions.
Column types are the portable SQLAlchemy ones (Uuid, DateTime, Enum) so the
same metadata runs on PostgreSQL in production and SQLite in tests.
"""

import datetime as dt
from datetime import date, datetime, timezone
from enum import Enum as PyEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studyhub.db.base import Base


def utcnow() -> datetime:
    """Timezone-aware current UTC time (Python-side column default)."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================


class UserRole(str, PyEnum):
    """The two fixed account roles."""

    TEACHER = "teacher"
    STUDENT = "student"


class ConnectionStatus(str, PyEnum):
    """Connection lifecycle. ACCEPTED and REJECTED are terminal."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class NotificationType(str, PyEnum):
    """Kinds of notices shown in the inbox."""

    TASK_ASSIGNED = "task_assigned"
    TASK_DUE_SOON = "task_due_soon"
    TASK_OVERDUE = "task_overdue"
    TASK_COMPLETED = "task_completed"
    CONNECTION_REQUEST = "connection_request"
    CONNECTION_ACCEPTED = "connection_accepted"
    STUDENT_JOINED = "student_joined"
    ACHIEVEMENT = "achievement"


class RelatedType(str, PyEnum):
    """Entity kind a notification points at."""

    TASK = "task"
    CONNECTION = "connection"
    USER = "user"
    STREAK = "streak"


class Priority(str, PyEnum):
    """Priority shared by tasks and notifications."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TaskStatus(str, PyEnum):
    """Progress status of a task."""

    PENDING = "pending"
    COMPLETED = "completed"


def _values(enum_cls: type[PyEnum]) -> list[str]:
    return [member.value for member in enum_cls]


# Shared column types (one database enum type per name)
user_role_type = Enum(*_values(UserRole), name="user_role")
priority_type = Enum(*_values(Priority), name="priority_level")
json_type = JSON().with_variant(JSONB(), "postgresql")


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """
    Core user account.

    Decoupled from auth providers - users can have multiple auth_identities
    linked to one account. The role is fixed at creation time and decides
    which profile row (teacher or student) accompanies the account.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, index=True, nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(user_role_type, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    auth_identities: Mapped[list["AuthIdentity"]] = relationship(
        "AuthIdentity", back_populates="user", cascade="all, delete-orphan"
    )
    teacher_profile: Mapped[Optional["TeacherProfile"]] = relationship(
        "TeacherProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    student_profile: Mapped[Optional["StudentProfile"]] = relationship(
        "StudentProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    study_logs: Mapped[list["StudyLog"]] = relationship(
        "StudyLog", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    study_streak: Mapped[Optional["StudyStreak"]] = relationship(
        "StudyStreak", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    notifications: Mapped[list["Notification"]] = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.TEACHER.value


class AuthIdentity(Base):
    """
    OAuth provider identity linked to a user.

    Does NOT store OAuth access/refresh tokens - we only verify id_tokens at login.
    """

    __tablename__ = "auth_identities"
    __table_args__ = (
        UniqueConstraint("provider", "provider_user_id", name="unique_provider_identity"),
        Index("idx_auth_identities_provider_lookup", "provider", "provider_user_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider: Mapped[str] = mapped_column(String(50), nullable=False)  # 'google'
    provider_user_id: Mapped[str] = mapped_column(String(255), nullable=False)  # Provider's 'sub' claim
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)  # For audit
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    last_login_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="auth_identities")


class TeacherProfile(Base):
    """
    Teacher-side profile (1:1 with a teacher account).

    Holds the short join code students use to find the teacher. The list of
    connected students is read through accepted connections rather than
    stored here, so it can never drift from the connections table.
    """

    __tablename__ = "teacher_profiles"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    code: Mapped[Optional[str]] = mapped_column(String(16), unique=True, index=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="teacher_profile")
    connected_students: Mapped[list["User"]] = relationship(
        "User",
        secondary="connections",
        primaryjoin="TeacherProfile.user_id == Connection.teacher_id",
        secondaryjoin="and_(Connection.student_id == User.id, Connection.status == 'accepted')",
        viewonly=True,
        order_by="User.name",
    )


class StudentProfile(Base):
    """Student-side profile (1:1 with a student account)."""

    __tablename__ = "student_profiles"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="student_profile")
    connected_teachers: Mapped[list["User"]] = relationship(
        "User",
        secondary="connections",
        primaryjoin="StudentProfile.user_id == Connection.student_id",
        secondaryjoin="and_(Connection.teacher_id == User.id, Connection.status == 'accepted')",
        viewonly=True,
        order_by="User.name",
    )


class Connection(Base):
    """
    Pairing between one teacher and one student.

    initiated_by records which side opened the request; only the other side
    may accept or reject it. NULL means the initiator was never recorded.
    """

    __tablename__ = "connections"
    __table_args__ = (
        UniqueConstraint("teacher_id", "student_id", name="unique_teacher_student"),
        Index("idx_connections_teacher_status", "teacher_id", "status"),
        Index("idx_connections_student_status", "student_id", "status"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    teacher_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    student_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        Enum(*_values(ConnectionStatus), name="connection_status"),
        nullable=False,
        default=ConnectionStatus.PENDING.value,
    )
    initiated_by: Mapped[Optional[str]] = mapped_column(
        user_role_type, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    responded_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    teacher: Mapped["User"] = relationship("User", foreign_keys=[teacher_id])
    student: Mapped["User"] = relationship("User", foreign_keys=[student_id])


class StudyLog(Base):
    """
    One completed study session (timed or entered manually).

    `date` is the UTC calendar day the session counts towards and is what
    streaks and statistics group on; start/end times are kept for display.
    """

    __tablename__ = "study_logs"
    __table_args__ = (
        Index("idx_study_logs_user_date", "user_id", "date"),
        Index("idx_study_logs_user_created_at", "user_id", "created_at"),
        CheckConstraint("duration >= 1", name="valid_duration"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    subject: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # minutes
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="study_logs")


class StudyStreak(Base):
    """Per-user continuity counters and all-time totals (1:1 with users)."""

    __tablename__ = "study_streaks"
    __table_args__ = (
        CheckConstraint("current_streak >= 0", name="valid_current_streak"),
        CheckConstraint("longest_streak >= current_streak", name="longest_covers_current"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_study_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    total_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="study_streak")


class Notification(Base):
    """
    Polled in-app notice.

    (user_id, type, related_id) identifies the event an unread notice is
    about; re-emitting the same event refreshes that row instead of adding one.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notifications_event", "user_id", "type", "related_id"),
        Index("idx_notifications_user_unread", "user_id", "is_read"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(
        Enum(*_values(NotificationType), name="notification_type"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    related_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    related_type: Mapped[Optional[str]] = mapped_column(
        Enum(*_values(RelatedType), name="notification_related_type"), nullable=True
    )
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    priority: Mapped[str] = mapped_column(
        priority_type,
        nullable=False,
        default=Priority.MEDIUM.value,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="notifications")


class Task(Base):
    """
    To-do item, either self-created by a student or assigned by a teacher.

    assigned_by == assigned_to for a student's own tasks.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_assigned_to_status", "assigned_to", "status"),
        Index("idx_tasks_assigned_by", "assigned_by"),
        Index("idx_tasks_status_due_at", "status", "due_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    due_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    priority: Mapped[str] = mapped_column(
        priority_type,
        nullable=False,
        default=Priority.MEDIUM.value,
    )
    status: Mapped[str] = mapped_column(
        Enum(*_values(TaskStatus), name="task_status"),
        nullable=False,
        default=TaskStatus.PENDING.value,
    )
    assigned_by: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    assigned_to: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    assigner: Mapped["User"] = relationship("User", foreign_keys=[assigned_by])
    assignee: Mapped["User"] = relationship("User", foreign_keys=[assigned_to])


quiz_assignments = Table(
    "quiz_assignments",
    Base.metadata,
    Column("quiz_id", Uuid, ForeignKey("quizzes.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "assigned_at",
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    ),
    Index("idx_quiz_assignments_student", "student_id"),
)


class Quiz(Base):
    """
    Multiple-choice quiz written by a teacher and assigned to students.

    Questions are stored inline, in display order, as a JSON list of
    {"prompt", "options", "correct_index"} objects.
    """

    __tablename__ = "quizzes"
    __table_args__ = (
        Index("idx_quizzes_created_by_created_at", "created_by", "created_at"),
        CheckConstraint(
            "time_limit_seconds >= 30 AND time_limit_seconds <= 7200", name="valid_time_limit"
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    time_limit_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=300)
    questions: Mapped[list[dict]] = mapped_column(json_type, nullable=False)
    created_by: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    creator: Mapped["User"] = relationship("User", foreign_keys=[created_by])
    assignees: Mapped[list["User"]] = relationship(
        "User", secondary=quiz_assignments, order_by="User.name"
    )
    attempts: Mapped[list["QuizAttempt"]] = relationship(
        "QuizAttempt",
        back_populates="quiz",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="QuizAttempt.submitted_at",
    )


class QuizAttempt(Base):
    """A student's single, scored submission of a quiz."""

    __tablename__ = "quiz_attempts"
    __table_args__ = (
        UniqueConstraint("quiz_id", "student_id", name="unique_quiz_student_attempt"),
        CheckConstraint("score >= 0 AND score <= 100", name="valid_score"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    quiz_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False
    )
    student_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    answers: Mapped[list[int]] = mapped_column(json_type, nullable=False)
    correct_count: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)  # percent
    time_taken_sec: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    quiz: Mapped["Quiz"] = relationship("Quiz", back_populates="attempts")
    student: Mapped["User"] = relationship("User", foreign_keys=[student_id])
