"""Pydantic schemas for API request/response validation."""

from studyhub.schemas.user import UserCreate, UserRead, UserSummary
from studyhub.schemas.auth import (
    GoogleAuthRequest,
    TokenResponse,
    AuthIdentityRead,
)
from studyhub.schemas.connections import ConnectionRead, ConnectionRequest, ConnectionRespond
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
    StudyStatsRead,
)
from studyhub.schemas.notifications import NotificationList, NotificationRead, UnreadCount
from studyhub.schemas.tasks import TaskAssign, TaskCreate, TaskPage, TaskRead, TaskUpdate
from studyhub.schemas.quizzes import (
    AssignedQuizRead,
    QuizCreate,
    QuizRead,
    QuizResult,
    QuizSubmit,
    QuizUpdate,
)
from studyhub.schemas.profiles import (
    StudentDirectoryEntry,
    StudentDirectoryPage,
    StudentProfileRead,
    TeacherDirectoryEntry,
    TeacherProfileRead,
)

__all__ = [
    # User
    "UserCreate",
    "UserRead",
    "UserSummary",
    # Auth
    "GoogleAuthRequest",
    "TokenResponse",
    "AuthIdentityRead",
    # Connections
    "ConnectionRead",
    "ConnectionRequest",
    "ConnectionRespond",
    # Study logs
    "ManualLogCreate",
    "SessionSaved",
    "SessionStart",
    "SessionStartRead",
    "SessionStop",
    "StreakRead",
    "StreakStatus",
    "StudyLogPage",
    "StudyLogRead",
    "StudyStatsRead",
    # Notifications
    "NotificationList",
    "NotificationRead",
    "UnreadCount",
    # Tasks
    "TaskAssign",
    "TaskCreate",
    "TaskPage",
    "TaskRead",
    "TaskUpdate",
    # Quizzes
    "AssignedQuizRead",
    "QuizCreate",
    "QuizRead",
    "QuizResult",
    "QuizSubmit",
    "QuizUpdate",
    # Profiles
    "StudentDirectoryEntry",
    "StudentDirectoryPage",
    "StudentProfileRead",
    "TeacherDirectoryEntry",
    "TeacherProfileRead",
]
