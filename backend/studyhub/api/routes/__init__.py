"""API routes package."""

from studyhub.api.routes import (
    auth,
    connections,
    notifications,
    quizzes,
    students,
    study_logs,
    tasks,
    teachers,
)

__all__ = [
    "auth",
    "connections",
    "notifications",
    "quizzes",
    "students",
    "study_logs",
    "tasks",
    "teachers",
]
