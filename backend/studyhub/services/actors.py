"""
Authenticated caller as a role-tagged value.

Core operations take an Actor instead of (user_id, role-string) pairs and
match on its variant, so teacher/student branching lives in one place per
operation:

    match actor:
        case Teacher(user_id=teacher_id):
            ...
        case Student(user_id=student_id):
            ...
"""

from dataclasses import dataclass
from uuid import UUID

from studyhub.db.models import User, UserRole


@dataclass(frozen=True)
class Teacher:
    user_id: UUID

    @property
    def role(self) -> UserRole:
        return UserRole.TEACHER


@dataclass(frozen=True)
class Student:
    user_id: UUID

    @property
    def role(self) -> UserRole:
        return UserRole.STUDENT


Actor = Teacher | Student


def actor_for(user: User) -> Actor:
    """Build the actor variant for an authenticated user row."""
    if user.role == UserRole.TEACHER.value:
        return Teacher(user.id)
    return Student(user.id)


def counterpart_role(role: UserRole) -> UserRole:
    """The role on the other side of a connection."""
    return UserRole.STUDENT if role == UserRole.TEACHER else UserRole.TEACHER
