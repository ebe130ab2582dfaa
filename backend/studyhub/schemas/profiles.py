"""Teacher / student profile and directory schemas."""

from datetime import datetime
from uuid import UUID

from studyhub.schemas.base import BaseSchema, PageMixin
from studyhub.schemas.user import UserSummary


class TeacherProfileRead(BaseSchema):
    id: UUID
    user_id: UUID
    code: str | None
    connected_students: list[UserSummary]


class StudentProfileRead(BaseSchema):
    id: UUID
    user_id: UUID
    connected_teachers: list[UserSummary]


class TeacherDirectoryEntry(BaseSchema):
    user_id: UUID
    name: str
    email: str | None
    code: str | None


class StudentDirectoryEntry(BaseSchema):
    id: UUID
    name: str
    email: str | None
    created_at: datetime
    connected_teachers_count: int


class StudentDirectoryPage(BaseSchema, PageMixin):
    students: list[StudentDirectoryEntry]
