"""Task schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field, field_validator

from studyhub.schemas.base import BaseSchema, PageMixin
from studyhub.schemas.user import UserSummary

TaskPriorityType = Literal["low", "medium", "high"]
TaskStatusType = Literal["pending", "completed"]


class TaskBase(BaseSchema):
    """Base task schema."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    due_at: datetime | None = None
    priority: TaskPriorityType = "medium"


class TaskCreate(TaskBase):
    """
    Create a single task.

    Students may omit assigned_to (defaults to themselves); teachers must
    name the student.
    """

    assigned_to: UUID | None = None


class TaskAssign(TaskBase):
    """Teacher assigns the same task to several students."""

    assigned_to: list[UUID] = Field(..., min_length=1)


class TaskUpdate(BaseSchema):
    """Schema for updating a task. All fields optional."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    due_at: datetime | None = None
    priority: TaskPriorityType | None = None
    status: TaskStatusType | None = None

    @field_validator("title", "priority", "status")
    @classmethod
    def not_null(cls, v: str | None) -> str:
        """These columns are NOT NULL: omit the field to leave it unchanged."""
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class TaskRead(TaskBase):
    """Schema for reading task data."""

    id: UUID
    status: TaskStatusType
    assigned_by: UUID
    assigned_to: UUID
    assigner: UserSummary | None = None
    assignee: UserSummary | None = None
    created_at: datetime
    updated_at: datetime


class TaskPage(BaseSchema, PageMixin):
    tasks: list[TaskRead]
