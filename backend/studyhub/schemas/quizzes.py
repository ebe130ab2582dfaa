"""Quiz schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from studyhub.schemas.base import BaseSchema
from studyhub.schemas.user import UserSummary


class QuizQuestion(BaseSchema):
    """One multiple-choice question, answer included."""

    prompt: str = Field(..., min_length=1)
    options: list[str] = Field(..., min_length=2)
    correct_index: int = Field(..., ge=0)

    @model_validator(mode="after")
    def validate_correct_index(self) -> "QuizQuestion":
        """Ensure correct_index points at one of the options."""
        if self.correct_index >= len(self.options):
            raise ValueError("correct_index must be within options length")
        return self


class QuizQuestionView(BaseSchema):
    """A question as a student sees it: correct_index stays hidden until submitted."""

    prompt: str
    options: list[str]
    correct_index: int | None = None


class QuizBase(BaseSchema):
    """Base quiz schema."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    time_limit_seconds: int = Field(300, ge=30, le=7200)


class QuizCreate(QuizBase):
    """Create a quiz, optionally assigning it to connected students right away."""

    questions: list[QuizQuestion] = Field(..., min_length=1)
    assigned_to: list[UUID] = Field(default_factory=list)


class QuizUpdate(BaseSchema):
    """Schema for updating a quiz. All fields optional; assigned_to replaces the set."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    time_limit_seconds: int | None = Field(None, ge=30, le=7200)
    questions: list[QuizQuestion] | None = Field(None, min_length=1)
    assigned_to: list[UUID] | None = None

    @field_validator("title", "time_limit_seconds", "questions", "assigned_to")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class QuizAttemptRead(BaseSchema):
    student: UserSummary
    answers: list[int]
    correct_count: int
    total_questions: int
    score: int
    time_taken_sec: int
    submitted_at: datetime


class QuizRead(QuizBase):
    """Author's view: full questions, assignees and every attempt."""

    id: UUID
    questions: list[QuizQuestion]
    created_by: UUID
    assignees: list[UserSummary]
    attempts: list[QuizAttemptRead]
    created_at: datetime
    updated_at: datetime


class AssignedQuizRead(QuizBase):
    """Student's view of an assigned quiz, with their result once attempted."""

    id: UUID
    assigned_by: UUID
    total_questions: int
    attempted: bool
    questions: list[QuizQuestionView]
    score: int | None = None
    correct_count: int | None = None
    answers: list[int] | None = None
    submitted_at: datetime | None = None


class QuizSubmit(BaseSchema):
    answers: list[int]
    time_taken_sec: int = Field(0, ge=0)


class QuizResult(BaseSchema):
    quiz_id: UUID
    score: int
    correct_count: int
    total_questions: int
    correct_answers: list[int]
    answers: list[int]
    time_taken_sec: int
