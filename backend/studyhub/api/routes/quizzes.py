"""
Quiz routes.

Teachers write multiple-choice quizzes and assign them to connected
students. A student submits each quiz once and only sees the correct
answers after submitting.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studyhub.api.deps import CurrentActor, DbSession, StudentActor, TeacherActor
from studyhub.db.models import Quiz, QuizAttempt
from studyhub.schemas.quizzes import (
    AssignedQuizRead,
    QuizCreate,
    QuizQuestionView,
    QuizRead,
    QuizResult,
    QuizSubmit,
    QuizUpdate,
)
from studyhub.services.actors import Student, Teacher
from studyhub.services.errors import ForbiddenError, NotFoundError
from studyhub.services.quizzes import correct_answers, quiz_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/quizzes", tags=["quizzes"])


def _with_relations(query):
    return query.options(
        selectinload(Quiz.assignees),
        selectinload(Quiz.attempts).selectinload(QuizAttempt.student),
    )


async def _load_quiz(db: AsyncSession, quiz_id: UUID) -> Quiz | None:
    result = await db.execute(
        _with_relations(select(Quiz))
        .where(Quiz.id == quiz_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_own_quiz(db: AsyncSession, teacher: Teacher, quiz_id: UUID) -> Quiz:
    quiz = await _load_quiz(db, quiz_id)
    if quiz is None:
        raise NotFoundError("Quiz", quiz_id)
    if quiz.created_by != teacher.user_id:
        raise ForbiddenError("Only the quiz author can change it", code="NOT_QUIZ_AUTHOR")
    return quiz


def _student_view(quiz: Quiz, attempt: QuizAttempt | None) -> AssignedQuizRead:
    attempted = attempt is not None
    questions = [
        QuizQuestionView(
            prompt=question["prompt"],
            options=question["options"],
            correct_index=question["correct_index"] if attempted else None,
        )
        for question in quiz.questions
    ]
    result = {}
    if attempted:
        result = {
            "score": attempt.score,
            "correct_count": attempt.correct_count,
            "answers": attempt.answers,
            "submitted_at": attempt.submitted_at,
        }
    return AssignedQuizRead(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        time_limit_seconds=quiz.time_limit_seconds,
        assigned_by=quiz.created_by,
        total_questions=len(quiz.questions),
        attempted=attempted,
        questions=questions,
        **result,
    )


@router.post("", response_model=QuizRead, status_code=status.HTTP_201_CREATED)
async def create_quiz(data: QuizCreate, teacher: TeacherActor, db: DbSession) -> QuizRead:
    """Create a quiz and assign it to connected students."""
    assignees = await quiz_service.connected_students(db, teacher, data.assigned_to)
    quiz = Quiz(
        title=data.title,
        description=data.description,
        time_limit_seconds=data.time_limit_seconds,
        questions=[question.model_dump() for question in data.questions],
        created_by=teacher.user_id,
        assignees=assignees,
    )
    db.add(quiz)
    await db.commit()
    logger.info("Teacher %s created quiz %s for %d students", teacher.user_id, quiz.id, len(assignees))
    return QuizRead.model_validate(await _load_quiz(db, quiz.id))


@router.get("", response_model=list[QuizRead])
async def list_quizzes(teacher: TeacherActor, db: DbSession) -> list[QuizRead]:
    """The caller's quizzes, newest first, with assignees and attempts."""
    result = await db.execute(
        _with_relations(select(Quiz))
        .where(Quiz.created_by == teacher.user_id)
        .order_by(Quiz.created_at.desc())
    )
    return [QuizRead.model_validate(quiz) for quiz in result.scalars()]


@router.get("/assigned", response_model=list[AssignedQuizRead])
async def list_assigned_quizzes(student: StudentActor, db: DbSession) -> list[AssignedQuizRead]:
    """Quizzes assigned to the caller, with their result where already submitted."""
    rows = await quiz_service.list_assigned(db, student)
    return [_student_view(quiz, attempt) for quiz, attempt in rows]


@router.get("/{quiz_id}", response_model=QuizRead | AssignedQuizRead)
async def get_quiz(quiz_id: UUID, actor: CurrentActor, db: DbSession) -> QuizRead | AssignedQuizRead:
    """Full quiz for its author; the student view for an assigned student."""
    quiz = await _load_quiz(db, quiz_id)
    if quiz is None:
        raise NotFoundError("Quiz", quiz_id)

    match actor:
        case Teacher(user_id=teacher_id) if quiz.created_by == teacher_id:
            return QuizRead.model_validate(quiz)
        case Student(user_id=student_id) if await quiz_service.is_assigned(db, quiz.id, student_id):
            attempt = next((a for a in quiz.attempts if a.student_id == student_id), None)
            return _student_view(quiz, attempt)
    raise ForbiddenError("Not the author of or assigned to this quiz", code="NOT_QUIZ_PARTY")


@router.patch("/{quiz_id}", response_model=QuizRead)
async def update_quiz(
    quiz_id: UUID,
    data: QuizUpdate,
    teacher: TeacherActor,
    db: DbSession,
) -> QuizRead:
    """Update a quiz. assigned_to replaces the whole assignee set."""
    quiz = await _get_own_quiz(db, teacher, quiz_id)
    updates = data.model_dump(exclude_unset=True)

    if "assigned_to" in updates:
        quiz.assignees = await quiz_service.connected_students(db, teacher, updates.pop("assigned_to"))

    for key, value in updates.items():
        setattr(quiz, key, value)

    await db.commit()
    return QuizRead.model_validate(await _load_quiz(db, quiz.id))


@router.delete("/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quiz(quiz_id: UUID, teacher: TeacherActor, db: DbSession) -> None:
    quiz = await _get_own_quiz(db, teacher, quiz_id)
    await db.delete(quiz)
    await db.commit()


@router.post("/{quiz_id}/submit", response_model=QuizResult)
async def submit_quiz(
    quiz_id: UUID,
    data: QuizSubmit,
    student: StudentActor,
    db: DbSession,
) -> QuizResult:
    """Score the caller's one submission and reveal the correct answers."""
    quiz, attempt = await quiz_service.submit(db, student, quiz_id, data.answers, data.time_taken_sec)
    return QuizResult(
        quiz_id=quiz.id,
        score=attempt.score,
        correct_count=attempt.correct_count,
        total_questions=attempt.total_questions,
        correct_answers=correct_answers(quiz),
        answers=attempt.answers,
        time_taken_sec=attempt.time_taken_sec,
    )
