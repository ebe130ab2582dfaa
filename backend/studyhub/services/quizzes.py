"""
Quiz scoring and submission.

A student submits a quiz once. The answer list is positional: answers[i]
is the chosen option index for questions[i]. The score is the share of
correct answers as a whole percentage, rounded half-up.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.db.models import Quiz, QuizAttempt, User, quiz_assignments
from studyhub.services.actors import Student, Teacher
from studyhub.services.connections import connection_service
from studyhub.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
)
from studyhub.services.streaks import round_half_up

logger = logging.getLogger(__name__)

# Allowance for the client's submit round trip after the timer runs out
TIME_GRACE_SECONDS = 10


@dataclass(frozen=True)
class QuizScore:
    correct_count: int
    total_questions: int
    score: int  # percent


def score_answers(questions: list[dict], answers: list[int]) -> QuizScore:
    """Count answers matching each question's correct_index."""
    total = len(questions)
    correct = sum(
        1 for question, answer in zip(questions, answers) if answer == question["correct_index"]
    )
    score = int(round_half_up(correct / total * 100)) if total else 0
    return QuizScore(correct_count=correct, total_questions=total, score=score)


def clamp_time_taken(seconds: int, time_limit_seconds: int) -> int:
    return max(0, min(seconds, time_limit_seconds + TIME_GRACE_SECONDS))


def correct_answers(quiz: Quiz) -> list[int]:
    return [question["correct_index"] for question in quiz.questions]


class QuizService:
    """Assignment checks, assigned-quiz lookup and one-shot submission."""

    async def connected_students(
        self,
        db: AsyncSession,
        teacher: Teacher,
        student_ids: list[UUID],
    ) -> list[User]:
        """Load the given students, all of whom must be connected to the teacher."""
        ids = list(dict.fromkeys(student_ids))
        for student_id in ids:
            if not await connection_service.is_connected(db, teacher.user_id, student_id):
                raise ForbiddenError(
                    "Can only assign quizzes to connected students",
                    code="NOT_CONNECTED",
                    details={"student_id": str(student_id)},
                )
        if not ids:
            return []
        result = await db.execute(select(User).where(User.id.in_(ids)))
        return list(result.scalars())

    async def is_assigned(self, db: AsyncSession, quiz_id: UUID, student_id: UUID) -> bool:
        result = await db.execute(
            select(quiz_assignments.c.quiz_id).where(
                quiz_assignments.c.quiz_id == quiz_id,
                quiz_assignments.c.student_id == student_id,
            )
        )
        return result.first() is not None

    async def find_attempt(self, db: AsyncSession, quiz_id: UUID, student_id: UUID) -> QuizAttempt | None:
        result = await db.execute(
            select(QuizAttempt).where(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.student_id == student_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_assigned(
        self,
        db: AsyncSession,
        student: Student,
    ) -> list[tuple[Quiz, QuizAttempt | None]]:
        """Quizzes assigned to the student, newest first, each with their attempt if any."""
        result = await db.execute(
            select(Quiz)
            .join(quiz_assignments, quiz_assignments.c.quiz_id == Quiz.id)
            .where(quiz_assignments.c.student_id == student.user_id)
            .order_by(Quiz.created_at.desc())
        )
        quizzes = list(result.scalars())
        if not quizzes:
            return []

        result = await db.execute(
            select(QuizAttempt).where(
                QuizAttempt.student_id == student.user_id,
                QuizAttempt.quiz_id.in_([quiz.id for quiz in quizzes]),
            )
        )
        attempts = {attempt.quiz_id: attempt for attempt in result.scalars()}
        return [(quiz, attempts.get(quiz.id)) for quiz in quizzes]

    async def submit(
        self,
        db: AsyncSession,
        student: Student,
        quiz_id: UUID,
        answers: list[int],
        time_taken_sec: int = 0,
    ) -> tuple[Quiz, QuizAttempt]:
        """
        Score and store the student's only attempt at a quiz.

        Raises NotFoundError, ForbiddenError (not assigned), ConflictError
        (already submitted, including a concurrent submit caught by the
        unique constraint) and InvalidOperationError (answer count does not
        match the question count).
        """
        quiz = await db.get(Quiz, quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz", quiz_id)
        if not await self.is_assigned(db, quiz_id, student.user_id):
            raise ForbiddenError("You are not assigned this quiz", code="NOT_ASSIGNED")

        existing = await self.find_attempt(db, quiz_id, student.user_id)
        if existing is not None:
            raise ConflictError(
                "Quiz already submitted",
                code="QUIZ_ALREADY_SUBMITTED",
                details={"score": existing.score},
            )

        if len(answers) != len(quiz.questions):
            raise InvalidOperationError(
                "Answers length must match questions length",
                code="ANSWER_COUNT_MISMATCH",
                details={"expected": len(quiz.questions), "received": len(answers)},
            )

        result = score_answers(quiz.questions, answers)
        attempt = QuizAttempt(
            quiz_id=quiz.id,
            student_id=student.user_id,
            answers=list(answers),
            correct_count=result.correct_count,
            total_questions=result.total_questions,
            score=result.score,
            time_taken_sec=clamp_time_taken(time_taken_sec, quiz.time_limit_seconds),
        )
        db.add(attempt)
        try:
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent submit from the same student
            await db.rollback()
            raise ConflictError("Quiz already submitted", code="QUIZ_ALREADY_SUBMITTED")

        await db.commit()
        logger.info(
            "Quiz %s submitted by student %s: %d/%d (%d%%)",
            quiz.id, student.user_id, result.correct_count, result.total_questions, result.score,
        )
        return quiz, attempt


quiz_service = QuizService()
