"""Quiz scoring and one-shot submission."""

from uuid import uuid4

import pytest

from studyhub.db.models import Quiz
from studyhub.services.actors import Student
from studyhub.services.errors import ConflictError, ForbiddenError, NotFoundError
from studyhub.services.quizzes import clamp_time_taken, quiz_service, score_answers


def _questions(*correct: int) -> list[dict]:
    return [{"prompt": f"Q{i}", "options": ["a", "b", "c"], "correct_index": c} for i, c in enumerate(correct)]


def test_score_is_rounded_half_up_percentage():
    result = score_answers(_questions(0, 0, 0, 0, 0, 0, 0, 0), [0, 1, 1, 1, 1, 1, 1, 1])
    assert (result.correct_count, result.total_questions) == (1, 8)
    assert result.score == 13  # 12.5 rounds up

    assert score_answers(_questions(2, 1), [2, 1]).score == 100
    assert score_answers(_questions(2, 1), [0, 0]).score == 0
    assert score_answers([], []).score == 0


def test_time_taken_is_clamped_to_limit_plus_grace():
    assert clamp_time_taken(9999, 300) == 310
    assert clamp_time_taken(120, 300) == 120
    assert clamp_time_taken(-5, 300) == 0


@pytest.fixture
async def assigned_quiz(db_session, teacher, student):
    quiz = Quiz(title="Fractions", questions=_questions(1, 2), created_by=teacher.id, assignees=[student])
    db_session.add(quiz)
    await db_session.commit()
    return quiz


async def test_second_submission_conflicts(db_session, student, assigned_quiz):
    _, attempt = await quiz_service.submit(db_session, Student(student.id), assigned_quiz.id, [1, 0], 42)
    assert attempt.score == 50
    assert attempt.time_taken_sec == 42

    with pytest.raises(ConflictError) as exc:
        await quiz_service.submit(db_session, Student(student.id), assigned_quiz.id, [1, 2])
    assert exc.value.code == "QUIZ_ALREADY_SUBMITTED"

    stored = await quiz_service.find_attempt(db_session, assigned_quiz.id, student.id)
    assert stored.answers == [1, 0]


async def test_submit_requires_assignment(db_session, make_student, assigned_quiz):
    outsider = await make_student()
    with pytest.raises(ForbiddenError):
        await quiz_service.submit(db_session, Student(outsider.id), assigned_quiz.id, [1, 2])


async def test_submit_unknown_quiz(db_session, student):
    with pytest.raises(NotFoundError):
        await quiz_service.submit(db_session, Student(student.id), uuid4(), [])


async def test_list_assigned_pairs_attempts(db_session, student, assigned_quiz):
    rows = await quiz_service.list_assigned(db_session, Student(student.id))
    assert [(quiz.id, attempt) for quiz, attempt in rows] == [(assigned_quiz.id, None)]

    await quiz_service.submit(db_session, Student(student.id), assigned_quiz.id, [1, 2])
    ((_, attempt),) = await quiz_service.list_assigned(db_session, Student(student.id))
    assert attempt.score == 100
