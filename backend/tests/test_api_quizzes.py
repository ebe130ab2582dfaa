"""HTTP surface for quizzes."""

import pytest

QUESTIONS = [
    {"prompt": "2 + 2", "options": ["3", "4"], "correct_index": 1},
    {"prompt": "Capital of France", "options": ["Paris", "Rome", "Oslo"], "correct_index": 0},
    {"prompt": "H2O is", "options": ["salt", "water"], "correct_index": 1},
]


@pytest.fixture
async def connected(client, teacher, student, teacher_headers, student_headers):
    resp = await client.post("/connections/request", json={"counterparty": str(student.id)}, headers=teacher_headers)
    await client.patch(f"/connections/{resp.json()['id']}/respond", json={"action": "accept"}, headers=student_headers)
    return teacher, student


@pytest.fixture
async def quiz(client, connected, teacher_headers):
    _, student = connected
    resp = await client.post(
        "/quizzes",
        json={"title": "Warm-up", "questions": QUESTIONS, "assigned_to": [str(student.id)]},
        headers=teacher_headers,
    )
    assert resp.status_code == 201
    return resp.json()


async def test_create_only_for_connected_students(client, teacher, student, teacher_headers, student_headers):
    body = {"title": "Warm-up", "questions": QUESTIONS, "assigned_to": [str(student.id)]}

    resp = await client.post("/quizzes", json=body, headers=teacher_headers)
    assert resp.status_code == 403
    assert resp.json()["code"] == "NOT_CONNECTED"

    resp = await client.post("/quizzes", json=body, headers=student_headers)
    assert resp.status_code == 403
    assert resp.json()["code"] == "INSUFFICIENT_ROLE"


async def test_question_validation(client, teacher_headers):
    bad_index = [{"prompt": "Pick", "options": ["a", "b"], "correct_index": 2}]
    resp = await client.post("/quizzes", json={"title": "Q", "questions": bad_index}, headers=teacher_headers)
    assert resp.status_code == 422

    one_option = [{"prompt": "Pick", "options": ["a"], "correct_index": 0}]
    resp = await client.post("/quizzes", json={"title": "Q", "questions": one_option}, headers=teacher_headers)
    assert resp.status_code == 422

    resp = await client.post("/quizzes", json={"title": "Q", "questions": []}, headers=teacher_headers)
    assert resp.status_code == 422


async def test_new_quiz_defaults(quiz, connected):
    _, student = connected
    assert quiz["time_limit_seconds"] == 300
    assert [s["id"] for s in quiz["assignees"]] == [str(student.id)]
    assert quiz["attempts"] == []
    assert quiz["questions"][0]["correct_index"] == 1


async def test_assigned_list_hides_answers_until_submitted(client, quiz, student_headers):
    resp = await client.get("/quizzes/assigned", headers=student_headers)
    assert resp.status_code == 200
    (assigned,) = resp.json()
    assert assigned["id"] == quiz["id"]
    assert assigned["attempted"] is False
    assert assigned["total_questions"] == 3
    assert assigned["score"] is None
    assert all(q["correct_index"] is None for q in assigned["questions"])

    resp = await client.get(f"/quizzes/{quiz['id']}", headers=student_headers)
    assert resp.status_code == 200
    assert all(q["correct_index"] is None for q in resp.json()["questions"])


async def test_submit_scores_once(client, connected, quiz, teacher_headers, student_headers):
    _, student = connected

    resp = await client.post(
        f"/quizzes/{quiz['id']}/submit",
        json={"answers": [1, 0, 0], "time_taken_sec": 9999},
        headers=student_headers,
    )
    assert resp.status_code == 200
    result = resp.json()
    assert result["correct_count"] == 2
    assert result["total_questions"] == 3
    assert result["score"] == 67
    assert result["correct_answers"] == [1, 0, 1]
    assert result["time_taken_sec"] == 310

    resp = await client.post(
        f"/quizzes/{quiz['id']}/submit", json={"answers": [1, 0, 1]}, headers=student_headers
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "QUIZ_ALREADY_SUBMITTED"
    assert resp.json()["score"] == 67

    resp = await client.get("/quizzes/assigned", headers=student_headers)
    (assigned,) = resp.json()
    assert assigned["attempted"] is True
    assert assigned["answers"] == [1, 0, 0]
    assert [q["correct_index"] for q in assigned["questions"]] == [1, 0, 1]

    resp = await client.get("/quizzes", headers=teacher_headers)
    (own,) = resp.json()
    assert own["attempts"][0]["student"]["id"] == str(student.id)
    assert own["attempts"][0]["score"] == 67


async def test_answer_count_must_match(client, quiz, student_headers):
    resp = await client.post(f"/quizzes/{quiz['id']}/submit", json={"answers": [1]}, headers=student_headers)
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "ANSWER_COUNT_MISMATCH"
    assert (body["expected"], body["received"]) == (3, 1)


async def test_unassigned_student_is_forbidden(client, quiz, make_student, auth_headers):
    outsider = await make_student()
    headers = auth_headers(outsider)

    resp = await client.get(f"/quizzes/{quiz['id']}", headers=headers)
    assert resp.status_code == 403

    resp = await client.post(f"/quizzes/{quiz['id']}/submit", json={"answers": [1, 0, 1]}, headers=headers)
    assert resp.status_code == 403
    assert resp.json()["code"] == "NOT_ASSIGNED"


async def test_update_and_delete_by_author_only(client, quiz, teacher_headers, make_teacher, auth_headers):
    other = await make_teacher()
    resp = await client.patch(f"/quizzes/{quiz['id']}", json={"title": "Mine now"}, headers=auth_headers(other))
    assert resp.status_code == 403

    resp = await client.patch(f"/quizzes/{quiz['id']}", json={"title": None}, headers=teacher_headers)
    assert resp.status_code == 422

    resp = await client.patch(
        f"/quizzes/{quiz['id']}",
        json={"title": "Warm-up v2", "time_limit_seconds": 600, "assigned_to": []},
        headers=teacher_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["title"] == "Warm-up v2"
    assert body["time_limit_seconds"] == 600
    assert body["assignees"] == []

    resp = await client.delete(f"/quizzes/{quiz['id']}", headers=teacher_headers)
    assert resp.status_code == 204

    resp = await client.get(f"/quizzes/{quiz['id']}", headers=teacher_headers)
    assert resp.status_code == 404
