"""HTTP surface for connections and the directory endpoints."""

from uuid import uuid4


async def test_request_and_accept_over_http(client, teacher, student, teacher_headers, student_headers):
    resp = await client.post("/connections/request", json={"counterparty": "XK9M2L"}, headers=student_headers)
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "pending"
    assert body["initiated_by"] == "student"
    assert body["counterparty"]["id"] == str(teacher.id)

    resp = await client.patch(
        f"/connections/{body['id']}/respond", json={"action": "accept"}, headers=student_headers
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "INITIATOR_CANNOT_RESPOND"

    resp = await client.patch(
        f"/connections/{body['id']}/respond", json={"action": "accept"}, headers=teacher_headers
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "accepted"
    assert resp.json()["counterparty"]["id"] == str(student.id)


async def test_duplicate_request_returns_conflict_with_status(client, teacher, student, teacher_headers, student_headers):
    await client.post("/connections/request", json={"counterparty": str(teacher.id)}, headers=student_headers)

    resp = await client.post("/connections/request", json={"counterparty": str(student.id)}, headers=teacher_headers)
    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == "CONNECTION_EXISTS"
    assert body["status"] == "pending"
    assert body["detail"] == "Connection already exists"


async def test_unknown_code_is_404(client, teacher, student_headers):
    resp = await client.post("/connections/request", json={"counterparty": "NOPE42"}, headers=student_headers)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Teacher code not found"


async def test_respond_twice_is_400(client, teacher, student, teacher_headers, student_headers):
    resp = await client.post("/connections/request", json={"counterparty": str(student.id)}, headers=teacher_headers)
    conn_id = resp.json()["id"]

    resp = await client.patch(f"/connections/{conn_id}/respond", json={"action": "reject"}, headers=student_headers)
    assert resp.status_code == 200

    resp = await client.patch(f"/connections/{conn_id}/respond", json={"action": "accept"}, headers=student_headers)
    assert resp.status_code == 400
    assert resp.json()["current_status"] == "rejected"


async def test_list_filter_validation(client, teacher_headers):
    resp = await client.get("/connections", params={"filter": "bogus"}, headers=teacher_headers)
    assert resp.status_code == 422

    resp = await client.get("/connections", params={"filter": "pending"}, headers=teacher_headers)
    assert resp.status_code == 200
    assert resp.json() == []


async def test_delete_requires_teacher(client, teacher, student, teacher_headers, student_headers):
    resp = await client.post("/connections/request", json={"counterparty": str(teacher.id)}, headers=student_headers)
    conn_id = resp.json()["id"]

    resp = await client.delete(f"/connections/{conn_id}", headers=student_headers)
    assert resp.status_code == 403
    assert resp.json()["code"] == "INSUFFICIENT_ROLE"

    resp = await client.delete(f"/connections/{conn_id}", headers=teacher_headers)
    assert resp.status_code == 204

    resp = await client.delete(f"/connections/{conn_id}", headers=teacher_headers)
    assert resp.status_code == 404


async def test_requires_authentication(client):
    resp = await client.get("/connections")
    assert resp.status_code == 401

    resp = await client.get("/connections", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


async def test_profiles_reflect_accepted_connections(client, teacher, student, teacher_headers, student_headers):
    resp = await client.post("/connections/request", json={"counterparty": "XK9M2L"}, headers=student_headers)
    await client.patch(f"/connections/{resp.json()['id']}/respond", json={"action": "accept"}, headers=teacher_headers)

    resp = await client.get("/teachers/profile", headers=teacher_headers)
    assert resp.status_code == 200
    assert resp.json()["code"] == "XK9M2L"
    assert [s["id"] for s in resp.json()["connected_students"]] == [str(student.id)]

    resp = await client.get("/students/profile", headers=student_headers)
    assert [t["id"] for t in resp.json()["connected_teachers"]] == [str(teacher.id)]

    resp = await client.get("/teachers/profile", headers=student_headers)
    assert resp.status_code == 403


async def test_teacher_directory_lists_codes(client, teacher, student_headers):
    resp = await client.get("/teachers", headers=student_headers)
    assert resp.status_code == 200
    assert resp.json() == [
        {"user_id": str(teacher.id), "name": teacher.name, "email": teacher.email, "code": "XK9M2L"}
    ]


async def test_student_directory_search_and_counts(client, teacher, make_student, teacher_headers, student_headers):
    alice = await make_student(name="Alice Zephyr")
    await make_student(name="Bob Quill")

    resp = await client.post("/connections/request", json={"counterparty": str(alice.id)}, headers=teacher_headers)
    # Pending connections are not counted
    resp = await client.get("/students", params={"search": "zephyr"}, headers=teacher_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 1
    assert body["total_pages"] == 1
    assert body["students"][0]["id"] == str(alice.id)
    assert body["students"][0]["connected_teachers_count"] == 0

    resp = await client.get("/students", headers=student_headers)
    assert resp.status_code == 403


async def test_respond_unknown_connection(client, teacher_headers):
    resp = await client.patch(f"/connections/{uuid4()}/respond", json={"action": "accept"}, headers=teacher_headers)
    assert resp.status_code == 404
    assert resp.json()["code"] == "CONNECTION_NOT_FOUND"
