"""HTTP surface for study sessions, streaks and stats."""

from datetime import timedelta

from studyhub.services.streaks import utc_now, utc_today


async def test_session_start_echoes_subject(client, student, student_headers):
    resp = await client.post("/study-logs/sessions/start", json={"subject": "Biology"}, headers=student_headers)
    assert resp.status_code == 200
    assert resp.json()["subject"] == "Biology"
    assert resp.json()["user_id"] == str(student.id)


async def test_session_stop_logs_today_and_starts_streak(client, student_headers):
    started = (utc_now() - timedelta(minutes=45)).isoformat()
    resp = await client.post(
        "/study-logs/sessions/stop",
        json={"duration": 45, "start_time": started, "subject": "Biology"},
        headers=student_headers,
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["study_log"]["date"] == utc_today().isoformat()
    assert body["study_log"]["duration"] == 45
    assert body["streak"]["current_streak"] == 1
    assert body["streak"]["total_sessions"] == 1
    assert body["streak"]["total_hours"] == 0.75


async def test_duration_must_be_positive_integer(client, student_headers):
    started = utc_now().isoformat()
    for bad in (0, -5, 12.5, "ten"):
        resp = await client.post(
            "/study-logs/sessions/stop",
            json={"duration": bad, "start_time": started},
            headers=student_headers,
        )
        assert resp.status_code == 422, bad


async def test_manual_log_for_past_day(client, student_headers):
    day = utc_today() - timedelta(days=3)
    resp = await client.post(
        "/study-logs/manual",
        json={"duration": 30, "date": day.isoformat(), "subject": "History"},
        headers=student_headers,
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["study_log"]["date"] == day.isoformat()
    # Nothing logged today, so the backdated entry does not start a streak
    assert body["streak"]["current_streak"] == 0
    assert body["streak"]["total_sessions"] == 1


async def test_streak_endpoint_reports_studied_today(client, student_headers):
    resp = await client.get("/study-logs/streak", headers=student_headers)
    assert resp.status_code == 200
    assert resp.json()["has_studied_today"] is False
    assert resp.json()["current_streak"] == 0

    await client.post(
        "/study-logs/manual",
        json={"duration": 20, "date": utc_today().isoformat()},
        headers=student_headers,
    )
    resp = await client.get("/study-logs/streak", headers=student_headers)
    assert resp.json()["has_studied_today"] is True
    assert resp.json()["current_streak"] == 1


async def test_teacher_reads_connected_student_streak_only(
    client, teacher, student, teacher_headers, student_headers, make_student, auth_headers
):
    resp = await client.get("/study-logs/streak", params={"user_id": str(student.id)}, headers=teacher_headers)
    assert resp.status_code == 403

    resp = await client.post("/connections/request", json={"counterparty": str(student.id)}, headers=teacher_headers)
    await client.patch(f"/connections/{resp.json()['id']}/respond", json={"action": "accept"}, headers=student_headers)

    resp = await client.get("/study-logs/streak", params={"user_id": str(student.id)}, headers=teacher_headers)
    assert resp.status_code == 200

    classmate = await make_student()
    resp = await client.get(
        "/study-logs/streak", params={"user_id": str(student.id)}, headers=auth_headers(classmate)
    )
    assert resp.status_code == 403


async def test_stats_endpoint(client, student_headers):
    today = utc_today().isoformat()
    for minutes, subject in ((60, "Math"), (90, "Physics")):
        await client.post(
            "/study-logs/manual",
            json={"duration": minutes, "date": today, "subject": subject},
            headers=student_headers,
        )

    resp = await client.get("/study-logs/stats", params={"range": "day"}, headers=student_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["range"] == "day"
    assert body["by_date"][today] == {"duration": 150, "sessions": 2}
    assert body["total_hours"] == 2.5
    assert body["by_subject"]["Physics"]["duration"] == 90
    assert len(body["logs"]) == 2


async def test_stats_rejects_unknown_range(client, student_headers):
    resp = await client.get("/study-logs/stats", params={"range": "decade"}, headers=student_headers)
    assert resp.status_code == 422


async def test_stats_for_new_user_is_empty(client, student_headers):
    resp = await client.get("/study-logs/stats", headers=student_headers)
    body = resp.json()
    assert body["range"] == "week"
    assert (body["total_duration"], body["total_sessions"], body["avg_duration"]) == (0, 0, 0)
    assert body["by_date"] == {} and body["by_subject"] == {} and body["logs"] == []


async def test_list_paginates_and_filters(client, student_headers):
    today = utc_today()
    for offset in range(5):
        await client.post(
            "/study-logs/manual",
            json={"duration": 10 + offset, "date": (today - timedelta(days=offset)).isoformat(),
                  "subject": "Math" if offset % 2 == 0 else "Art"},
            headers=student_headers,
        )

    resp = await client.get("/study-logs", params={"page": 1, "limit": 2}, headers=student_headers)
    body = resp.json()
    assert body["total"] == 5
    assert body["total_pages"] == 3
    assert [log["date"] for log in body["logs"]] == [today.isoformat(), (today - timedelta(days=1)).isoformat()]

    resp = await client.get("/study-logs", params={"subject": "Art"}, headers=student_headers)
    assert resp.json()["total"] == 2

    resp = await client.get(
        "/study-logs",
        params={"start_date": (today - timedelta(days=2)).isoformat(), "end_date": today.isoformat()},
        headers=student_headers,
    )
    assert resp.json()["total"] == 3


async def test_delete_log_recomputes_totals(client, student, student_headers, auth_headers, make_student):
    resp = await client.post(
        "/study-logs/manual",
        json={"duration": 60, "date": utc_today().isoformat()},
        headers=student_headers,
    )
    log_id = resp.json()["study_log"]["id"]

    other = await make_student()
    resp = await client.delete(f"/study-logs/{log_id}", headers=auth_headers(other))
    assert resp.status_code == 404

    resp = await client.delete(f"/study-logs/{log_id}", headers=student_headers)
    assert resp.status_code == 204

    resp = await client.get("/study-logs/streak", headers=student_headers)
    assert resp.json()["total_sessions"] == 0
    assert resp.json()["total_hours"] == 0


async def test_reconcile_endpoint(client, student_headers):
    resp = await client.post("/study-logs/streak/reconcile", headers=student_headers)
    assert resp.status_code == 200
    assert resp.json()["current_streak"] == 0
