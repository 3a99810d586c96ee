CORRECT = [i % 4 for i in range(10)]


def _submit(client, headers, quiz_id, correct_count):
    answers = [
        {"question_index": i, "selected_answer": CORRECT[i] if i < correct_count else (CORRECT[i] + 1) % 4}
        for i in range(10)
    ]
    r = client.post(f"/quizzes/{quiz_id}/submit", json={"answers": answers}, headers=headers)
    assert r.status_code == 200


def test_dashboard_for_new_user(client, auth_headers):
    r = client.get("/users/dashboard", headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["statistics"] == {
        "total_videos_processed": 0,
        "total_quizzes": 0,
        "total_quiz_attempts": 0,
        "average_quiz_score": 0,
        "highest_quiz_score": 0,
    }
    assert body["recent_videos"] == []


def test_dashboard_statistics(client, auth_headers, processed):
    quiz_id = processed["quiz"]["id"]
    _submit(client, auth_headers, quiz_id, 10)
    _submit(client, auth_headers, quiz_id, 7)
    _submit(client, auth_headers, quiz_id, 6)

    stats = client.get("/users/dashboard", headers=auth_headers).json()["statistics"]
    assert stats["total_videos_processed"] == 1
    assert stats["total_quizzes"] == 1
    assert stats["total_quiz_attempts"] == 3
    # (100 + 70 + 60) / 3 = 76.67
    assert stats["average_quiz_score"] == 77
    assert stats["highest_quiz_score"] == 100


def test_progress(client, auth_headers, processed):
    _submit(client, auth_headers, processed["quiz"]["id"], 8)

    r = client.get("/users/progress", params={"period": "30d"}, headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["period"] == "30d"
    assert body["summary"] == {"total_videos": 1, "total_quiz_attempts": 1}
    assert sum(d["videos_processed"] for d in body["videos_progress"]) == 1
    assert [q["score"] for q in body["quiz_performance"]] == [80]


def test_progress_unknown_period_falls_back_to_seven_days(client, auth_headers, processed):
    r = client.get("/users/progress", params={"period": "1y"}, headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["period"] == "7d"
    assert body["summary"]["total_videos"] == 1
