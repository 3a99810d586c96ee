from app.api.deps import get_content_generator, get_transcript_fetcher
from app.main import app
from app.models import LearningHistoryEntry, LearningRecord, Quiz, QuizAttempt
from app.services.errors import ContentGenerationFailed
from app.services.llm.mock_client import MockContentGenerator
from app.services.transcript import CaptionResult, TranscriptFetcher

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"

CAPTIONS = (
    "Today we are um going to talk about neural networks. Neural networks learn from examples "
    "by adjusting weights. Training uses gradient descent to reduce the loss on every batch. "
    "Neural networks power modern speech recognition and image classification systems."
)


class StaticCaptions:
    name = "static"

    def __init__(self, text, title="Intro to Neural Networks"):
        self.text = text
        self.title = title

    def fetch(self, video_id):
        if self.text is None:
            return None
        return CaptionResult(text=self.text, method=self.name, segments=[self.text], title=self.title)


def _use_fetcher(text, has_api_key=True):
    fetcher = TranscriptFetcher([StaticCaptions(text)], has_api_key=has_api_key)
    app.dependency_overrides[get_transcript_fetcher] = lambda: fetcher


def test_process_text_end_to_end(client, auth_headers, lecture):
    r = client.post(
        "/videos/process-text",
        json={"title": "  Photosynthesis  ", "transcript": "um " + lecture},
        headers=auth_headers,
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["ok"] is True
    video = body["video"]
    assert video["title"] == "Photosynthesis"
    assert video["video_id"].startswith("manual-")
    assert video["video_url"] == "manual-input"
    assert video["summary"]
    assert 5 <= len(video["key_points"]) <= 8
    assert body["quiz"]["question_count"] == 10

    r = client.get(f"/videos/{video['id']}", headers=auth_headers)
    assert r.status_code == 200
    detail = r.json()["video"]
    assert detail["status"] == "completed"
    assert detail["source_type"] == "manual"
    assert detail["transcript"] == lecture
    assert detail["transcript_length"] == len(lecture)
    assert detail["quiz"] == {"id": body["quiz"]["id"], "total_questions": 10, "attempts": 0}


def test_process_text_keeps_given_url(client, auth_headers, lecture):
    r = client.post(
        "/videos/process-text",
        json={"title": "Notes", "transcript": lecture, "video_url": "https://youtu.be/abc"},
        headers=auth_headers,
    )
    assert r.json()["video"]["video_url"] == "https://youtu.be/abc"


def test_process_text_too_short(client, auth_headers, db):
    before = db.query(LearningRecord).count()
    r = client.post(
        "/videos/process-text",
        json={"title": "Tiny", "transcript": "um uh like this is short"},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert r.json()["error"] == "transcript_too_short"
    assert db.query(LearningRecord).count() == before


def test_process_video_with_captions(client, auth_headers):
    _use_fetcher(CAPTIONS)

    r = client.post("/videos/process", json={"video_url": VIDEO_URL}, headers=auth_headers)
    assert r.status_code == 201, r.text
    video = r.json()["video"]
    assert video["video_id"] == "dQw4w9WgXcQ"
    assert video["video_url"] == VIDEO_URL
    assert video["title"] == "Intro to Neural Networks"
    assert video["processing_time_ms"] >= 0

    detail = client.get(f"/videos/{video['id']}", headers=auth_headers).json()["video"]
    assert detail["source_type"] == "youtube_video"
    assert " um " not in detail["transcript"]
    assert detail["transcript"].startswith("Today we are going to talk about neural networks.")


def test_process_video_rejects_non_youtube_url(client, auth_headers):
    r = client.post("/videos/process", json={"video_url": "https://vimeo.com/42"}, headers=auth_headers)
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "validation_failed"
    assert body["errors"][0]["field"] == "video_url"


def test_process_video_unavailable_records_failure(client, auth_headers, db):
    _use_fetcher(None, has_api_key=False)

    r = client.post("/videos/process", json={"video_url": VIDEO_URL}, headers=auth_headers)
    assert r.status_code == 422
    body = r.json()
    assert body["error"] == "transcript_unavailable"
    assert body["reason"] == "key_missing"
    assert body["video_id"] == "dQw4w9WgXcQ"

    failed = (
        db.query(LearningRecord)
        .filter(LearningRecord.status == "failed", LearningRecord.external_id == "dQw4w9WgXcQ")
        .order_by(LearningRecord.id.desc())
        .first()
    )
    assert failed is not None
    assert failed.error
    assert failed.error_at is not None
    assert db.query(Quiz).filter(Quiz.learning_record_id == failed.id).count() == 0

    # failed records stay out of the history listing
    listing = client.get("/videos", headers=auth_headers).json()
    assert all(v["status"] == "completed" for v in listing["videos"])


def test_process_video_short_captions_after_cleaning(client, auth_headers):
    # long enough to be accepted by the fetcher, too short once fillers are gone
    _use_fetcher("um " * 30 + "A short note on cells.")

    r = client.post("/videos/process", json={"video_url": VIDEO_URL}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "transcript_too_short"


def test_generation_failure_persists_nothing(client, auth_headers, db, lecture):
    class Broken(MockContentGenerator):
        def generate_summary(self, text):
            raise ContentGenerationFailed("Failed to generate summary")

    app.dependency_overrides[get_content_generator] = lambda: Broken()
    before = db.query(LearningRecord).count()

    r = client.post(
        "/videos/process-text",
        json={"title": "Will fail", "transcript": lecture},
        headers=auth_headers,
    )
    assert r.status_code == 502
    assert r.json()["error"] == "content_generation_failed"
    assert db.query(LearningRecord).count() == before


def test_history_pagination(client, auth_headers, lecture):
    for i in range(3):
        r = client.post(
            "/videos/process-text",
            json={"title": f"Lesson {i}", "transcript": lecture},
            headers=auth_headers,
        )
        assert r.status_code == 201

    r = client.get("/videos", params={"page": 1, "limit": 2}, headers=auth_headers)
    body = r.json()
    assert [v["title"] for v in body["videos"]] == ["Lesson 2", "Lesson 1"]
    assert "transcript" not in body["videos"][0]
    assert body["pagination"] == {"current_page": 1, "total_pages": 2, "total_videos": 3, "has_more": True}

    r = client.get("/videos", params={"page": 2, "limit": 2}, headers=auth_headers)
    body = r.json()
    assert [v["title"] for v in body["videos"]] == ["Lesson 0"]
    assert body["pagination"]["has_more"] is False


def test_delete_removes_quiz_attempts_and_history(client, auth_headers, processed, db):
    record_id = processed["video"]["id"]
    quiz_id = processed["quiz"]["id"]
    client.post(
        f"/quizzes/{quiz_id}/submit",
        json={"answers": [{"question_index": 0, "selected_answer": 0}]},
        headers=auth_headers,
    )

    r = client.delete(f"/videos/{record_id}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["ok"] is True

    assert db.query(LearningRecord).filter(LearningRecord.id == record_id).count() == 0
    assert db.query(Quiz).filter(Quiz.id == quiz_id).count() == 0
    assert db.query(QuizAttempt).filter(QuizAttempt.quiz_id == quiz_id).count() == 0
    assert db.query(LearningHistoryEntry).filter(LearningHistoryEntry.learning_record_id == record_id).count() == 0

    assert client.get(f"/videos/{record_id}", headers=auth_headers).status_code == 404
    assert client.delete(f"/videos/{record_id}", headers=auth_headers).status_code == 404


def test_records_are_private(client, auth_headers, other_headers, processed):
    record_id = processed["video"]["id"]
    assert client.get(f"/videos/{record_id}", headers=other_headers).status_code == 404
    assert client.delete(f"/videos/{record_id}", headers=other_headers).status_code == 404
    assert client.get("/videos", headers=other_headers).json()["pagination"]["total_videos"] == 0
