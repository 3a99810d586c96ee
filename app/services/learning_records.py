from __future__ import annotations

import json
import logging
import math
import time
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.learning_record import LearningRecord
from app.models.quiz import Quiz, QuizAttempt
from app.models.user import LearningHistoryEntry, User
from app.services.content import ContentGenerator, generate_content
from app.services.errors import NotFound, TranscriptError
from app.services.quizzes import create_quiz
from app.services.transcript import TranscriptFetcher
from app.services.transcript_cleaning import (
    MAX_TRANSCRIPT_CHARS,
    MIN_MANUAL_TRANSCRIPT_CHARS,
    MIN_VIDEO_TRANSCRIPT_CHARS,
    clean_transcript,
    validate_transcript,
)

logger = logging.getLogger(__name__)

MANUAL_SOURCE_URL = "manual-input"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def key_points_of(record: LearningRecord) -> list[dict[str, str]]:
    try:
        return json.loads(record.key_points_json or "[]")
    except ValueError:
        return []


def _persist_completed(
    db: Session,
    user: User,
    *,
    source_type: str,
    source_url: str,
    external_id: str,
    title: str | None,
    raw: str,
    cleaned: str,
    generator: ContentGenerator,
    started: float,
) -> tuple[LearningRecord, Quiz]:
    content = generate_content(generator, cleaned)

    # record, quiz and history entry are committed together
    record = LearningRecord(
        user_id=user.id,
        source_type=source_type,
        source_url=source_url,
        external_id=external_id,
        title=title,
        language="en",
        transcript_raw=raw,
        transcript_cleaned=cleaned,
        transcript_length=len(cleaned),
        summary=content.summary,
        key_points_json=json.dumps(content.key_points, ensure_ascii=False),
        generated_at=content.generated_at,
        processing_time_ms=int((time.perf_counter() - started) * 1000),
        status="completed",
    )
    db.add(record)
    db.flush()

    quiz = create_quiz(db, record, content.questions)
    db.add(LearningHistoryEntry(user_id=user.id, learning_record_id=record.id))

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Learning record %s completed for user %s (%s, %d chars, %d ms)",
        record.id,
        user.id,
        source_type,
        len(cleaned),
        record.processing_time_ms,
    )
    return record, quiz


def _persist_failed(db: Session, user_id: int, source_url: str, external_id: str, error: Exception) -> None:
    """Best-effort audit row for a failed transcript fetch. Never raises."""
    try:
        db.add(
            LearningRecord(
                user_id=user_id,
                source_type="youtube_video",
                source_url=source_url,
                external_id=external_id,
                transcript_raw="",
                transcript_cleaned="",
                summary="",
                key_points_json="[]",
                status="failed",
                error=str(error),
                error_at=_now(),
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to create error record for %s", source_url)


def process_video(
    db: Session,
    user: User,
    video_url: str,
    *,
    fetcher: TranscriptFetcher,
    generator: ContentGenerator,
) -> tuple[LearningRecord, Quiz]:
    started = time.perf_counter()
    generator.ensure_configured()

    external_id = "unknown"
    try:
        fetched = fetcher.fetch(video_url)
        external_id = fetched.external_id
        cleaned = clean_transcript(fetched.raw_text)
        validate_transcript(cleaned, min_chars=MIN_VIDEO_TRANSCRIPT_CHARS, max_chars=MAX_TRANSCRIPT_CHARS)
    except TranscriptError as e:
        logger.warning("Transcript stage failed for %s: %s", video_url, e.code)
        _persist_failed(db, user.id, video_url, getattr(e, "video_id", None) or external_id, e)
        raise

    return _persist_completed(
        db,
        user,
        source_type="youtube_video",
        source_url=video_url,
        external_id=fetched.external_id,
        title=fetched.title,
        raw=fetched.raw_text,
        cleaned=cleaned,
        generator=generator,
        started=started,
    )


def process_manual_transcript(
    db: Session,
    user: User,
    *,
    title: str,
    transcript: str,
    video_url: str | None,
    generator: ContentGenerator,
) -> tuple[LearningRecord, Quiz]:
    started = time.perf_counter()
    generator.ensure_configured()

    raw = (transcript or "").strip()
    cleaned = clean_transcript(raw)
    validate_transcript(cleaned, min_chars=MIN_MANUAL_TRANSCRIPT_CHARS, max_chars=MAX_TRANSCRIPT_CHARS)

    logger.info("Processing manual transcript for user %s (%d chars)", user.id, len(cleaned))
    return _persist_completed(
        db,
        user,
        source_type="manual",
        source_url=(video_url or "").strip() or MANUAL_SOURCE_URL,
        external_id=f"manual-{int(time.time() * 1000)}",
        title=title.strip(),
        raw=raw,
        cleaned=cleaned,
        generator=generator,
        started=started,
    )


def get_record(db: Session, record_id: int, owner_id: int) -> LearningRecord:
    record = (
        db.query(LearningRecord)
        .filter(LearningRecord.id == record_id, LearningRecord.user_id == owner_id)
        .first()
    )
    if not record:
        raise NotFound("Video not found")
    return record


def record_summary(record: LearningRecord, quiz: Quiz | None = None, attempt_count: int = 0) -> dict[str, Any]:
    """Record fields without transcripts, as used in listings."""
    return {
        "id": record.id,
        "video_id": record.external_id,
        "video_url": record.source_url,
        "source_type": record.source_type,
        "title": record.title,
        "summary": record.summary,
        "key_points": key_points_of(record),
        "status": record.status,
        "processing_time_ms": record.processing_time_ms,
        "transcript_length": record.transcript_length,
        "quiz": (
            {"id": quiz.id, "total_questions": quiz.total_questions, "attempts": attempt_count}
            if quiz is not None
            else None
        ),
        "created_at": _iso(record.created_at),
    }


def _attempt_counts(db: Session, quiz_ids: list[int]) -> dict[int, int]:
    if not quiz_ids:
        return {}
    rows = (
        db.query(QuizAttempt.quiz_id, func.count(QuizAttempt.id))
        .filter(QuizAttempt.quiz_id.in_(quiz_ids))
        .group_by(QuizAttempt.quiz_id)
        .all()
    )
    return {quiz_id: int(n) for quiz_id, n in rows}


def record_detail(db: Session, record_id: int, owner_id: int) -> dict[str, Any]:
    record = get_record(db, record_id, owner_id)
    quiz = db.query(Quiz).filter(Quiz.learning_record_id == record.id, Quiz.user_id == owner_id).first()
    counts = _attempt_counts(db, [quiz.id] if quiz else [])

    out = record_summary(record, quiz, counts.get(quiz.id, 0) if quiz else 0)
    out["error"] = record.error
    out["transcript"] = record.transcript_cleaned
    return out


def list_history(db: Session, owner_id: int, *, page: int = 1, limit: int = 10) -> dict[str, Any]:
    query = db.query(LearningRecord).filter(
        LearningRecord.user_id == owner_id,
        LearningRecord.status == "completed",
    )
    total = query.count()

    records = (
        query.order_by(LearningRecord.created_at.desc(), LearningRecord.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    quizzes = {q.learning_record_id: q for q in (r.quiz for r in records) if q is not None}
    counts = _attempt_counts(db, [q.id for q in quizzes.values()])

    videos = []
    for r in records:
        q = quizzes.get(r.id)
        videos.append(record_summary(r, q, counts.get(q.id, 0) if q else 0))

    return {
        "videos": videos,
        "pagination": {
            "current_page": page,
            "total_pages": math.ceil(total / limit) if limit else 0,
            "total_videos": total,
            "has_more": page * limit < total,
        },
    }


def delete_record(db: Session, record_id: int, owner_id: int) -> None:
    """Delete a record with its quiz, the quiz's attempts and the owner's history entry."""
    record = get_record(db, record_id, owner_id)

    db.query(LearningHistoryEntry).filter(
        LearningHistoryEntry.user_id == owner_id,
        LearningHistoryEntry.learning_record_id == record.id,
    ).delete(synchronize_session=False)

    db.delete(record)  # quiz and its attempts cascade
    db.commit()
    logger.info("Deleted learning record %s for user %s", record_id, owner_id)
