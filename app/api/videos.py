from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from app.api.deps import get_content_generator, get_current_user, get_transcript_fetcher
from app.db.session import get_db
from app.models.learning_record import LearningRecord
from app.models.quiz import Quiz
from app.models.user import User
from app.services.content import ContentGenerator
from app.services.learning_records import (
    delete_record,
    key_points_of,
    list_history,
    process_manual_transcript,
    process_video,
    record_detail,
)
from app.services.transcript import TranscriptFetcher
from app.services.youtube import is_youtube_url

router = APIRouter(prefix="/videos", tags=["videos"])


class ProcessVideoRequest(BaseModel):
    video_url: str

    @field_validator("video_url")
    @classmethod
    def youtube_url(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Video URL is required")
        if not is_youtube_url(v):
            raise ValueError("Please provide a valid YouTube URL")
        return v


class ProcessTextRequest(BaseModel):
    title: str = Field(min_length=1, max_length=512)
    transcript: str = Field(min_length=1)
    video_url: str | None = None


def _process_response(record: LearningRecord, quiz: Quiz, message: str) -> dict:
    return {
        "ok": True,
        "message": message,
        "video": {
            "id": record.id,
            "video_id": record.external_id,
            "video_url": record.source_url,
            "title": record.title,
            "summary": record.summary,
            "key_points": key_points_of(record),
            "processing_time_ms": record.processing_time_ms,
        },
        "quiz": {
            "id": quiz.id,
            "question_count": quiz.total_questions,
        },
    }


@router.post("/process", status_code=201)
def process_youtube_video(
    req: ProcessVideoRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    fetcher: TranscriptFetcher = Depends(get_transcript_fetcher),
    generator: ContentGenerator = Depends(get_content_generator),
):
    record, quiz = process_video(db, user, req.video_url, fetcher=fetcher, generator=generator)
    return _process_response(record, quiz, "Video processed successfully")


@router.post("/process-text", status_code=201)
def process_text(
    req: ProcessTextRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    generator: ContentGenerator = Depends(get_content_generator),
):
    record, quiz = process_manual_transcript(
        db,
        user,
        title=req.title,
        transcript=req.transcript,
        video_url=req.video_url,
        generator=generator,
    )
    return _process_response(record, quiz, "Content processed successfully")


@router.get("")
def learning_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"ok": True, **list_history(db, user.id, page=page, limit=limit)}


@router.get("/{record_id}")
def get_video(record_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"ok": True, "video": record_detail(db, record_id, user.id)}


@router.delete("/{record_id}")
def remove_video(record_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    delete_record(db, record_id, user.id)
    return {"ok": True, "message": "Video deleted successfully"}
