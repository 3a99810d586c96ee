from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.db.base import Base

if TYPE_CHECKING:
    from app.models.quiz import Quiz


class LearningRecord(Base):
    __tablename__ = "learning_records"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # source
    source_type: Mapped[str] = mapped_column(String(32), nullable=False)  # youtube_video|manual
    source_url: Mapped[str] = mapped_column(Text, nullable=False)  # url or "manual-input"
    external_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)  # video id|manual-<ms>|unknown
    title: Mapped[str | None] = mapped_column(String(512), nullable=True)
    language: Mapped[str] = mapped_column(String(16), nullable=False, default="en")

    # transcript
    transcript_raw: Mapped[str] = mapped_column(Text, nullable=False, default="")
    transcript_cleaned: Mapped[str] = mapped_column(Text, nullable=False, default="")
    transcript_length: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # generated content
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    key_points_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # [{point,timestamp}]
    generated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    processing_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # status
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="processing")  # processing|completed|failed
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

    quiz: Mapped[Optional["Quiz"]] = relationship(
        back_populates="learning_record", uselist=False, cascade="all, delete-orphan"
    )