from datetime import datetime
from typing import List

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.learning_record import LearningRecord


class Quiz(Base):
    __tablename__ = "quizzes"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    learning_record_id: Mapped[int] = mapped_column(
        ForeignKey("learning_records.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # [{question, options[4], correct_answer, explanation, difficulty}]
    questions_json: Mapped[str] = mapped_column(Text, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False, default=10)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

    learning_record: Mapped[LearningRecord] = relationship(back_populates="quiz")
    attempts: Mapped[List["QuizAttempt"]] = relationship(
        back_populates="quiz",
        order_by="QuizAttempt.attempt_number",
        cascade="all, delete-orphan",
    )


class QuizAttempt(Base):
    """One scored submission. Rows are appended, never updated."""

    __tablename__ = "quiz_attempts"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False)  # 1-based position within the quiz

    # [{question_index, selected_answer, is_correct, correct_answer, explanation}]
    answers_json = Column(Text, nullable=False, default="[]")
    correct_count = Column(Integer, nullable=False, default=0)
    score = Column(Integer, nullable=False, default=0)  # 0..100
    time_taken = Column(Integer, nullable=False, default=0)  # seconds

    attempted_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    quiz = relationship("Quiz", back_populates="attempts")

    __table_args__ = (
        UniqueConstraint("quiz_id", "attempt_number", name="uq_attempt_quiz_number"),
    )
