from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.learning_record import LearningRecord
from app.models.quiz import Quiz, QuizAttempt
from app.services.errors import NotFound, ValidationFailed


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def score_percentage(correct: int, total: int) -> int:
    """round(100 * correct / total), halves rounded up, in integer arithmetic."""
    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)


def load_questions(quiz: Quiz) -> list[dict[str, Any]]:
    return json.loads(quiz.questions_json or "[]")


def create_quiz(db: Session, record: LearningRecord, questions: list[dict[str, Any]]) -> Quiz:
    """Stage a quiz for ``record`` in the caller's transaction (flushed, not committed)."""
    quiz = Quiz(
        learning_record=record,
        user_id=record.user_id,
        questions_json=json.dumps(questions, ensure_ascii=False),
        total_questions=len(questions),
    )
    db.add(quiz)
    db.flush()
    return quiz


def public_questions(quiz: Quiz) -> list[dict[str, Any]]:
    """Questions as shown before submission: no correct answers, no explanations."""
    return [
        {
            "question_index": i,
            "question": q["question"],
            "options": q["options"],
            "difficulty": q.get("difficulty") or "medium",
        }
        for i, q in enumerate(load_questions(quiz))
    ]


def _get_owned_quiz(db: Session, quiz_id: int, owner_id: int) -> Quiz:
    quiz = db.query(Quiz).filter(Quiz.id == quiz_id, Quiz.user_id == owner_id).first()
    if not quiz:
        raise NotFound("Quiz not found")
    return quiz


def _attempt_count(db: Session, quiz_id: int) -> int:
    return int(db.query(func.count(QuizAttempt.id)).filter(QuizAttempt.quiz_id == quiz_id).scalar() or 0)


def get_quiz_for_record(db: Session, record_id: int, owner_id: int) -> dict[str, Any]:
    record = (
        db.query(LearningRecord)
        .filter(LearningRecord.id == record_id, LearningRecord.user_id == owner_id)
        .first()
    )
    if not record:
        raise NotFound("Video not found")

    quiz = db.query(Quiz).filter(Quiz.learning_record_id == record.id, Quiz.user_id == owner_id).first()
    if not quiz:
        raise NotFound("Quiz not found")

    return {
        "id": quiz.id,
        "video_id": record.id,
        "total_questions": quiz.total_questions,
        "questions": public_questions(quiz),
        "attempts": _attempt_count(db, quiz.id),
    }


def _validate_answers(answers: list[dict[str, Any]], total: int) -> None:
    if not answers:
        raise ValidationFailed("Answers must be a non-empty array")

    seen: set[int] = set()
    for a in answers:
        idx = a.get("question_index")
        selected = a.get("selected_answer")
        if not isinstance(idx, int) or not 0 <= idx < total:
            raise ValidationFailed(f"question_index out of range (0..{total - 1})")
        if idx in seen:
            raise ValidationFailed(f"Duplicate answer for question_index {idx}")
        if not isinstance(selected, int) or not 0 <= selected <= 3:
            raise ValidationFailed("Selected answer must be between 0 and 3")
        seen.add(idx)


def submit_attempt(
    db: Session,
    quiz_id: int,
    owner_id: int,
    answers: list[dict[str, Any]],
    time_taken: int = 0,
) -> dict[str, Any]:
    """
    Score a submission against the stored questions and append it as a new attempt.

    Unanswered questions count as wrong: the score is always out of
    ``total_questions``. The answers (with explanations) are only revealed here.
    """
    quiz = _get_owned_quiz(db, quiz_id, owner_id)
    questions = load_questions(quiz)
    total = quiz.total_questions

    _validate_answers(answers, len(questions))

    correct_count = 0
    processed: list[dict[str, Any]] = []
    for a in answers:
        question = questions[a["question_index"]]
        is_correct = question["correct_answer"] == a["selected_answer"]
        if is_correct:
            correct_count += 1

        processed.append(
            {
                "question_index": a["question_index"],
                "selected_answer": a["selected_answer"],
                "is_correct": is_correct,
                "correct_answer": question["correct_answer"],
                "explanation": question.get("explanation") or "",
            }
        )

    score = score_percentage(correct_count, total)
    attempt_number = _attempt_count(db, quiz.id) + 1

    attempt = QuizAttempt(
        quiz_id=quiz.id,
        attempt_number=attempt_number,
        answers_json=json.dumps(processed, ensure_ascii=False),
        correct_count=correct_count,
        score=score,
        time_taken=max(0, int(time_taken or 0)),
        attempted_at=_now(),
    )
    db.add(attempt)
    db.commit()

    return {
        "score": score,
        "correct_answers": correct_count,
        "total_questions": total,
        "percentage": score,
        "answers": processed,
        "attempt_number": attempt_number,
    }


def _attempts_in_order(db: Session, quiz_id: int) -> list[QuizAttempt]:
    return (
        db.query(QuizAttempt)
        .filter(QuizAttempt.quiz_id == quiz_id)
        .order_by(QuizAttempt.attempt_number.asc())
        .all()
    )


def attempt_history(db: Session, quiz_id: int, owner_id: int) -> dict[str, Any]:
    quiz = _get_owned_quiz(db, quiz_id, owner_id)
    attempts = _attempts_in_order(db, quiz.id)

    history = [
        {
            "attempt_number": a.attempt_number,
            "score": a.score,
            "attempted_at": _iso(a.attempted_at),
            "time_taken": a.time_taken,
            "correct_answers": a.correct_count,
            "total_questions": quiz.total_questions,
        }
        for a in attempts
    ]
    history.reverse()  # most recent first

    return {"quiz_id": quiz.id, "total_attempts": len(attempts), "history": history}


def attempt_detail(db: Session, quiz_id: int, owner_id: int, attempt_number: int) -> dict[str, Any]:
    quiz = _get_owned_quiz(db, quiz_id, owner_id)

    attempt = (
        db.query(QuizAttempt)
        .filter(QuizAttempt.quiz_id == quiz.id, QuizAttempt.attempt_number == attempt_number)
        .first()
    )
    if attempt_number < 1 or not attempt:
        raise NotFound("Attempt not found")

    return {
        "attempt_number": attempt.attempt_number,
        "score": attempt.score,
        "attempted_at": _iso(attempt.attempted_at),
        "time_taken": attempt.time_taken,
        "correct_answers": attempt.correct_count,
        "answers": json.loads(attempt.answers_json or "[]"),
        "total_questions": quiz.total_questions,
    }
