from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.security import create_access_token, hash_password, verify_password
from app.models.learning_record import LearningRecord
from app.models.quiz import Quiz, QuizAttempt
from app.models.user import LearningHistoryEntry, User
from app.services.errors import AuthenticationFailed, Conflict
from app.services.learning_records import record_summary
from app.services.quizzes import score_percentage

logger = logging.getLogger(__name__)

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def user_payload(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "created_at": _iso(user.created_at),
        "last_login_at": _iso(user.last_login_at),
    }


def register(db: Session, *, username: str, email: str, password: str) -> tuple[User, str]:
    email = email.strip().lower()
    username = username.strip()

    existing = db.query(User).filter(or_(User.email == email, User.username == username)).first()
    if existing:
        raise Conflict("Email already registered" if existing.email == email else "Username already taken")

    user = User(email=email, username=username, password_hash=hash_password(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user, create_access_token(user.id)


def login(db: Session, *, email: str, password: str) -> tuple[User, str]:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationFailed("Invalid email or password")

    user.last_login_at = _now()
    db.commit()
    db.refresh(user)
    return user, create_access_token(user.id)


def profile(db: Session, user: User) -> dict[str, Any]:
    records = (
        db.query(LearningRecord)
        .join(LearningHistoryEntry, LearningHistoryEntry.learning_record_id == LearningRecord.id)
        .filter(LearningHistoryEntry.user_id == user.id)
        .order_by(LearningRecord.created_at.desc(), LearningRecord.id.desc())
        .limit(10)
        .all()
    )
    out = user_payload(user)
    out["learning_history"] = [record_summary(r) for r in records]
    return out


def update_profile(db: Session, user: User, *, username: str | None) -> User:
    if username:
        username = username.strip()
        taken = db.query(User).filter(User.username == username, User.id != user.id).first()
        if taken:
            raise Conflict("Username already taken")
        user.username = username
        db.commit()
        db.refresh(user)
    return user


def _completed_records(db: Session, user_id: int):
    return db.query(LearningRecord).filter(LearningRecord.user_id == user_id, LearningRecord.status == "completed")


def dashboard_stats(db: Session, user: User) -> dict[str, Any]:
    total_videos = _completed_records(db, user.id).count()
    total_quizzes = db.query(Quiz).filter(Quiz.user_id == user.id).count()
    recent = (
        _completed_records(db, user.id)
        .order_by(LearningRecord.created_at.desc(), LearningRecord.id.desc())
        .limit(5)
        .all()
    )

    scores = [
        s
        for (s,) in db.query(QuizAttempt.score)
        .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
        .filter(Quiz.user_id == user.id)
        .all()
    ]
    total_attempts = len(scores)

    return {
        "statistics": {
            "total_videos_processed": total_videos,
            "total_quizzes": total_quizzes,
            "total_quiz_attempts": total_attempts,
            # mean of percentages, halves rounded up
            "average_quiz_score": score_percentage(sum(scores), 100 * total_attempts) if total_attempts else 0,
            "highest_quiz_score": max(scores) if scores else 0,
        },
        "recent_videos": [record_summary(r) for r in recent],
    }


def learning_progress(db: Session, user: User, *, period: str = "7d") -> dict[str, Any]:
    if period not in PERIOD_DAYS:
        logger.info("Unknown progress period %r, using 7d", period)
        period = "7d"

    since = _now() - timedelta(days=PERIOD_DAYS[period])

    records = (
        _completed_records(db, user.id)
        .filter(LearningRecord.created_at >= since)
        .order_by(LearningRecord.created_at.asc())
        .all()
    )
    attempts = (
        db.query(QuizAttempt)
        .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
        .filter(Quiz.user_id == user.id, QuizAttempt.attempted_at >= since)
        .order_by(QuizAttempt.attempted_at.asc())
        .all()
    )

    per_day: dict[str, int] = defaultdict(int)
    for r in records:
        per_day[r.created_at.date().isoformat()] += 1

    return {
        "period": period,
        "videos_progress": [{"date": d, "videos_processed": n} for d, n in per_day.items()],
        "quiz_performance": [
            {"date": a.attempted_at.date().isoformat(), "score": a.score} for a in attempts
        ],
        "summary": {"total_videos": len(records), "total_quiz_attempts": len(attempts)},
    }
