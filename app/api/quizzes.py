from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.db.session import get_db
from app.models.user import User
from app.services.quizzes import attempt_detail, attempt_history, get_quiz_for_record, submit_attempt

router = APIRouter(prefix="/quizzes", tags=["quizzes"])


class AnswerIn(BaseModel):
    question_index: int = Field(ge=0)
    selected_answer: int = Field(ge=0, le=3)


class SubmitQuizRequest(BaseModel):
    answers: list[AnswerIn] = Field(min_length=1)
    time_taken: int = Field(default=0, ge=0)  # seconds


@router.get("/video/{record_id}")
def get_quiz(record_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"ok": True, "quiz": get_quiz_for_record(db, record_id, user.id)}


@router.post("/{quiz_id}/submit")
def submit_quiz(
    quiz_id: int,
    req: SubmitQuizRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = submit_attempt(
        db,
        quiz_id,
        user.id,
        [a.model_dump() for a in req.answers],
        req.time_taken,
    )
    return {"ok": True, "message": "Quiz submitted successfully", **result}


@router.get("/{quiz_id}/attempts")
def get_attempt_history(quiz_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"ok": True, **attempt_history(db, quiz_id, user.id)}


@router.get("/{quiz_id}/attempts/{attempt_number}")
def get_attempt_detail(
    quiz_id: int,
    attempt_number: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"ok": True, **attempt_detail(db, quiz_id, user.id, attempt_number)}
