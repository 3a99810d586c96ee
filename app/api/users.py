from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.db.session import get_db
from app.models.user import User
from app.services.users import dashboard_stats, learning_progress, update_profile, user_payload

router = APIRouter(prefix="/users", tags=["users"])


class UpdateProfileRequest(BaseModel):
    username: str | None = Field(default=None, min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_]+$")


@router.get("/dashboard")
def dashboard(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"ok": True, **dashboard_stats(db, user)}


@router.get("/progress")
def progress(
    period: str = Query(default="7d"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"ok": True, **learning_progress(db, user, period=period)}


@router.patch("/profile")
def patch_profile(req: UpdateProfileRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    user = update_profile(db, user, username=req.username)
    return {"ok": True, "message": "Profile updated successfully", "user": user_payload(user)}
