from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.db.session import get_db
from app.models.user import User
from app.services.users import login, profile, register, user_payload

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_]+$")
    email: EmailStr
    password: str = Field(min_length=6)

    @field_validator("password")
    @classmethod
    def password_rules(cls, v: str) -> str:
        if not any(ch.isdigit() for ch in v):
            raise ValueError("Password must contain at least one number")
        # bcrypt only looks at the first 72 bytes
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class AuthResponse(BaseModel):
    ok: bool
    message: str
    user: dict
    token: str


@router.post("/register", response_model=AuthResponse, status_code=201)
def register_user(req: RegisterRequest, db: Session = Depends(get_db)) -> AuthResponse:
    user, token = register(db, username=req.username, email=req.email, password=req.password)
    return AuthResponse(ok=True, message="User registered successfully", user=user_payload(user), token=token)


@router.post("/login", response_model=AuthResponse)
def login_user(req: LoginRequest, db: Session = Depends(get_db)) -> AuthResponse:
    user, token = login(db, email=req.email, password=req.password)
    return AuthResponse(ok=True, message="Login successful", user=user_payload(user), token=token)


@router.get("/profile")
def get_profile(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"ok": True, "user": profile(db, user)}
