from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.security import decode_access_token
from app.db.session import get_db
from app.models.user import User
from app.services.content import ContentGenerator
from app.services.errors import AuthenticationFailed
from app.services.transcript import TranscriptFetcher

_bearer = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise AuthenticationFailed("Not authorized, no token")

    user_id = decode_access_token(credentials.credentials)
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise AuthenticationFailed("Not authorized, user not found")
    return user


# Chosen once at startup and stored on app.state; tests override these.
def get_content_generator(request: Request) -> ContentGenerator:
    return request.app.state.content_generator


def get_transcript_fetcher(request: Request) -> TranscriptFetcher:
    return request.app.state.transcript_fetcher
