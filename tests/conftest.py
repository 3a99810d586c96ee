import os
import tempfile
import uuid

# Settings are read at import time, so the environment must be in place first.
_DB_DIR = tempfile.mkdtemp(prefix="slc-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["ENV"] = "test"
os.environ["CONTENT_PROVIDER"] = "mock"
os.environ["USE_MOCK_AI"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["YOUTUBE_API_KEY"] = ""
os.environ["YOUTUBE_ENABLE_TRANSCRIPT_API_FALLBACK"] = "0"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import app.models  # noqa: F401,E402
from app.db.base import Base  # noqa: E402
from app.db.session import SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402

Base.metadata.create_all(bind=engine)

LECTURE = (
    "Photosynthesis is the process plants use to turn light into chemical energy. "
    "Chlorophyll absorbs light in the leaves, and photosynthesis then splits water molecules. "
    "The energy from light is stored as glucose, which plants use for growth. "
    "Carbon dioxide enters through small pores called stomata during photosynthesis. "
    "Oxygen is released as a byproduct, which is essential for most life on Earth. "
    "Understanding photosynthesis is important for agriculture and climate science."
)


@pytest.fixture()
def client():
    app.dependency_overrides.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def register_user(client: TestClient, username: str | None = None) -> dict:
    username = username or f"learner_{uuid.uuid4().hex[:10]}"
    r = client.post(
        "/auth/register",
        json={"username": username, "email": f"{username}@studyhub.io", "password": "secret123"},
    )
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture()
def auth_headers(client):
    body = register_user(client)
    return {"Authorization": f"Bearer {body['token']}"}


@pytest.fixture()
def other_headers(client):
    body = register_user(client)
    return {"Authorization": f"Bearer {body['token']}"}


@pytest.fixture()
def processed(client, auth_headers):
    """A completed manual record with its quiz, owned by ``auth_headers``."""
    r = client.post(
        "/videos/process-text",
        json={"title": "Photosynthesis basics", "transcript": LECTURE},
        headers=auth_headers,
    )
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture()
def lecture():
    return LECTURE


@pytest.fixture()
def register(client):
    return lambda username=None: register_user(client, username)
