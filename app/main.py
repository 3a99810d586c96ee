import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.auth import router as auth_router
from app.api.quizzes import router as quizzes_router
from app.api.users import router as users_router
from app.api.videos import router as videos_router
from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import get_db
from app.services.content import build_content_generator
from app.services.errors import AppError, TranscriptUnavailable
from app.services.transcript import build_transcript_fetcher

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    app.state.transcript_fetcher.close()


app = FastAPI(title="Smart Learning API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.content_generator = build_content_generator(settings)
app.state.transcript_fetcher = build_transcript_fetcher()

app.include_router(auth_router)
app.include_router(videos_router)
app.include_router(quizzes_router)
app.include_router(users_router)


def _error_body(code: str, message: str, **extra) -> dict:
    return {"ok": False, "error": code, "message": message, **extra}


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    extra = {}
    if isinstance(exc, TranscriptUnavailable):
        extra = {"reason": exc.reason, "video_id": exc.video_id}

    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.code, exc.message)

    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.code, exc.message, **extra))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_error_body("validation_failed", "Validation failed", errors=errors),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = "not_found" if exc.status_code == 404 else "http_error"
    return JSONResponse(status_code=exc.status_code, content=_error_body(code, str(exc.detail)))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=_error_body("internal_error", "Something went wrong"))


class HealthResponse(BaseModel):
    ok: bool
    service: str
    version: str
    db_ok: bool
    content_provider: str


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    db_ok = False
    db: Session | None = None
    try:
        db = next(get_db())
        db.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        logger.warning("Health check could not reach the database", exc_info=True)
    finally:
        if db is not None:
            db.close()

    return HealthResponse(
        ok=True,
        service="api",
        version=app.version,
        db_ok=db_ok,
        content_provider=app.state.content_generator.name,
    )
