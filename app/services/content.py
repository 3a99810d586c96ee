from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from app.core.config import Settings
from app.services.errors import ConfigurationMissing, QuizGenerationFailed
from app.services.llm.mock_client import MockContentGenerator
from app.services.llm.ollama_client import OllamaClient, OllamaContentGenerator
from app.services.llm.openai_client import OpenAIContentGenerator

logger = logging.getLogger(__name__)

QUIZ_QUESTION_COUNT = 10
OPTIONS_PER_QUESTION = 4
DIFFICULTIES = ("easy", "medium", "hard")
MIN_KEY_POINTS = 5
MAX_KEY_POINTS = 8


class ContentGenerator(Protocol):
    name: str

    def ensure_configured(self) -> None:
        ...

    def generate_summary(self, text: str) -> str:
        ...

    def generate_key_points(self, text: str) -> list[Any]:
        ...

    def generate_quiz(self, text: str) -> list[Any]:
        ...


@dataclass(frozen=True)
class GeneratedContent:
    summary: str
    key_points: list[dict[str, str]]
    questions: list[dict[str, Any]]
    generated_at: datetime


def normalize_key_points(items: list[Any]) -> list[dict[str, str]]:
    """Accept strings or {point, timestamp} dicts; keep at most MAX_KEY_POINTS."""
    out: list[dict[str, str]] = []
    for it in items or []:
        if isinstance(it, str):
            point, timestamp = it, "general"
        elif isinstance(it, dict):
            point = it.get("point")
            timestamp = it.get("timestamp") or "general"
        else:
            continue

        if not isinstance(point, str) or not point.strip():
            continue
        out.append({"point": point.strip(), "timestamp": str(timestamp)})

    if len(out) < MIN_KEY_POINTS:
        logger.warning("Generator returned %d usable key points, expected at least %d", len(out), MIN_KEY_POINTS)
    return out[:MAX_KEY_POINTS]


def validate_quiz_questions(items: Any) -> list[dict[str, Any]]:
    """
    Check a generator's quiz output and return it in storage shape:
      [{"question", "options", "correct_answer", "explanation", "difficulty"}]

    Malformed output is rejected, never truncated or padded.
    """
    if not isinstance(items, list) or len(items) != QUIZ_QUESTION_COUNT:
        n = len(items) if isinstance(items, list) else 0
        raise QuizGenerationFailed(f"Quiz must contain exactly {QUIZ_QUESTION_COUNT} questions (got {n})")

    out: list[dict[str, Any]] = []
    for i, it in enumerate(items):
        if not isinstance(it, dict):
            raise QuizGenerationFailed(f"Question {i + 1} is not an object")

        question = it.get("question")
        if not isinstance(question, str) or not question.strip():
            raise QuizGenerationFailed(f"Question {i + 1} has no text")

        options = it.get("options")
        if (
            not isinstance(options, list)
            or len(options) != OPTIONS_PER_QUESTION
            or not all(isinstance(o, str) and o.strip() for o in options)
        ):
            raise QuizGenerationFailed(f"Question {i + 1} must have exactly {OPTIONS_PER_QUESTION} options")

        answer = it.get("correctAnswer", it.get("correct_answer"))
        # bool is an int subclass; reject it explicitly
        if isinstance(answer, bool) or not isinstance(answer, int) or not 0 <= answer < OPTIONS_PER_QUESTION:
            raise QuizGenerationFailed(f"Question {i + 1} has an invalid answer index")

        difficulty = it.get("difficulty") or "medium"
        if difficulty not in DIFFICULTIES:
            raise QuizGenerationFailed(f"Question {i + 1} has an invalid difficulty")

        explanation = it.get("explanation") or ""
        out.append(
            {
                "question": question.strip(),
                "options": [o.strip() for o in options],
                "correct_answer": answer,
                "explanation": str(explanation).strip(),
                "difficulty": difficulty,
            }
        )

    return out


def generate_content(generator: ContentGenerator, text: str) -> GeneratedContent:
    """
    Run summary, key points and quiz generation concurrently and join them.
    Any failure fails the whole call; nothing partial is returned.
    """
    with ThreadPoolExecutor(max_workers=3, thread_name_prefix="content") as pool:
        summary_f = pool.submit(generator.generate_summary, text)
        key_points_f = pool.submit(generator.generate_key_points, text)
        quiz_f = pool.submit(generator.generate_quiz, text)

        summary = summary_f.result()
        key_points = key_points_f.result()
        questions = quiz_f.result()

    return GeneratedContent(
        summary=summary,
        key_points=normalize_key_points(key_points),
        questions=validate_quiz_questions(questions),
        generated_at=datetime.now(timezone.utc),
    )


def build_content_generator(settings: Settings) -> ContentGenerator:
    provider = settings.resolved_content_provider

    if provider == "mock":
        generator: ContentGenerator = MockContentGenerator()
    elif provider == "openai":
        generator = OpenAIContentGenerator(
            settings.openai_api_key,
            model=settings.openai_model,
            timeout_sec=settings.openai_timeout_sec,
            max_retries=settings.openai_max_retries,
            transcript_max_chars=settings.transcript_max_chars,
        )
    elif provider == "ollama":
        generator = OllamaContentGenerator(
            OllamaClient(settings.ollama_base_url, timeout_s=settings.ollama_timeout_sec),
            settings.ollama_model,
            transcript_max_chars=settings.transcript_max_chars,
        )
    else:
        raise ConfigurationMissing(f"Unknown CONTENT_PROVIDER {provider!r}. Use one of: openai, ollama, mock.")

    logger.info("Using content provider: %s", generator.name)
    return generator
