from __future__ import annotations

import logging
from typing import Any

from app.services.errors import ContentGenerationFailed, QuizGenerationFailed
from app.services.llm.prompts import (
    KEY_POINTS_SYSTEM,
    KEY_POINTS_USER_TEMPLATE,
    QUIZ_SYSTEM,
    QUIZ_USER_TEMPLATE,
    SUMMARY_SYSTEM,
    SUMMARY_USER_TEMPLATE,
)
from app.services.llm.text import compress_transcript, extract_json, extract_json_array, parse_bullets

logger = logging.getLogger(__name__)


class LLMContentGenerator:
    """
    Shared prompt/parse logic for live providers.

    Subclasses implement ``_complete`` (one request/response text completion)
    and ``ensure_configured``. Provider errors are logged here and re-raised
    as ContentGenerationFailed without echoing the provider's error text.
    """

    name = "llm"

    def __init__(self, transcript_max_chars: int = 12000) -> None:
        self.transcript_max_chars = transcript_max_chars

    def ensure_configured(self) -> None:
        raise NotImplementedError

    def _complete(self, system: str, prompt: str, *, temperature: float, max_tokens: int, json_mode: bool = False) -> str:
        raise NotImplementedError

    def _prompt_transcript(self, text: str) -> str:
        return compress_transcript(text, max_chars=self.transcript_max_chars)

    def generate_summary(self, text: str) -> str:
        prompt = SUMMARY_USER_TEMPLATE.format(transcript=self._prompt_transcript(text))
        try:
            summary = self._complete(SUMMARY_SYSTEM, prompt, temperature=0.3, max_tokens=1000).strip()
        except Exception as e:
            logger.exception("Summary generation failed (%s)", self.name)
            raise ContentGenerationFailed("Failed to generate summary") from e

        if not summary:
            raise ContentGenerationFailed("Failed to generate summary")
        return summary

    def generate_key_points(self, text: str) -> list[Any]:
        prompt = KEY_POINTS_USER_TEMPLATE.format(transcript=self._prompt_transcript(text))
        try:
            content = self._complete(KEY_POINTS_SYSTEM, prompt, temperature=0.3, max_tokens=800)
        except Exception as e:
            logger.exception("Key points generation failed (%s)", self.name)
            raise ContentGenerationFailed("Failed to generate key points") from e

        items = extract_json_array(content)
        if items is None:
            logger.info("Key points response was not a JSON array; parsing bullets (%s)", self.name)
            items = parse_bullets(content)
        return items

    def generate_quiz(self, text: str) -> list[Any]:
        prompt = QUIZ_USER_TEMPLATE.format(transcript=self._prompt_transcript(text))
        try:
            content = self._complete(QUIZ_SYSTEM, prompt, temperature=0.4, max_tokens=2500, json_mode=True)
        except Exception as e:
            logger.exception("Quiz generation failed (%s)", self.name)
            raise ContentGenerationFailed("Failed to generate quiz") from e

        try:
            payload = extract_json(content)
        except ValueError as e:
            logger.warning("Quiz response was not valid JSON (%s): %s", self.name, e)
            raise QuizGenerationFailed("Failed to generate valid quiz structure") from e

        questions = payload.get("questions")
        if not isinstance(questions, list):
            raise QuizGenerationFailed("Failed to generate valid quiz structure")
        return questions
