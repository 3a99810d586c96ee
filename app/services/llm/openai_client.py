from __future__ import annotations

from openai import OpenAI

from app.services.errors import ConfigurationMissing
from app.services.llm.base import LLMContentGenerator

OPENAI_KEY_MISSING_MESSAGE = (
    "OpenAI API Key Required\n\n"
    "The app needs an OpenAI API key to generate summaries and quizzes.\n\n"
    "Setup:\n"
    "1. Get an API key from: https://platform.openai.com/api-keys\n"
    "2. Add to .env: OPENAI_API_KEY=sk-...\n"
    "3. Restart the server\n\n"
    "To try the app without a key, set CONTENT_PROVIDER=mock."
)

_PLACEHOLDER_MARKERS = ("placeholder", "your-actual")


def _is_usable_key(api_key: str | None) -> bool:
    key = (api_key or "").strip()
    return bool(key) and not any(marker in key for marker in _PLACEHOLDER_MARKERS)


class OpenAIContentGenerator(LLMContentGenerator):
    name = "openai"

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "gpt-4o-mini",
        timeout_sec: float = 180.0,
        max_retries: int = 0,
        transcript_max_chars: int = 12000,
    ) -> None:
        super().__init__(transcript_max_chars=transcript_max_chars)
        self.api_key = api_key
        self.model = model
        self.timeout_sec = timeout_sec
        self.max_retries = max_retries
        self._client: OpenAI | None = None

    def ensure_configured(self) -> None:
        if not _is_usable_key(self.api_key):
            raise ConfigurationMissing(OPENAI_KEY_MISSING_MESSAGE)

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self.ensure_configured()
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout_sec, max_retries=self.max_retries)
        return self._client

    def _complete(self, system: str, prompt: str, *, temperature: float, max_tokens: int, json_mode: bool = False) -> str:
        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        chat = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )
        return (chat.choices[0].message.content or "").strip()
