from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from app.services.errors import ConfigurationMissing
from app.services.llm.base import LLMContentGenerator


@dataclass
class OllamaChatResult:
    text: str
    done_reason: Optional[str] = None


class OllamaClient:
    """
    Small client for a local Ollama server's /api/generate endpoint.

    Each call opens its own connection; generation is slow enough that
    pooling buys nothing. ``transport`` lets tests swap in httpx.MockTransport.
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 120.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.transport = transport

    def _payload(
        self,
        model: str,
        prompt: str,
        system: Optional[str],
        temperature: float,
        max_tokens: Optional[int],
        json_mode: bool,
    ) -> Dict[str, Any]:
        options: Dict[str, Any] = {"temperature": temperature}
        if max_tokens:
            options["num_predict"] = max_tokens

        payload: Dict[str, Any] = {"model": model, "prompt": prompt, "stream": False, "options": options}
        if system:
            payload["system"] = system
        if json_mode:
            payload["format"] = "json"
        return payload

    def generate(
        self,
        model: str,
        prompt: str,
        system: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> OllamaChatResult:
        payload = self._payload(model, prompt, system, temperature, max_tokens, json_mode)

        with httpx.Client(timeout=self.timeout_s, transport=self.transport) as client:
            r = client.post(f"{self.base_url}/api/generate", json=payload)
            r.raise_for_status()
            data = r.json()

        return OllamaChatResult(text=(data.get("response") or "").strip(), done_reason=data.get("done_reason"))


class OllamaContentGenerator(LLMContentGenerator):
    name = "ollama"

    def __init__(self, client: OllamaClient, model: str, *, transcript_max_chars: int = 12000) -> None:
        super().__init__(transcript_max_chars=transcript_max_chars)
        self.ollama = client
        self.model = model

    def ensure_configured(self) -> None:
        if not self.ollama.base_url or not self.model:
            raise ConfigurationMissing("Ollama is not configured. Set OLLAMA_BASE_URL and OLLAMA_MODEL.")

    def _complete(self, system: str, prompt: str, *, temperature: float, max_tokens: int, json_mode: bool = False) -> str:
        result = self.ollama.generate(
            self.model,
            prompt,
            system=system,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=json_mode,
        )
        return result.text
