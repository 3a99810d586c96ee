from __future__ import annotations

import json
import re
from typing import Any

# [Music], [Applause], [inaudible], short speaker tags
_BRACKETED_CUE_RE = re.compile(r"\[[^\]]{1,40}\]")
_SENTENCE_END_RE = re.compile(r"(?<=[.!?])\s+")
_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def _normalize(text: str) -> str:
    s = _BRACKETED_CUE_RE.sub(" ", text or "")
    return " ".join(s.split())


def sentence_units(text: str, *, min_words: int = 6, window: int = 28) -> list[str]:
    """
    Split text into sentences. Auto-generated captions often have almost no
    punctuation; then fixed windows of ``window`` words are used instead.
    Units shorter than ``min_words`` are dropped.
    """
    units = [u.strip() for u in _SENTENCE_END_RE.split(text) if u.strip()]
    if len(units) < 6:
        words = text.split()
        units = [" ".join(words[i : i + window]) for i in range(0, len(words), window)]
    return [u for u in units if len(u.split()) >= min_words]


def _sample(units: list[str], k: int) -> list[str]:
    if len(units) <= k:
        return units
    step = (len(units) - 1) / (k - 1)
    return [units[round(i * step)] for i in range(k)]


def compress_transcript(text: str, max_chars: int = 12000) -> str:
    """
    Keep prompts bounded. Short transcripts pass through; long ones are
    reduced to sentences sampled evenly from start to end, so the model
    still sees the whole arc of the video.
    """
    t = _normalize(text)
    if len(t) <= max_chars:
        return t

    units = sentence_units(t)
    if not units:
        return t[:max_chars]

    out = " ".join(_sample(units, 60 if len(units) > 200 else 45))
    if len(out) > max_chars:
        out = out[:max_chars].rsplit(" ", 1)[0]
    return out


def _first_json(text: str, opener: str) -> Any:
    decoder = json.JSONDecoder()
    start = text.find(opener)
    while start >= 0:
        try:
            data, _end = decoder.raw_decode(text, start)
            return data
        except ValueError:
            start = text.find(opener, start + 1)
    return None


def extract_json(text: str) -> dict[str, Any]:
    """Parse the first JSON object in a model reply, ignoring any prose around it."""
    s = (text or "").strip()
    if not s:
        raise ValueError("Empty response from model")

    data = _first_json(s, "{")
    if not isinstance(data, dict):
        raise ValueError(f"Model returned non-JSON. First 200 chars: {s[:200]!r}")
    return data


def extract_json_array(text: str) -> list[Any] | None:
    data = _first_json((text or "").strip(), "[")
    return data if isinstance(data, list) else None


def parse_bullets(content: str, limit: int = 8) -> list[str]:
    """Fallback for key points when the model ignores the JSON instruction."""
    points = [_BULLET_RE.sub("", line).strip() for line in (content or "").splitlines()]
    return [p for p in points if len(p) > 10][:limit]
