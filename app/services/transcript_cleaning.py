from __future__ import annotations

import re

from app.services.errors import TranscriptTooLong, TranscriptTooShort

# Length bounds for the cleaned transcript
MIN_VIDEO_TRANSCRIPT_CHARS = 100
MIN_MANUAL_TRANSCRIPT_CHARS = 50
MAX_TRANSCRIPT_CHARS = 500_000

_FILLER_WORDS = ("um", "uh", "like", "you know", "basically", "actually", "literally")

_WS_RE = re.compile(r"\s+")
_FILLER_RE = re.compile(r"\b(?:" + "|".join(re.escape(w) for w in _FILLER_WORDS) + r")\b", re.IGNORECASE)
_DISALLOWED_CHARS_RE = re.compile(r"[^\w\s.,!?'-]")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([.,!?])")
_PUNCT_THEN_WORD_RE = re.compile(r"([.,!?])(\w)")
_REPEATED_WORD_RE = re.compile(r"\b(\w+)(?:\s+\1){2,}\b", re.IGNORECASE)

_MAX_PASSES = 8


def _clean_once(text: str) -> str:
    s = _WS_RE.sub(" ", text)
    s = _FILLER_RE.sub("", s)
    s = _DISALLOWED_CHARS_RE.sub("", s)
    s = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", s)
    s = _PUNCT_THEN_WORD_RE.sub(r"\1 \2", s)
    s = _REPEATED_WORD_RE.sub(r"\1", s)
    return _WS_RE.sub(" ", s.strip())


def clean_transcript(raw: str) -> str:
    """
    Normalize raw caption text:
    - collapse whitespace
    - drop filler words (um, uh, like, you know, ...)
    - keep only word chars, whitespace and . , ! ? ' -
    - no space before . , ! ? and one space after when a word follows
    - collapse a word repeated 3+ times in a row
    - trim

    Passes are repeated until the text stops changing, because dropping a
    character can expose a new filler word or repeat. This keeps
    clean_transcript(clean_transcript(x)) == clean_transcript(x).
    """
    text = raw or ""
    for _ in range(_MAX_PASSES):
        cleaned = _clean_once(text)
        if cleaned == text:
            break
        text = cleaned
    return text


def validate_transcript(
    cleaned: str,
    *,
    min_chars: int = MIN_VIDEO_TRANSCRIPT_CHARS,
    max_chars: int = MAX_TRANSCRIPT_CHARS,
) -> str:
    n = len(cleaned or "")
    if n < min_chars:
        raise TranscriptTooShort(f"Transcript is too short. Please provide at least {min_chars} characters.")
    if n > max_chars:
        raise TranscriptTooLong(f"Transcript is too long (max {max_chars:,} characters)")
    return cleaned
