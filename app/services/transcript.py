from __future__ import annotations

import html
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

import httpx
from youtube_transcript_api import YouTubeTranscriptApi
from youtube_transcript_api.proxies import GenericProxyConfig

from app.core.youtube_settings import YouTubeSettings, youtube_settings
from app.services.errors import TranscriptUnavailable
from app.services.youtube import build_video_url, extract_video_id

logger = logging.getLogger(__name__)

# A caption result must be longer than this to be accepted
MIN_CAPTION_CHARS = 100

VIDEOS_API_URL = "https://www.googleapis.com/youtube/v3/videos"
TIMEDTEXT_URL = "https://www.youtube.com/api/timedtext"

KEY_MISSING_MESSAGE = (
    "YouTube API Key Required\n\n"
    "YouTube blocks automated transcript access. Configure a YouTube Data API v3 key.\n\n"
    "Quick Setup:\n"
    "1. Get a free API key: https://console.cloud.google.com/\n"
    "2. Enable YouTube Data API v3\n"
    "3. Create Credentials -> API Key\n"
    "4. Add to .env: YOUTUBE_API_KEY=...\n"
    "5. Restart the server"
)

NO_CAPTIONS_MESSAGE = (
    "Unable to extract captions. Possible reasons:\n"
    "1. Video does not have captions/subtitles enabled\n"
    "2. Video is private or age-restricted\n"
    "3. Video is a live stream\n"
    "4. Your YouTube API quota is exhausted (resets daily)\n"
    "5. API key may be invalid or restricted"
)


@dataclass(frozen=True)
class CaptionResult:
    text: str
    method: str
    segments: list[str] = field(default_factory=list)
    title: str | None = None


@dataclass(frozen=True)
class FetchedTranscript:
    external_id: str
    raw_text: str
    method: str
    segments: list[str]
    title: str | None = None


class CaptionStrategy(Protocol):
    name: str

    def fetch(self, video_id: str) -> CaptionResult | None:
        ...


# -----------------------------
# Caption payload parsing
# -----------------------------
# <text start=".." dur="..">..</text> (legacy XML) or <p t=".." d="..">..</p> (srv3)
_CAPTION_BLOCK_RE = re.compile(r"<(text|p)\b[^>]*>(.*?)</\1>", re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_PLAYER_RESPONSE_RE = re.compile(r"ytInitialPlayerResponse\s*=\s*\{")


def _normalize_space(s: str) -> str:
    return " ".join((s or "").split()).strip()


def _caption_piece_to_text(piece: str) -> str:
    # YouTube double-escapes entities inside caption XML (&amp;#39;)
    s = html.unescape(piece)
    s = _TAG_RE.sub("", s)
    s = html.unescape(s)
    return _normalize_space(s)


def parse_caption_payload(payload: str) -> list[str]:
    """Strip markup from a caption track and return its non-empty text pieces in order."""
    pieces: list[str] = []
    for m in _CAPTION_BLOCK_RE.finditer(payload or ""):
        txt = _caption_piece_to_text(m.group(2))
        if txt:
            pieces.append(txt)
    return pieces


def extract_player_response(page: str) -> dict[str, Any] | None:
    """Locate and decode the ytInitialPlayerResponse JSON blob embedded in a watch page."""
    m = _PLAYER_RESPONSE_RE.search(page or "")
    if not m:
        return None

    data, _end = json.JSONDecoder().raw_decode(page, m.end() - 1)
    return data if isinstance(data, dict) else None


def select_english_track(tracks: list[dict[str, Any]]) -> dict[str, Any] | None:
    for track in tracks:
        code = str(track.get("languageCode") or "")
        if code == "en" or code.startswith("en-"):
            return track
    return None


# -----------------------------
# Strategies
# -----------------------------
class WatchPageCaptions:
    """Reads the caption track list from the public watch page (no key needed)."""

    name = "watch_page"

    def __init__(self, client: httpx.Client) -> None:
        self.client = client

    def fetch(self, video_id: str) -> CaptionResult | None:
        r = self.client.get(build_video_url(video_id))
        r.raise_for_status()

        player = extract_player_response(r.text)
        if not player:
            logger.info("No player response found in video page (video_id=%s)", video_id)
            return None

        renderer = (player.get("captions") or {}).get("playerCaptionsTracklistRenderer") or {}
        tracks = renderer.get("captionTracks") or []
        if not tracks:
            logger.info("No caption tracks in player response (video_id=%s)", video_id)
            return None

        track = select_english_track(tracks)
        if not track or not track.get("baseUrl"):
            logger.info("No English captions in %d tracks (video_id=%s)", len(tracks), video_id)
            return None

        cr = self.client.get(track["baseUrl"])
        cr.raise_for_status()

        segments = parse_caption_payload(cr.text)
        title = (player.get("videoDetails") or {}).get("title")
        return CaptionResult(text=" ".join(segments), method=self.name, segments=segments, title=title)


class DataApiCaptions:
    """Confirms the video through the Data API v3, then reads the timedtext endpoint."""

    name = "data_api"

    def __init__(self, client: httpx.Client, api_key: str) -> None:
        self.client = client
        self.api_key = api_key

    def fetch(self, video_id: str) -> CaptionResult | None:
        r = self.client.get(
            VIDEOS_API_URL,
            params={"part": "snippet,contentDetails", "id": video_id},
            headers={"X-Goog-Api-Key": self.api_key},
        )
        r.raise_for_status()

        items = r.json().get("items") or []
        if not items:
            logger.info("Video not found or not accessible via Data API (video_id=%s)", video_id)
            return None

        title = (items[0].get("snippet") or {}).get("title")

        cr = self.client.get(TIMEDTEXT_URL, params={"v": video_id, "lang": "en", "fmt": "srv3"})
        cr.raise_for_status()

        segments = parse_caption_payload(cr.text)
        return CaptionResult(text=" ".join(segments), method=self.name, segments=segments, title=title)


class TranscriptApiCaptions:
    """Falls back to youtube-transcript-api (English tracks only)."""

    name = "transcript_api"

    def __init__(self, proxy_url: str | None = None) -> None:
        proxy_config = GenericProxyConfig(http_url=proxy_url, https_url=proxy_url) if proxy_url else None
        self.api = YouTubeTranscriptApi(proxy_config=proxy_config)

    def fetch(self, video_id: str) -> CaptionResult | None:
        fetched = self.api.fetch(video_id, languages=["en"])

        segments: list[str] = []
        for seg in fetched.to_raw_data():
            txt = _normalize_space(html.unescape(seg.get("text") or ""))
            if txt:
                segments.append(txt)

        return CaptionResult(text=" ".join(segments), method=self.name, segments=segments)


def _describe_failure(e: Exception) -> str:
    # httpx messages embed the full URL, query string included
    if isinstance(e, httpx.HTTPStatusError):
        return f"HTTP {e.response.status_code} from {e.request.url.host}"
    if isinstance(e, httpx.HTTPError):
        return type(e).__name__
    return f"{type(e).__name__}: {e}"


def first_caption(
    strategies: Sequence[CaptionStrategy],
    video_id: str,
    *,
    min_chars: int = MIN_CAPTION_CHARS,
) -> CaptionResult | None:
    """
    Try strategies in order and return the first acceptable result.

    A strategy that raises is logged and treated as "no result"; so is a
    result whose text is not longer than ``min_chars``.
    """
    for strategy in strategies:
        logger.info("Attempting caption strategy %s (video_id=%s)", strategy.name, video_id)
        try:
            result = strategy.fetch(video_id)
        except Exception as e:
            logger.warning(
                "Caption strategy %s failed (video_id=%s): %s", strategy.name, video_id, _describe_failure(e)
            )
            continue

        if result is None:
            continue

        if len(result.text) <= min_chars:
            logger.info(
                "Caption strategy %s returned %d chars, below threshold (video_id=%s)",
                strategy.name,
                len(result.text),
                video_id,
            )
            continue

        logger.info("Caption strategy %s succeeded: %d chars (video_id=%s)", strategy.name, len(result.text), video_id)
        return result

    return None


class TranscriptFetcher:
    def __init__(
        self,
        strategies: Sequence[CaptionStrategy],
        *,
        has_api_key: bool,
        client: httpx.Client | None = None,
    ) -> None:
        self.strategies = list(strategies)
        self.has_api_key = has_api_key
        self._client = client

    def fetch(self, video_url: str) -> FetchedTranscript:
        video_id = extract_video_id(video_url)
        logger.info("Fetching transcript for video_id=%s", video_id)

        result = first_caption(self.strategies, video_id)
        if result is None:
            logger.error("All transcript strategies failed (video_id=%s)", video_id)
            if not self.has_api_key:
                raise TranscriptUnavailable(
                    KEY_MISSING_MESSAGE, video_id=video_id, reason=TranscriptUnavailable.KEY_MISSING
                )
            raise TranscriptUnavailable(NO_CAPTIONS_MESSAGE, video_id=video_id)

        return FetchedTranscript(
            external_id=video_id,
            raw_text=result.text,
            method=result.method,
            segments=result.segments,
            title=result.title,
        )

    def close(self) -> None:
        if self._client is not None:
            self._client.close()


def build_transcript_fetcher(settings: YouTubeSettings = youtube_settings) -> TranscriptFetcher:
    client = httpx.Client(
        timeout=settings.http_timeout_sec,
        follow_redirects=True,
        proxy=settings.proxy_url or None,
        headers={"User-Agent": settings.user_agent, "Accept-Language": "en-US,en;q=0.9"},
    )

    strategies: list[CaptionStrategy] = [WatchPageCaptions(client)]
    if settings.has_api_key:
        strategies.append(DataApiCaptions(client, settings.api_key or ""))
    if settings.enable_transcript_api_fallback:
        strategies.append(TranscriptApiCaptions(settings.proxy_url))

    return TranscriptFetcher(strategies, has_api_key=settings.has_api_key, client=client)
