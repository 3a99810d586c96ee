import os
from dataclasses import dataclass

try:
    from dotenv import load_dotenv
    load_dotenv()
except Exception:
    pass


_PLACEHOLDER_MARKERS = ("optional-youtube-data-api-v3-key-for-captions", "XXXXX", "your-api-key")


@dataclass(frozen=True)
class YouTubeSettings:
    # Optional: YouTube Data API v3 key. Enables the data_api caption strategy.
    api_key: str | None = os.getenv("YOUTUBE_API_KEY")

    # Optional: proxy URL, e.g. http://127.0.0.1:7890
    proxy_url: str | None = os.getenv("YOUTUBE_PROXY_URL")

    http_timeout_sec: float = float(os.getenv("YOUTUBE_HTTP_TIMEOUT_SEC", "20"))
    user_agent: str = os.getenv(
        "YOUTUBE_USER_AGENT",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36",
    )

    # Whether to try youtube-transcript-api after the page/API strategies
    enable_transcript_api_fallback: bool = os.getenv("YOUTUBE_ENABLE_TRANSCRIPT_API_FALLBACK", "0") == "1"

    @property
    def has_api_key(self) -> bool:
        key = (self.api_key or "").strip()
        if not key:
            return False
        return not any(marker in key for marker in _PLACEHOLDER_MARKERS)


youtube_settings = YouTubeSettings()
