import re

from app.services.errors import InvalidReference

# Tried in order; first match wins.
_VIDEO_ID_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)"),
    re.compile(r"youtube\.com/watch\?(?:.*&)?v=([^&\n?#]+)"),
]

_ACCEPTED_URL_RE = re.compile(r"^(https?://)?(www\.|m\.)?(youtube\.com|youtu\.be)/.+", re.IGNORECASE)


def is_youtube_url(url: str) -> bool:
    return bool(_ACCEPTED_URL_RE.match((url or "").strip()))


def extract_video_id(url: str) -> str:
    """
    Supports:
    - https://www.youtube.com/watch?v=VIDEOID
    - https://youtu.be/VIDEOID
    - https://www.youtube.com/embed/VIDEOID
    - https://www.youtube.com/watch?feature=share&v=VIDEOID
    """
    for pattern in _VIDEO_ID_PATTERNS:
        m = pattern.search(url or "")
        if m and m.group(1):
            return m.group(1)

    raise InvalidReference("Invalid YouTube URL")


def build_video_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"
