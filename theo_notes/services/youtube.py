import logging
import random
import re
from urllib.parse import urlparse, parse_qs

import httpx

from theo_notes.core.config import settings

logger = logging.getLogger(__name__)

_YT_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")

_FALLBACK_TITLE = "Untitled Video"

_CHANNEL_REJECTIONS = [
    "Hold up! This app is EXCLUSIVELY for Theo's videos. Go find a video from @t3dotgg and try again.",
    "Excuse me? That's not a Theo video! This app only speaks fluent @t3dotgg. Try again with authentic Theo content!",
    "Nice try, but this isn't a Theo video! Bring us the real deal from @t3dotgg.",
    "Non-Theo video detected! This app runs on pure @t3dotgg energy. Find a video from Theo and come back!",
]


def extract_youtube_video_id(url: str) -> str | None:
    """
    Supports:
    - https://www.youtube.com/watch?v=VIDEOID
    - https://youtu.be/VIDEOID
    - https://www.youtube.com/shorts/VIDEOID
    - https://www.youtube.com/embed/VIDEOID
    - a bare VIDEOID
    """
    url = (url or "").strip()
    if _YT_ID_RE.match(url):
        return url

    try:
        u = urlparse(url)
    except Exception:
        return None

    host = (u.netloc or "").lower()
    path = (u.path or "").strip("/")

    # youtu.be/VIDEOID
    if "youtu.be" in host:
        vid = path.split("/")[0] if path else ""
        return vid if _YT_ID_RE.match(vid) else None

    if "youtube.com" in host:
        # youtube.com/watch?v=VIDEOID
        if path == "watch":
            q = parse_qs(u.query or "")
            vid = (q.get("v", [""])[0]).strip()
            return vid if _YT_ID_RE.match(vid) else None

        # youtube.com/shorts/VIDEOID, youtube.com/embed/VIDEOID
        if path.startswith("shorts/") or path.startswith("embed/"):
            parts = path.split("/")
            vid = parts[1] if len(parts) > 1 else ""
            return vid if _YT_ID_RE.match(vid) else None

    return None


def build_video_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def thumbnail_url(video_id: str) -> str:
    return f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"


def fetch_video_metadata(video_id: str, *, transport: httpx.BaseTransport | None = None) -> dict:
    """
    oEmbed lookup (no API key needed).

    Returns {"title", "author_name", "author_url"}. Network failures raise so
    the caller can say "could not reach YouTube" instead of a misleading
    channel rejection; any other failure degrades to an untitled video.
    """
    params = {"url": build_video_url(video_id), "format": "json"}
    try:
        with httpx.Client(timeout=settings.youtube_oembed_timeout_sec, transport=transport) as client:
            r = client.get(settings.youtube_oembed_url, params=params)
            r.raise_for_status()
            data = r.json()
    except httpx.TransportError as e:
        logger.error("oEmbed request failed for %s: %s", video_id, e)
        raise RuntimeError(
            "Could not connect to YouTube. Please check your internet connection and try again."
        ) from e
    except Exception as e:
        logger.warning("oEmbed lookup failed for %s: %s", video_id, e)
        return {"title": _FALLBACK_TITLE, "author_name": "", "author_url": ""}

    return {
        "title": (data.get("title") or _FALLBACK_TITLE),
        "author_name": (data.get("author_name") or ""),
        "author_url": (data.get("author_url") or ""),
    }


def is_allowed_channel(author_url: str, patterns: tuple[str, ...] | None = None) -> bool:
    patterns = settings.allowed_channel_patterns if patterns is None else patterns
    if not patterns:
        return True
    return any(re.search(p, author_url or "", re.IGNORECASE) for p in patterns)


def channel_rejection_message() -> str:
    return random.choice(_CHANNEL_REJECTIONS)
