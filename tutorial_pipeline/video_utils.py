"""YouTube video references and metadata.

Accepts any common YouTube URL (watch, shorts, embed, live, youtu.be) or a raw
11-character video id. Extra parameters (list/t/si/feature/etc.) are dropped.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from .errors import InputError

VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")


def _clean_video_id(value: str) -> str:
    """Remove trailing delimiters from a candidate video id."""
    value = value.split("?")[0]
    value = value.split("&")[0]
    value = value.split("#")[0]
    return value.strip()


def extract_video_id(raw_url: str) -> Optional[str]:
    """Pull the video id from many possible YouTube URL shapes."""
    raw_url = (raw_url or "").strip()
    if not raw_url:
        return None

    # Bare video id (no slashes, no scheme)
    if "://" not in raw_url and "/" not in raw_url:
        candidate = _clean_video_id(raw_url)
        return candidate if VIDEO_ID_RE.match(candidate) else None

    if not raw_url.startswith(("http://", "https://")):
        raw_url = "https://" + raw_url

    parsed = urlparse(raw_url)
    host = parsed.netloc.lower()
    query = parse_qs(parsed.query)
    parts = [p for p in parsed.path.split("/") if p]

    video_id = None
    if host.endswith("youtu.be"):
        if parts:
            video_id = parts[0]
    elif "youtube" in host:
        if "v" in query:
            video_id = query["v"][0]
        elif len(parts) >= 2 and parts[0] in {"shorts", "embed", "live", "v"}:
            video_id = parts[1]

    if not video_id:
        return None
    video_id = _clean_video_id(video_id)
    return video_id if VIDEO_ID_RE.match(video_id) else None


def require_video_id(raw_url: str) -> str:
    if not (raw_url or "").strip():
        raise InputError("YouTube URL is required")
    video_id = extract_video_id(raw_url)
    if not video_id:
        raise InputError("Invalid YouTube URL. Please provide a valid YouTube video link.")
    return video_id


def normalize_youtube_url(raw_url: str, output_format: str = "short") -> Optional[str]:
    """Return a normalized YouTube URL or id: short=youtu.be, long=watch link, id=raw id."""
    video_id = extract_video_id(raw_url)
    if not video_id:
        return None
    if output_format == "id":
        return video_id
    if output_format == "long":
        return f"https://www.youtube.com/watch?v={video_id}"
    return f"https://youtu.be/{video_id}"


def thumbnail_urls(video_id: str) -> List[str]:
    """Static thumbnails YouTube serves for every video."""
    base = f"https://img.youtube.com/vi/{video_id}"
    return [f"{base}/maxresdefault.jpg", f"{base}/hqdefault.jpg"] + [f"{base}/{i}.jpg" for i in range(1, 4)]


def fetch_video_info(video_id: str) -> Dict:
    """Title, channel, duration and thumbnails via yt-dlp metadata (no download)."""
    import yt_dlp

    opts = {"skip_download": True, "quiet": True, "no_warnings": True}
    with yt_dlp.YoutubeDL(opts) as ydl:
        info = ydl.extract_info(normalize_youtube_url(video_id, "long"), download=False) or {}

    thumbnails = []
    if info.get("thumbnail"):
        thumbnails.append(str(info["thumbnail"]))
    for url in thumbnail_urls(video_id):
        if url not in thumbnails:
            thumbnails.append(url)
    return {
        "title": str(info.get("title") or video_id).strip(),
        "channel": str(info.get("channel") or info.get("uploader") or "").strip(),
        "duration": int(info.get("duration") or 0),
        "thumbnails": thumbnails,
    }
