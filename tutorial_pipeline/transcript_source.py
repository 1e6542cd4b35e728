from __future__ import annotations

import json
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .errors import InputError, TranscriptUnavailable
from .logging_helper import log_debug, log_info, log_warn
from .video_utils import normalize_youtube_url

DEFAULT_LANGUAGES = ("en", "en-US", "en-GB")
DEFAULT_MIN_CHARS = 50

SRT_TIME_RE = re.compile(r"\d{2}:\d{2}:\d{2}[,.]\d{3}\s*-->")
INLINE_TAG_RE = re.compile(r"<[^>]+>")


@dataclass(frozen=True)
class TranscriptResult:
    text: str
    source: str


def clean_caption_text(text: str) -> str:
    """Drop inline caption markup and collapse whitespace."""
    return re.sub(r"\s+", " ", INLINE_TAG_RE.sub("", text or "")).strip()


def parse_srt_text(content: str) -> List[str]:
    """Caption lines from SRT or VTT content, without indices, timings or headers."""
    lines: List[str] = []
    for raw in content.splitlines():
        ln = raw.strip().strip("\ufeff")
        if not ln or ln.isdigit() or "-->" in ln:
            continue
        if ln.startswith(("WEBVTT", "NOTE", "Kind:", "Language:")):
            continue
        text = clean_caption_text(ln)
        # Rolling auto-captions repeat the previous line verbatim
        if text and (not lines or lines[-1] != text):
            lines.append(text)
    return lines


def parse_json3_text(content: str) -> List[str]:
    data = json.loads(content)
    lines: List[str] = []
    for event in data.get("events", []):
        segs = event.get("segs")
        if not segs:
            continue
        text = clean_caption_text("".join(seg.get("utf8", "") for seg in segs))
        if text:
            lines.append(text)
    return lines


def load_transcript_file(path: Path) -> TranscriptResult:
    """Read a local .txt/.srt/.vtt transcript; caption files are flattened to plain text."""
    if not path.exists():
        raise InputError(f"Input file not found: {path}")
    content = path.read_text(encoding="utf-8", errors="ignore")
    ext = path.suffix.lower()
    if ext in (".srt", ".vtt") or SRT_TIME_RE.search(content):
        text = " ".join(parse_srt_text(content))
        kind = ext.lstrip(".") or "srt"
    else:
        text = content.strip()
        kind = "txt"
    if not text.strip():
        raise TranscriptUnavailable(f"Input file contains no transcript text: {path}")
    return TranscriptResult(text=text, source=f"file ({kind})")


def _read_subtitle_file(path: Path) -> List[str]:
    content = path.read_text(encoding="utf-8", errors="replace")
    if path.suffix.lower() == ".json3":
        return parse_json3_text(content)
    return parse_srt_text(content)


def fetch_youtube_transcript(
    video_id: str,
    languages: Sequence[str] = DEFAULT_LANGUAGES,
    min_chars: int = DEFAULT_MIN_CHARS,
) -> Optional[TranscriptResult]:
    """Captions for a video via yt-dlp, trying languages in order (manual, then automatic).

    Returns None when no track yields at least `min_chars` characters.
    """
    import yt_dlp

    url = normalize_youtube_url(video_id, "long")
    log_info(f"Fetching transcript for {video_id}...")
    with tempfile.TemporaryDirectory() as td:
        tmp_dir = Path(td)
        opts = {
            "skip_download": True,
            "writesubtitles": True,
            "writeautomaticsub": True,
            "subtitleslangs": list(languages),
            "subtitlesformat": "json3/vtt/best",
            "outtmpl": str(tmp_dir / "%(id)s.%(ext)s"),
            "quiet": True,
            "no_warnings": True,
        }
        try:
            with yt_dlp.YoutubeDL(opts) as ydl:
                ydl.extract_info(url, download=True)
        except yt_dlp.utils.DownloadError as exc:
            raise TranscriptUnavailable(f"Transcript download failed for {video_id}: {exc}") from exc

        by_lang: Dict[str, Path] = {}
        for path in sorted(tmp_dir.iterdir()):
            # <id>.<lang>.<ext>
            parts = path.name.split(".")
            if len(parts) >= 3 and path.is_file():
                by_lang.setdefault(parts[-2], path)
        log_debug(f"Subtitle tracks for {video_id}: {', '.join(sorted(by_lang)) or 'none'}")

        for lang in list(languages) + sorted(set(by_lang) - set(languages)):
            path = by_lang.get(lang)
            if path is None:
                continue
            try:
                text = " ".join(_read_subtitle_file(path))
            except ValueError as exc:
                log_warn(f"Unreadable subtitle track {path.name}: {exc}")
                continue
            if len(text.strip()) >= min_chars:
                log_info(f"Transcript success (yt-dlp/{lang}): {len(text)} chars")
                return TranscriptResult(text=text, source=f"yt-dlp ({lang})")

    log_info(f"No usable captions found for {video_id}")
    return None
