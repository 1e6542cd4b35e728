from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Tuple

DEFAULT_MAX_CHARS = 20000
DEFAULT_OVERLAP_CHARS = 500
# How far around the tentative boundary to look for a sentence end
BOUNDARY_SEARCH_CHARS = 200

SENTENCE_END_RE = re.compile(r"[.!?]\s+(?=[A-Z])")


@dataclass(frozen=True)
class TranscriptChunk:
    text: str
    index: int
    is_first: bool
    is_last: bool
    start: int = 0
    end: int = 0


def _validate(max_size: int, overlap_size: int) -> None:
    if max_size <= 0:
        raise ValueError(f"max_size must be positive, got {max_size}")
    if overlap_size < 0:
        raise ValueError(f"overlap_size must be >= 0, got {overlap_size}")
    if overlap_size >= max_size:
        raise ValueError(f"overlap_size ({overlap_size}) must be smaller than max_size ({max_size})")


def _snap_to_sentence(text: str, start: int, end: int, overlap_size: int) -> int:
    """Move a tentative boundary to the last sentence end within +-200 chars.

    Candidates at or before start + overlap_size are ignored so the next
    window always starts after the current one.
    """
    search_start = max(start, end - BOUNDARY_SEARCH_CHARS)
    search_end = min(end + BOUNDARY_SEARCH_CHARS, len(text))
    last = None
    for m in SENTENCE_END_RE.finditer(text, search_start, search_end):
        last = m
    if last is not None and last.end() > start + overlap_size:
        return last.end()
    return end


def chunk_spans(text: str, max_size: int = DEFAULT_MAX_CHARS, overlap_size: int = DEFAULT_OVERLAP_CHARS) -> List[Tuple[int, int]]:
    """(start, end) offsets of overlapping windows over text."""
    _validate(max_size, overlap_size)
    n = len(text)
    if n <= max_size:
        return [(0, n)]

    spans: List[Tuple[int, int]] = []
    start = 0
    while start < n:
        end = start + max_size
        if end < n:
            end = _snap_to_sentence(text, start, end, overlap_size)
        spans.append((start, min(end, n)))
        start = end - overlap_size
        # Remaining text shorter than the overlap is already in the last window
        if start >= n - overlap_size:
            break
    return spans


def chunk_text(text: str, max_size: int = DEFAULT_MAX_CHARS, overlap_size: int = DEFAULT_OVERLAP_CHARS) -> List[str]:
    """Split text into overlapping windows that end on sentence boundaries where possible."""
    return [text[s:e] for s, e in chunk_spans(text, max_size, overlap_size)]


def split_transcript(text: str, max_size: int = DEFAULT_MAX_CHARS, overlap_size: int = DEFAULT_OVERLAP_CHARS) -> List[TranscriptChunk]:
    spans = chunk_spans(text, max_size, overlap_size)
    last = len(spans) - 1
    return [
        TranscriptChunk(
            text=text[s:e],
            index=i,
            is_first=(i == 0),
            is_last=(i == last),
            start=s,
            end=e,
        )
        for i, (s, e) in enumerate(spans)
    ]
