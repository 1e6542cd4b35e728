from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .chunker import DEFAULT_MAX_CHARS, DEFAULT_OVERLAP_CHARS, split_transcript
from .context_extractor import GenerationContext, extract_context
from .errors import TranscriptUnavailable
from .fallback_client import ChunkResult, FallbackClient
from .logging_helper import log_info, log_warn
from .merger import merge_results
from .prompt_builder import build_prompt
from .transcript_source import TranscriptResult
from .video_utils import require_video_id

TranscriptFetcher = Callable[[str], Optional[TranscriptResult]]
InfoFetcher = Callable[[str], Dict]


@dataclass(frozen=True)
class DocumentResult:
    document: str
    chunk_count: int
    models_used: List[str]
    chunks: List[ChunkResult] = field(default_factory=list)


@dataclass(frozen=True)
class VideoDocument:
    video_id: str
    document: str
    transcript_source: str
    chunk_count: int
    models_used: List[str]
    chunks: List[ChunkResult] = field(default_factory=list)
    video_info: Optional[Dict] = None


def build_document(
    transcript_text: str,
    client: FallbackClient,
    *,
    max_size: int = DEFAULT_MAX_CHARS,
    overlap_size: int = DEFAULT_OVERLAP_CHARS,
    request_delay: float = 0.0,
) -> DocumentResult:
    """Turn a transcript into one merged Markdown tutorial.

    Chunks are generated strictly in order: each continuation prompt carries
    context extracted from the outputs before it. Any failure other than a
    recoverable quota error aborts the whole document.
    """
    if not (transcript_text or "").strip():
        raise TranscriptUnavailable()

    chunks = split_transcript(transcript_text, max_size, overlap_size)
    total = len(chunks)
    log_info(f"Transcript chunked into {total} part(s) ({len(transcript_text)} total chars)")

    results: List[ChunkResult] = []
    context = GenerationContext()
    for chunk in chunks:
        label = f"chunk {chunk.index + 1}/{total}"
        if request_delay > 0 and not chunk.is_first:
            time.sleep(request_delay)
        log_info(f"Processing {label} ({len(chunk.text)} chars)...")
        prompt = build_prompt(chunk.text, chunk.index, total, context)
        result = client.generate(prompt, label=label)
        log_info(f"{label} response: {len(result.text)} chars (model: {result.model_used})")
        results.append(result)
        if not chunk.is_last:
            context = extract_context([r.text for r in results])

    log_info(f"Merging {len(results)} response(s)...")
    document = merge_results([r.text for r in results])
    log_info(f"Final tutorial: {len(document)} chars")
    models_used = [r.model_used for r in results]
    return DocumentResult(document=document, chunk_count=total, models_used=models_used, chunks=results)


def _fetch_transcript(fetch_transcript: TranscriptFetcher, video_id: str) -> TranscriptResult:
    try:
        result = fetch_transcript(video_id)
    except TranscriptUnavailable:
        raise
    except Exception as exc:
        log_warn(f"Transcript error: {exc}")
        raise TranscriptUnavailable() from exc
    if result is None or not result.text.strip():
        raise TranscriptUnavailable()
    log_info(f"Transcript success via {result.source}: {len(result.text)} chars")
    return result


def _info_or_none(future: Optional["Future[Dict]"]) -> Optional[Dict]:
    if future is None:
        return None
    try:
        return future.result()
    except Exception as exc:
        # Metadata is decoration only; the document stands without it
        log_warn(f"Video info fetch failed: {exc}")
        return None


def process_video(
    video_ref: str,
    *,
    client: FallbackClient,
    fetch_transcript: TranscriptFetcher,
    fetch_info: Optional[InfoFetcher] = None,
    max_size: int = DEFAULT_MAX_CHARS,
    overlap_size: int = DEFAULT_OVERLAP_CHARS,
    request_delay: float = 0.0,
) -> VideoDocument:
    """Video reference in, tutorial out.

    Metadata is fetched on a worker thread while the transcript is fetched
    and the chunks are generated; neither side touches the other's state.
    """
    video_id = require_video_id(video_ref)
    log_info(f"Processing video: {video_id}")

    pool = ThreadPoolExecutor(max_workers=1)
    info_future = pool.submit(fetch_info, video_id) if fetch_info else None
    try:
        transcript = _fetch_transcript(fetch_transcript, video_id)
        built = build_document(
            transcript.text,
            client,
            max_size=max_size,
            overlap_size=overlap_size,
            request_delay=request_delay,
        )
    except Exception:
        # A failed request does not wait on a metadata fetch still in flight
        pool.shutdown(wait=False, cancel_futures=True)
        raise
    video_info = _info_or_none(info_future)
    pool.shutdown()

    return VideoDocument(
        video_id=video_id,
        document=built.document,
        transcript_source=transcript.source,
        chunk_count=built.chunk_count,
        models_used=built.models_used,
        chunks=built.chunks,
        video_info=video_info,
    )
