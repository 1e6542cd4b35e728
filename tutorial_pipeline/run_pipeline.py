#!/usr/bin/env python3
from __future__ import annotations

import argparse
import csv
import json
import sys
import traceback
from functools import partial
from pathlib import Path
from typing import Dict, List, Optional

from .chunker import DEFAULT_MAX_CHARS, DEFAULT_OVERLAP_CHARS
from .config_loader import apply_overrides, get_float, get_int, get_section, get_str_list, load_effective_config
from .errors import (
    AllModelsExhausted,
    BackendError,
    ConfigurationError,
    InputError,
    PipelineError,
    TranscriptUnavailable,
)
from .fallback_client import ChunkResult, ExhaustedModels, create_fallback_client
from .logging_helper import log_debug, log_error, log_info, set_log_level
from .orchestrator import build_document, process_video
from .transcript_source import DEFAULT_LANGUAGES, DEFAULT_MIN_CHARS, fetch_youtube_transcript, load_transcript_file
from .video_utils import fetch_video_info

PACKAGE_DIR = Path(__file__).parent

EXIT_CODES = {
    InputError: 2,
    ConfigurationError: 2,
    TranscriptUnavailable: 3,
    AllModelsExhausted: 4,
    BackendError: 4,
}

# Shared by every request served by this process
EXHAUSTED_MODELS = ExhaustedModels()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        description=(
            "Turn a long YouTube tutorial transcript into one structured Markdown tutorial. "
            "Oversized transcripts are split into overlapping parts, generated in order with "
            "continuity context, and merged without duplication."
        )
    )
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--url", help="YouTube URL or 11-character video id")
    src.add_argument("--input", help="Path to a local transcript (.txt, .srt or .vtt)")
    ap.add_argument("--outdir", default=None, help="Output directory (config: output.dir)")
    ap.add_argument("--max-chars", type=int, default=None, help="Characters per transcript part (config: chunking.max_chars)")
    ap.add_argument("--overlap-chars", type=int, default=None, help="Overlap between parts (config: chunking.overlap_chars)")
    ap.add_argument("--llm-provider", default=None, help="Override LLM provider: gemini|openai|dummy")
    ap.add_argument("--request-delay", type=float, default=None, help="Delay in seconds between LLM requests (0 = no delay)")
    ap.add_argument("--no-video-info", action="store_true", help="Skip fetching video title/thumbnails")
    ap.add_argument("--debug", action="store_true", help="Enable debug logging (no full prompts/responses)")
    ap.add_argument("--trace", action="store_true", help="Enable trace logging: full prompts and responses (large)")
    return ap.parse_args(argv)


def resolve_log_level(cfg: Dict, args: argparse.Namespace) -> str:
    level = (get_section(cfg, "logging").get("level") or "info").strip().lower()
    if args.debug:
        level = "debug"
    if args.trace:
        level = "trace"
    return level


def write_chunk_report(path: Path, chunks: List[ChunkResult]) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=["chunk_id", "output_chars", "model_used"])
        w.writeheader()
        for idx, ch in enumerate(chunks, 1):
            w.writerow({"chunk_id": idx, "output_chars": len(ch.text), "model_used": ch.model_used})


def run(args: argparse.Namespace) -> int:
    # Shipped defaults live in the package; config.yaml and .env in the working directory
    work_dir = Path.cwd()
    cfg, has_local = load_effective_config(PACKAGE_DIR, local_dir=work_dir)
    cfg = apply_overrides(cfg, {
        "chunking.max_chars": args.max_chars,
        "chunking.overlap_chars": args.overlap_chars,
        "llm.request_delay_seconds": args.request_delay,
        "output.dir": args.outdir,
    })
    set_log_level(resolve_log_level(cfg, args))
    if not has_local:
        log_debug("config.yaml not found; using only config.default.yaml")

    chunking = get_section(cfg, "chunking")
    max_size = get_int(chunking, "max_chars", DEFAULT_MAX_CHARS)
    overlap_size = get_int(chunking, "overlap_chars", DEFAULT_OVERLAP_CHARS)
    if max_size <= 0 or not 0 <= overlap_size < max_size:
        raise ConfigurationError(f"chunking.overlap_chars ({overlap_size}) must be >= 0 and below chunking.max_chars ({max_size})")
    request_delay = max(0.0, get_float(get_section(cfg, "llm"), "request_delay_seconds", 0.0))
    transcript_cfg = get_section(cfg, "transcript")
    languages = get_str_list(transcript_cfg, "languages", list(DEFAULT_LANGUAGES))
    min_chars = get_int(transcript_cfg, "min_chars", DEFAULT_MIN_CHARS)
    outdir = Path(get_section(cfg, "output").get("dir") or "output")
    log_debug(f"Settings -> max_chars={max_size}, overlap_chars={overlap_size}, delay={request_delay}s, languages={languages}")

    # Credentials are checked before any transcript work starts
    client = create_fallback_client(
        cfg,
        exhausted=EXHAUSTED_MODELS,
        provider_override=args.llm_provider,
        project_root=work_dir,
    )

    summary: Dict = {}
    if args.url:
        doc = process_video(
            args.url,
            client=client,
            fetch_transcript=partial(fetch_youtube_transcript, languages=languages, min_chars=min_chars),
            fetch_info=None if args.no_video_info else fetch_video_info,
            max_size=max_size,
            overlap_size=overlap_size,
            request_delay=request_delay,
        )
        stem, document, chunks = doc.video_id, doc.document, doc.chunks
        summary.update({
            "video_id": doc.video_id,
            "title": (doc.video_info or {}).get("title"),
            "transcript_source": doc.transcript_source,
            "chunks_processed": doc.chunk_count,
            "models_used": doc.models_used,
        })
    else:
        in_path = Path(args.input)
        transcript = load_transcript_file(in_path)
        built = build_document(
            transcript.text,
            client,
            max_size=max_size,
            overlap_size=overlap_size,
            request_delay=request_delay,
        )
        stem, document, chunks = in_path.stem, built.document, built.chunks
        summary.update({
            "transcript_source": transcript.source,
            "chunks_processed": built.chunk_count,
            "models_used": built.models_used,
        })

    outdir.mkdir(parents=True, exist_ok=True)
    outfile_md = outdir / f"{stem}.md"
    outfile_md.write_text(document, encoding="utf-8")
    report_path = outdir / f"{stem}_chunks.csv"
    write_chunk_report(report_path, chunks)
    log_info(f"Done. Markdown: {outfile_md}")
    log_info(f"Chunk report: {report_path}")

    summary["document"] = str(outfile_md)
    print(json.dumps(summary, ensure_ascii=False))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        return run(args)
    except PipelineError as e:
        log_error(str(e))
        if args.debug or args.trace:
            traceback.print_exc()
        for err_type, code in EXIT_CODES.items():
            if isinstance(e, err_type):
                return code
        return 1


if __name__ == "__main__":
    sys.exit(main())
