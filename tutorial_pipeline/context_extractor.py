from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Sequence

MAX_SUMMARY_HEADINGS = 10
SUMMARY_FALLBACK_CHARS = 500
PREVIEW_WINDOW_CHARS = 1000
PREVIEW_FALLBACK_CHARS = 500

# Title and section headings ("# ..." / "## ..."); steps ("### ...") are too fine-grained
SECTION_HEADING_RE = re.compile(r"^#{1,2}[ \t]+(\S.*?)[ \t]*$", re.M)
ANY_HEADING_RE = re.compile(r"^#{1,6}[ \t]+\S", re.M)


@dataclass(frozen=True)
class GenerationContext:
    previous_summary: str = ""
    last_section_preview: str = ""


def summarize(accumulated_text: str) -> str:
    """Flat listing of the first section headings written so far.

    Falls back to the last 500 characters when the text has no headings.
    """
    text = accumulated_text or ""
    titles = [m.group(1) for m in SECTION_HEADING_RE.finditer(text)][:MAX_SUMMARY_HEADINGS]
    if not titles:
        return text[-SUMMARY_FALLBACK_CHARS:]
    return "Sections covered: " + ", ".join(titles)


def tail_preview(last_chunk_text: str) -> str:
    """Tail of the latest output, starting at its last heading when there is one."""
    text = last_chunk_text or ""
    window = text[-PREVIEW_WINDOW_CHARS:]
    last = None
    for m in ANY_HEADING_RE.finditer(window):
        last = m
    if last is None:
        return text[-PREVIEW_FALLBACK_CHARS:]
    return window[last.start():]


def extract_context(outputs_so_far: Sequence[str]) -> GenerationContext:
    outputs: List[str] = list(outputs_so_far)
    if not outputs:
        return GenerationContext()
    return GenerationContext(
        previous_summary=summarize("\n\n".join(outputs)),
        last_section_preview=tail_preview(outputs[-1]),
    )
