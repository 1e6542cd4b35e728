from __future__ import annotations

import re
from typing import Optional, Sequence

from .logging_helper import log_debug

SEPARATOR = "\n\n"

SECTION_HEADING_LINE_RE = re.compile(r"^##[ \t]+\S[^\n]*$", re.M)
# A continuation that restarted the document: "# Title" + "## Overview" up to the first numbered section
LEAKED_INTRO_RE = re.compile(r"^#[ \t]+[^\n]+\n+##[ \t]+Overview.*?(?=^##[ \t]+\d)", re.M | re.S)
EXCESS_NEWLINES_RE = re.compile(r"\n{4,}")


def first_section_heading(text: str) -> Optional[str]:
    m = SECTION_HEADING_LINE_RE.search(text)
    return m.group(0).rstrip() if m else None


def last_heading_position(text: str, heading: str) -> int:
    """Offset of the last line of text equal to heading, or -1."""
    pattern = re.compile(r"^" + re.escape(heading) + r"[ \t]*$", re.M)
    pos = -1
    for m in pattern.finditer(text):
        pos = m.start()
    return pos


def strip_leaked_intro(text: str) -> str:
    return LEAKED_INTRO_RE.sub("", text, count=1)


def merge_results(texts: Sequence[str]) -> str:
    """Stitch per-chunk outputs into one document.

    When a chunk opens with a section heading the merged text already
    contains, the merged text is cut right before that heading so the
    restated section is kept only once.
    """
    if not texts:
        return ""
    if len(texts) == 1:
        return texts[0]

    merged = texts[0]
    for idx, current in enumerate(texts[1:], 2):
        # Stripped first: a leaked "## Overview" must never become the trim anchor
        cleaned = strip_leaked_intro(current)
        if cleaned != current:
            log_debug(f"Merge: dropped repeated title/overview from part {idx}")
        heading = first_section_heading(cleaned)
        if heading:
            pos = last_heading_position(merged, heading)
            if pos != -1:
                log_debug(f"Merge: part {idx} restates '{heading}', trimming {len(merged) - pos} chars")
                merged = merged[:pos]
        merged += SEPARATOR + cleaned

    return EXCESS_NEWLINES_RE.sub("\n\n\n", merged)
