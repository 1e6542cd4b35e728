from __future__ import annotations

import re
from typing import Optional

from .base import LLMAdapter

_PART_RE = re.compile(r"\(Part (\d+) of (\d+)\)")
_SECTION_RE = re.compile(r"\n---\n\n(.*?)\n\n---\nEND OF TRANSCRIPT SECTION", re.S)


class DummyAdapter(LLMAdapter):
    """Offline stand-in that needs no API key.

    Produces a small, deterministic tutorial skeleton per chunk so that dry
    runs exercise chunking, context passing and merging end to end.
    """

    def name(self) -> str:
        return "dummy"

    def generate(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        label: Optional[str] = None,
    ) -> str:
        m = _PART_RE.search(prompt)
        part, total = (int(m.group(1)), int(m.group(2))) if m else (1, 1)
        section = _SECTION_RE.search(prompt)
        excerpt = " ".join((section.group(1) if section else "").split())[:200]
        lines = []
        if part == 1:
            lines += [
                f"# [DUMMY:{model or self.model or 'n/a'}] Tutorial",
                "",
                "## Overview",
                "",
                "Generated offline by the dummy provider.",
                "",
            ]
        lines += [f"## {part}. Part {part}", "", excerpt, ""]
        if part == total:
            lines += ["## Summary", "", f"Covered {total} part(s).", "", "## Next Steps", "", "Run with a real provider.", ""]
        return "\n".join(lines)
