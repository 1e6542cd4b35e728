from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from .context_extractor import GenerationContext

PROMPTS_DIR = Path(__file__).parent / "prompts"

FIRST_PART_OF_MANY_NOTE = (
    "Note: This is part 1 of a multi-part transcript. Focus on the beginning sections "
    "(Overview, Prerequisites, Table of Contents, and start the main content). "
    "Do NOT include Summary/Next Steps yet."
)
SINGLE_PART_NOTE = "Generate the complete tutorial now."


@lru_cache(maxsize=None)
def load_template(name: str) -> str:
    with open(PROMPTS_DIR / name, "r", encoding="utf-8") as f:
        return f.read().strip()


def _transcript_section(heading: str, chunk_text: str) -> str:
    return (
        "---\n"
        f"## {heading}\n"
        "---\n\n"
        f"{chunk_text}\n\n"
        "---\n"
        "END OF TRANSCRIPT SECTION\n"
        "---"
    )


def build_first_prompt(chunk_text: str, total: int) -> str:
    section = _transcript_section(f"TRANSCRIPT TO CONVERT (Part 1 of {total})", chunk_text)
    note = FIRST_PART_OF_MANY_NOTE if total > 1 else SINGLE_PART_NOTE
    return f"{load_template('first_chunk.md')}\n\n{section}\n\n{note}"


def build_continuation_prompt(chunk_text: str, index: int, total: int, context: GenerationContext) -> str:
    head = load_template("continuation.md").format(
        PREVIOUS_SUMMARY=context.previous_summary,
        LAST_SECTION_PREVIEW=context.last_section_preview,
    )
    section = _transcript_section(f"TRANSCRIPT CONTINUATION (Part {index + 1} of {total})", chunk_text)
    prompt = f"{head}\n\n{section}"
    if index == total - 1:
        prompt += "\n\n" + load_template("final_chunk.md")
    return prompt


def build_prompt(chunk_text: str, index: int, total: int, context: Optional[GenerationContext] = None) -> str:
    """Prompt for the chunk at 0-based `index` out of `total`.

    The first chunk gets the full task prompt; later chunks get the
    continuation prompt carrying `context` from the chunks before them.
    """
    if total < 1 or not 0 <= index < total:
        raise ValueError(f"chunk index {index} out of range for {total} chunk(s)")
    if index == 0:
        return build_first_prompt(chunk_text, total)
    return build_continuation_prompt(chunk_text, index, total, context or GenerationContext())
