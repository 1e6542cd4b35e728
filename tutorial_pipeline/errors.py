"""Failures the pipeline reports to its caller.

Quota errors for a single model never appear here: the fallback client
absorbs them until every model in the roster is exhausted.
"""

TRANSCRIPT_TIPS = (
    "Could not extract transcript from this video.\n\n"
    "Tips:\n"
    "- Make sure the video has captions/subtitles enabled\n"
    "- Auto-generated captions work too\n"
    "- Some videos have region-restricted captions"
)


class PipelineError(Exception):
    """Base error for the transcript-to-tutorial pipeline."""


class InputError(PipelineError):
    """Missing or unparseable video reference / input file."""


class TranscriptUnavailable(PipelineError):
    """No usable transcript could be obtained."""

    def __init__(self, message: str = TRANSCRIPT_TIPS) -> None:
        super().__init__(message)


class AllModelsExhausted(PipelineError):
    """Every model in the roster reported quota exhaustion."""

    def __init__(self, message: str = "All models have hit quota limits. Please try again later.") -> None:
        super().__init__(message)


class BackendError(PipelineError):
    """Non-quota failure from the generation backend; never retried."""


class ConfigurationError(PipelineError):
    """Missing credentials or invalid configuration; raised before any chunking."""
