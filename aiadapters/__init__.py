"""Text-generation provider adapter package.

Exposes the base adapter types for external imports.
"""

from .base import (
    LLMAdapter,
    LLMError,
    LLMQuotaError,
    LLMAuthError,
    LLMConnectionError,
    LLMUnknownError,
    QuotaSignals,
)

__all__ = [
    "LLMAdapter",
    "LLMError",
    "LLMQuotaError",
    "LLMAuthError",
    "LLMConnectionError",
    "LLMUnknownError",
    "QuotaSignals",
]
