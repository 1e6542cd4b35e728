from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional, Sequence, Tuple

from tutorial_pipeline.logging_helper import log_debug


class LLMError(Exception):
    """Base error for LLM providers."""


class LLMQuotaError(LLMError):
    """Provider reported quota exhaustion, rate limiting or model unavailability.

    The model that raised it should be substituted; the prompt itself is fine.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LLMAuthError(LLMError):
    """Authentication or authorization failed (e.g., missing/invalid API key)."""


class LLMConnectionError(LLMError):
    """Transport-level errors (network, timeouts, DNS)."""


class LLMUnknownError(LLMError):
    """Unexpected/unknown provider error."""


DEFAULT_QUOTA_STATUS_CODES: Tuple[int, ...] = (429, 503)
DEFAULT_QUOTA_PHRASES: Tuple[str, ...] = (
    "quota",
    "resource exhausted",
    "resourceexhausted",
    "rate limit",
    "too many requests",
)


class QuotaSignals:
    """Backend-specific signals that mark a failure as quota/availability.

    Status codes and message phrases are configuration, not protocol: each
    provider reports exhaustion differently, so both lists come from config.
    """

    def __init__(
        self,
        status_codes: Optional[Iterable[int]] = None,
        phrases: Optional[Iterable[str]] = None,
    ) -> None:
        codes = DEFAULT_QUOTA_STATUS_CODES if status_codes is None else status_codes
        words = DEFAULT_QUOTA_PHRASES if phrases is None else phrases
        self.status_codes = frozenset(int(c) for c in codes)
        self.phrases = tuple(str(p).lower() for p in words if str(p).strip())

    @classmethod
    def from_config(cls, section: Optional[dict]) -> "QuotaSignals":
        section = section if isinstance(section, dict) else {}
        return cls(status_codes=section.get("status_codes"), phrases=section.get("phrases"))

    def matches(self, exc: BaseException) -> bool:
        code = status_code_of(exc)
        if code is not None and code in self.status_codes:
            return True
        err = str(exc).lower()
        return any(p in err for p in self.phrases)


def status_code_of(exc: BaseException) -> Optional[int]:
    """Best-effort HTTP status code from an SDK exception."""
    # openai: .status_code, google.api_core: .code (HTTPStatus), others: .status
    for attr in ("status_code", "code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return int(value)
    return None


class LLMAdapter(ABC):
    """Unified interface for text-generation providers.

    Adapters take a prompt string and a model identifier, call the provider
    SDK and normalize the response into plain text.

    Implementors should:
    - Apply provider-specific parameters (model, temperature, top_p).
    - Catch provider SDK exceptions and re-raise them through `classify_error`
      so callers only ever see LLMError subclasses.
    - Avoid leaking provider SDK objects to callers.
    """

    connection_keys: Sequence[str] = ("timeout", "deadline exceeded", "connection", "dns")
    auth_keys: Sequence[str] = (
        "unauthorized", "unauthenticated", "invalid api key", "api key not valid",
        "401", "403", "permission", "forbidden", "billing", "payment required",
    )

    def __init__(
        self,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        quota_signals: Optional[QuotaSignals] = None,
    ) -> None:
        self._model = model
        self._temperature = temperature
        self._top_p = top_p
        self._quota_signals = quota_signals or QuotaSignals()

    @property
    def model(self) -> Optional[str]:
        return self._model

    @property
    def temperature(self) -> Optional[float]:
        return self._temperature

    @property
    def top_p(self) -> Optional[float]:
        return self._top_p

    @property
    def quota_signals(self) -> QuotaSignals:
        return self._quota_signals

    @abstractmethod
    def name(self) -> str:
        """Human-friendly provider name (e.g., 'gemini', 'openai')."""

    @abstractmethod
    def generate(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        label: Optional[str] = None,
    ) -> str:
        """Generate text for a single prompt with the given model.

        - model: model identifier for this call; falls back to the adapter default.
        - temperature, top_p: optional overrides for this call.
        - label: optional label for logs (e.g., 'chunk 3/10').

        Returns plain text. Raises LLMError subclasses only.
        """

    def validate_environment(self) -> None:
        """Validate required environment (e.g., API keys). Raise LLMAuthError when missing."""
        return None

    def classify_error(self, exc: Exception) -> LLMError:
        """Map an SDK exception onto the LLMError hierarchy.

        Quota/availability signals are checked first, then transport, then auth.
        """
        if isinstance(exc, LLMError):
            return exc
        message = str(exc) or exc.__class__.__name__
        err = message.lower()
        if self._quota_signals.matches(exc):
            log_debug(f"{self.name()} error classified as quota/availability")
            return LLMQuotaError(message, status_code=status_code_of(exc))
        for k in self.connection_keys:
            if k in err:
                log_debug(f"{self.name()} matched '{k}' -> LLMConnectionError")
                return LLMConnectionError(message)
        for k in self.auth_keys:
            if k in err:
                log_debug(f"{self.name()} matched '{k}' -> LLMAuthError")
                return LLMAuthError(message)
        log_debug(f"{self.name()} did not match known errors -> LLMUnknownError")
        return LLMUnknownError(message)
