from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Optional, Sequence, Tuple

from aiadapters.base import LLMAdapter, LLMAuthError, LLMError, LLMQuotaError
from aiadapters.factory import create_llm_adapter, resolve_model_roster

from .errors import AllModelsExhausted, BackendError, ConfigurationError
from .logging_helper import log_debug, log_info, log_trace_block, log_warn


@dataclass(frozen=True)
class ChunkResult:
    text: str
    model_used: str


class ExhaustedModels:
    """Process-wide set of model identifiers believed to be out of quota.

    Shared by reference between concurrent requests. Each operation is atomic;
    readers may see a slightly stale view, which costs at most one extra
    failed attempt.
    """

    def __init__(self, initial: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._models = set(initial)

    def __contains__(self, model: object) -> bool:
        with self._lock:
            return model in self._models

    def __len__(self) -> int:
        with self._lock:
            return len(self._models)

    def add(self, model: str) -> None:
        with self._lock:
            self._models.add(model)

    def snapshot(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._models)

    def clear(self) -> None:
        with self._lock:
            self._models.clear()

    def reset_if_covers(self, models: Iterable[str]) -> bool:
        """Clear the set when it contains every model given; report whether it did."""
        wanted = set(models)
        with self._lock:
            if wanted and wanted <= self._models:
                self._models.clear()
                return True
            return False


class ModelRoster:
    """Ordered model identifiers plus the shared exhausted set."""

    def __init__(self, models: Sequence[str], exhausted: Optional[ExhaustedModels] = None) -> None:
        if not models:
            raise ConfigurationError("Model roster is empty; configure llm.<provider>.models")
        self.models: Tuple[str, ...] = tuple(models)
        self.exhausted = exhausted if exhausted is not None else ExhaustedModels()

    def __len__(self) -> int:
        return len(self.models)

    def select_model(self) -> str:
        exhausted = self.exhausted.snapshot()
        for model in self.models:
            if model not in exhausted:
                return model
        # All exhausted: quotas may have recovered since, start over optimistically
        if self.exhausted.reset_if_covers(self.models):
            log_warn(f"All models quota exhausted, retrying: {self.models[0]}")
        return self.models[0]

    def mark_exhausted(self, model: str) -> None:
        if model in self.models:
            self.exhausted.add(model)


class FallbackClient:
    """Generation client that substitutes models on quota/availability errors."""

    def __init__(self, adapter: LLMAdapter, roster: ModelRoster) -> None:
        self.adapter = adapter
        self.roster = roster

    def select_model(self) -> str:
        return self.roster.select_model()

    def generate(self, prompt: str, *, label: Optional[str] = None) -> ChunkResult:
        """Generate with the first available model, at most one attempt per roster entry.

        Raises AllModelsExhausted when every attempt hit a quota error and
        BackendError on the first non-quota failure.
        """
        suffix = f" [{label}]" if label else ""
        log_trace_block(f"Prompt{suffix}", prompt)
        for attempt in range(1, len(self.roster) + 1):
            model = self.select_model()
            log_debug(f"Attempt {attempt}/{len(self.roster)} with model {model}{suffix}")
            try:
                text = self.adapter.generate(prompt, model=model, label=label)
            except LLMQuotaError as exc:
                log_warn(f"Model {model} hit quota limit, switching to next model ({exc})")
                self.roster.mark_exhausted(model)
                continue
            except LLMError as exc:
                raise BackendError(f"{self.adapter.name()} failed with model {model}: {exc}") from exc
            log_trace_block(f"Response{suffix}", text)
            return ChunkResult(text=text, model_used=model)
        raise AllModelsExhausted()


def create_fallback_client(
    cfg: Dict,
    *,
    exhausted: ExhaustedModels,
    provider_override: Optional[str] = None,
    project_root: Path,
) -> FallbackClient:
    """Adapter + roster from config. Missing credentials raise ConfigurationError."""
    roster = ModelRoster(resolve_model_roster(cfg, provider_override), exhausted)
    try:
        adapter = create_llm_adapter(cfg, provider_override=provider_override, project_root=project_root)
    except LLMAuthError as exc:
        raise ConfigurationError(f"API key not configured: {exc}") from exc
    except (LLMError, ValueError) as exc:
        raise ConfigurationError(f"Failed to initialize LLM adapter: {exc}") from exc
    log_info(f"Using LLM adapter: {adapter.name()} | models: {', '.join(roster.models)}")
    return FallbackClient(adapter, roster)
