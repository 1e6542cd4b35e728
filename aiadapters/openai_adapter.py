from __future__ import annotations

import os
from typing import Dict, Optional

from tutorial_pipeline.logging_helper import log_debug

from .base import (
    LLMAdapter,
    LLMAuthError,
    LLMUnknownError,
    QuotaSignals,
)


class OpenAIAdapter(LLMAdapter):
    """OpenAI adapter wrapping the `openai` Python SDK (responses API).

    Expects OPENAI_API_KEY to be present in environment (or configured via the SDK).
    """

    auth_keys = LLMAdapter.auth_keys + ("insufficient funds", "subscription")

    def __init__(
        self,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        quota_signals: Optional[QuotaSignals] = None,
    ) -> None:
        super().__init__(model=model, temperature=temperature, top_p=top_p, quota_signals=quota_signals)
        # Lazy import so that other providers can be used without installing openai
        try:
            from openai import OpenAI  # type: ignore
        except Exception as e:  # pragma: no cover - import error path
            raise LLMUnknownError(f"OpenAI SDK import failed: {e}")
        self.validate_environment()
        # Initialize client (uses env var OPENAI_API_KEY)
        self._client = OpenAI()

    def name(self) -> str:
        return "openai"

    def validate_environment(self) -> None:
        if not os.environ.get("OPENAI_API_KEY"):
            raise LLMAuthError("Missing OPENAI_API_KEY in environment (expected via .env or shell env)")

    def _build_params(self, prompt: str, model: Optional[str], temperature: Optional[float], top_p: Optional[float]) -> Dict:
        params: Dict = {
            "model": (model or self.model),
            "input": [{"role": "user", "content": prompt}],
        }
        eff_temperature = self.temperature if temperature is None else temperature
        if eff_temperature is not None:
            params["temperature"] = eff_temperature
        eff_top_p = self.top_p if top_p is None else top_p
        if eff_top_p is not None:
            params["top_p"] = eff_top_p
        return params

    def generate(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        label: Optional[str] = None,
    ) -> str:
        params = self._build_params(prompt, model, temperature, top_p)
        log_debug(
            "OpenAI request" + (f" [{label}]" if label else "")
            + f" | model: {params.get('model')} | temperature: {params.get('temperature')}"
            + f" | top_p: {params.get('top_p')} | prompt chars: {len(prompt)}"
        )
        try:
            resp = self._client.responses.create(**params)
            return getattr(resp, "output_text", "") or ""
        except Exception as e:  # Map to generic errors
            raise self.classify_error(e) from e
