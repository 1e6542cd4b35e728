from __future__ import annotations

import os
from typing import Any, Dict, Optional

from tutorial_pipeline.logging_helper import log_debug

from .base import (
    LLMAdapter,
    LLMAuthError,
    LLMUnknownError,
    QuotaSignals,
)

API_KEY_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")
DEFAULT_MODEL = "gemini-2.5-flash"


def _api_key() -> Optional[str]:
    for var in API_KEY_VARS:
        value = os.environ.get(var)
        if value:
            return value
    return None


class GeminiAdapter(LLMAdapter):
    """Google Gemini adapter using the `google-generativeai` SDK.

    Expects GEMINI_API_KEY (or GOOGLE_API_KEY) in the environment. One
    GenerativeModel is built per call because the model identifier changes
    whenever the fallback client substitutes a model.
    """

    def __init__(
        self,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        quota_signals: Optional[QuotaSignals] = None,
    ) -> None:
        super().__init__(model=model, temperature=temperature, top_p=top_p, quota_signals=quota_signals)
        try:
            import google.generativeai as genai  # type: ignore
        except Exception as e:  # pragma: no cover
            raise LLMUnknownError(f"Gemini SDK import failed: {e}")
        self._genai = genai
        self.validate_environment()
        self._genai.configure(api_key=_api_key())  # type: ignore

    def name(self) -> str:
        return "gemini"

    def validate_environment(self) -> None:
        if not _api_key():
            raise LLMAuthError("Missing GEMINI_API_KEY in environment (expected via .env or shell env)")

    def generate(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        label: Optional[str] = None,
    ) -> str:
        model_name = model or self.model or DEFAULT_MODEL
        generation_config: Dict[str, Any] = {}
        if temperature is not None:
            generation_config["temperature"] = temperature
        elif self.temperature is not None:
            generation_config["temperature"] = self.temperature
        if top_p is not None:
            generation_config["top_p"] = top_p
        elif self.top_p is not None:
            generation_config["top_p"] = self.top_p

        log_debug(
            "Gemini request" + (f" [{label}]" if label else "")
            + f" | model: {model_name} | temperature: {generation_config.get('temperature')}"
            + f" | top_p: {generation_config.get('top_p')} | prompt chars: {len(prompt)}"
        )
        try:
            model_obj = self._genai.GenerativeModel(model_name)
            resp = model_obj.generate_content(
                prompt,
                generation_config=generation_config or None,
            )
            # google-generativeai returns .text for aggregated text
            return getattr(resp, "text", "") or ""
        except Exception as e:
            raise self.classify_error(e) from e
