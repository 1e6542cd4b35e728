from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .base import LLMAdapter, QuotaSignals

DEFAULT_PROVIDER = "gemini"


def load_env_file(project_root: Path) -> bool:
    """Load key=value pairs from .env into os.environ.

    - Supports optional 'export ' prefix per line.
    - Variables already present in the environment win over the file.
    - Returns True if at least one key=value pair was loaded.
    """
    env_path = project_root / ".env"
    if not env_path.exists():
        return False
    loaded_any = False
    with open(env_path, "r", encoding="utf-8", errors="ignore") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line.lower().startswith("export "):
                line = line[7:].lstrip()
            if "=" not in line:
                continue
            k, v = line.split("=", 1)
            k = k.strip()
            v = v.strip().strip('"').strip("'")
            if k and v and k not in os.environ:
                os.environ[k] = v
                loaded_any = True
    return loaded_any


def effective_provider_and_config(cfg: Dict, provider_override: Optional[str]) -> Tuple[str, Dict]:
    """Resolve provider name and its config from the global config dict.

    Expected structure:
      llm:
        provider: gemini|openai|dummy
        gemini: { models: [...], temperature, top_p }
        openai: { models: [...], temperature, top_p }

    A single `model` key is accepted in place of `models`.
    """
    llm_section = cfg.get("llm", {}) if isinstance(cfg.get("llm"), dict) else {}
    provider = (provider_override or llm_section.get("provider") or DEFAULT_PROVIDER).strip().lower()
    provider_cfg: Dict = {}
    if isinstance(llm_section.get(provider), dict):
        provider_cfg = dict(llm_section.get(provider) or {})
    return provider, provider_cfg


def resolve_model_roster(cfg: Dict, provider_override: Optional[str] = None) -> List[str]:
    """Ordered, de-duplicated model identifiers for the effective provider."""
    _, p_cfg = effective_provider_and_config(cfg, provider_override)
    models = p_cfg.get("models")
    if isinstance(models, str):
        models = [models]
    if not models and p_cfg.get("model"):
        models = [p_cfg["model"]]
    roster: List[str] = []
    for m in models or []:
        name = str(m).strip()
        if name and name not in roster:
            roster.append(name)
    return roster


def create_llm_adapter(cfg: Dict, *, provider_override: Optional[str], project_root: Path) -> LLMAdapter:
    """Factory returning a configured LLMAdapter based on config and CLI override.

    - Loads .env into process environment (non-destructive for existing vars).
    - Instantiates the appropriate adapter and validates its environment.
      Missing credentials surface as LLMAuthError.
    """
    load_env_file(project_root)

    provider, p_cfg = effective_provider_and_config(cfg, provider_override)
    roster = resolve_model_roster(cfg, provider_override)
    model = roster[0] if roster else None
    temperature = p_cfg.get("temperature")
    top_p = p_cfg.get("top_p")
    llm_section = cfg.get("llm", {}) if isinstance(cfg.get("llm"), dict) else {}
    quota_signals = QuotaSignals.from_config(llm_section.get("quota_signals"))

    if provider == "gemini":
        from .gemini_adapter import GeminiAdapter
        adapter: LLMAdapter = GeminiAdapter(model=model, temperature=temperature, top_p=top_p, quota_signals=quota_signals)
    elif provider == "openai":
        from .openai_adapter import OpenAIAdapter
        adapter = OpenAIAdapter(model=model, temperature=temperature, top_p=top_p, quota_signals=quota_signals)
    elif provider == "dummy":
        from .dummy_adapter import DummyAdapter
        adapter = DummyAdapter(model=model, temperature=temperature, top_p=top_p, quota_signals=quota_signals)
    else:
        raise ValueError(f"Unknown LLM provider '{provider}'. Implement an adapter and register it in the factory.")

    adapter.validate_environment()
    return adapter
