from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import ConfigurationError

DEFAULT_CONFIG_NAME = "config.default.yaml"
LOCAL_CONFIG_NAME = "config.yaml"


def _read_yaml_dict(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"YAML root must be a mapping: {path}")
    return data


def deep_merge(base: Any, override: Any) -> Any:
    """Merge override onto base.

    - dicts merge recursively
    - lists are replaced whole
    - scalars override
    """
    if isinstance(base, dict) and isinstance(override, dict):
        merged: Dict[str, Any] = {}
        for key in base.keys():
            if key in override:
                merged[key] = deep_merge(base[key], override[key])
            else:
                merged[key] = base[key]
        for key in override.keys():
            if key not in base:
                merged[key] = override[key]
        return merged
    return override


def load_effective_config(
    base_dir: Path,
    default_name: str = DEFAULT_CONFIG_NAME,
    local_name: str = LOCAL_CONFIG_NAME,
    local_dir: Optional[Path] = None,
) -> Tuple[Dict[str, Any], bool]:
    """Return (config.default.yaml deep-merged with config.yaml, has_local).

    The default file is read from base_dir; the local override from
    local_dir when given, else from base_dir as well.
    """
    default_path = base_dir / default_name
    if not default_path.exists():
        raise ConfigurationError(f"Missing required config: {default_path}")
    default_cfg = _read_yaml_dict(default_path)

    local_path = (local_dir if local_dir is not None else base_dir) / local_name
    if local_path.exists():
        return deep_merge(default_cfg, _read_yaml_dict(local_path)), True
    return default_cfg, False


def get_section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = cfg.get(name)
    return section if isinstance(section, dict) else {}


def get_int(section: Dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Config value '{key}' must be an integer, got {value!r}") from exc


def get_float(section: Dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Config value '{key}' must be a number, got {value!r}") from exc


def get_str_list(section: Dict[str, Any], key: str, default: List[str]) -> List[str]:
    value = section.get(key)
    if value is None:
        return list(default)
    if isinstance(value, str):
        value = [value]
    return [str(v).strip() for v in value if str(v).strip()]


def apply_overrides(cfg: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Apply dotted-key overrides (e.g. {'chunking.max_chars': 8000}); None values are skipped."""
    patch: Dict[str, Any] = {}
    for dotted, value in overrides.items():
        if value is None:
            continue
        node = patch
        parts = dotted.split(".")
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = value
    return deep_merge(cfg, patch)
