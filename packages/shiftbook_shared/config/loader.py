"""Deterministic settings loading.

Sources are layered, later ones winning key by key:

1) YAML config file (``~/.config/shiftbook/shiftbook.yaml`` by default)
2) Environment variables (``SHIFTBOOK_`` prefix, ``__`` nesting)
3) CLI / init params

Example: ``SHIFTBOOK_COMPONENTS__SERVICE__LOG_DISTRIBUTION__MAX_BATCH_SIZE=50``
sets ``components.service.log_distribution.max_batch_size = 50``. Environment
values are parsed as YAML scalars, so ``true``, ``50`` and ``[A, B]`` arrive
typed.
"""

from __future__ import annotations

import copy
import os
from functools import reduce
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models import DEFAULT_CONFIG_PATH, ENV_PREFIX, ShiftbookSettings

_NULL_TOKENS = frozenset({"null", "none", "~"})


def load_settings(
    *,
    cli_params: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    config_path: str | Path | None = None,
) -> ShiftbookSettings:
    """Load settings by layering YAML, environment and init params."""
    layers = (
        _read_yaml(Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH),
        _env_tree(os.environ if environ is None else environ),
        dict(cli_params or {}),
    )
    return ShiftbookSettings.model_validate(reduce(_deep_merge, layers, {}))


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Config file must contain a top-level mapping: {path}")
    return parsed


def _env_tree(environ: Mapping[str, str]) -> dict[str, Any]:
    """Fold prefixed variables into a nested mapping keyed by lowercase path."""
    tree: dict[str, Any] = {}
    for key, raw in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        path = [part.strip().lower() for part in key[len(ENV_PREFIX) :].split("__")]
        path = [part for part in path if part]
        if not path:
            continue
        cursor = tree
        for part in path[:-1]:
            child = cursor.get(part)
            if not isinstance(child, dict):
                child = cursor[part] = {}
            cursor = child
        cursor[path[-1]] = _parse_env_value(raw)
    return tree


def _parse_env_value(raw: str) -> Any:
    stripped = raw.strip()
    if stripped.lower() in _NULL_TOKENS:
        return None
    try:
        value = yaml.safe_load(stripped)
    except yaml.YAMLError:
        return raw
    # Comments and empty strings parse to None; keep them verbatim.
    return raw if value is None else value


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged
