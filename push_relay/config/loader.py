"""Configuration loading helpers for Push-Relay."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models import RelayConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
CONFIG_ENV_VAR = "PUSH_RELAY_CONFIG"
SECRET_FIELDS = {"user_key", "app_token", "url"}


def _read_file(path: Path) -> dict:
    if path.suffix not in CONFIG_EXTENSIONS:
        raise ValueError(f"Unsupported configuration format: {path}")
    text = path.read_text(encoding="utf-8")
    if path.suffix == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _merge(base: dict, overrides: Mapping[str, Any]) -> dict:
    """Recursively merge ``overrides`` into ``base``; ``None`` values are ignored."""

    merged = dict(base)
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _merge(dict(merged[key]), value)
        elif isinstance(value, Mapping):
            merged[key] = _merge({}, value)
        else:
            merged[key] = value
    return merged


def locate_config(explicit: Path | None = None) -> Path | None:
    """Return the configuration file to use, honouring ``PUSH_RELAY_CONFIG``."""

    if explicit is not None:
        return explicit
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return None


def load_config(path: Path | None = None, overrides: Mapping[str, Any] | None = None) -> RelayConfig:
    """Build a validated ``RelayConfig`` from file contents and CLI overrides."""

    payload: dict = {}
    config_path = locate_config(path)
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        payload = _read_file(config_path)
    if overrides:
        payload = _merge(payload, overrides)
    return RelayConfig.model_validate(payload)


def masked_dump(config: RelayConfig) -> dict[str, Any]:
    """Flatten configuration into dotted keys with credential values masked."""

    flat: dict[str, Any] = {}

    def _walk(prefix: str, value: Any) -> None:
        if isinstance(value, dict):
            for key, inner in value.items():
                _walk(f"{prefix}.{key}" if prefix else key, inner)
            return
        leaf = prefix.rsplit(".", 1)[-1]
        if leaf in SECRET_FIELDS and value:
            value = "****"
        flat[prefix] = value

    _walk("", config.model_dump(mode="json"))
    return flat


__all__ = ["CONFIG_ENV_VAR", "CONFIG_EXTENSIONS", "load_config", "locate_config", "masked_dump"]
