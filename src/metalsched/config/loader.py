# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/config/loader.py

import logging
import os
from pathlib import Path

import yaml

from .models import SchedulerConfig

log = logging.getLogger("metalsched")


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        elif value not in (None, ""):
            base[key] = value
    return base


def _find_overrides_file(config_path: Path) -> Path | None:
    """
    Locate an overrides file:

    1. METALSCHED_OVERRIDES_FILE environment variable
    2. overrides.yaml in the same directory as the config
    """
    env = os.environ.get("METALSCHED_OVERRIDES_FILE")
    if env:
        p = Path(env)
        if p.is_file():
            return p
        log.warning("METALSCHED_OVERRIDES_FILE=%s does not exist, skipping", env)
        return None

    p = config_path.parent / "overrides.yaml"
    if p.is_file():
        return p
    return None


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    data = yaml.safe_load(os.path.expandvars(raw)) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping in {path}, got {type(data).__name__}")
    return data


def load_config(path: str | Path | None = None) -> SchedulerConfig:
    """
    Load and validate the scheduler config.

    Without a path the built-in defaults are returned. Overrides found next
    to the config (or named by METALSCHED_OVERRIDES_FILE) are deep-merged
    before validation.
    """
    if path is None:
        return SchedulerConfig()

    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")
    data = _load_yaml(path)

    overrides = _find_overrides_file(path)
    if overrides:
        log.debug("Merging overrides from %s", overrides)
        _deep_merge(data, _load_yaml(overrides))

    return SchedulerConfig.model_validate(data)
