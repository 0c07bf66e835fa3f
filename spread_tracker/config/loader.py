"""YAML loaders for the config subsystem.

Each helper consumes one YAML file, validates it via models.py and returns
typed objects to the caller.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

import yaml

from .models import ApiCredentialsConfig, AppConfig, TrackerSettings

_DEFAULT_CONFIG_DIR = Path("config")
SECRETS_ENV_VAR = "APP_SECRETS_PATH"


def _read_yaml(path: Path) -> Mapping:
    """Read a YAML file and return a mapping (empty dict if file is blank)."""

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"YAML root must be a mapping in {path}")
    return data


def load_tracker_settings(path: Path | str = _DEFAULT_CONFIG_DIR / "settings.yml") -> TrackerSettings:
    """Load settings.yml (polling interval, spread thresholds, venues).

    Every key is optional; an empty file yields the defaults of
    :class:`TrackerSettings` (10 s polling, 1% min change/value, all CEX venues
    plus DexScreener).
    """

    data = _read_yaml(Path(path))
    return TrackerSettings.model_validate(data)


def load_secrets_config(path: Path | str = _DEFAULT_CONFIG_DIR / "secrets.yaml") -> ApiCredentialsConfig:
    """Load secrets.yaml (Telegram token and venue API keys).

    Uses the schema from credentials.example.yml. In production setups the file
    is gitignored; for tests it can point to a fixture.
    """

    data = _read_yaml(Path(path))
    return ApiCredentialsConfig.model_validate(data)


def resolve_secrets_path(config_dir: Path) -> Path:
    """Pick the secrets file: ``$APP_SECRETS_PATH``, then secrets.yaml, then the example."""

    env_path = os.environ.get(SECRETS_ENV_VAR)
    if env_path:
        return Path(env_path)
    candidate = config_dir / "secrets.yaml"
    if candidate.exists():
        return candidate
    return config_dir / "credentials.example.yml"


def load_app_config(
    *,
    settings_path: Path | str = _DEFAULT_CONFIG_DIR / "settings.yml",
    secrets_path: Path | str = _DEFAULT_CONFIG_DIR / "secrets.yaml",
) -> AppConfig:
    """Load and aggregate all config sections into a single AppConfig."""

    tracker = load_tracker_settings(settings_path)
    credentials = load_secrets_config(secrets_path)
    return AppConfig(tracker=tracker, credentials=credentials)
