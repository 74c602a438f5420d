"""Helpers for environment flags shared across the app."""

from __future__ import annotations

import os
from pathlib import Path

_TRUTHY = {"1", "true", "yes", "on"}


def is_mock_audio_forced() -> bool:
    """Return True when playback should use the mock backend instead of real devices."""

    flag = os.environ.get("TERMPLAY_FORCE_MOCK_AUDIO", "")
    return str(flag).strip().lower() in _TRUTHY


def default_config_path() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "termplay" / "settings.yaml"


def resolve_config_path(default_path: Path | None = None) -> Path:
    """Pick config path based on environment overrides."""

    env_path = os.environ.get("TERMPLAY_CONFIG_PATH")
    if env_path:
        return Path(env_path)
    env_dir = os.environ.get("TERMPLAY_CONFIG_DIR")
    if env_dir:
        return Path(env_dir) / "settings.yaml"
    return default_path if default_path is not None else default_config_path()


def resolve_log_dir(default_path: Path | None = None) -> Path:
    """Return the directory for log files, honoring ``TERMPLAY_LOG_DIR``."""

    env_path = os.environ.get("TERMPLAY_LOG_DIR")
    if env_path:
        return Path(env_path)
    if default_path is not None:
        return default_path
    return Path.cwd() / "logs"
