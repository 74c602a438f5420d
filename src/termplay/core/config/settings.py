"""Application configuration management module."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .defaults import DEFAULT_CONFIG
from .merge import overlay_settings
from termplay.core.env import resolve_config_path

logger = logging.getLogger(__name__)

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class SettingsManager:
    """YAML configuration with default values."""

    config_path: Optional[Path] = None
    _data: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.config_path = resolve_config_path(self.config_path)
        self.load()

    def load(self) -> None:
        assert self.config_path is not None
        if self.config_path.exists():
            try:
                with self.config_path.open("r", encoding="utf-8") as file:
                    user_config = yaml.safe_load(file) or {}
            except yaml.YAMLError as exc:
                logger.warning("Ignoring unreadable settings file %s: %s", self.config_path, exc)
                user_config = {}
            if not isinstance(user_config, dict):
                user_config = {}
            self._data = overlay_settings(DEFAULT_CONFIG, user_config)
        else:
            self._data = copy.deepcopy(DEFAULT_CONFIG)

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name, {})
        return section if isinstance(section, dict) else {}

    def get_start_dir(self) -> Optional[Path]:
        value = self._section("library").get("start_dir")
        if not value:
            return None
        return Path(str(value)).expanduser()

    def get_recursive(self) -> bool:
        library = self._section("library")
        return bool(library.get("recursive", DEFAULT_CONFIG["library"]["recursive"]))

    def get_extensions(self) -> List[str]:
        raw = self._section("library").get("extensions")
        if not isinstance(raw, (list, tuple)):
            return list(DEFAULT_CONFIG["library"]["extensions"])
        normalized = []
        for value in raw:
            text = str(value).strip().lower()
            if not text:
                continue
            normalized.append(text if text.startswith(".") else f".{text}")
        return normalized or list(DEFAULT_CONFIG["library"]["extensions"])

    def _get_interval_seconds(self, key: str) -> float:
        playback = self._section("playback")
        value = playback.get(key, DEFAULT_CONFIG["playback"][key])
        try:
            millis = float(value)
        except (TypeError, ValueError):
            millis = DEFAULT_CONFIG["playback"][key]
        if millis <= 0:
            millis = DEFAULT_CONFIG["playback"][key]
        return millis / 1000.0

    def get_poll_interval(self) -> float:
        return self._get_interval_seconds("poll_interval_ms")

    def get_wait_interval(self) -> float:
        return self._get_interval_seconds("wait_interval_ms")

    def get_gain_db(self) -> Optional[float]:
        value = self._section("playback").get("gain_db")
        if value is None:
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    def get_device_id(self) -> Optional[str]:
        value = self._section("audio").get("device")
        return str(value) if value not in (None, "") else None

    def get_playback_shortcuts(self) -> Dict[str, str]:
        defaults = DEFAULT_CONFIG["shortcuts"]["playback"].copy()
        shortcuts = self._section("shortcuts").get("playback", {})
        if isinstance(shortcuts, dict):
            normalized = {
                key: str(value).strip().upper()
                for key, value in shortcuts.items()
                if isinstance(value, (str, int)) and str(value).strip()
            }
            defaults.update(normalized)
        return defaults

    def get_log_level(self) -> str:
        value = str(self._section("diagnostics").get("log_level", "")).strip().upper()
        return value if value in _LOG_LEVELS else DEFAULT_CONFIG["diagnostics"]["log_level"]
