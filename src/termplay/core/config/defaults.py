"""Default configuration values."""

from __future__ import annotations

from typing import Any, Dict

from termplay.core.library import SUPPORTED_AUDIO_EXTENSIONS

DEFAULT_CONFIG: Dict[str, Any] = {
    "library": {
        "start_dir": None,
        "recursive": True,
        "extensions": sorted(SUPPORTED_AUDIO_EXTENSIONS),
    },
    "playback": {
        "poll_interval_ms": 100,
        "wait_interval_ms": 100,
        "gain_db": None,
    },
    "audio": {
        "device": None,
    },
    "shortcuts": {
        "playback": {
            "toggle_pause": "SPACE",
            "quit": "Q",
        },
    },
    "diagnostics": {
        "log_level": "WARNING",
    },
}
