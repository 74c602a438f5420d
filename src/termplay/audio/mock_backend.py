"""Mock audio backend used by tests and headless runs."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from threading import Lock, Timer
from typing import List, Optional

from termplay.audio.types import AudioDevice, BackendType, Sink
from termplay.core.errors import SourceUnreadableError

logger = logging.getLogger(__name__)

_TICK_SECONDS = 0.1


class MockSink:
    """Pretends to play a source of fixed length without touching real audio."""

    def __init__(self, device: AudioDevice, *, source_seconds: float = 1.0):
        self.device = device
        self._source_seconds = max(0.0, source_seconds)
        self._lock = Lock()
        self._timer: Optional[Timer] = None
        self._path: Optional[Path] = None
        self._progress_seconds = 0.0
        self._playing = False
        self._stopped = False
        self._exhausted = False
        self._gain_db: Optional[float] = None

    def load(self, path: Path) -> None:
        path = Path(path)
        if not path.is_file() or not os.access(path, os.R_OK):
            raise SourceUnreadableError(f"Cannot read {path}")
        with self._lock:
            self._path = path
            self._progress_seconds = 0.0
            self._exhausted = False
            self._stopped = False
        logger.info("[MOCK] Loaded %s on %s", path, self.device.name)

    def play(self) -> None:
        with self._lock:
            if self._path is None or self._playing or self._stopped or self._exhausted:
                return
            self._playing = True
            self._schedule_locked()
        logger.info("[MOCK] Playing %s", self._path)

    def pause(self) -> None:
        with self._lock:
            if not self._playing:
                return
            self._playing = False
            self._cancel_locked()
        logger.info("[MOCK] Paused %s", self._path)

    def stop(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._playing = False
            self._cancel_locked()
        logger.info("[MOCK] Stopped %s", self._path)

    def is_exhausted(self) -> bool:
        with self._lock:
            return self._exhausted and not self._stopped

    def duration_seconds(self) -> Optional[float]:
        return self._source_seconds

    def set_gain_db(self, gain_db: Optional[float]) -> None:
        self._gain_db = gain_db

    def close(self) -> None:
        self.stop()

    def _schedule_locked(self) -> None:
        self._timer = Timer(_TICK_SECONDS, self._tick)
        self._timer.daemon = True
        self._timer.start()

    def _cancel_locked(self) -> None:
        if self._timer:
            self._timer.cancel()
            self._timer = None

    def _tick(self) -> None:
        with self._lock:
            if not self._playing:
                return
            self._progress_seconds += _TICK_SECONDS
            if self._progress_seconds >= self._source_seconds:
                self._progress_seconds = self._source_seconds
                self._exhausted = True
                self._playing = False
                self._timer = None
                return
            self._schedule_locked()


class MockBackendProvider:
    """Backend exposing one fake output device."""

    backend = BackendType.MOCK

    def __init__(self, label: str = "Mock Device", *, source_seconds: float = 1.0) -> None:
        self._label = label
        self._source_seconds = source_seconds

    def list_devices(self) -> List[AudioDevice]:
        return [
            AudioDevice(
                id="mock:default",
                name=self._label,
                backend=self.backend,
                raw_index=None,
                is_default=True,
            )
        ]

    def open_sink(self, device: AudioDevice) -> Sink:
        return MockSink(device, source_seconds=self._source_seconds)
