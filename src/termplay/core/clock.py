"""Elapsed playback time across pause/resume cycles."""

from __future__ import annotations

from threading import Lock


def format_elapsed(total_seconds: int) -> str:
    """Render whole seconds as ``M:SS``.

    There is no hour field: 3600 seconds renders as ``60:00``.
    """
    total = max(0, int(total_seconds))
    return f"{total // 60}:{total % 60:02d}"


class PlaybackClock:
    """Accumulates the time spent playing, excluding paused stretches.

    Each playing run is measured as one wall-clock delta from the moment it
    started, so polling cadence never leaks into the total.
    """

    def __init__(self, start: float) -> None:
        self._lock = Lock()
        self._last_resume_at = start
        self._accumulated = 0.0
        self._running = True

    @property
    def last_resume_at(self) -> float:
        with self._lock:
            return self._last_resume_at

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def accumulated_seconds(self) -> int:
        with self._lock:
            return int(self._accumulated)

    def on_resume(self, now: float) -> None:
        with self._lock:
            if self._running:
                return
            self._last_resume_at = now
            self._running = True

    def on_pause(self, now: float) -> int:
        with self._lock:
            if self._running:
                self._accumulated += max(0.0, now - self._last_resume_at)
                self._running = False
            return int(self._accumulated)

    def snapshot(self, now: float, is_paused: bool | None = None) -> int:
        with self._lock:
            paused = (not self._running) if is_paused is None else is_paused
            total = self._accumulated
            if not paused and self._running:
                total += max(0.0, now - self._last_resume_at)
            return int(total)
