"""Shared state of one playback session.

Both the caller thread and the command thread touch this object; every
transition happens under ``_lock`` and the terminal transition also sets the
``finished`` event the caller waits on.
"""

from __future__ import annotations

import logging
from enum import Enum
from threading import Event, Lock
from typing import Optional

from termplay.audio.types import Sink
from termplay.core.clock import PlaybackClock

logger = logging.getLogger(__name__)


class SessionState(Enum):
    STARTING = "starting"
    PLAYING = "playing"
    PAUSED = "paused"
    FINISHED = "finished"


class FinishReason(Enum):
    COMPLETED = "completed"
    QUIT = "quit"
    INTERRUPTED = "interrupted"
    FAILED = "failed"


class PlaybackSession:
    def __init__(self, sink: Sink, clock: PlaybackClock) -> None:
        self.sink = sink
        self.clock = clock
        self._lock = Lock()
        self._state = SessionState.STARTING
        self._finished = Event()
        self.finish_reason: Optional[FinishReason] = None
        self.error: Optional[BaseException] = None

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def paused(self) -> bool:
        return self.state is SessionState.PAUSED

    @property
    def is_finished(self) -> bool:
        return self._finished.is_set()

    def start(self) -> bool:
        with self._lock:
            if self._state is not SessionState.STARTING:
                return False
            self._state = SessionState.PLAYING
        logger.debug("Session state: starting -> playing")
        return True

    def toggle_pause(self, now: float) -> Optional[SessionState]:
        """Flip between playing and paused; returns the new state, None when finished."""
        with self._lock:
            if self._state is SessionState.PLAYING:
                self.sink.pause()
                self.clock.on_pause(now)
                self._state = SessionState.PAUSED
            elif self._state is SessionState.PAUSED:
                self.sink.play()
                self.clock.on_resume(now)
                self._state = SessionState.PLAYING
            else:
                return None
            new_state = self._state
        logger.debug("Session state: -> %s", new_state.value)
        return new_state

    def finish(self, reason: FinishReason, now: float, *, error: Optional[BaseException] = None) -> bool:
        """Move to FINISHED. Only the first call has any effect."""
        with self._lock:
            if self._state is SessionState.FINISHED:
                return False
            self.clock.on_pause(now)
            self._state = SessionState.FINISHED
            self.finish_reason = reason
            self.error = error
            self._finished.set()
        logger.debug("Session finished: %s", reason.value)
        return True

    def wait_finished(self, timeout: float) -> bool:
        return self._finished.wait(timeout)

    def elapsed_seconds(self, now: float) -> int:
        return self.clock.snapshot(now)
