"""Playback session orchestration."""

from __future__ import annotations

from .controller import SessionController, SessionResult
from .state import FinishReason, PlaybackSession, SessionState

__all__ = [
    "FinishReason",
    "PlaybackSession",
    "SessionController",
    "SessionResult",
    "SessionState",
]
