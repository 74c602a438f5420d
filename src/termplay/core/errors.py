"""Errors raised by a play invocation.

Every error aborts the current playback session. The ``step`` label names the
stage that failed so the CLI can tell the user where to look.
"""

from __future__ import annotations


class PlaybackError(Exception):
    step = "playback"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def describe(self) -> str:
        return f"Error ({self.step}): {self.message}"


class DeviceUnavailableError(PlaybackError):
    """No audio output device could be opened."""

    step = "device"


class SourceUnreadableError(PlaybackError):
    """The source file is missing or cannot be read."""

    step = "file"


class UnsupportedFormatError(PlaybackError):
    """The source could not be decoded."""

    step = "format"


class TerminalIOError(PlaybackError):
    """Raw-mode switching or status rendering failed."""

    step = "terminal"
