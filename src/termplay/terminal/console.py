"""Terminal control: raw mode, line rendering and key reads."""

from __future__ import annotations

import logging
import os
import sys
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional, TextIO

from termplay.core.errors import TerminalIOError

logger = logging.getLogger(__name__)

CLEAR_LINE = "\r\033[2K"
_READ_CHUNK = 32
_WINDOWS_POLL_SLEEP = 0.01


@dataclass(frozen=True)
class KeyEvent:
    """One keyboard event. ``key`` is the raw character(s) delivered."""

    key: str
    pressed: bool = True


def split_keys(text: str) -> List[str]:
    """Split one read burst into single keys; CSI/SS3 escape sequences stay whole."""
    keys: List[str] = []
    index = 0
    while index < len(text):
        if text[index] == "\x1b" and index + 1 < len(text) and text[index + 1] in "[O":
            end = index + 2
            while end < len(text) and not "@" <= text[end] <= "~":
                end += 1
            keys.append(text[index : end + 1])
            index = end + 1
        else:
            keys.append(text[index])
            index += 1
    return keys


class Terminal:
    """Wraps stdin/stdout with the primitives a playback session needs.

    Raw mode here is cbreak mode: keys arrive unbuffered and without echo,
    while Ctrl+C still raises ``KeyboardInterrupt``.
    """

    def __init__(self, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> None:
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._saved_attrs = None
        self._raw = False
        self._pending: Deque[str] = deque()

    @property
    def is_raw(self) -> bool:
        return self._raw

    def _fileno(self) -> int:
        try:
            return self._stdin.fileno()
        except (AttributeError, ValueError, OSError) as exc:
            raise TerminalIOError(f"stdin has no usable file descriptor: {exc}") from exc

    def enter_raw_mode(self) -> None:
        if self._raw:
            return
        if os.name == "nt":
            self._raw = True
            return
        import termios
        import tty

        fd = self._fileno()
        if not os.isatty(fd):
            raise TerminalIOError("stdin is not a terminal")
        try:
            self._saved_attrs = termios.tcgetattr(fd)
            tty.setcbreak(fd)
        except termios.error as exc:
            raise TerminalIOError(f"Cannot switch terminal to raw mode: {exc}") from exc
        self._raw = True
        logger.debug("Terminal raw mode on")

    def exit_raw_mode(self) -> None:
        if not self._raw:
            return
        self._raw = False
        if os.name == "nt" or self._saved_attrs is None:
            return
        import termios

        saved, self._saved_attrs = self._saved_attrs, None
        fd = self._fileno()
        try:
            termios.tcsetattr(fd, termios.TCSADRAIN, saved)
        except termios.error as exc:
            # TCSANOW skips waiting for pending output; try it before giving up
            try:
                termios.tcsetattr(fd, termios.TCSANOW, saved)
            except termios.error:
                logger.error("Terminal left in raw mode: %s", exc)
                raise TerminalIOError(f"Cannot restore terminal mode: {exc}") from exc
            logger.warning("Terminal restored with TCSANOW after: %s", exc)
        logger.debug("Terminal raw mode off")

    def read_key(self, timeout: float) -> Optional[KeyEvent]:
        """Return the next key, waiting at most ``timeout`` seconds.

        Several keys arriving in one read are handed out one per call.
        """
        if self._pending:
            return KeyEvent(self._pending.popleft())
        if os.name == "nt":
            return self._read_key_windows(timeout)
        import select

        fd = self._fileno()
        try:
            ready, _, _ = select.select([fd], [], [], max(0.0, timeout))
            if not ready:
                return None
            data = os.read(fd, _READ_CHUNK)
        except (OSError, ValueError) as exc:
            raise TerminalIOError(f"Cannot read keyboard input: {exc}") from exc
        keys = split_keys(data.decode("utf-8", errors="replace"))
        if not keys:
            return None
        self._pending.extend(keys[1:])
        return KeyEvent(keys[0])

    def _read_key_windows(self, timeout: float) -> Optional[KeyEvent]:
        import msvcrt

        deadline = time.monotonic() + max(0.0, timeout)
        while True:
            if msvcrt.kbhit():
                char = msvcrt.getwch()
                if char in ("\x00", "\xe0"):
                    # extended key: swallow the scan code
                    msvcrt.getwch()
                    return KeyEvent("\x1b")
                return KeyEvent(char)
            if time.monotonic() >= deadline:
                return None
            time.sleep(_WINDOWS_POLL_SLEEP)

    def write(self, text: str) -> None:
        try:
            self._stdout.write(text)
            self._stdout.flush()
        except (OSError, ValueError) as exc:
            raise TerminalIOError(f"Cannot write to terminal: {exc}") from exc

    def write_line(self, text: str = "") -> None:
        self.write(f"{text}\n")

    def cursor_to_line_start(self) -> None:
        self.write("\r")

    def clear_line(self) -> None:
        self.write(CLEAR_LINE)

    def status(self, text: str) -> None:
        """Replace the current line with ``text``."""
        self.write(f"{CLEAR_LINE}{text}")
