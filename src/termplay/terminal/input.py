"""Turns key presses into transport commands."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Mapping, Optional, Protocol

from termplay.terminal.console import KeyEvent

logger = logging.getLogger(__name__)

DEFAULT_BINDINGS: Dict[str, str] = {
    "toggle_pause": "SPACE",
    "quit": "Q",
}

_NAMED_KEYS = {
    " ": "SPACE",
    "\t": "TAB",
    "\r": "ENTER",
    "\n": "ENTER",
    "\x7f": "BACKSPACE",
}


class Command(Enum):
    TOGGLE_PAUSE = "toggle_pause"
    QUIT = "quit"


class KeySource(Protocol):
    def read_key(self, timeout: float) -> Optional[KeyEvent]: ...


def normalize_key(raw: str) -> Optional[str]:
    """Map a raw key string to a binding name (``" "`` -> ``SPACE``, ``q`` -> ``Q``).

    Escape sequences (arrows, function keys) yield None. The terminal splits
    bursts into single keys; anything longer that still arrives counts as its
    first key.
    """
    if not raw or raw.startswith("\x1b"):
        return None
    char = raw[0]
    if char in _NAMED_KEYS:
        return _NAMED_KEYS[char]
    if not char.isprintable():
        return None
    return char.upper()


class InputListener:
    """Polls a key source with a bounded wait and decodes commands."""

    def __init__(self, source: KeySource, bindings: Optional[Mapping[str, str]] = None) -> None:
        self._source = source
        merged = dict(DEFAULT_BINDINGS)
        if bindings:
            merged.update({action: str(key).strip().upper() for action, key in bindings.items()})
        self._commands: Dict[str, Command] = {}
        for action, key in merged.items():
            try:
                command = Command(action)
            except ValueError:
                logger.warning("Ignoring binding for unknown action %r", action)
                continue
            self._commands[key] = command

    def key_for(self, command: Command) -> str:
        for key, bound in self._commands.items():
            if bound is command:
                return key
        return ""

    def poll(self, timeout: float = 0.1) -> Optional[Command]:
        event = self._source.read_key(timeout)
        if event is None or not event.pressed:
            return None
        key = normalize_key(event.key)
        if key is None:
            return None
        return self._commands.get(key)
