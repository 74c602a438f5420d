"""Numbered selection prompt used by the interactive browse loop."""

from __future__ import annotations

from typing import Callable, Optional, Sequence

from termplay.terminal.console import Terminal

_CANCEL_ANSWERS = {"", "q", "quit", "0"}


def choose(
    terminal: Terminal,
    title: str,
    options: Sequence[str],
    *,
    read_line: Callable[[str], str] = input,
) -> Optional[int]:
    """Print ``options`` and return the picked index, or None on cancel."""

    if not options:
        return None
    width = len(str(len(options)))
    terminal.write_line(title)
    terminal.write_line("=" * max(len(title), 10))
    for number, option in enumerate(options, start=1):
        terminal.write_line(f"  {number:>{width}}. {option}")
    while True:
        try:
            answer = read_line(f"Track number (1-{len(options)}, q to quit): ").strip().lower()
        except EOFError:
            return None
        if answer in _CANCEL_ANSWERS:
            return None
        try:
            index = int(answer) - 1
        except ValueError:
            terminal.write_line(f"Not a number: {answer}")
            continue
        if 0 <= index < len(options):
            return index
        terminal.write_line(f"Choose between 1 and {len(options)}")
