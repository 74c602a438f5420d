import io

from termplay.terminal.console import Terminal
from termplay.terminal.menu import choose


def _answers(*values):
    queue = list(values)

    def read_line(prompt: str) -> str:
        if not queue:
            raise EOFError
        return queue.pop(0)

    return read_line


def test_choose_reprompts_until_valid() -> None:
    out = io.StringIO()
    terminal = Terminal(stdin=io.StringIO(), stdout=out)

    index = choose(terminal, "Tracks", ["one", "two", "three"], read_line=_answers("abc", "7", " 2 "))

    assert index == 1
    text = out.getvalue()
    assert "  1. one" in text
    assert "Not a number: abc" in text
    assert "Choose between 1 and 3" in text


def test_choose_cancel_answers() -> None:
    terminal = Terminal(stdin=io.StringIO(), stdout=io.StringIO())

    assert choose(terminal, "Tracks", ["one"], read_line=_answers("q")) is None
    assert choose(terminal, "Tracks", ["one"], read_line=_answers("")) is None
    assert choose(terminal, "Tracks", ["one"], read_line=_answers()) is None


def test_choose_with_no_options() -> None:
    out = io.StringIO()
    terminal = Terminal(stdin=io.StringIO(), stdout=out)

    assert choose(terminal, "Tracks", [], read_line=_answers("1")) is None
    assert out.getvalue() == ""
