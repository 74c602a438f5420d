from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import List, Optional, Tuple

import pytest

from termplay.audio.engine import AudioEngine
from termplay.audio.mock_backend import MockBackendProvider
from termplay.core.errors import (
    DeviceUnavailableError,
    SourceUnreadableError,
    TerminalIOError,
    UnsupportedFormatError,
)
from termplay.session import FinishReason, SessionController
from termplay.terminal.console import KeyEvent
from termplay.terminal.input import InputListener


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedKeys:
    """Each step advances the fake clock, then delivers an optional key."""

    def __init__(self, steps: List[Tuple[float, Optional[str]]], clock: Optional[FakeClock] = None) -> None:
        self._steps = list(steps)
        self._clock = clock
        self.timeouts: List[float] = []

    def read_key(self, timeout: float) -> Optional[KeyEvent]:
        self.timeouts.append(timeout)
        if not self._steps:
            time.sleep(min(timeout, 0.005))
            return None
        advance, key = self._steps.pop(0)
        if self._clock is not None:
            self._clock.advance(advance)
        return KeyEvent(key) if key is not None else None


class DummySink:
    def __init__(self, *, exhaust_after: Optional[int] = None, load_error: Optional[Exception] = None) -> None:
        self.calls: List[str] = []
        self.exhaust_after = exhaust_after
        self.load_error = load_error
        self.exhausted_checks = 0
        self.loaded: Optional[Path] = None
        self.gain_db: Optional[float] = None
        self.closed = False
        self.fail_on_check: Optional[Exception] = None
        self.close_error: Optional[Exception] = None

    def load(self, path: Path) -> None:
        if self.load_error is not None:
            raise self.load_error
        self.loaded = path

    def play(self) -> None:
        self.calls.append("play")

    def pause(self) -> None:
        self.calls.append("pause")

    def stop(self) -> None:
        self.calls.append("stop")

    def is_exhausted(self) -> bool:
        if self.fail_on_check is not None:
            raise self.fail_on_check
        self.exhausted_checks += 1
        return self.exhaust_after is not None and self.exhausted_checks >= self.exhaust_after

    def duration_seconds(self) -> Optional[float]:
        return 3.0

    def set_gain_db(self, gain_db: Optional[float]) -> None:
        self.gain_db = gain_db

    def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class DummyEngine:
    def __init__(self, sink: Optional[DummySink] = None, error: Optional[Exception] = None) -> None:
        self.sink = sink
        self.error = error
        self.opened: List[Optional[str]] = []

    def open_sink(self, device_id: Optional[str] = None) -> DummySink:
        if self.error is not None:
            raise self.error
        self.opened.append(device_id)
        assert self.sink is not None
        return self.sink


class FakeTerminal:
    def __init__(self) -> None:
        self.raw_entries = 0
        self.raw_exits = 0
        self.lines: List[str] = []
        self.statuses: List[str] = []
        self.clears = 0
        self.enter_error: Optional[Exception] = None
        self.clear_error: Optional[Exception] = None
        self.write_error: Optional[BaseException] = None

    def enter_raw_mode(self) -> None:
        if self.enter_error is not None:
            raise self.enter_error
        self.raw_entries += 1

    def exit_raw_mode(self) -> None:
        self.raw_exits += 1

    def write_line(self, text: str = "") -> None:
        if self.write_error is not None:
            raise self.write_error
        self.lines.append(text)

    def clear_line(self) -> None:
        self.clears += 1
        if self.clear_error is not None:
            raise self.clear_error

    def status(self, text: str) -> None:
        self.statuses.append(text)


def _controller(engine, terminal, keys, clock=None, **kwargs) -> SessionController:
    return SessionController(
        engine,
        terminal,
        InputListener(keys),
        poll_interval=kwargs.pop("poll_interval", 0.01),
        wait_interval=kwargs.pop("wait_interval", 0.01),
        time_source=clock or time.monotonic,
        **kwargs,
    )


def _session_threads() -> List[threading.Thread]:
    return [thread for thread in threading.enumerate() if thread.name == "termplay-session"]


def test_uninterrupted_source_finishes_when_exhausted(tmp_path: Path) -> None:
    clock = FakeClock()
    sink = DummySink(exhaust_after=3)
    terminal = FakeTerminal()
    keys = ScriptedKeys([(1.0, None), (1.0, None), (1.0, None)], clock)
    controller = _controller(DummyEngine(sink), terminal, keys, clock, gain_db=-3.0)

    result = controller.play(tmp_path / "song.mp3", title="Artist - Song")

    assert result.reason is FinishReason.COMPLETED
    assert result.elapsed_seconds == 3
    assert result.elapsed_display == "0:03"
    assert sink.calls == ["play"]
    assert sink.closed is True
    assert sink.gain_db == -3.0
    assert terminal.raw_entries == 1
    assert terminal.raw_exits == 1
    assert terminal.clears == 1
    assert terminal.lines[0] == "Playing: Artist - Song"
    assert "[SPACE] pause/resume" in terminal.lines[1]
    assert terminal.statuses[:2] == ["0:01 / 0:03", "0:02 / 0:03"]
    assert not _session_threads()


def test_pause_resume_then_quit_counts_only_playing_intervals(tmp_path: Path) -> None:
    clock = FakeClock()
    sink = DummySink()
    terminal = FakeTerminal()
    keys = ScriptedKeys([(2.0, " "), (2.0, " "), (2.0, "q")], clock)
    controller = _controller(DummyEngine(sink), terminal, keys, clock)

    result = controller.play(tmp_path / "song.mp3")

    assert result.reason is FinishReason.QUIT
    assert result.elapsed_seconds == 4
    assert sink.calls == ["play", "pause", "play", "stop"]
    assert "Paused at 0:02" in terminal.statuses
    assert "Resumed" in terminal.statuses
    assert terminal.raw_exits == 1


def test_quit_while_paused_ends_session(tmp_path: Path) -> None:
    clock = FakeClock()
    sink = DummySink(exhaust_after=1)
    terminal = FakeTerminal()
    keys = ScriptedKeys([(5.0, " "), (30.0, None), (1.0, "Q")], clock)
    controller = _controller(DummyEngine(sink), terminal, keys, clock)

    result = controller.play(tmp_path / "song.mp3")

    assert result.reason is FinishReason.QUIT
    assert result.elapsed_seconds == 5
    # exhaustion is only checked while playing
    assert sink.exhausted_checks == 0
    assert terminal.raw_exits == 1


def test_device_failure_never_enters_raw_mode(tmp_path: Path) -> None:
    terminal = FakeTerminal()
    engine = DummyEngine(error=DeviceUnavailableError("no device"))
    controller = _controller(engine, terminal, ScriptedKeys([]))

    with pytest.raises(DeviceUnavailableError):
        controller.play(tmp_path / "song.mp3")

    assert terminal.raw_entries == 0
    assert terminal.raw_exits == 0
    assert not _session_threads()


@pytest.mark.parametrize("error", [SourceUnreadableError("missing"), UnsupportedFormatError("garbage")])
def test_load_failure_closes_sink_without_session(tmp_path: Path, error: Exception) -> None:
    terminal = FakeTerminal()
    sink = DummySink(load_error=error)
    controller = _controller(DummyEngine(sink), terminal, ScriptedKeys([]))

    with pytest.raises(type(error)):
        controller.play(tmp_path / "song.mp3")

    assert sink.closed is True
    assert sink.calls == []
    assert terminal.raw_entries == 0


def test_raw_mode_failure_is_surfaced(tmp_path: Path) -> None:
    terminal = FakeTerminal()
    terminal.enter_error = TerminalIOError("stdin is not a terminal")
    sink = DummySink()
    controller = _controller(DummyEngine(sink), terminal, ScriptedKeys([]))

    with pytest.raises(TerminalIOError):
        controller.play(tmp_path / "song.mp3")

    assert sink.closed is True
    assert sink.calls == []
    assert terminal.raw_exits == 0


def test_background_error_is_reraised_after_cleanup(tmp_path: Path) -> None:
    terminal = FakeTerminal()
    sink = DummySink()
    sink.fail_on_check = RuntimeError("device lost")
    controller = _controller(DummyEngine(sink), terminal, ScriptedKeys([]))

    with pytest.raises(RuntimeError, match="device lost"):
        controller.play(tmp_path / "song.mp3")

    assert "stop" in sink.calls
    assert sink.closed is True
    assert terminal.raw_exits == 1
    assert not _session_threads()


def test_device_lost_mid_playback_fails_session(tmp_path: Path) -> None:
    terminal = FakeTerminal()
    sink = DummySink()
    sink.fail_on_check = DeviceUnavailableError("Playback failed on Speakers")
    controller = _controller(DummyEngine(sink), terminal, ScriptedKeys([]))

    with pytest.raises(DeviceUnavailableError) as excinfo:
        controller.play(tmp_path / "song.mp3")

    assert excinfo.value.describe().startswith("Error (device): ")
    assert "stop" in sink.calls
    assert terminal.raw_exits == 1
    assert not _session_threads()


def test_terminal_restored_when_sink_close_fails(tmp_path: Path) -> None:
    terminal = FakeTerminal()
    sink = DummySink(exhaust_after=1)
    sink.close_error = OSError("stream already closed")
    controller = _controller(DummyEngine(sink), terminal, ScriptedKeys([]))

    with pytest.raises(OSError, match="stream already closed"):
        controller.play(tmp_path / "song.mp3")

    assert terminal.clears == 1
    assert terminal.raw_exits == 1
    assert not _session_threads()


def test_restore_still_leaves_raw_mode_when_clear_fails(tmp_path: Path) -> None:
    terminal = FakeTerminal()
    terminal.clear_error = TerminalIOError("broken pipe")
    sink = DummySink(exhaust_after=1)
    controller = _controller(DummyEngine(sink), terminal, ScriptedKeys([]))

    with pytest.raises(TerminalIOError):
        controller.play(tmp_path / "song.mp3")

    assert terminal.raw_exits == 1


def test_keyboard_interrupt_stops_sink_and_restores_terminal(tmp_path: Path) -> None:
    terminal = FakeTerminal()
    terminal.write_error = KeyboardInterrupt()
    sink = DummySink()
    controller = _controller(DummyEngine(sink), terminal, ScriptedKeys([]))

    with pytest.raises(KeyboardInterrupt):
        controller.play(tmp_path / "song.mp3")

    assert sink.calls == ["stop"]
    assert sink.closed is True
    assert terminal.raw_exits == 1


def test_polls_are_bounded_by_poll_interval(tmp_path: Path) -> None:
    clock = FakeClock()
    keys = ScriptedKeys([(1.0, None), (1.0, "q")], clock)
    controller = _controller(DummyEngine(DummySink()), FakeTerminal(), keys, clock, poll_interval=0.1)

    controller.play(tmp_path / "song.mp3")

    assert keys.timeouts
    assert all(timeout <= 0.1 for timeout in keys.timeouts)


def test_device_id_is_forwarded_to_engine(tmp_path: Path) -> None:
    engine = DummyEngine(DummySink(exhaust_after=1))
    controller = _controller(engine, FakeTerminal(), ScriptedKeys([]), device_id="mock:default")

    controller.play(tmp_path / "song.mp3")

    assert engine.opened == ["mock:default"]


def test_mock_backend_plays_to_completion(tmp_path: Path) -> None:
    track = tmp_path / "track.wav"
    track.write_bytes(b"RIFF")
    engine = AudioEngine([MockBackendProvider(source_seconds=0.3)])
    terminal = FakeTerminal()
    controller = _controller(engine, terminal, ScriptedKeys([]))

    started = time.monotonic()
    result = controller.play(track)

    assert result.reason is FinishReason.COMPLETED
    assert time.monotonic() - started < 5.0
    assert terminal.raw_exits == 1
