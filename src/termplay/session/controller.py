"""Runs one playback from device open to terminal restore."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from threading import Thread
from typing import Callable, Optional, Protocol

from termplay.audio.types import Sink
from termplay.core.clock import PlaybackClock, format_elapsed
from termplay.core.errors import PlaybackError, TerminalIOError
from termplay.terminal.input import Command, InputListener

from .state import FinishReason, PlaybackSession, SessionState

logger = logging.getLogger(__name__)


class SinkOpener(Protocol):
    def open_sink(self, device_id: Optional[str] = None) -> Sink: ...


class StatusTerminal(Protocol):
    def enter_raw_mode(self) -> None: ...

    def exit_raw_mode(self) -> None: ...

    def write_line(self, text: str = "") -> None: ...

    def clear_line(self) -> None: ...

    def status(self, text: str) -> None: ...


@dataclass(frozen=True)
class SessionResult:
    path: Path
    reason: FinishReason
    elapsed_seconds: int

    @property
    def elapsed_display(self) -> str:
        return format_elapsed(self.elapsed_seconds)


class SessionController:
    """Plays a file while a background thread handles keys and completion.

    The caller thread only waits for the session's finished event; the command
    thread owns every pause/resume transition and all status rendering until
    the session ends.
    """

    def __init__(
        self,
        engine: SinkOpener,
        terminal: StatusTerminal,
        listener: InputListener,
        *,
        device_id: Optional[str] = None,
        gain_db: Optional[float] = None,
        poll_interval: float = 0.1,
        wait_interval: float = 0.1,
        time_source: Callable[[], float] = time.monotonic,
    ) -> None:
        self._engine = engine
        self._terminal = terminal
        self._listener = listener
        self._device_id = device_id
        self._gain_db = gain_db
        self._poll_interval = poll_interval
        self._wait_interval = wait_interval
        self._now = time_source

    def play(self, path: Path, *, title: Optional[str] = None) -> SessionResult:
        path = Path(path)
        sink = self._open_sink(path)
        try:
            self._terminal.enter_raw_mode()
        except TerminalIOError:
            sink.close()
            raise

        session = PlaybackSession(sink, PlaybackClock(self._now()))
        worker: Optional[Thread] = None
        try:
            self._terminal.write_line(f"Playing: {title or path}")
            self._terminal.write_line(self._controls_hint())
            sink.play()
            session.start()
            worker = Thread(
                target=self._run_commands,
                args=(session,),
                name="termplay-session",
                daemon=True,
            )
            worker.start()
            self._await_finished(session, worker)
        except KeyboardInterrupt:
            if session.finish(FinishReason.INTERRUPTED, self._now()):
                sink.stop()
            raise
        finally:
            try:
                if session.finish(FinishReason.FAILED, self._now()):
                    sink.stop()
                if worker is not None:
                    worker.join()
                sink.close()
            finally:
                self._restore_terminal()

        if session.error is not None:
            raise session.error
        assert session.finish_reason is not None
        result = SessionResult(
            path=path,
            reason=session.finish_reason,
            elapsed_seconds=session.clock.accumulated_seconds,
        )
        logger.info("Playback of %s ended (%s) after %s", path, result.reason.value, result.elapsed_display)
        return result

    def _open_sink(self, path: Path) -> Sink:
        sink = self._engine.open_sink(self._device_id)
        try:
            sink.load(path)
            sink.set_gain_db(self._gain_db)
        except PlaybackError as exc:
            logger.error("Cannot start %s: %s", path, exc)
            sink.close()
            raise
        return sink

    def _controls_hint(self) -> str:
        pause_key = self._listener.key_for(Command.TOGGLE_PAUSE) or "?"
        quit_key = self._listener.key_for(Command.QUIT) or "?"
        return f"[{pause_key}] pause/resume  [{quit_key}] quit"

    def _await_finished(self, session: PlaybackSession, worker: Thread) -> None:
        while not session.wait_finished(self._wait_interval):
            if not worker.is_alive():
                logger.error("Command thread exited before the session finished")
                return

    def _run_commands(self, session: PlaybackSession) -> None:
        duration = session.sink.duration_seconds()
        last_rendered: Optional[int] = None
        try:
            while not session.is_finished:
                command = self._listener.poll(self._poll_interval)
                if command is not None:
                    self._apply(session, command)
                    if session.is_finished:
                        break
                if session.state is not SessionState.PLAYING:
                    continue
                if session.sink.is_exhausted():
                    session.finish(FinishReason.COMPLETED, self._now())
                    break
                last_rendered = self._render_elapsed(session, duration, last_rendered)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Playback session failed")
            if session.finish(FinishReason.FAILED, self._now(), error=exc):
                session.sink.stop()

    def _apply(self, session: PlaybackSession, command: Command) -> None:
        if command is Command.QUIT:
            session.sink.stop()
            session.finish(FinishReason.QUIT, self._now())
            return
        now = self._now()
        new_state = session.toggle_pause(now)
        if new_state is SessionState.PAUSED:
            self._terminal.status(f"Paused at {format_elapsed(session.elapsed_seconds(now))}")
        elif new_state is SessionState.PLAYING:
            self._terminal.status("Resumed")

    def _render_elapsed(
        self,
        session: PlaybackSession,
        duration: Optional[float],
        last_rendered: Optional[int],
    ) -> int:
        elapsed = session.elapsed_seconds(self._now())
        if elapsed == last_rendered:
            return elapsed
        text = format_elapsed(elapsed)
        if duration:
            text = f"{text} / {format_elapsed(int(duration))}"
        self._terminal.status(text)
        return elapsed

    def _restore_terminal(self) -> None:
        failure: Optional[TerminalIOError] = None
        try:
            self._terminal.clear_line()
        except TerminalIOError as exc:
            failure = exc
        try:
            self._terminal.exit_raw_mode()
        except TerminalIOError as exc:
            failure = failure or exc
        if failure is not None:
            raise failure
