"""Entry point for the termplay command."""

from __future__ import annotations

import argparse
import logging
import os
import sys
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from termplay import __version__
from termplay.audio.engine import AudioEngine
from termplay.core.config import SettingsManager
from termplay.core.env import resolve_log_dir
from termplay.core.errors import PlaybackError
from termplay.core.library import Track, read_track, scan_library
from termplay.session import FinishReason, SessionController
from termplay.terminal.console import Terminal
from termplay.terminal.input import InputListener
from termplay.terminal.menu import choose

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def _configure_logging(level_override: Optional[str] = None) -> Optional[Path]:
    """Send log records to a timestamped file; the terminal is kept for the player."""

    env_level = os.environ.get("LOGLEVEL")
    level_name = (env_level or level_override or "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)

    logs_dir = resolve_log_dir()
    fallback_dir = Path(tempfile.gettempdir()) / "termplay_logs"
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        logs_dir = fallback_dir
        try:
            logs_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            logging.basicConfig(level=level, handlers=[logging.NullHandler()])
            return None

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"termplay-{timestamp}.log"
    try:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        logging.basicConfig(level=level, handlers=[logging.NullHandler()])
        return None
    file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    logging.basicConfig(level=level, handlers=[file_handler], force=True)
    logger.info("Writing log to %s", log_path)
    if logs_dir == fallback_dir:
        logger.warning("Using fallback log directory %s", logs_dir)
    return log_path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="termplay",
        description="Play audio files in the terminal. SPACE pauses/resumes, q stops.",
    )
    parser.add_argument("file", nargs="?", type=Path, help="audio file to play; omit to browse a directory")
    parser.add_argument("-d", "--dir", type=Path, dest="directory", help="directory to browse (default: settings or cwd)")
    parser.add_argument("--no-recursive", action="store_true", help="only list files directly inside the directory")
    parser.add_argument("--device", help="output device id (see --list-devices)")
    parser.add_argument("--list-devices", action="store_true", help="print available output devices and exit")
    parser.add_argument("--gain-db", type=float, help="playback gain in dB (-60..18)")
    parser.add_argument("--config", type=Path, help="settings file (default: ~/.config/termplay/settings.yaml)")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _build_controller(
    args: argparse.Namespace,
    settings: SettingsManager,
    engine: AudioEngine,
    terminal: Terminal,
) -> SessionController:
    listener = InputListener(terminal, settings.get_playback_shortcuts())
    return SessionController(
        engine,
        terminal,
        listener,
        device_id=args.device or settings.get_device_id(),
        gain_db=args.gain_db if args.gain_db is not None else settings.get_gain_db(),
        poll_interval=settings.get_poll_interval(),
        wait_interval=settings.get_wait_interval(),
    )


def _report_error(terminal: Terminal, exc: PlaybackError) -> None:
    logger.error("%s", exc.describe())
    terminal.write_line(exc.describe())


def _play_track(controller: SessionController, terminal: Terminal, track: Track) -> None:
    result = controller.play(track.path, title=track.label)
    if result.reason is FinishReason.COMPLETED:
        terminal.write_line(f"Finished ({result.elapsed_display})")
    else:
        terminal.write_line(f"Stopped at {result.elapsed_display}")


def run_single(controller: SessionController, terminal: Terminal, path: Path) -> int:
    try:
        _play_track(controller, terminal, read_track(path))
    except PlaybackError as exc:
        _report_error(terminal, exc)
        return EXIT_ERROR
    return EXIT_OK


def run_browse(
    controller: SessionController,
    terminal: Terminal,
    directory: Path,
    *,
    extensions: Sequence[str],
    recursive: bool,
    read_line: Callable[[str], str] = input,
) -> int:
    """Prompt for a track, play it, repeat until the user cancels."""

    tracks: List[Track] = scan_library(directory, extensions, recursive=recursive)
    if not tracks:
        terminal.write_line(f"No audio files found in {directory}")
        return EXIT_ERROR
    labels = [track.label for track in tracks]
    while True:
        index = choose(terminal, f"termplay - {directory}", labels, read_line=read_line)
        if index is None:
            return EXIT_OK
        try:
            _play_track(controller, terminal, tracks[index])
        except PlaybackError as exc:
            _report_error(terminal, exc)
        terminal.write_line()


def _list_devices(engine: AudioEngine, terminal: Terminal) -> int:
    devices = engine.get_devices()
    if not devices:
        terminal.write_line("No audio output devices found")
        return EXIT_ERROR
    for device in devices:
        marker = "*" if device.is_default else " "
        terminal.write_line(f"{marker} {device.id:<20} {device.name}")
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = SettingsManager(args.config)
    _configure_logging(args.log_level or settings.get_log_level())
    terminal = Terminal()
    engine = AudioEngine()

    if args.list_devices:
        return _list_devices(engine, terminal)

    controller = _build_controller(args, settings, engine, terminal)
    try:
        if args.file is not None:
            return run_single(controller, terminal, args.file)
        directory = args.directory or settings.get_start_dir() or Path.cwd()
        return run_browse(
            controller,
            terminal,
            directory,
            extensions=settings.get_extensions(),
            recursive=settings.get_recursive() and not args.no_recursive,
        )
    except KeyboardInterrupt:
        terminal.write_line()
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
