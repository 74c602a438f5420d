"""Locating playable audio files and reading their tags."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from mutagen import File as MutagenFile
from mutagen import MutagenError

logger = logging.getLogger(__name__)

SUPPORTED_AUDIO_EXTENSIONS = {
    ".mp3",
    ".wav",
    ".flac",
    ".ogg",
    ".oga",
    ".opus",
    ".m4a",
    ".aiff",
    ".aif",
}


@dataclass(frozen=True, slots=True)
class Track:
    path: Path
    title: str
    artist: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def label(self) -> str:
        if self.artist:
            return f"{self.artist} - {self.title}"
        return self.title


def is_supported_audio_file(path: Path, extensions: Iterable[str] | None = None) -> bool:
    allowed = {ext.lower() for ext in extensions} if extensions is not None else SUPPORTED_AUDIO_EXTENSIONS
    return path.suffix.lower() in allowed


def _first_text(tag) -> Optional[str]:
    # mutagen returns either frames with a .text list or plain lists of strings
    text = getattr(tag, "text", tag)
    if isinstance(text, (list, tuple)):
        return str(text[0]) if text else None
    if text is None:
        return None
    return str(text)


def read_track(path: Path) -> Track:
    """Return a Track for ``path``; unreadable tags fall back to the file name."""

    title = path.stem
    artist: Optional[str] = None
    duration = 0.0
    try:
        audio = MutagenFile(path)
    except (MutagenError, OSError) as exc:
        logger.debug("Could not read tags from %s: %s", path, exc)
        return Track(path=path, title=title)
    if audio is None:
        return Track(path=path, title=title)

    tags = audio.tags
    if tags:
        title_tag = tags.get("TIT2") or tags.get("title")
        if title_tag:
            title = _first_text(title_tag) or title
        artist_tag = tags.get("TPE1") or tags.get("artist")
        if artist_tag:
            artist = _first_text(artist_tag)
    info = getattr(audio, "info", None)
    length = getattr(info, "length", None)
    if length:
        try:
            duration = max(0.0, float(length))
        except (TypeError, ValueError):
            duration = 0.0
    return Track(path=path, title=title, artist=artist, duration_seconds=duration)


def iter_audio_files(root: Path, extensions: Iterable[str] | None = None, *, recursive: bool = True) -> Iterator[Path]:
    allowed = [ext.lower() for ext in extensions] if extensions is not None else None
    if not recursive:
        try:
            children = list(root.iterdir())
        except OSError as exc:
            logger.warning("Cannot list %s: %s", root, exc)
            return
        for child in children:
            if child.is_file() and is_supported_audio_file(child, allowed):
                yield child
        return

    def _on_error(exc: OSError) -> None:
        logger.warning("Skipping unreadable directory %s: %s", exc.filename, exc)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames[:] = [name for name in dirnames if not name.startswith(".")]
        for name in filenames:
            candidate = Path(dirpath) / name
            if is_supported_audio_file(candidate, allowed):
                yield candidate


def scan_library(
    root: Path,
    extensions: Iterable[str] | None = None,
    *,
    recursive: bool = True,
    read_tags: bool = True,
) -> List[Track]:
    """List playable files below ``root``, ordered by relative path."""

    root = Path(root)
    if not root.is_dir():
        logger.warning("Library root %s is not a directory", root)
        return []
    paths = sorted(
        iter_audio_files(root, extensions, recursive=recursive),
        key=lambda item: str(item.relative_to(root)).lower(),
    )
    if not read_tags:
        return [Track(path=path, title=path.stem) for path in paths]
    return [read_track(path) for path in paths]
