"""Fallback decoding through FFmpeg for containers libsndfile cannot open."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Tuple

from termplay.core.errors import UnsupportedFormatError

logger = logging.getLogger(__name__)

TRANSCODE_EXTENSIONS = {
    ".m4a",
    ".mp2",
    ".mp3",
    ".mp4",
    ".mpeg",
    ".mpg",
}


def transcode_source_to_wav(source: Path) -> Path:
    ffmpeg = shutil.which("ffmpeg")
    if not ffmpeg:
        raise UnsupportedFormatError(
            f"{source.name} needs FFmpeg to decode, but ffmpeg was not found in PATH"
        )
    fd, temp_name = tempfile.mkstemp(prefix="termplay-", suffix=".wav")
    os.close(fd)
    target = Path(temp_name)
    cmd = [
        ffmpeg,
        "-y",
        "-i",
        str(source),
        "-vn",
        "-acodec",
        "pcm_s16le",
        "-ar",
        "48000",
        "-ac",
        "2",
        str(target),
    ]
    logger.debug("Transcoding %s -> %s", source, target)
    try:
        subprocess.run(cmd, check=True, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except FileNotFoundError as exc:  # pragma: no cover - depends on environment
        target.unlink(missing_ok=True)
        raise UnsupportedFormatError("FFmpeg was not found in PATH") from exc
    except subprocess.CalledProcessError as exc:
        target.unlink(missing_ok=True)
        raise UnsupportedFormatError(f"FFmpeg could not decode {source.name}") from exc
    return target


def open_audio_file_with_transcoding(
    path: Path,
    *,
    sf,
    transcode_extensions: Optional[set[str]] = None,
) -> Tuple[object, Optional[Path]]:
    """Open ``path`` with soundfile, transcoding to a temporary WAV if needed.

    Returns the open sound file and the temporary path to delete afterwards
    (``None`` when no transcoding happened).
    """
    if transcode_extensions is None:
        transcode_extensions = TRANSCODE_EXTENSIONS

    try:
        return sf.SoundFile(path, mode="r"), None
    except (RuntimeError, ValueError) as exc:
        # soundfile.LibsndfileError subclasses RuntimeError
        if path.suffix.lower() not in transcode_extensions:
            raise UnsupportedFormatError(f"Cannot decode {path.name}: {exc}") from exc
        logger.info("libsndfile cannot open %s, falling back to FFmpeg", path.name)
    wav_path = transcode_source_to_wav(path)
    try:
        sound_file = sf.SoundFile(wav_path, mode="r")
    except (RuntimeError, ValueError) as exc:
        wav_path.unlink(missing_ok=True)
        raise UnsupportedFormatError(f"Cannot read transcoded copy of {path.name}") from exc
    return sound_file, wav_path
