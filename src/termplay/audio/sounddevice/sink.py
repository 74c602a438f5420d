"""Sounddevice sink implementation."""

from __future__ import annotations

import logging
import math
import time
from pathlib import Path
from threading import Event, Lock, Thread, current_thread
from typing import Optional

import numpy as np
import soundfile as sf

try:
    import sounddevice as sd
except OSError:  # PortAudio shared library missing
    sd = None

from termplay.audio.resampling import resample_to_length
from termplay.audio.transcoding import open_audio_file_with_transcoding
from termplay.audio.types import AudioDevice
from termplay.core.errors import DeviceUnavailableError, SourceUnreadableError

logger = logging.getLogger(__name__)

_BLOCK_FRAMES = 4096
_PAUSE_SLEEP = 0.05


class SoundDeviceSink:
    """Plays one decoded file on one sounddevice output.

    A writer thread feeds blocks into a blocking ``OutputStream``; pause simply
    holds the writer back.
    """

    def __init__(self, device: AudioDevice, stream_kwargs: Optional[dict] = None):
        if sd is None:
            raise DeviceUnavailableError("sounddevice is unavailable (PortAudio library not found)")
        if device.raw_index is None:
            raise DeviceUnavailableError(f"Device {device.name} has no sounddevice index")
        self.device = device
        self._stream_kwargs = stream_kwargs or {}
        self._lock = Lock()
        self._thread: Optional[Thread] = None
        self._stop_event = Event()
        self._pause_event = Event()
        self._exhausted = False
        self._error: Optional[DeviceUnavailableError] = None
        self._sound_file = None
        self._stream = None
        self._transcoded_path: Optional[Path] = None
        self._samplerate = 0
        self._output_samplerate = 0.0
        self._total_frames = 0
        self._position = 0
        self._gain_factor = 1.0

    def load(self, path: Path) -> None:
        path = Path(path)
        if not path.is_file():
            raise SourceUnreadableError(f"No such file: {path}")
        try:
            with path.open("rb") as handle:
                handle.read(1)
        except OSError as exc:
            raise SourceUnreadableError(f"Cannot read {path}: {exc.strerror or exc}") from exc

        with self._lock:
            self._release_source_locked()
            sound_file, transcoded = open_audio_file_with_transcoding(path, sf=sf)
            self._transcoded_path = transcoded
            self._sound_file = sound_file
            self._samplerate = sound_file.samplerate
            self._total_frames = len(sound_file)
            self._position = 0
            self._exhausted = False
            self._error = None
            self._stop_event = Event()
            self._pause_event = Event()
            try:
                self._stream = self._open_stream_locked(sound_file.channels)
            except DeviceUnavailableError:
                self._release_source_locked()
                raise
        logger.debug(
            "Loaded %s (%d Hz, %d frames) on %s",
            path,
            self._samplerate,
            self._total_frames,
            self.device.name,
        )

    def _open_stream_locked(self, channels: int):
        output_samplerate = float(self._samplerate)
        try:
            sd.check_output_settings(
                device=self.device.raw_index,
                samplerate=output_samplerate,
                channels=channels,
            )
        except (sd.PortAudioError, ValueError):
            fallback_rate: Optional[float] = None
            try:
                device_info = sd.query_devices(self.device.raw_index)
                fallback_rate = float(device_info.get("default_samplerate") or 0.0) or None
            except (sd.PortAudioError, ValueError) as exc:
                raise DeviceUnavailableError(f"Cannot query {self.device.name}: {exc}") from exc
            if not fallback_rate or fallback_rate == output_samplerate:
                raise DeviceUnavailableError(
                    f"{self.device.name} does not support {self._samplerate} Hz with {channels} channel(s)"
                )
            output_samplerate = fallback_rate
            logger.info(
                "%s rejects %d Hz, resampling to %.0f Hz",
                self.device.name,
                self._samplerate,
                output_samplerate,
            )
        self._output_samplerate = output_samplerate
        try:
            return sd.OutputStream(
                device=self.device.raw_index,
                samplerate=output_samplerate,
                channels=channels,
                dtype="float32",
                **self._stream_kwargs,
            )
        except (sd.PortAudioError, ValueError) as exc:
            raise DeviceUnavailableError(f"Cannot open output stream on {self.device.name}: {exc}") from exc

    def play(self) -> None:  # noqa: D401
        with self._lock:
            if self._stream is None or self._stop_event.is_set() or self._exhausted:
                return
            self._pause_event.clear()
            if self._thread is None:
                self._thread = Thread(target=self._run, name="termplay-audio", daemon=True)
                self._thread.start()

    def pause(self) -> None:  # noqa: D401
        with self._lock:
            if not self._pause_event.is_set():
                self._pause_event.set()

    def stop(self) -> None:  # noqa: D401
        with self._lock:
            if self._stop_event.is_set():
                return
            self._stop_event.set()
            thread = self._thread
        if thread and thread.is_alive() and thread is not current_thread():
            thread.join(timeout=1.5)

    def is_exhausted(self) -> bool:
        """Report natural end of the source; a device failure while writing is raised here."""

        with self._lock:
            if self._error is not None:
                raise self._error
            return self._exhausted and not self._stop_event.is_set()

    def duration_seconds(self) -> Optional[float]:
        with self._lock:
            if not self._samplerate:
                return None
            return self._total_frames / self._samplerate

    def set_gain_db(self, gain_db: Optional[float]) -> None:  # noqa: D401
        with self._lock:
            if gain_db is None:
                self._gain_factor = 1.0
                return
            gain = max(min(float(gain_db), 18.0), -60.0)
            self._gain_factor = math.pow(10.0, gain / 20.0)

    def close(self) -> None:
        self.stop()
        with self._lock:
            thread = self._thread
            if thread is None or not thread.is_alive():
                self._release_source_locked()

    def _run(self) -> None:
        stream = self._stream
        sound_file = self._sound_file
        stop_event = self._stop_event
        pause_event = self._pause_event
        resample_ratio = self._output_samplerate / float(self._samplerate) if self._samplerate else 1.0
        src_pos = 0.0
        dst_pos = 0.0
        try:
            stream.start()
            while not stop_event.is_set():
                if pause_event.is_set():
                    time.sleep(_PAUSE_SLEEP)
                    continue
                data = sound_file.read(_BLOCK_FRAMES, dtype="float32", always_2d=True)
                frames_read = len(data)
                if frames_read == 0:
                    break
                with self._lock:
                    gain_factor = self._gain_factor
                block = data * gain_factor if gain_factor != 1.0 else data
                if abs(resample_ratio - 1.0) > 1e-6:
                    src_pos += frames_read
                    target_frames = max(1, int(round(src_pos * resample_ratio - dst_pos)))
                    block = resample_to_length(block, target_frames)
                    dst_pos += len(block)
                stream.write(np.ascontiguousarray(block, dtype=np.float32))
                self._position += frames_read
            if stop_event.is_set():
                stream.abort()
            else:
                # stop() lets queued buffers play out before returning
                stream.stop()
        except (sd.PortAudioError, RuntimeError) as exc:
            logger.error("Playback error on %s: %s", self.device.name, exc)
            with self._lock:
                self._error = DeviceUnavailableError(f"Playback failed on {self.device.name}: {exc}")
        finally:
            with self._lock:
                if self._error is None and not stop_event.is_set():
                    self._exhausted = True
                self._release_source_locked()

    def _release_source_locked(self) -> None:
        if self._stream is not None:
            try:
                self._stream.close()
            except sd.PortAudioError as exc:
                logger.debug("Closing output stream failed: %s", exc)
            self._stream = None
        if self._sound_file is not None:
            self._sound_file.close()
            self._sound_file = None
        if self._transcoded_path:
            self._transcoded_path.unlink(missing_ok=True)
            self._transcoded_path = None
