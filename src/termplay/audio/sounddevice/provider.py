"""Enumerates sounddevice output devices and opens sinks on them."""

from __future__ import annotations

import logging
from typing import List

try:
    import sounddevice as sd
except OSError:  # PortAudio shared library missing
    sd = None

from termplay.audio.types import AudioDevice, BackendType, Sink
from termplay.core.errors import DeviceUnavailableError

from .sink import SoundDeviceSink

logger = logging.getLogger(__name__)


class SoundDeviceBackend:
    backend = BackendType.SOUNDDEVICE

    def list_devices(self) -> List[AudioDevice]:
        if sd is None:
            logger.error("sounddevice backend unavailable: PortAudio library not found")
            return []
        try:
            raw_devices = sd.query_devices()
        except sd.PortAudioError as exc:
            logger.warning("Device enumeration failed: %s", exc)
            return []
        try:
            default_output = sd.default.device[1]
        except (TypeError, IndexError):
            default_output = -1
        try:
            host_apis = sd.query_hostapis()
        except sd.PortAudioError:
            host_apis = ()

        devices: List[AudioDevice] = []
        for index, info in enumerate(raw_devices):
            if int(info.get("max_output_channels", 0)) <= 0:
                continue
            name = str(info.get("name", f"Device {index}"))
            host_index = info.get("hostapi")
            if host_apis and isinstance(host_index, int) and 0 <= host_index < len(host_apis):
                name = f"{name} ({host_apis[host_index]['name']})"
            devices.append(
                AudioDevice(
                    id=f"{self.backend.value}:{index}",
                    name=name,
                    backend=self.backend,
                    raw_index=index,
                    is_default=index == default_output,
                )
            )
        return devices

    def open_sink(self, device: AudioDevice) -> Sink:
        if sd is None:
            raise DeviceUnavailableError(f"Cannot open {device.name}: sounddevice is unavailable")
        try:
            info = sd.query_devices(device.raw_index, kind=None)
        except (sd.PortAudioError, ValueError, TypeError) as exc:
            raise DeviceUnavailableError(f"Cannot open {device.name}: {exc}") from exc
        if int(info.get("max_output_channels", 0)) <= 0:
            raise DeviceUnavailableError(f"{device.name} has no output channels")
        return SoundDeviceSink(device)
