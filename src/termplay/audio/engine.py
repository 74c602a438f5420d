"""Selects an audio backend and opens sinks on its devices."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from termplay.audio.mock_backend import MockBackendProvider
from termplay.audio.types import AudioDevice, BackendProvider, BackendType, Sink
from termplay.core.env import is_mock_audio_forced
from termplay.core.errors import DeviceUnavailableError

logger = logging.getLogger(__name__)


def _default_providers() -> List[BackendProvider]:
    if is_mock_audio_forced():
        logger.info("TERMPLAY_FORCE_MOCK_AUDIO set - using the mock backend")
        return [MockBackendProvider(label="termplay mock")]
    from termplay.audio.sounddevice import SoundDeviceBackend

    return [SoundDeviceBackend()]


class AudioEngine:
    """Keeps the device list and hands out sinks."""

    def __init__(self, providers: Optional[List[BackendProvider]] = None) -> None:
        self._providers: List[BackendProvider] = list(providers) if providers is not None else _default_providers()
        self._devices: Dict[str, AudioDevice] = {}

    def refresh_devices(self) -> None:
        self._devices.clear()
        for provider in self._providers:
            devices = provider.list_devices()
            if not devices:
                logger.debug("Provider %s returned no devices", provider.backend)
                continue
            for device in devices:
                self._devices[device.id] = device
        if self._devices:
            logger.debug(
                "Registered %d audio devices: %s",
                len(self._devices),
                ", ".join(f"{d.id}={d.name}" for d in self._devices.values()),
            )
        else:
            logger.debug("No audio devices detected")

    def get_devices(self) -> List[AudioDevice]:
        if not self._devices:
            self.refresh_devices()
        return list(self._devices.values())

    def resolve_device(self, device_id: Optional[str] = None) -> AudioDevice:
        devices = self.get_devices()
        if not devices:
            raise DeviceUnavailableError("No audio output device found")
        if device_id is not None:
            device = self._devices.get(device_id)
            if device is None:
                raise DeviceUnavailableError(f"Unknown device: {device_id}")
            return device
        for device in devices:
            if device.is_default:
                return device
        return devices[0]

    def open_sink(self, device_id: Optional[str] = None) -> Sink:
        device = self.resolve_device(device_id)
        provider = self._get_provider(device.backend)
        logger.debug("Opening sink on %s", device.name)
        return provider.open_sink(device)

    def _get_provider(self, backend: BackendType) -> BackendProvider:
        for provider in self._providers:
            if provider.backend is backend:
                return provider
        raise DeviceUnavailableError(f"No provider for backend {backend.value}")
