"""Real audio output built on sounddevice + soundfile."""

from __future__ import annotations

from .provider import SoundDeviceBackend
from .sink import SoundDeviceSink

__all__ = [
    "SoundDeviceBackend",
    "SoundDeviceSink",
]
