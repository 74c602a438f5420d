"""Audio backend type definitions.

Kept apart from `termplay.audio.engine` so the session layer can depend on the
interfaces without importing heavyweight backends.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Protocol


class BackendType(Enum):
    SOUNDDEVICE = "sounddevice"
    MOCK = "mock"


@dataclass
class AudioDevice:
    id: str
    name: str
    backend: BackendType
    raw_index: Optional[int] = None
    is_default: bool = False


class Sink(Protocol):
    """One output device connection holding at most one decoded source."""

    def load(self, path: Path) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def stop(self) -> None: ...

    def is_exhausted(self) -> bool: ...

    def duration_seconds(self) -> Optional[float]: ...

    def set_gain_db(self, gain_db: Optional[float]) -> None: ...

    def close(self) -> None: ...


class BackendProvider(Protocol):
    backend: BackendType

    def list_devices(self) -> List[AudioDevice]: ...

    def open_sink(self, device: AudioDevice) -> Sink: ...
