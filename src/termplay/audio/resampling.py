"""Linear resampling used when a device rejects the file's sample rate."""

from __future__ import annotations

import numpy as np


def resample_to_length(block: np.ndarray, target_frames: int) -> np.ndarray:
    """Stretch ``block`` (frames x channels) to ``target_frames`` frames."""
    if target_frames <= 0:
        return block
    src_frames = block.shape[0]
    if src_frames == 0 or src_frames == target_frames:
        return block
    if src_frames == 1:
        return np.repeat(block, target_frames, axis=0).astype(block.dtype, copy=False)
    src_idx = np.arange(src_frames, dtype=np.float64)
    target_idx = np.linspace(0.0, src_frames - 1, target_frames, dtype=np.float64)
    channels = [np.interp(target_idx, src_idx, block[:, channel]) for channel in range(block.shape[1])]
    return np.stack(channels, axis=1).astype(block.dtype, copy=False)
