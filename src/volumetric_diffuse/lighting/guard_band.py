"""Smooth falloff of a volume's contribution near its boundary."""

import numpy as np


def guard_band_weight(local_pos: np.ndarray, factor: float, sharpen: float) -> np.ndarray:
    """Blend weight of a local-space position.

    w = clamp((0.5 - factor * max(|local - 0.5|)) * sharpen, 0, 1)

    Args:
        local_pos: Local texture-space positions, shape (..., 3)
        factor: Guard band width control
        sharpen: Transition steepness; 0 disables the volume

    Returns:
        Weights in [0, 1], shape (...)
    """
    local_pos = np.asarray(local_pos, dtype=np.float64)
    distance = np.max(np.abs(local_pos - 0.5), axis=-1)
    w = (0.5 - factor * distance) * sharpen
    return np.clip(w, 0.0, 1.0)
