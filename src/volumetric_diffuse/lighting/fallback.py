"""Normalization of accumulated irradiance with the packed fallback value."""

import numpy as np
from typing import Sequence

from ..volumes.half_float import decode_fallback

WEIGHT_EPSILON = 1e-4


def blend_fallback(
    rgb_sum: np.ndarray,
    weight_sum: np.ndarray,
    fallback_volume_fp16: Sequence[int],
    epsilon: float = WEIGHT_EPSILON
) -> np.ndarray:
    """Add the fallback contribution and normalize by total weight.

    The fallback acts as an always-present volume, so points outside every
    volume resolve to the fallback irradiance.

    Args:
        rgb_sum: Weighted RGB sums, shape (N, 3)
        weight_sum: Weight sums, shape (N,)
        fallback_volume_fp16: Two words packing (r, g) and (b, weight)
        epsilon: Floor of the divisor

    Returns:
        Irradiance estimate, shape (N, 3)
    """
    fallback = decode_fallback(fallback_volume_fp16)
    rgb = np.asarray(rgb_sum, dtype=np.float64) + fallback[:3]
    weight = np.asarray(weight_sum, dtype=np.float64) + fallback[3]
    return rgb / np.maximum(weight, epsilon)[..., None]
