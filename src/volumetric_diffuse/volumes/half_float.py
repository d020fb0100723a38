"""Half-precision packing for the fallback irradiance value.

The fallback is stored as two 32-bit words, each holding two IEEE half floats
(low 16 bits first), decoding to (r, g, b, weight).
"""

import numpy as np
from typing import Sequence, Tuple


def unpack_half_2x16(word: int) -> Tuple[float, float]:
    """Decode a 32-bit word into two half floats.

    Args:
        word: Unsigned 32-bit integer

    Returns:
        (low, high) components as Python floats
    """
    word = int(word) & 0xFFFFFFFF
    bits = np.array([word & 0xFFFF, word >> 16], dtype=np.uint16)
    halves = bits.view(np.float16).astype(np.float32)
    return float(halves[0]), float(halves[1])


def pack_half_2x16(low: float, high: float) -> int:
    """Encode two floats as half floats packed into one 32-bit word."""
    bits = np.array([low, high], dtype=np.float16).view(np.uint16)
    return int(bits[0]) | (int(bits[1]) << 16)


def encode_fallback(rgb: Sequence[float], weight: float = 1.0) -> Tuple[int, int]:
    """Pack a fallback RGB + weight into the two-word representation.

    Args:
        rgb: Fallback irradiance (3,)
        weight: Weight the fallback contributes to the blend

    Returns:
        (word_x, word_y) where word_x = (r, g) and word_y = (b, weight)
    """
    r, g, b = (float(c) for c in rgb)
    return pack_half_2x16(r, g), pack_half_2x16(b, weight)


def decode_fallback(words: Sequence[int]) -> np.ndarray:
    """Unpack the two-word fallback into (r, g, b, weight), shape (4,)."""
    if len(words) != 2:
        raise ValueError(f"Fallback must be two packed words, got {len(words)}")
    r, g = unpack_half_2x16(words[0])
    b, w = unpack_half_2x16(words[1])
    return np.array([r, g, b, w], dtype=np.float64)
