"""Compiled linear-clamp sampling of 3D atlas fields.

Fields are laid out (depth, height, width, channels) and addressed with
normalized (x, y, z) coordinates. Filtering matches a linear sampler with
clamp-to-edge addressing: texel i covers [i / size, (i + 1) / size) and is
centred at (i + 0.5) / size.
"""

import numpy as np
from numba import njit, prange


@njit(cache=True)
def _texel_coord(u: float, size: int):
    """Map a normalized coordinate to (lower texel, upper texel, fraction)."""
    t = u * size - 0.5
    # NaN fails both comparisons, so test the negation
    if not t >= 0.0:
        t = 0.0
    upper = size - 1.0
    if t > upper:
        t = upper

    i0 = int(np.floor(t))
    i1 = min(i0 + 1, size - 1)
    return i0, i1, t - i0


@njit(cache=True)
def sample_linear_clamp(field: np.ndarray, u: float, v: float, w: float):
    """Trilinearly sample the RGB channels of a field at one coordinate.

    Returns:
        (r, g, b)
    """
    depth, height, width = field.shape[0], field.shape[1], field.shape[2]
    x0, x1, fx = _texel_coord(u, width)
    y0, y1, fy = _texel_coord(v, height)
    z0, z1, fz = _texel_coord(w, depth)

    r = 0.0
    g = 0.0
    b = 0.0
    for corner in range(8):
        if corner & 1:
            ix, wx = x1, fx
        else:
            ix, wx = x0, 1.0 - fx
        if corner & 2:
            iy, wy = y1, fy
        else:
            iy, wy = y0, 1.0 - fy
        if corner & 4:
            iz, wz = z1, fz
        else:
            iz, wz = z0, 1.0 - fz

        weight = wx * wy * wz
        r += weight * field[iz, iy, ix, 0]
        g += weight * field[iz, iy, ix, 1]
        b += weight * field[iz, iy, ix, 2]

    return r, g, b


@njit(cache=True, parallel=True)
def sample_linear_clamp_batch(field: np.ndarray, coords: np.ndarray) -> np.ndarray:
    """Sample a field at N coordinates.

    Args:
        field: Atlas data, shape (D, H, W, C) with C >= 3
        coords: Normalized (x, y, z) coordinates, shape (N, 3)

    Returns:
        RGB samples, shape (N, 3), float64
    """
    n = coords.shape[0]
    out = np.empty((n, 3), dtype=np.float64)
    for i in prange(n):
        r, g, b = sample_linear_clamp(field, coords[i, 0], coords[i, 1], coords[i, 2])
        out[i, 0] = r
        out[i, 1] = g
        out[i, 2] = b
    return out
