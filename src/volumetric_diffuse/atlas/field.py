"""Triplanar-packed directional irradiance fields."""

import numpy as np
from typing import Optional, Tuple

from .kernels import sample_linear_clamp_batch

# Slab order along the atlas x axis: slot = 2 * axis + (1 if the normal
# component on that axis is negative)
SLAB_NAMES = ("+X", "-X", "+Y", "-Y", "+Z", "-Z")


class AtlasField:
    """One read-only 3D field holding a volume's packed directional atlas.

    The field spans normalized texture space. Along x it holds six slabs of
    width 1/6: the +X / -X halves of the x-axis slab, then the y-axis and
    z-axis slabs in the same arrangement.

    Args:
        data: Field texels, shape (depth, height, width, channels) = (Z, Y, X, C)
            with at least 3 channels (RGB first)
        name: Optional label used in error messages

    Example:
        >>> field = AtlasField(np.ones((4, 4, 24, 4), dtype=np.float32))
        >>> field.sample(np.array([[0.5, 0.5, 0.5]]))
        array([[1., 1., 1.]])
    """

    def __init__(self, data: np.ndarray, name: Optional[str] = None):
        data = np.asarray(data, dtype=np.float32)
        if data.ndim != 4:
            raise ValueError(f"Atlas field must be 4D (Z, Y, X, C), got shape {data.shape}")
        if data.shape[3] < 3:
            raise ValueError(f"Atlas field needs at least 3 channels, got {data.shape[3]}")
        if min(data.shape[:3]) < 1:
            raise ValueError(f"Atlas field must be non-empty, got shape {data.shape}")

        self._data = np.ascontiguousarray(data).copy()
        self._data.setflags(write=False)
        self.name = name

    @property
    def data(self) -> np.ndarray:
        """Read-only texel array (Z, Y, X, C)."""
        return self._data

    @property
    def resolution(self) -> Tuple[int, int, int]:
        """Texel counts as (width, height, depth)."""
        depth, height, width = self._data.shape[:3]
        return width, height, depth

    @property
    def channels(self) -> int:
        return self._data.shape[3]

    def sample(self, coords: np.ndarray) -> np.ndarray:
        """Sample RGB with linear filtering and clamp-to-edge addressing.

        Args:
            coords: Normalized (x, y, z) coordinates, shape (N, 3) or (3,)

        Returns:
            RGB values, shape (N, 3) or (3,)
        """
        coords = np.asarray(coords, dtype=np.float64)
        single = coords.ndim == 1
        coords = np.ascontiguousarray(coords.reshape(-1, 3))

        rgb = sample_linear_clamp_batch(self._data, coords)
        return rgb[0] if single else rgb

    def __repr__(self) -> str:
        label = f"{self.name!r}, " if self.name else ""
        return f"AtlasField({label}resolution={self.resolution}, channels={self.channels})"


def pack_triplanar(slabs: np.ndarray) -> np.ndarray:
    """Lay six directional slabs side by side along x.

    Args:
        slabs: Directional data, shape (6, D, H, W, C) in SLAB_NAMES order

    Returns:
        Packed field data, shape (D, H, 6 * W, C)
    """
    slabs = np.asarray(slabs, dtype=np.float32)
    if slabs.ndim != 5 or slabs.shape[0] != 6:
        raise ValueError(f"Expected slabs of shape (6, D, H, W, C), got {slabs.shape}")
    return np.concatenate(list(slabs), axis=2)


def constant_triplanar_field(
    colors: np.ndarray,
    slab_width: int = 8,
    height: int = 4,
    depth: int = 4,
    name: Optional[str] = None
) -> AtlasField:
    """Build a field whose six slabs are each a constant RGB colour.

    Args:
        colors: Per-slab RGB, shape (6, 3) in SLAB_NAMES order
        slab_width: Texels per slab along x
        height: Texels along y
        depth: Texels along z

    Returns:
        AtlasField with an alpha channel of ones
    """
    colors = np.asarray(colors, dtype=np.float32)
    if colors.shape != (6, 3):
        raise ValueError(f"Expected colors of shape (6, 3), got {colors.shape}")

    rgba = np.concatenate([colors, np.ones((6, 1), dtype=np.float32)], axis=1)
    slabs = np.broadcast_to(rgba[:, None, None, None, :], (6, depth, height, slab_width, 4))
    return AtlasField(pack_triplanar(slabs), name=name)
