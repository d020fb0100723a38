"""Per-frame diffuse volume parameters."""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, Sequence, Tuple

from .half_float import encode_fallback, decode_fallback

# Capacity of the parameter block uploaded by the volume clusterer
CLUSTERER_MAX_VOLUMES = 128


def _as_readonly(values, shape: Tuple[int, ...], name: str) -> np.ndarray:
    array = np.array(values, dtype=np.float64)
    if array.shape != shape:
        raise ValueError(f"{name} must have shape {shape}, got {array.shape}")
    array.setflags(write=False)
    return array


@dataclass
class DiffuseVolumeParameters:
    """Placement and addressing of a single diffuse volume.

    Attributes:
        world_to_texture: Three affine rows (3, 4) mapping a homogeneous world
            position to the volume's local [0, 1]^3 texture space
        world_lo: Minimum corner of the world-space AABB (3,)
        world_hi: Maximum corner of the world-space AABB (3,)
        lo_tex_coord_x: Lower clamp for local x before atlas addressing
        hi_tex_coord_x: Upper clamp for local x before atlas addressing
        guard_band_factor: Width control of the boundary falloff
        guard_band_sharpen: Steepness of the boundary falloff (0 disables the volume)

    The AABB is only used for coarse culling and must enclose the region where
    the guard-band weight is non-zero.
    """

    world_to_texture: np.ndarray
    world_lo: np.ndarray
    world_hi: np.ndarray
    lo_tex_coord_x: float = 0.0
    hi_tex_coord_x: float = 1.0
    guard_band_factor: float = 1.0
    guard_band_sharpen: float = 1.0

    def __post_init__(self):
        """Validate shapes and ranges, freeze arrays."""
        self.world_to_texture = _as_readonly(self.world_to_texture, (3, 4), "world_to_texture")
        self.world_lo = _as_readonly(self.world_lo, (3,), "world_lo")
        self.world_hi = _as_readonly(self.world_hi, (3,), "world_hi")

        if np.any(self.world_lo > self.world_hi):
            raise ValueError(
                f"world_lo {self.world_lo.tolist()} exceeds world_hi {self.world_hi.tolist()}"
            )
        if self.lo_tex_coord_x > self.hi_tex_coord_x:
            raise ValueError(
                f"lo_tex_coord_x ({self.lo_tex_coord_x}) must be <= "
                f"hi_tex_coord_x ({self.hi_tex_coord_x})"
            )
        if self.guard_band_sharpen < 0:
            raise ValueError(f"guard_band_sharpen must be non-negative, got {self.guard_band_sharpen}")

    @classmethod
    def from_aabb(
        cls,
        world_lo: Sequence[float],
        world_hi: Sequence[float],
        guard_band_factor: float = 1.0,
        guard_band_sharpen: float = 1.0,
        lo_tex_coord_x: float = 0.0,
        hi_tex_coord_x: float = 1.0,
    ) -> "DiffuseVolumeParameters":
        """Build parameters for an axis-aligned box mapped onto the unit cube.

        With guard_band_factor < 1 the weight stays non-zero past the box
        faces, so the culling AABB is grown by (0.5 / factor - 0.5) * extent
        on each side.

        Args:
            world_lo: Minimum corner of the box
            world_hi: Maximum corner of the box (must be strictly larger on every axis)
            guard_band_factor: Must be positive

        Returns:
            DiffuseVolumeParameters whose world_to_texture maps world_lo -> 0
            and world_hi -> 1 on each axis
        """
        lo = np.asarray(world_lo, dtype=np.float64)
        hi = np.asarray(world_hi, dtype=np.float64)
        extent = hi - lo
        if np.any(extent <= 0):
            raise ValueError(f"Box must have positive extent on every axis, got {extent.tolist()}")
        if guard_band_factor <= 0:
            raise ValueError(f"guard_band_factor must be positive, got {guard_band_factor}")

        rows = np.zeros((3, 4), dtype=np.float64)
        rows[[0, 1, 2], [0, 1, 2]] = 1.0 / extent
        rows[:, 3] = -lo / extent

        margin = max(0.0, 0.5 / guard_band_factor - 0.5) * extent

        return cls(
            world_to_texture=rows,
            world_lo=lo - margin,
            world_hi=hi + margin,
            lo_tex_coord_x=lo_tex_coord_x,
            hi_tex_coord_x=hi_tex_coord_x,
            guard_band_factor=guard_band_factor,
            guard_band_sharpen=guard_band_sharpen,
        )

    def to_local(self, positions: np.ndarray) -> np.ndarray:
        """Transform world positions (..., 3) into local texture space (..., 3)."""
        positions = np.asarray(positions, dtype=np.float64)
        return positions @ self.world_to_texture[:, :3].T + self.world_to_texture[:, 3]

    def intersects(self, lo: np.ndarray, hi: np.ndarray) -> bool:
        """Strict overlap test between this volume's AABB and the box [lo, hi]."""
        return bool(np.all(hi > self.world_lo) and np.all(lo < self.world_hi))


@dataclass
class VolumeParameterSet:
    """Read-only set of volumes supplied once per frame.

    Attributes:
        volumes: Ordered volumes (evaluation order of the naive path)
        bindless_index_offset: Base handle of volume 0 in the shared atlas table
        fallback_volume_fp16: Two words packing (r, g) and (b, weight) as half floats
        sky_color_lo: Pass-through sky colour, not consumed by the evaluator
        sky_color_hi: Pass-through sky colour, not consumed by the evaluator
    """

    volumes: Sequence[DiffuseVolumeParameters] = ()
    bindless_index_offset: int = 0
    fallback_volume_fp16: Tuple[int, int] = (0, 0)
    sky_color_lo: np.ndarray = field(default_factory=lambda: np.zeros(3))
    sky_color_hi: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        """Validate capacity and offsets."""
        self.volumes = tuple(self.volumes)
        if len(self.volumes) > CLUSTERER_MAX_VOLUMES:
            raise ValueError(
                f"At most {CLUSTERER_MAX_VOLUMES} volumes are supported, got {len(self.volumes)}"
            )
        for volume in self.volumes:
            if not isinstance(volume, DiffuseVolumeParameters):
                raise TypeError(f"Expected DiffuseVolumeParameters, got {type(volume).__name__}")

        if self.bindless_index_offset < 0:
            raise ValueError(f"bindless_index_offset must be non-negative, got {self.bindless_index_offset}")
        self.bindless_index_offset = int(self.bindless_index_offset)

        if len(self.fallback_volume_fp16) != 2:
            raise ValueError("fallback_volume_fp16 must hold exactly two packed words")
        self.fallback_volume_fp16 = tuple(int(w) & 0xFFFFFFFF for w in self.fallback_volume_fp16)

        self.sky_color_lo = _as_readonly(self.sky_color_lo, (3,), "sky_color_lo")
        self.sky_color_hi = _as_readonly(self.sky_color_hi, (3,), "sky_color_hi")

    @property
    def num_volumes(self) -> int:
        return len(self.volumes)

    @property
    def fallback(self) -> np.ndarray:
        """Decoded fallback (r, g, b, weight)."""
        return decode_fallback(self.fallback_volume_fp16)

    def with_fallback(self, rgb: Sequence[float], weight: float = 1.0) -> "VolumeParameterSet":
        """Copy of this set with a new packed fallback value."""
        return VolumeParameterSet(
            volumes=self.volumes,
            bindless_index_offset=self.bindless_index_offset,
            fallback_volume_fp16=encode_fallback(rgb, weight),
            sky_color_lo=self.sky_color_lo,
            sky_color_hi=self.sky_color_hi,
        )

    def to_arrays(self) -> Dict[str, np.ndarray]:
        """Flatten the set into numpy arrays keyed by field name."""
        n = self.num_volumes
        arrays = {
            'world_to_texture': np.zeros((n, 3, 4), dtype=np.float64),
            'world_lo': np.zeros((n, 3), dtype=np.float64),
            'world_hi': np.zeros((n, 3), dtype=np.float64),
            'tex_coord_x': np.zeros((n, 2), dtype=np.float64),
            'guard_band': np.zeros((n, 2), dtype=np.float64),
        }
        for i, volume in enumerate(self.volumes):
            arrays['world_to_texture'][i] = volume.world_to_texture
            arrays['world_lo'][i] = volume.world_lo
            arrays['world_hi'][i] = volume.world_hi
            arrays['tex_coord_x'][i] = (volume.lo_tex_coord_x, volume.hi_tex_coord_x)
            arrays['guard_band'][i] = (volume.guard_band_factor, volume.guard_band_sharpen)

        arrays['bindless_index_offset'] = np.array(self.bindless_index_offset, dtype=np.int64)
        arrays['fallback_volume_fp16'] = np.array(self.fallback_volume_fp16, dtype=np.uint32)
        arrays['sky_color_lo'] = np.array(self.sky_color_lo)
        arrays['sky_color_hi'] = np.array(self.sky_color_hi)
        return arrays

    @classmethod
    def from_arrays(cls, arrays: Dict[str, np.ndarray]) -> "VolumeParameterSet":
        """Rebuild a set from the output of to_arrays()."""
        world_to_texture = np.asarray(arrays['world_to_texture'], dtype=np.float64)
        volumes = [
            DiffuseVolumeParameters(
                world_to_texture=world_to_texture[i],
                world_lo=arrays['world_lo'][i],
                world_hi=arrays['world_hi'][i],
                lo_tex_coord_x=float(arrays['tex_coord_x'][i][0]),
                hi_tex_coord_x=float(arrays['tex_coord_x'][i][1]),
                guard_band_factor=float(arrays['guard_band'][i][0]),
                guard_band_sharpen=float(arrays['guard_band'][i][1]),
            )
            for i in range(world_to_texture.shape[0])
        ]
        fallback = np.asarray(arrays['fallback_volume_fp16']).astype(np.int64)
        return cls(
            volumes=volumes,
            bindless_index_offset=int(arrays['bindless_index_offset']),
            fallback_volume_fp16=(int(fallback[0]), int(fallback[1])),
            sky_color_lo=arrays['sky_color_lo'],
            sky_color_hi=arrays['sky_color_hi'],
        )
