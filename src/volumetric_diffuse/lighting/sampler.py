"""Weighted irradiance contribution of a single diffuse volume."""

import numpy as np
from typing import Tuple

from ..atlas.table import AtlasTable, resolve_atlas_index
from ..volumes.parameters import DiffuseVolumeParameters, VolumeParameterSet
from .guard_band import guard_band_weight

# Slab offsets along the atlas x axis
AXIS_SLOT_OFFSETS = np.array([0.0, 1.0 / 3.0, 2.0 / 3.0])
NEGATIVE_HALF_OFFSET = 1.0 / 6.0


def triplanar_offsets(local_x: np.ndarray, normals: np.ndarray,
                      lo_tex_coord_x: float, hi_tex_coord_x: float) -> np.ndarray:
    """Atlas x coordinate of the x, y and z slab for each point.

    Args:
        local_x: Local x coordinate, shape (N,)
        normals: Shading normals, shape (N, 3)
        lo_tex_coord_x: Lower clamp of the resident x range
        hi_tex_coord_x: Upper clamp of the resident x range

    Returns:
        Offsets, shape (N, 3), one column per axis
    """
    base = np.clip(local_x, lo_tex_coord_x, hi_tex_coord_x) / 6.0
    negative = np.where(normals < 0.0, NEGATIVE_HALF_OFFSET, 0.0)
    return base[:, None] + AXIS_SLOT_OFFSETS + negative


def compute_volume_contribution(
    atlas_index: int,
    volume: DiffuseVolumeParameters,
    atlas: AtlasTable,
    positions: np.ndarray,
    normals: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """Sample one volume for a batch of shading points.

    Points whose guard-band weight is not positive contribute nothing and
    issue no atlas lookup.

    Args:
        atlas_index: Resolved handle of the volume's field in the atlas table
        volume: Volume parameters
        atlas: Shared atlas table
        positions: World positions, shape (N, 3)
        normals: Unit shading normals, shape (N, 3)

    Returns:
        (rgb, weight) with rgb already scaled by weight, shapes (N, 3) and (N,)
    """
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    normals = np.asarray(normals, dtype=np.float64).reshape(-1, 3)
    n = positions.shape[0]

    rgb = np.zeros((n, 3), dtype=np.float64)
    weight = np.zeros(n, dtype=np.float64)

    local_pos = volume.to_local(positions)
    w = guard_band_weight(local_pos, volume.guard_band_factor, volume.guard_band_sharpen)
    inside = w > 0.0
    if not np.any(inside):
        return rgb, weight

    local_pos = local_pos[inside]
    normal = normals[inside]
    offsets = triplanar_offsets(
        local_pos[:, 0], normal, volume.lo_tex_coord_x, volume.hi_tex_coord_x
    )

    atlas_field = atlas[atlas_index]
    m = local_pos.shape[0]

    # One lookup per axis slab at (offset, local.y, local.z)
    coords = np.empty((3, m, 3), dtype=np.float64)
    coords[:, :, 0] = offsets.T
    coords[:, :, 1] = local_pos[:, 1]
    coords[:, :, 2] = local_pos[:, 2]
    samples = atlas_field.sample(coords.reshape(-1, 3)).reshape(3, m, 3)

    # Squared normal components sum to one for a unit normal
    normal2 = normal * normal
    result = np.einsum('na,anc->nc', normal2, samples)

    rgb[inside] = result * w[inside, None]
    weight[inside] = w[inside]
    return rgb, weight


def sample_volume(
    volume_index: int,
    params: VolumeParameterSet,
    atlas: AtlasTable,
    positions: np.ndarray,
    normals: np.ndarray,
    previous_frame: bool = False
) -> Tuple[np.ndarray, np.ndarray]:
    """Contribution of params.volumes[volume_index], resolving its atlas handle."""
    atlas_index = resolve_atlas_index(volume_index, params, previous_frame)
    return compute_volume_contribution(
        atlas_index, params.volumes[volume_index], atlas, positions, normals
    )
