"""Accumulation of volume contributions over all candidate volumes.

Two execution strategies produce the same per-point sums:

- NaiveAccumulator visits every volume in order for the whole batch, one
  atlas lookup per volume per point.
- LaneBatchedAccumulator splits the batch into synchronous lane groups and
  regroups the work so every lookup inside a group uses one uniform atlas
  handle, culling volumes that miss the group's bounding box.
"""

import numpy as np
from dataclasses import dataclass
from typing import Tuple

from ..atlas.table import AtlasTable, resolve_atlas_index
from ..volumes.parameters import VolumeParameterSet
from .lanes import LaneGroup
from .sampler import compute_volume_contribution


def _as_batch(positions: np.ndarray, normals: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    normals = np.asarray(normals, dtype=np.float64).reshape(-1, 3)
    if positions.shape != normals.shape:
        raise ValueError(
            f"positions and normals must match, got {positions.shape} and {normals.shape}"
        )
    return positions, normals


class NaiveAccumulator:
    """Reference accumulation over volumes [0, num_volumes).

    Args:
        params: Volume parameter set for the frame
        atlas: Shared atlas table
        previous_frame: Sample the previous frame's copies of the fields
    """

    def __init__(self, params: VolumeParameterSet, atlas: AtlasTable, previous_frame: bool = False):
        self.params = params
        self.atlas = atlas
        self.previous_frame = previous_frame

    def accumulate(self, positions: np.ndarray, normals: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Sum weighted contributions of every volume.

        Args:
            positions: World positions, shape (N, 3)
            normals: Unit normals, shape (N, 3)

        Returns:
            (rgb_sum, weight_sum), shapes (N, 3) and (N,)
        """
        positions, normals = _as_batch(positions, normals)
        rgb_sum = np.zeros((positions.shape[0], 3), dtype=np.float64)
        weight_sum = np.zeros(positions.shape[0], dtype=np.float64)

        for i, volume in enumerate(self.params.volumes):
            atlas_index = resolve_atlas_index(i, self.params, self.previous_frame)
            rgb, w = compute_volume_contribution(atlas_index, volume, self.atlas, positions, normals)
            rgb_sum += rgb
            weight_sum += w

        return rgb_sum, weight_sum


@dataclass
class BatchStats:
    """Counters describing the work done by the lane-batched strategy.

    Attributes:
        groups: Lane groups processed
        rounds: Strided claim rounds over the volume list
        uniform_lookups: Leader broadcasts, each one group-wide lookup with a uniform handle
        culled: Claimed volumes rejected by the group bounding box test
    """
    groups: int = 0
    rounds: int = 0
    uniform_lookups: int = 0
    culled: int = 0

    def reset(self):
        self.groups = 0
        self.rounds = 0
        self.uniform_lookups = 0
        self.culled = 0


class LaneBatchedAccumulator:
    """Accumulation with group-uniform atlas handles.

    Each lane claims a strided subset of the volumes, tests it against the
    bounding box of the whole group and votes. The winning volumes are then
    broadcast one at a time from the lowest voting lane, so every lane of the
    group samples the same field in each step while keeping its own position
    and normal.

    Args:
        params: Volume parameter set for the frame
        atlas: Shared atlas table
        lane_group_size: Lanes per synchronous group (power of 2)
        previous_frame: Sample the previous frame's copies of the fields

    Requires every volume's AABB to enclose its non-zero guard-band region;
    under that condition the result matches NaiveAccumulator per point.
    """

    def __init__(
        self,
        params: VolumeParameterSet,
        atlas: AtlasTable,
        lane_group_size: int = 32,
        previous_frame: bool = False
    ):
        # Validates the size
        LaneGroup(lane_group_size)

        self.params = params
        self.atlas = atlas
        self.lane_group_size = lane_group_size
        self.previous_frame = previous_frame
        self.stats = BatchStats()

    def accumulate(self, positions: np.ndarray, normals: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Sum weighted contributions, processing the batch group by group.

        Consecutive rows form a group; the last group is partially active
        when N is not a multiple of the group size.

        Returns:
            (rgb_sum, weight_sum), shapes (N, 3) and (N,)
        """
        positions, normals = _as_batch(positions, normals)
        n = positions.shape[0]
        size = self.lane_group_size

        rgb_sum = np.zeros((n, 3), dtype=np.float64)
        weight_sum = np.zeros(n, dtype=np.float64)

        for start in range(0, n, size):
            stop = min(start + size, n)
            count = stop - start

            lane_positions = np.zeros((size, 3), dtype=np.float64)
            lane_normals = np.zeros((size, 3), dtype=np.float64)
            lane_positions[:count] = positions[start:stop]
            lane_normals[:count] = normals[start:stop]

            active = np.zeros(size, dtype=bool)
            active[:count] = True

            group_rgb, group_weight = self.accumulate_group(
                LaneGroup(size, active), lane_positions, lane_normals
            )
            rgb_sum[start:stop] = group_rgb[:count]
            weight_sum[start:stop] = group_weight[:count]

        return rgb_sum, weight_sum

    def accumulate_group(
        self,
        group: LaneGroup,
        positions: np.ndarray,
        normals: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Run the batching protocol for one lane group.

        Args:
            group: Lane group with its active mask
            positions: Per-lane world positions, shape (group.size, 3)
            normals: Per-lane unit normals, shape (group.size, 3)

        Returns:
            Per-lane (rgb_sum, weight_sum); inactive lanes stay zero
        """
        rgb_sum = np.zeros((group.size, 3), dtype=np.float64)
        weight_sum = np.zeros(group.size, dtype=np.float64)
        if group.num_active == 0:
            return rgb_sum, weight_sum

        self.stats.groups += 1
        num_volumes = self.params.num_volumes
        volumes = self.params.volumes
        lanes = group.lane_ids
        active = group.active

        aabb_lo = group.reduce_min(positions)
        aabb_hi = group.reduce_max(positions)
        ballot = group.ballot(np.ones(group.size, dtype=bool))
        active_lanes = group.bit_count(ballot)
        bit_offset = group.exclusive_bit_count(ballot)

        # Wave-uniform loop
        for i in range(0, num_volumes, active_lanes):
            self.stats.rounds += 1
            current_index = i + bit_offset

            claimed = [None] * group.size
            active_volume = np.zeros(group.size, dtype=bool)
            for lane in np.flatnonzero(active & (current_index < num_volumes)):
                volume = volumes[current_index[lane]]
                claimed[lane] = volume
                active_volume[lane] = volume.intersects(aabb_lo, aabb_hi)
                if not active_volume[lane]:
                    self.stats.culled += 1

            active_ballot = group.ballot(active_volume)

            # Wave-uniform loop
            while active_ballot != 0:
                bit_index = group.find_lsb(active_ballot)
                active_ballot &= group.ballot(lanes != bit_index)

                scalar_volume = group.shuffle(claimed, bit_index)
                index = int(group.shuffle(current_index, bit_index))
                atlas_index = resolve_atlas_index(index, self.params, self.previous_frame)

                rgb, w = compute_volume_contribution(
                    atlas_index, scalar_volume, self.atlas, positions[active], normals[active]
                )
                rgb_sum[active] += rgb
                weight_sum[active] += w
                self.stats.uniform_lookups += 1

        return rgb_sum, weight_sum
