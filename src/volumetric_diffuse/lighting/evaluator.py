"""Indirect diffuse irradiance from a set of diffuse volumes."""

import time
import warnings
import numpy as np
from typing import Optional, Tuple

from ..atlas.table import AtlasTable
from ..utils.config import EvaluatorConfig
from ..volumes.parameters import VolumeParameterSet
from .accumulators import NaiveAccumulator, LaneBatchedAccumulator
from .fallback import blend_fallback


class VolumetricDiffuseEvaluator:
    """Estimates indirect diffuse irradiance at shading points.

    This class ties the pieces together:
    1. Per-volume sampling of the triplanar atlas with guard-band weights
    2. Accumulation over volumes, naive or lane-batched per the config
    3. Fallback blend and normalization by total weight

    Args:
        params: Volume parameter set for the current frame
        atlas: Shared atlas table holding every addressed field
        config: Evaluator options (defaults if not provided)

    Example:
        >>> volume = DiffuseVolumeParameters.from_aabb([-1, -1, -1], [1, 1, 1])
        >>> params = VolumeParameterSet([volume]).with_fallback((0.1, 0.1, 0.1))
        >>> atlas = AtlasTable([constant_triplanar_field(np.ones((6, 3)))])
        >>> evaluator = VolumetricDiffuseEvaluator(params, atlas)
        >>> irradiance = evaluator.evaluate([0, 0, 0], [0, 1, 0])
    """

    def __init__(
        self,
        params: VolumeParameterSet,
        atlas: AtlasTable,
        config: Optional[EvaluatorConfig] = None
    ):
        self.config = config or EvaluatorConfig()
        self.atlas = atlas
        self.params = None
        self.accumulator = None
        self._set_parameters(params)

    def _set_parameters(self, params: VolumeParameterSet):
        self._check_atlas_coverage(params)
        self.params = params

        if self.config.wave_uniform_batching:
            self.accumulator = LaneBatchedAccumulator(
                params,
                self.atlas,
                lane_group_size=self.config.lane_group_size,
                previous_frame=self.config.previous_frame_textures
            )
        else:
            self.accumulator = NaiveAccumulator(
                params, self.atlas, previous_frame=self.config.previous_frame_textures
            )

    def _check_atlas_coverage(self, params: VolumeParameterSet):
        """Ensure every handle the configuration can address exists."""
        if params.num_volumes == 0:
            return
        copies = 2 if self.config.previous_frame_textures else 1
        required = params.bindless_index_offset + copies * params.num_volumes
        if len(self.atlas) < required:
            raise IndexError(
                f"Atlas table has {len(self.atlas)} fields, but {params.num_volumes} volumes at offset "
                f"{params.bindless_index_offset} need {required}"
            )

    def update_parameters(self, params: VolumeParameterSet):
        """Install the parameter set for a new frame.

        With previous-frame textures the previous copies are addressed with the
        current frame's volume count, so a changed count misaligns them.
        """
        if (self.config.previous_frame_textures
                and params.num_volumes != self.params.num_volumes):
            warnings.warn(
                f"Volume count changed from {self.params.num_volumes} to {params.num_volumes}; "
                "previous-frame atlas handles are offset by the current count and may not "
                "match the previous frame's fields",
                UserWarning
            )
        self._set_parameters(params)

    def accumulate(self, positions: np.ndarray, normals: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Weighted sums over all volumes, before the fallback blend.

        Returns:
            (rgb_sum, weight_sum), shapes (N, 3) and (N,)
        """
        return self.accumulator.accumulate(positions, normals)

    def evaluate(self, positions: np.ndarray, normals: np.ndarray) -> np.ndarray:
        """Irradiance estimate per shading point.

        Args:
            positions: World positions, shape (N, 3) or (3,)
            normals: Unit shading normals, same shape as positions

        Returns:
            RGB irradiance, shape (N, 3) or (3,)
        """
        positions = np.asarray(positions, dtype=np.float64)
        normals = np.asarray(normals, dtype=np.float64)
        if positions.shape != normals.shape:
            raise ValueError(
                f"positions and normals must have the same shape, got {positions.shape} and {normals.shape}"
            )
        single = positions.ndim == 1

        start_time = time.time()
        rgb_sum, weight_sum = self.accumulate(positions, normals)
        irradiance = blend_fallback(
            rgb_sum, weight_sum, self.params.fallback_volume_fp16, self.config.weight_epsilon
        )

        if self.config.verbose:
            elapsed = time.time() - start_time
            print(f"Evaluated {irradiance.shape[0]} points against {self.params.num_volumes} "
                  f"volumes ({self.config.mode}) in {elapsed:.3f}s")

        return irradiance[0] if single else irradiance

    def get_info(self) -> dict:
        """Summary of the evaluator state."""
        info = {
            'mode': self.config.mode,
            'num_volumes': self.params.num_volumes,
            'atlas_fields': len(self.atlas),
            'bindless_index_offset': self.params.bindless_index_offset,
            'config': self.config.to_dict(),
        }
        if isinstance(self.accumulator, LaneBatchedAccumulator):
            stats = self.accumulator.stats
            info['batch_stats'] = {
                'groups': stats.groups,
                'rounds': stats.rounds,
                'uniform_lookups': stats.uniform_lookups,
                'culled': stats.culled,
            }
        return info
