"""Indirect diffuse lighting from precomputed diffuse volumes.

Main Components:
    VolumetricDiffuseEvaluator: Full evaluation including the fallback blend
    NaiveAccumulator: Reference accumulation over every volume
    LaneBatchedAccumulator: Accumulation with group-uniform atlas handles
    LaneGroup: Simulated synchronous lane group (ballot, shuffle, reductions)

Example:
    >>> import numpy as np
    >>> from volumetric_diffuse.lighting import VolumetricDiffuseEvaluator
    >>> from volumetric_diffuse.utils import EvaluatorConfig
    >>>
    >>> config = EvaluatorConfig(wave_uniform_batching=True, lane_group_size=32)
    >>> evaluator = VolumetricDiffuseEvaluator(params, atlas, config)
    >>> irradiance = evaluator.evaluate(positions, normals)
"""

from .guard_band import guard_band_weight
from .sampler import compute_volume_contribution, sample_volume, triplanar_offsets
from .lanes import LaneGroup
from .accumulators import NaiveAccumulator, LaneBatchedAccumulator, BatchStats
from .fallback import blend_fallback, WEIGHT_EPSILON
from .evaluator import VolumetricDiffuseEvaluator

__all__ = [
    # Core classes
    "VolumetricDiffuseEvaluator",
    "NaiveAccumulator",
    "LaneBatchedAccumulator",
    "BatchStats",
    "LaneGroup",

    # Per-volume sampling
    "guard_band_weight",
    "compute_volume_contribution",
    "sample_volume",
    "triplanar_offsets",

    # Fallback
    "blend_fallback",
    "WEIGHT_EPSILON",
]
