"""Indirect diffuse lighting from precomputed diffuse volumes."""

from .volumes import DiffuseVolumeParameters, VolumeParameterSet, CLUSTERER_MAX_VOLUMES
from .atlas import AtlasField, AtlasTable
from .lighting import VolumetricDiffuseEvaluator, NaiveAccumulator, LaneBatchedAccumulator
from .utils.config import EvaluatorConfig

__version__ = "0.1.0"
__all__ = [
    "DiffuseVolumeParameters",
    "VolumeParameterSet",
    "CLUSTERER_MAX_VOLUMES",
    "AtlasField",
    "AtlasTable",
    "VolumetricDiffuseEvaluator",
    "NaiveAccumulator",
    "LaneBatchedAccumulator",
    "EvaluatorConfig",
]
