"""Utilities module."""

from .config import EvaluatorConfig
from .metadata import MetadataWriter
from .io import save_scene, load_scene, load_points, save_irradiance

__all__ = [
    "EvaluatorConfig",
    "MetadataWriter",
    "save_scene",
    "load_scene",
    "load_points",
    "save_irradiance",
]
