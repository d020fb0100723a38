"""Diffuse volume data model."""

from .parameters import CLUSTERER_MAX_VOLUMES, DiffuseVolumeParameters, VolumeParameterSet
from .half_float import pack_half_2x16, unpack_half_2x16, encode_fallback, decode_fallback
from .layout import VOLUME_DTYPE, UNIFORM_BLOCK_DTYPE, pack_uniform_block, unpack_uniform_block

__all__ = [
    "CLUSTERER_MAX_VOLUMES",
    "DiffuseVolumeParameters",
    "VolumeParameterSet",

    # Fallback packing
    "pack_half_2x16",
    "unpack_half_2x16",
    "encode_fallback",
    "decode_fallback",

    # Uniform block
    "VOLUME_DTYPE",
    "UNIFORM_BLOCK_DTYPE",
    "pack_uniform_block",
    "unpack_uniform_block",
]
