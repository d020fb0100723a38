"""Atlas fields and the shared atlas table."""

from .field import AtlasField, SLAB_NAMES, pack_triplanar, constant_triplanar_field
from .table import AtlasTable, resolve_atlas_index
from .kernels import sample_linear_clamp, sample_linear_clamp_batch

__all__ = [
    "AtlasField",
    "AtlasTable",
    "SLAB_NAMES",
    "pack_triplanar",
    "constant_triplanar_field",
    "resolve_atlas_index",

    # Kernels
    "sample_linear_clamp",
    "sample_linear_clamp_batch",
]
