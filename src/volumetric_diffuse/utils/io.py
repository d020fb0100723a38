"""Scene and result files.

A scene file is a compressed npz holding the flattened VolumeParameterSet
(see VolumeParameterSet.to_arrays) and one ``atlas_<handle>`` array per
atlas field.
"""

import numpy as np
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ..atlas.field import AtlasField
from ..atlas.table import AtlasTable
from ..volumes.parameters import VolumeParameterSet

ATLAS_KEY_PREFIX = "atlas_"


def save_scene(path: Path, params: VolumeParameterSet, atlas: AtlasTable) -> None:
    """Save a parameter set and its atlas table to a compressed npz file.

    Args:
        path: Output file path (.npz)
        params: Volume parameter set
        atlas: Atlas table
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    save_dict = params.to_arrays()
    save_dict['num_atlas_fields'] = np.array(len(atlas), dtype=np.int64)
    for handle, atlas_field in enumerate(atlas):
        save_dict[f"{ATLAS_KEY_PREFIX}{handle}"] = atlas_field.data

    np.savez_compressed(path, **save_dict)


def load_scene(path: Path) -> Tuple[VolumeParameterSet, AtlasTable]:
    """Load a scene saved with save_scene.

    Args:
        path: Input file path (.npz)

    Returns:
        Tuple of (params, atlas)
    """
    with np.load(path) as data:
        params = VolumeParameterSet.from_arrays({
            key: data[key] for key in data.files if not key.startswith(ATLAS_KEY_PREFIX)
        })

        num_fields = int(data['num_atlas_fields'])
        missing = [h for h in range(num_fields) if f"{ATLAS_KEY_PREFIX}{h}" not in data.files]
        if missing:
            raise ValueError(f"Scene {path} is missing atlas fields {missing}")

        atlas = AtlasTable(
            AtlasField(data[f"{ATLAS_KEY_PREFIX}{h}"], name=f"{ATLAS_KEY_PREFIX}{h}")
            for h in range(num_fields)
        )

    return params, atlas


def load_points(path: Path) -> Tuple[np.ndarray, np.ndarray]:
    """Load shading points from an npz with 'positions' and 'normals' arrays.

    Returns:
        (positions, normals), each of shape (N, 3)
    """
    with np.load(path) as data:
        for key in ('positions', 'normals'):
            if key not in data.files:
                raise ValueError(f"Points file {path} has no '{key}' array")
        positions = np.asarray(data['positions'], dtype=np.float64).reshape(-1, 3)
        normals = np.asarray(data['normals'], dtype=np.float64).reshape(-1, 3)

    if positions.shape != normals.shape:
        raise ValueError(
            f"positions and normals must match, got {positions.shape} and {normals.shape}"
        )
    return positions, normals


def save_irradiance(
    path: Path,
    irradiance: np.ndarray,
    metadata: Optional[Dict[str, Any]] = None
) -> None:
    """Save evaluated irradiance to a compressed npz file.

    Args:
        path: Output file path (.npz)
        irradiance: Irradiance array, shape (N, 3)
        metadata: Scalar metadata stored next to the irradiance (optional)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    save_dict = {'irradiance': np.asarray(irradiance, dtype=np.float32)}
    for k, v in (metadata or {}).items():
        if isinstance(v, dict):
            for kk, vv in v.items():
                save_dict[f"{k}_{kk}"] = vv
        elif isinstance(v, list):
            save_dict[k] = np.array(v)
        else:
            save_dict[k] = v

    np.savez_compressed(path, **save_dict)
