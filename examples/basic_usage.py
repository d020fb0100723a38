"""Basic usage example for the volumetric diffuse evaluator."""

import numpy as np
from pathlib import Path

from volumetric_diffuse import (
    AtlasTable,
    DiffuseVolumeParameters,
    EvaluatorConfig,
    VolumeParameterSet,
    VolumetricDiffuseEvaluator,
)
from volumetric_diffuse.atlas import constant_triplanar_field
from volumetric_diffuse.utils import save_scene


def build_room_scene():
    """Two overlapping volumes: a warm room and a cool corridor."""
    room = DiffuseVolumeParameters.from_aabb(
        [-4, 0, -4], [4, 3, 4], guard_band_factor=1.1, guard_band_sharpen=6.0
    )
    corridor = DiffuseVolumeParameters.from_aabb(
        [3, 0, -1], [12, 3, 1], guard_band_factor=1.1, guard_band_sharpen=6.0
    )

    # Per-slab colours in +X, -X, +Y, -Y, +Z, -Z order
    warm = np.array([[0.9, 0.6, 0.4]] * 6)
    warm[2] = [1.0, 0.9, 0.8]   # light from the ceiling
    cool = np.array([[0.3, 0.4, 0.6]] * 6)

    atlas = AtlasTable([
        constant_triplanar_field(warm, name="room"),
        constant_triplanar_field(cool, name="corridor"),
    ])
    params = VolumeParameterSet([room, corridor]).with_fallback((0.05, 0.05, 0.08), 0.01)
    return params, atlas


def example_single_point():
    """Evaluate irradiance at one shading point."""
    params, atlas = build_room_scene()
    evaluator = VolumetricDiffuseEvaluator(params, atlas)

    irradiance = evaluator.evaluate([0.0, 1.0, 0.0], [0.0, 1.0, 0.0])
    print(f"Irradiance at room centre (facing up): {irradiance}")


def example_lane_batched():
    """Evaluate a line of points with lane-batched accumulation."""
    params, atlas = build_room_scene()
    config = EvaluatorConfig(wave_uniform_batching=True, lane_group_size=32, verbose=True)
    evaluator = VolumetricDiffuseEvaluator(params, atlas, config)

    x = np.linspace(-5, 13, 256)
    positions = np.stack([x, np.full_like(x, 1.5), np.zeros_like(x)], axis=-1)
    normals = np.tile([0.0, 1.0, 0.0], (len(x), 1))

    irradiance = evaluator.evaluate(positions, normals)
    print(f"Irradiance range: {irradiance.min(axis=0)} - {irradiance.max(axis=0)}")
    print(f"Evaluator info: {evaluator.get_info()}")


def example_save_scene():
    """Write the scene for use with the command-line tool."""
    params, atlas = build_room_scene()
    output_dir = Path("output")
    output_dir.mkdir(exist_ok=True)

    save_scene(output_dir / "room_scene.npz", params, atlas)
    print(f"Saved scene to {output_dir / 'room_scene.npz'}")


if __name__ == "__main__":
    print("Volumetric Diffuse Examples")
    print("=" * 50)

    example_single_point()
    example_lane_batched()
    # example_save_scene()
