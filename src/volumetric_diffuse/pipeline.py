"""Batch evaluation of indirect diffuse irradiance for stored scenes."""

import time
import numpy as np
from pathlib import Path
from typing import Optional
from tqdm import tqdm

from .lighting.evaluator import VolumetricDiffuseEvaluator
from .utils.config import EvaluatorConfig
from .utils.io import load_scene, load_points, save_irradiance
from .utils.metadata import MetadataWriter


def evaluate_points(
    evaluator: VolumetricDiffuseEvaluator,
    positions: np.ndarray,
    normals: np.ndarray,
    chunk_size: int = 4096,
    show_progress: bool = True
) -> np.ndarray:
    """Evaluate irradiance for a large point set in chunks.

    Args:
        evaluator: Configured evaluator
        positions: World positions, shape (N, 3)
        normals: Unit normals, shape (N, 3)
        chunk_size: Points per chunk (rounded to whole lane groups when batching)
        show_progress: Show a tqdm progress bar

    Returns:
        Irradiance, shape (N, 3)
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    # Keep lane groups whole so chunking does not change group membership
    group = evaluator.config.lane_group_size
    if evaluator.config.wave_uniform_batching and chunk_size % group:
        chunk_size += group - chunk_size % group

    n = positions.shape[0]
    irradiance = np.zeros((n, 3), dtype=np.float64)
    for start in tqdm(range(0, n, chunk_size), desc="Evaluating", unit="chunk",
                      disable=not show_progress):
        stop = min(start + chunk_size, n)
        irradiance[start:stop] = evaluator.evaluate(positions[start:stop], normals[start:stop])

    return irradiance


def evaluate_scene_file(
    scene_path: Path,
    points_path: Path,
    output_path: Path,
    config: Optional[EvaluatorConfig] = None,
    chunk_size: int = 4096,
    metadata_path: Optional[Path] = None
) -> np.ndarray:
    """Load a scene and shading points, evaluate, and save the irradiance.

    Args:
        scene_path: Scene npz written by save_scene
        points_path: npz with 'positions' and 'normals'
        output_path: Output npz for the irradiance
        config: Evaluator options (defaults if not provided)
        chunk_size: Points per evaluation chunk
        metadata_path: Optional JSON file describing the run

    Returns:
        Irradiance, shape (N, 3)
    """
    config = config or EvaluatorConfig()
    params, atlas = load_scene(scene_path)
    positions, normals = load_points(points_path)

    print(f"Loaded {params.num_volumes} volumes, {len(atlas)} atlas fields, "
          f"{positions.shape[0]} points")

    evaluator = VolumetricDiffuseEvaluator(params, atlas, config)

    start_time = time.time()
    irradiance = evaluate_points(evaluator, positions, normals, chunk_size=chunk_size)
    elapsed = time.time() - start_time

    metadata = MetadataWriter.build_evaluation_metadata(
        scene_file=str(scene_path),
        config=config.to_dict(),
        info=evaluator.get_info(),
        irradiance=irradiance,
        elapsed=elapsed,
        points_file=str(points_path),
    )
    save_irradiance(output_path, irradiance, {'mode': config.mode, 'num_volumes': params.num_volumes})
    if metadata_path is not None:
        MetadataWriter.write_metadata(metadata_path, metadata)

    print(f"\nEvaluated {positions.shape[0]} points in {elapsed:.2f}s ({config.mode})")
    if 'batch_stats' in metadata:
        stats = metadata['batch_stats']
        print(f"  Lane groups:     {stats['groups']}")
        print(f"  Uniform lookups: {stats['uniform_lookups']}")
        print(f"  Culled volumes:  {stats['culled']}")
    print(f"Saved irradiance to {output_path}")

    return irradiance


def main(argv=None):
    """Command-line entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Evaluate indirect diffuse irradiance from diffuse volumes"
    )
    parser.add_argument(
        "scene",
        type=Path,
        help="Scene npz with volume parameters and atlas fields"
    )
    parser.add_argument(
        "--points",
        type=Path,
        required=True,
        help="npz with 'positions' and 'normals' arrays"
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("irradiance.npz"),
        help="Output npz file"
    )
    parser.add_argument(
        "--wave-uniform",
        action="store_true",
        help="Use lane-batched accumulation with group-uniform atlas handles"
    )
    parser.add_argument(
        "--lane-group-size",
        type=int,
        default=32,
        help="Lanes per synchronous group (power of 2)"
    )
    parser.add_argument(
        "--previous-frame",
        action="store_true",
        help="Sample the previous frame's atlas fields"
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=4096,
        help="Points evaluated per chunk"
    )
    parser.add_argument(
        "--metadata",
        type=Path,
        default=None,
        help="Write run metadata to this JSON file"
    )

    args = parser.parse_args(argv)

    config = EvaluatorConfig(
        wave_uniform_batching=args.wave_uniform,
        previous_frame_textures=args.previous_frame,
        lane_group_size=args.lane_group_size,
    )

    evaluate_scene_file(
        scene_path=args.scene,
        points_path=args.points,
        output_path=args.output,
        config=config,
        chunk_size=args.chunk_size,
        metadata_path=args.metadata,
    )


if __name__ == "__main__":
    main()
