"""Metadata for evaluation runs."""

import json
from pathlib import Path
from typing import Dict, Any, Optional
from datetime import datetime

import numpy as np


class MetadataWriter:
    """Handles creation and writing of metadata files."""

    @staticmethod
    def build_evaluation_metadata(
        scene_file: str,
        config: Dict,
        info: Dict,
        irradiance: np.ndarray,
        elapsed: float,
        points_file: Optional[str] = None
    ) -> Dict[str, Any]:
        """Collect metadata describing one evaluation run.

        Args:
            scene_file: Scene npz the volumes and atlas were loaded from
            config: Evaluator configuration dictionary
            info: Evaluator info (see VolumetricDiffuseEvaluator.get_info)
            irradiance: Evaluated irradiance, shape (N, 3)
            elapsed: Wall-clock time of the evaluation in seconds
            points_file: Source of the shading points (optional)

        Returns:
            JSON-serializable metadata dictionary
        """
        metadata = {
            "created_at": datetime.now().isoformat(),
            "scene_file": str(scene_file),
            "num_points": int(irradiance.shape[0]),
            "num_volumes": info.get("num_volumes", 0),
            "atlas_fields": info.get("atlas_fields", 0),
            "mode": info.get("mode"),
            "config": config,
            "elapsed_seconds": float(elapsed),
            "irradiance_stats": {
                "min": irradiance.min(axis=0).tolist() if irradiance.size else None,
                "max": irradiance.max(axis=0).tolist() if irradiance.size else None,
                "mean": irradiance.mean(axis=0).tolist() if irradiance.size else None,
            },
        }

        if points_file is not None:
            metadata["points_file"] = str(points_file)
        if "batch_stats" in info:
            metadata["batch_stats"] = info["batch_stats"]

        return metadata

    @staticmethod
    def write_metadata(output_path: Path, metadata: Dict[str, Any]):
        """Write a metadata dictionary as JSON.

        Args:
            output_path: Path to the JSON file
            metadata: Metadata dictionary
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(metadata, f, indent=2)

    @staticmethod
    def read_metadata(input_path: Path) -> Dict[str, Any]:
        """Read a metadata JSON file."""
        with open(input_path, "r") as f:
            return json.load(f)
