"""Tests for scene I/O and the batch evaluation pipeline."""

import json
import numpy as np
import pytest

from volumetric_diffuse.atlas import AtlasField, AtlasTable, constant_triplanar_field
from volumetric_diffuse.lighting import VolumetricDiffuseEvaluator
from volumetric_diffuse.pipeline import evaluate_points, main
from volumetric_diffuse.utils import (
    EvaluatorConfig,
    MetadataWriter,
    load_points,
    load_scene,
    save_irradiance,
    save_scene,
)
from volumetric_diffuse.volumes import DiffuseVolumeParameters, VolumeParameterSet, encode_fallback


@pytest.fixture
def scene():
    """Two overlapping volumes, stored at a non-zero bindless offset."""
    volumes = [
        DiffuseVolumeParameters.from_aabb([-2, -2, -2], [1, 2, 2], guard_band_factor=1.1, guard_band_sharpen=3.0),
        DiffuseVolumeParameters.from_aabb([-1, -2, -2], [3, 2, 2], guard_band_sharpen=6.0, lo_tex_coord_x=0.1),
    ]
    rng = np.random.default_rng(0)
    fields = [AtlasField(np.zeros((1, 1, 6, 4)), name="unused")]
    fields += [AtlasField(rng.random((3, 4, 12, 4))) for _ in volumes]

    params = VolumeParameterSet(
        volumes,
        bindless_index_offset=1,
        fallback_volume_fp16=encode_fallback((0.2, 0.2, 0.2), 0.1),
        sky_color_hi=[0.5, 0.6, 0.7],
    )
    return params, AtlasTable(fields)


@pytest.fixture
def points():
    rng = np.random.default_rng(1)
    positions = rng.uniform(-3, 3, size=(100, 3))
    normals = rng.normal(size=(100, 3))
    normals /= np.linalg.norm(normals, axis=1, keepdims=True)
    return positions, normals


class TestSceneIO:
    """Tests for scene and points files."""

    def test_scene_round_trip(self, tmp_path, scene, points):
        """Test that a saved scene evaluates identically after loading."""
        params, atlas = scene
        path = tmp_path / "scene.npz"
        save_scene(path, params, atlas)

        loaded_params, loaded_atlas = load_scene(path)

        assert loaded_params.num_volumes == 2
        assert loaded_params.bindless_index_offset == 1
        assert loaded_params.fallback_volume_fp16 == params.fallback_volume_fp16
        np.testing.assert_array_equal(loaded_params.sky_color_hi, [0.5, 0.6, 0.7])
        assert len(loaded_atlas) == 3

        positions, normals = points
        expected = VolumetricDiffuseEvaluator(params, atlas).evaluate(positions, normals)
        result = VolumetricDiffuseEvaluator(loaded_params, loaded_atlas).evaluate(positions, normals)
        np.testing.assert_array_equal(result, expected)

    def test_empty_scene(self, tmp_path):
        path = tmp_path / "empty.npz"
        save_scene(path, VolumeParameterSet(), AtlasTable([]))

        params, atlas = load_scene(path)
        assert params.num_volumes == 0
        assert len(atlas) == 0

    def test_load_points_validation(self, tmp_path):
        path = tmp_path / "points.npz"
        np.savez(path, positions=np.zeros((4, 3)))
        with pytest.raises(ValueError):
            load_points(path)

        np.savez(path, positions=np.zeros((4, 3)), normals=np.zeros((3, 3)))
        with pytest.raises(ValueError):
            load_points(path)

    def test_save_irradiance(self, tmp_path):
        path = tmp_path / "out.npz"
        save_irradiance(path, np.ones((5, 3)), {'mode': 'naive', 'num_volumes': 2})

        data = np.load(path)
        assert data['irradiance'].shape == (5, 3)
        assert str(data['mode']) == 'naive'
        assert int(data['num_volumes']) == 2


class TestPipeline:
    """Tests for chunked and command-line evaluation."""

    def test_chunked_matches_direct(self, scene, points):
        """Test that chunking does not change the result."""
        params, atlas = scene
        positions, normals = points
        config = EvaluatorConfig(wave_uniform_batching=True, lane_group_size=8)
        evaluator = VolumetricDiffuseEvaluator(params, atlas, config)

        expected = evaluator.evaluate(positions, normals)
        result = evaluate_points(evaluator, positions, normals, chunk_size=20, show_progress=False)
        np.testing.assert_allclose(result, expected, atol=1e-12)

    def test_chunk_size_validation(self, scene, points):
        evaluator = VolumetricDiffuseEvaluator(*scene)
        with pytest.raises(ValueError):
            evaluate_points(evaluator, *points, chunk_size=0)

    def test_cli(self, tmp_path, scene, points):
        """Test the command-line entry point end to end."""
        params, atlas = scene
        positions, normals = points
        scene_path = tmp_path / "scene.npz"
        points_path = tmp_path / "points.npz"
        output_path = tmp_path / "irradiance.npz"
        metadata_path = tmp_path / "run.json"

        save_scene(scene_path, params, atlas)
        np.savez(points_path, positions=positions, normals=normals)

        main([
            str(scene_path),
            "--points", str(points_path),
            "--output", str(output_path),
            "--wave-uniform",
            "--lane-group-size", "16",
            "--chunk-size", "40",
            "--metadata", str(metadata_path),
        ])

        expected = VolumetricDiffuseEvaluator(params, atlas).evaluate(positions, normals)
        result = np.load(output_path)['irradiance']
        np.testing.assert_allclose(result, expected, rtol=1e-5, atol=1e-6)

        metadata = MetadataWriter.read_metadata(metadata_path)
        assert metadata['num_points'] == 100
        assert metadata['mode'] == 'lane_batched'
        assert metadata['config']['lane_group_size'] == 16
        assert metadata['batch_stats']['groups'] == 7
        assert json.dumps(metadata)
