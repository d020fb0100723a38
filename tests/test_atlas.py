"""Tests for atlas fields, the atlas table and the sampling kernels."""

import numpy as np
import pytest
from scipy import ndimage

from volumetric_diffuse.atlas import (
    AtlasField,
    AtlasTable,
    SLAB_NAMES,
    pack_triplanar,
    constant_triplanar_field,
    resolve_atlas_index,
    sample_linear_clamp,
)
from volumetric_diffuse.volumes import DiffuseVolumeParameters, VolumeParameterSet


def reference_sample(data: np.ndarray, coords: np.ndarray) -> np.ndarray:
    """Linear clamp-to-edge sampling via scipy, for comparison."""
    depth, height, width = data.shape[:3]
    texel = np.stack([
        coords[:, 2] * depth - 0.5,
        coords[:, 1] * height - 0.5,
        coords[:, 0] * width - 0.5,
    ])
    return np.stack([
        ndimage.map_coordinates(data[..., c].astype(np.float64), texel, order=1, mode='nearest')
        for c in range(3)
    ], axis=-1)


class TestAtlasField:
    """Tests for AtlasField sampling."""

    @pytest.fixture
    def random_field(self):
        rng = np.random.default_rng(7)
        return AtlasField(rng.random((5, 6, 18, 4)).astype(np.float32))

    def test_matches_reference_sampler(self, random_field):
        """Test trilinear sampling against scipy's map_coordinates."""
        rng = np.random.default_rng(11)
        coords = rng.uniform(-0.2, 1.2, size=(500, 3))

        samples = random_field.sample(coords)
        expected = reference_sample(random_field.data, coords)

        assert samples.shape == (500, 3)
        np.testing.assert_allclose(samples, expected, atol=1e-6)

    def test_texel_centers(self, random_field):
        """Test that sampling at a texel centre returns that texel exactly."""
        data = random_field.data
        coords = np.array([[(3 + 0.5) / 18, (2 + 0.5) / 6, (4 + 0.5) / 5]])

        np.testing.assert_allclose(random_field.sample(coords)[0], data[4, 2, 3, :3], atol=1e-6)

    def test_clamp_to_edge(self, random_field):
        """Test that coordinates outside [0, 1] clamp to the edge texels."""
        data = random_field.data
        inside = random_field.sample(np.array([0.5 / 18, 0.5 / 6, 0.5 / 5]))
        outside = random_field.sample(np.array([-3.0, -1.0, -0.5]))

        np.testing.assert_allclose(inside, data[0, 0, 0, :3], atol=1e-6)
        np.testing.assert_allclose(outside, inside, atol=1e-6)

    def test_single_coordinate_shape(self, random_field):
        assert random_field.sample(np.array([0.5, 0.5, 0.5])).shape == (3,)

    def test_linear_ramp_is_reproduced(self):
        """Test that a ramp through texel centres is sampled exactly."""
        width = 60
        ramp = (np.arange(width) + 0.5) / width
        data = np.zeros((2, 2, width, 4), dtype=np.float32)
        data[..., 0] = ramp

        field = AtlasField(data)
        u = np.linspace(0.1, 0.9, 9)
        coords = np.stack([u, np.full(9, 0.5), np.full(9, 0.5)], axis=-1)

        np.testing.assert_allclose(field.sample(coords)[:, 0], u, atol=1e-6)

    def test_scalar_kernel(self, random_field):
        """Test the scalar kernel against the batch path."""
        r, g, b = sample_linear_clamp(random_field.data, 0.3, 0.6, 0.2)
        expected = random_field.sample(np.array([0.3, 0.6, 0.2]))
        np.testing.assert_allclose([r, g, b], expected)

    def test_data_is_read_only(self, random_field):
        with pytest.raises(ValueError):
            random_field.data[0, 0, 0, 0] = 1.0

    def test_validation(self):
        """Test rejection of malformed fields."""
        with pytest.raises(ValueError):
            AtlasField(np.zeros((4, 4, 4)))
        with pytest.raises(ValueError):
            AtlasField(np.zeros((4, 4, 4, 2)))
        with pytest.raises(ValueError):
            AtlasField(np.zeros((0, 4, 4, 3)))

    def test_resolution(self):
        field = AtlasField(np.zeros((2, 3, 12, 4)))
        assert field.resolution == (12, 3, 2)
        assert field.channels == 4


class TestTriplanarPacking:
    """Tests for slab packing helpers."""

    def test_pack_order(self):
        """Test that slabs are laid out along x in slot order."""
        slabs = np.zeros((6, 2, 3, 4, 3), dtype=np.float32)
        for slot in range(6):
            slabs[slot] = slot

        packed = pack_triplanar(slabs)
        assert packed.shape == (2, 3, 24, 3)
        for slot in range(6):
            assert np.all(packed[:, :, slot * 4:(slot + 1) * 4] == slot)

    def test_pack_validation(self):
        with pytest.raises(ValueError):
            pack_triplanar(np.zeros((5, 2, 2, 2, 3)))

    def test_constant_field_slab_centres(self):
        """Test sampling each constant slab at its centre."""
        colors = np.arange(18, dtype=np.float32).reshape(6, 3)
        field = constant_triplanar_field(colors, slab_width=8)

        assert len(SLAB_NAMES) == 6
        for slot in range(6):
            centre = (slot + 0.5) / 6
            np.testing.assert_allclose(field.sample(np.array([centre, 0.5, 0.5])), colors[slot])


class TestAtlasTable:
    """Tests for AtlasTable and handle resolution."""

    @pytest.fixture
    def fields(self):
        return [AtlasField(np.full((1, 1, 6, 3), i, dtype=np.float32)) for i in range(4)]

    def test_indexing(self, fields):
        table = AtlasTable(fields)
        assert len(table) == 4
        assert table[2] is fields[2]
        assert list(table) == fields

    def test_out_of_range(self, fields):
        table = AtlasTable(fields)
        with pytest.raises(IndexError):
            table[4]
        with pytest.raises(IndexError):
            table[-1]

    def test_type_check(self):
        with pytest.raises(TypeError):
            AtlasTable([np.zeros((1, 1, 6, 3))])

    def test_with_previous_frame(self, fields):
        table = AtlasTable(fields[:2]).with_previous_frame(fields[2:])
        assert len(table) == 4
        assert table[3] is fields[3]

    def test_resolve_index(self):
        """Test handle resolution with offset and previous-frame copies."""
        volume = DiffuseVolumeParameters.from_aabb([0, 0, 0], [1, 1, 1])
        params = VolumeParameterSet([volume] * 5, bindless_index_offset=10)

        assert resolve_atlas_index(0, params) == 10
        assert resolve_atlas_index(3, params) == 13
        assert resolve_atlas_index(0, params, previous_frame=True) == 15
        assert (resolve_atlas_index(0, params, previous_frame=True)
                - resolve_atlas_index(0, params, previous_frame=False)) == params.num_volumes
