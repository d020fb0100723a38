"""std140 layout of the volume parameter uniform block.

The host uploads a VolumeParameterSet as one uniform block. Every volume
occupies 96 bytes (three vec4 transform rows, two vec4 bounds, four floats);
the block header is padded to 48 bytes so the volume array starts on a
16-byte boundary.
"""

import numpy as np

from .parameters import CLUSTERER_MAX_VOLUMES, VolumeParameterSet

VOLUME_DTYPE = np.dtype({
    'names': [
        'world_to_texture', 'world_lo', 'world_hi',
        'lo_tex_coord_x', 'hi_tex_coord_x', 'guard_band_factor', 'guard_band_sharpen',
    ],
    'formats': [('<f4', (3, 4)), ('<f4', (4,)), ('<f4', (4,)), '<f4', '<f4', '<f4', '<f4'],
    'offsets': [0, 48, 64, 80, 84, 88, 92],
    'itemsize': 96,
})

UNIFORM_BLOCK_DTYPE = np.dtype({
    'names': [
        'bindless_index_offset', 'num_volumes', 'fallback_volume_fp16',
        'sky_color_lo', 'sky_color_hi', 'volumes',
    ],
    'formats': [
        '<i4', '<i4', ('<u4', (2,)), ('<f4', (3,)), ('<f4', (3,)),
        (VOLUME_DTYPE, (CLUSTERER_MAX_VOLUMES,)),
    ],
    'offsets': [0, 4, 8, 16, 32, 48],
    'itemsize': 48 + CLUSTERER_MAX_VOLUMES * VOLUME_DTYPE.itemsize,
})


def pack_uniform_block(params: VolumeParameterSet) -> bytes:
    """Serialize a parameter set into std140 uniform-block bytes.

    Unused volume slots are zero-filled.
    """
    arrays = params.to_arrays()
    n = params.num_volumes

    volumes = np.zeros(CLUSTERER_MAX_VOLUMES, dtype=VOLUME_DTYPE)
    volumes['world_to_texture'][:n] = arrays['world_to_texture']
    volumes['world_lo'][:n, :3] = arrays['world_lo']
    volumes['world_hi'][:n, :3] = arrays['world_hi']
    volumes['lo_tex_coord_x'][:n] = arrays['tex_coord_x'][:, 0]
    volumes['hi_tex_coord_x'][:n] = arrays['tex_coord_x'][:, 1]
    volumes['guard_band_factor'][:n] = arrays['guard_band'][:, 0]
    volumes['guard_band_sharpen'][:n] = arrays['guard_band'][:, 1]

    block = np.zeros(1, dtype=UNIFORM_BLOCK_DTYPE)
    block['bindless_index_offset'] = params.bindless_index_offset
    block['num_volumes'] = n
    block['fallback_volume_fp16'] = arrays['fallback_volume_fp16']
    block['sky_color_lo'] = arrays['sky_color_lo']
    block['sky_color_hi'] = arrays['sky_color_hi']
    block['volumes'] = volumes

    return block.tobytes()


def unpack_uniform_block(data: bytes) -> VolumeParameterSet:
    """Parse std140 uniform-block bytes back into a parameter set.

    Raises:
        ValueError: If the buffer size is wrong or num_volumes is out of range
    """
    if len(data) != UNIFORM_BLOCK_DTYPE.itemsize:
        raise ValueError(
            f"Uniform block must be {UNIFORM_BLOCK_DTYPE.itemsize} bytes, got {len(data)}"
        )
    block = np.frombuffer(data, dtype=UNIFORM_BLOCK_DTYPE, count=1)[0]

    n = int(block['num_volumes'])
    if not 0 <= n <= CLUSTERER_MAX_VOLUMES:
        raise ValueError(f"num_volumes out of range: {n}")

    volumes = block['volumes'][:n]
    arrays = {
        'world_to_texture': volumes['world_to_texture'],
        'world_lo': volumes['world_lo'][:, :3],
        'world_hi': volumes['world_hi'][:, :3],
        'tex_coord_x': np.stack([volumes['lo_tex_coord_x'], volumes['hi_tex_coord_x']], axis=-1),
        'guard_band': np.stack([volumes['guard_band_factor'], volumes['guard_band_sharpen']], axis=-1),
        'bindless_index_offset': block['bindless_index_offset'],
        'fallback_volume_fp16': block['fallback_volume_fp16'],
        'sky_color_lo': block['sky_color_lo'],
        'sky_color_hi': block['sky_color_hi'],
    }
    return VolumeParameterSet.from_arrays(arrays)
