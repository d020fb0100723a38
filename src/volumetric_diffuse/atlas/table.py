"""Indexable table of atlas fields addressed by integer handle."""

from typing import Iterable, Iterator

from .field import AtlasField


class AtlasTable:
    """Immutable collection of atlas fields shared by all volumes.

    Volume i of a parameter set lives at handle
    ``i + bindless_index_offset``; when previous-frame textures are kept,
    the previous frame's copy of volume i follows the current fields at
    ``i + bindless_index_offset + num_volumes``.
    """

    def __init__(self, fields: Iterable[AtlasField]):
        self._fields = tuple(fields)
        for handle, atlas_field in enumerate(self._fields):
            if not isinstance(atlas_field, AtlasField):
                raise TypeError(
                    f"Handle {handle}: expected AtlasField, got {type(atlas_field).__name__}"
                )

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[AtlasField]:
        return iter(self._fields)

    def __getitem__(self, handle: int) -> AtlasField:
        handle = int(handle)
        if not 0 <= handle < len(self._fields):
            raise IndexError(f"Atlas handle {handle} out of range for table of size {len(self._fields)}")
        return self._fields[handle]

    def with_previous_frame(self, previous_fields: Iterable[AtlasField]) -> "AtlasTable":
        """Table holding these fields followed by the previous frame's fields."""
        return AtlasTable(self._fields + tuple(previous_fields))


def resolve_atlas_index(volume_index: int, params, previous_frame: bool = False) -> int:
    """Handle of a volume's atlas field in the shared table.

    Args:
        volume_index: Index of the volume in params.volumes
        params: VolumeParameterSet providing the offset and volume count
        previous_frame: Address the previous frame's copy of the field

    Returns:
        volume_index + bindless_index_offset, plus num_volumes for the previous frame
    """
    handle = int(volume_index) + params.bindless_index_offset
    if previous_frame:
        handle += params.num_volumes
    return handle
