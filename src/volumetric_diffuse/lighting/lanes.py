"""Sequential simulation of a synchronous lane group.

A lane group is a fixed number of invocations executing in lockstep that can
exchange values without synchronization. Each operation here acts on all
lanes at once: per-lane values are arrays with the group size as their first
dimension, and ballots are integer bitmasks with bit i set for lane i.
Only active lanes take part in ballots and reductions.
"""

import numpy as np
from typing import Optional, Sequence


class LaneGroup:
    """One synchronous group of lanes.

    Args:
        size: Number of lanes (power of two, 1 to 128)
        active: Boolean mask of participating lanes, shape (size,).
            Defaults to all lanes active.

    Example:
        >>> group = LaneGroup(4, active=np.array([True, False, True, True]))
        >>> ballot = group.ballot(np.ones(4, dtype=bool))
        >>> bin(ballot)
        '0b1101'
        >>> group.exclusive_bit_count(ballot)
        array([0, 1, 1, 2])
    """

    MAX_SIZE = 128

    def __init__(self, size: int, active: Optional[np.ndarray] = None):
        if not (0 < size <= self.MAX_SIZE and (size & (size - 1)) == 0):
            raise ValueError(f"Lane group size must be a power of 2 in [1, {self.MAX_SIZE}], got {size}")
        self.size = size

        if active is None:
            active = np.ones(size, dtype=bool)
        active = np.asarray(active, dtype=bool)
        if active.shape != (size,):
            raise ValueError(f"active mask must have shape ({size},), got {active.shape}")
        self.active = active

    @property
    def lane_ids(self) -> np.ndarray:
        """Invocation ID of each lane, shape (size,)."""
        return np.arange(self.size)

    def ballot(self, predicate: np.ndarray) -> int:
        """Bitmask of active lanes whose predicate is true."""
        predicate = np.asarray(predicate, dtype=bool) & self.active
        mask = 0
        for lane in np.flatnonzero(predicate):
            mask |= 1 << int(lane)
        return mask

    @staticmethod
    def bit_count(ballot: int) -> int:
        """Number of lanes set in a ballot."""
        return bin(ballot).count("1")

    def exclusive_bit_count(self, ballot: int) -> np.ndarray:
        """Per lane, the number of ballot bits set below that lane."""
        bits = np.array([(ballot >> lane) & 1 for lane in range(self.size)], dtype=np.int64)
        return np.cumsum(bits) - bits

    @staticmethod
    def find_lsb(ballot: int) -> int:
        """Lowest lane set in a ballot, -1 when the ballot is empty."""
        if ballot == 0:
            return -1
        return (ballot & -ballot).bit_length() - 1

    def reduce_min(self, values: np.ndarray) -> np.ndarray:
        """Component-wise minimum over active lanes, broadcast to every lane."""
        values = np.asarray(values)
        return np.min(values[self.active], axis=0)

    def reduce_max(self, values: np.ndarray) -> np.ndarray:
        """Component-wise maximum over active lanes, broadcast to every lane."""
        values = np.asarray(values)
        return np.max(values[self.active], axis=0)

    def shuffle(self, values: Sequence, lane: int):
        """Value held by one lane, read by every lane."""
        if not 0 <= lane < self.size:
            raise IndexError(f"Lane {lane} out of range for group of size {self.size}")
        return values[lane]

    @property
    def num_active(self) -> int:
        return int(np.count_nonzero(self.active))
