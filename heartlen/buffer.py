"""
Rolling PPG sample history.

A thin wrapper around two bounded deques (values and optional capture
timestamps).  The buffer also remembers how many samples it has ever seen,
so any position in the window can be mapped back to the absolute
:attr:`~heartlen.results.Sample.index` of that sample.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, List, Optional

import numpy as np

from heartlen.results import Sample

DEFAULT_CAPACITY = 300


class RollingSignalBuffer:
    """
    Fixed-capacity FIFO of scalar samples.

    Parameters
    ----------
    capacity:
        Maximum number of samples held.  Appending beyond it evicts the
        oldest entry.  Must be positive.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._values: Deque[float] = deque(maxlen=capacity)
        self._timestamps: Deque[Optional[float]] = deque(maxlen=capacity)
        self._next_index: int = 0

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def append(self, sample: Sample) -> None:
        self._values.append(float(sample.value))
        self._timestamps.append(sample.timestamp)
        self._next_index = sample.index + 1

    def push(self, value: float, timestamp: Optional[float] = None) -> Sample:
        """Wrap *value* in a :class:`Sample` with the next index and append it."""
        sample = Sample(value=float(value), index=self._next_index, timestamp=timestamp)
        self.append(sample)
        return sample

    def clear(self) -> None:
        """Drop every sample.  Indices keep increasing; they are never reused."""
        self._values.clear()
        self._timestamps.clear()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def as_array(self) -> np.ndarray:
        """Copy of the window, oldest → newest."""
        return np.array(self._values, dtype=np.float64)

    def as_list(self) -> List[float]:
        return list(self._values)

    def timestamps(self) -> Optional[np.ndarray]:
        """
        Host capture timestamps for the whole window, or *None* if any
        sample in the window arrived without one.
        """
        if not self._timestamps or any(t is None for t in self._timestamps):
            return None
        return np.array(self._timestamps, dtype=np.float64)

    @property
    def first_index(self) -> int:
        """Absolute sample index of the oldest sample in the window."""
        return self._next_index - len(self._values)

    @property
    def fill_ratio(self) -> float:
        """How full the buffer is (0 – 1)."""
        return len(self._values) / self.capacity

    def __len__(self) -> int:
        return len(self._values)
