"""
Allocation pool for the initial random allocation of a day.

The pool holds ``maximum_peak_consumption`` units of each time slot label
``1..unique_time_slots``. Agents are served in (shuffled) population order
and each receives units drawn uniformly at random without replacement, so
agents served late may receive fewer slots than they asked for when demand
exceeds capacity. That scarcity is expected and never an error.
"""

from collections import Counter

import numpy as np


class AllocationPool:
    """
    The day's finite multiset of allocatable time slot units.

    Attributes:
        unique_time_slots: Number of distinct labels
        maximum_peak_consumption: Units per label at day start
        rng: Generator used for every draw
    """

    def __init__(
        self,
        unique_time_slots: int,
        maximum_peak_consumption: int,
        rng: np.random.Generator,
    ) -> None:
        self.unique_time_slots = unique_time_slots
        self.maximum_peak_consumption = maximum_peak_consumption
        self.rng = rng

        # Label-major order: [1, 1, ..., 2, 2, ...]
        self._units: list[int] = [
            time_slot
            for time_slot in range(1, unique_time_slots + 1)
            for _ in range(maximum_peak_consumption)
        ]

    @property
    def capacity(self) -> int:
        """Number of units the pool held when it was built."""
        return self.unique_time_slots * self.maximum_peak_consumption

    def __len__(self) -> int:
        return len(self._units)

    def is_empty(self) -> bool:
        return not self._units

    def counts(self) -> dict[int, int]:
        """Remaining units per time slot label."""
        return dict(Counter(self._units))

    def draw(self, count: int) -> list[int]:
        """
        Remove and return up to ``count`` units chosen uniformly at random.

        Units are drawn one at a time; each draw picks an index uniformly
        over the units still in the pool.

        Args:
            count: Number of units wanted

        Returns:
            The drawn time slot labels, fewer than ``count`` if the pool ran out
        """
        drawn: list[int] = []
        for _ in range(count):
            if not self._units:
                break
            selector = int(self.rng.integers(len(self._units)))
            drawn.append(self._units.pop(selector))
        return drawn

    def allocate(self, requested_time_slots: list[int]) -> list[int]:
        """Draw one unit per requested slot, as far as the pool allows."""
        return self.draw(len(requested_time_slots))

    def __repr__(self) -> str:
        return (
            f"AllocationPool(slots={self.unique_time_slots}, "
            f"peak={self.maximum_peak_consumption}, remaining={len(self)}/{self.capacity})"
        )
