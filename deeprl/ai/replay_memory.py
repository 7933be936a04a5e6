"""
Experience Replay Memory
========================

A bounded store of Experiences sampled uniformly for training.

How it works:
    1. Brains commit one Experience per tick once they have enough history
    2. While under capacity, experiences are appended
    3. Once full, each new experience overwrites a uniformly random slot
    4. Training samples slots uniformly, with repetition

Eviction note:
    Overwriting a random slot is NOT reservoir sampling (which would keep
    the newcomer only with probability capacity / N). Every newcomer is
    kept and a random resident is evicted, so recent experiences are more
    likely to be present than old ones. That bias is the intended sampling
    behaviour of this memory.

Frames are shared between experiences, so the memory stores references:
the slot array is allocated once at construction and never resized.
"""

from typing import List, Optional

import numpy as np

from .experience import Experience


class ReplayMemory:
    """
    Fixed-capacity experience store with random-overwrite eviction.

    Example:
        >>> rng = np.random.default_rng(0)
        >>> memory = ReplayMemory(capacity=1000, burnin=100)
        >>> memory.push(experience, rng)
        >>> if memory.has_enough():
        ...     e = memory.sample(rng)
    """

    def __init__(self, capacity: int, burnin: int = 0):
        """
        Initialize the replay memory.

        Args:
            capacity: Maximum number of experiences to store
            burnin: Training is allowed once more than this many are stored
        """
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.burnin = burnin
        self._slots: List[Optional[Experience]] = [None] * capacity
        self._size = 0

    def push(self, experience: Experience, rng: np.random.Generator) -> int:
        """
        Store an experience.

        Args:
            experience: Completed experience
            rng: Random generator used to pick the evicted slot once full

        Returns:
            Index of the slot written
        """
        if self._size < self.capacity:
            index = self._size
            self._size += 1
        else:
            index = int(rng.integers(self.capacity))
        self._slots[index] = experience
        return index

    def sample(self, rng: np.random.Generator) -> Experience:
        """
        Return one stored experience chosen uniformly at random.

        Raises:
            RuntimeError: If the memory is empty
        """
        if self._size == 0:
            raise RuntimeError("Cannot sample from an empty replay memory. Call push() first.")
        return self._slots[int(rng.integers(self._size))]

    def has_enough(self) -> bool:
        """Check if enough experiences are stored to start training."""
        return self._size > self.burnin

    @property
    def is_full(self) -> bool:
        return self._size == self.capacity

    def __len__(self) -> int:
        """Return current number of stored experiences."""
        return self._size

    def __getitem__(self, index: int) -> Experience:
        if not 0 <= index < self._size:
            raise IndexError(f"replay index {index} out of range (size {self._size})")
        return self._slots[index]

    def clear(self) -> None:
        """Drop all experiences, keeping the allocated slots."""
        for i in range(self._size):
            self._slots[i] = None
        self._size = 0
