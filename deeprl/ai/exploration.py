"""
Annealed Epsilon-Greedy Exploration
===================================

Exploration probability as a function of training progress, where
progress (``age``) counts committed experiences rather than ticks:

    age <= burnin                 -> 1.0 (pure exploration)
    burnin < age < total_steps    -> linear from 1.0 down to epsilon_min
    age >= total_steps            -> epsilon_min

Outside learning mode the probability is a fixed, small epsilon_test
that is never zero, so a greedy policy cannot lock an agent into a loop.
"""

import numpy as np

from .experience import InvariantError, is_valid_epsilon


class ExplorationSchedule:
    """
    Age-based linear annealing of the exploration probability.

    Example:
        >>> schedule = ExplorationSchedule(burnin=100, total_steps=1100, epsilon_min=0.1)
        >>> schedule.age = 600
        >>> round(schedule.get(), 2)
        0.5
    """

    def __init__(
        self,
        burnin: int,
        total_steps: int,
        epsilon_min: float = 0.1,
        epsilon_test: float = 0.1,
        is_learning: bool = True,
    ):
        if total_steps <= burnin:
            raise ValueError(f"total_steps ({total_steps}) must exceed burnin ({burnin})")
        self.burnin = burnin
        self.total_steps = total_steps
        self.epsilon_min = epsilon_min
        self.epsilon_test = epsilon_test
        self.is_learning = is_learning
        self.age = 0

    @classmethod
    def from_config(cls, config) -> 'ExplorationSchedule':
        return cls(
            burnin=config.BURNIN,
            total_steps=config.LEARNING_STEPS_TOTAL,
            epsilon_min=config.EPSILON_MIN,
            epsilon_test=config.EPSILON_TEST,
        )

    def get(self) -> float:
        """Current exploration probability."""
        if not self.is_learning:
            return self.epsilon_test
        progress = (self.age - self.burnin) / (self.total_steps - self.burnin)
        return min(1.0, max(self.epsilon_min, 1.0 - progress))

    def should_explore(self, rng: np.random.Generator) -> bool:
        """Draw from rng and decide whether this decision is a random one."""
        dice = rng.random()
        epsilon = self.get()
        if not is_valid_epsilon(epsilon):
            raise InvariantError(f"exploration probability out of range: {epsilon}")
        return dice < epsilon

    def advance(self) -> None:
        """Record one committed experience."""
        self.age += 1

    def __repr__(self) -> str:
        return (f"ExplorationSchedule(age={self.age}, epsilon={self.get():.4f}, "
                f"learning={self.is_learning})")
