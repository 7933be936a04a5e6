"""
Experiences and Policies
========================

Experience: one (window, action, reward, next frame) training sample.
Policy: an (action, value) decision, where a missing value marks an
action picked by exploration rather than by greedy evaluation.

Any violated invariant here means the numbers have diverged or a caller
broke the tick contract, so it raises InvariantError and the run stops.
"""

import math
from dataclasses import dataclass
from typing import Optional

from .frame import Frame, Window


class InvariantError(RuntimeError):
    """A numeric or contract invariant of the training core was violated."""


def is_valid_action(action: int, num_actions: int) -> bool:
    return 0 <= action < num_actions


def is_valid_reward(reward: Optional[float], reward_min: float, reward_max: float) -> bool:
    return reward is not None and math.isfinite(reward) and reward_min <= reward <= reward_max


def is_valid_q(value: float) -> bool:
    return math.isfinite(value)


def is_valid_epsilon(epsilon: float) -> bool:
    return 0.0 <= epsilon <= 1.0


@dataclass
class Experience:
    """
    A single transition.

    Attributes:
        input_frames: Temporal window the action was chosen from (oldest first)
        action: Action taken
        reward: Reward received for the action (None until backward())
        next_frame: Frame observed on the following tick, None if the
                    episode ended on this transition
    """
    input_frames: Window
    action: int
    reward: Optional[float] = None
    next_frame: Optional[Frame] = None

    @property
    def is_terminal(self) -> bool:
        return self.next_frame is None

    def check_sanity(
        self,
        num_actions: int,
        reward_min: float,
        reward_max: float,
        window_length: Optional[int] = None,
    ) -> None:
        """
        Raise InvariantError unless this experience can be trained on.

        Args:
            num_actions: Size of the action space
            reward_min: Lowest valid reward
            reward_max: Highest valid reward
            window_length: Required length of input_frames (unchecked if None)
        """
        if not is_valid_reward(self.reward, reward_min, reward_max):
            raise InvariantError(
                f"invalid reward: {self.reward} (valid range [{reward_min}, {reward_max}])"
            )
        if not is_valid_action(self.action, num_actions):
            raise InvariantError(f"invalid action: {self.action} (num_actions={num_actions})")
        if window_length is not None and len(self.input_frames) != window_length:
            raise InvariantError(
                f"input window has {len(self.input_frames)} frames, expected {window_length}"
            )


@dataclass(frozen=True)
class Policy:
    """
    An action decision.

    ``value`` is the estimated Q-value of ``action``, or None (the RANDOM
    marker) when exploration picked the action. RANDOM values must never be
    compared against real ones; Python refuses ``None > float`` anyway.
    """
    action: int
    value: Optional[float] = None

    @classmethod
    def random(cls, action: int = -1) -> 'Policy':
        """RANDOM policy. The default action -1 means "defer to a random legal action"."""
        return cls(action, None)

    @property
    def is_random(self) -> bool:
        return self.value is None

    def __str__(self) -> str:
        if self.is_random:
            return f"{self.action}:rand"
        return f"{self.action}:{self.value:.2f}"
