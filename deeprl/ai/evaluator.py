"""
Policy Evaluator
================

Turns a batch of temporal windows into a batch of greedy policies with a
single forward pass of the approximator.

The input array always has the approximator's full minibatch shape:
windows fill the first rows and the remaining rows are zero padding, so
prediction (one window) and bootstrapping (a whole minibatch) share the
same pre-allocated buffer.

Selection rule per window:
    - only actions for which is_valid_action(action) holds are considered
    - the strictly greatest Q-value wins; ties keep the lowest action index
    - if nothing is legal the result is Policy.random() (action -1)
"""

from typing import Callable, List, Sequence

import numpy as np

from .experience import InvariantError, Policy
from .frame import Window, fill_frames


def all_actions_valid(action: int) -> bool:
    return True


class PolicyEvaluator:
    """
    Greedy, legality-filtered policy extraction over a fixed-size batch.

    Example:
        >>> evaluator = PolicyEvaluator(approximator, capacity=32,
        ...                             window_length=4, frame_size=1798, num_actions=7)
        >>> [policy] = evaluator.evaluate([window], lambda a: a != 0)
    """

    def __init__(
        self,
        approximator,
        capacity: int,
        window_length: int,
        frame_size: int,
        num_actions: int,
    ):
        """
        Args:
            approximator: Object exposing batch_forward(inputs) -> q_values
            capacity: Rows per forward pass (the approximator's minibatch size)
            window_length: Frames per window
            frame_size: Floats per frame
            num_actions: Size of the action space
        """
        self.approximator = approximator
        self.capacity = capacity
        self.window_length = window_length
        self.frame_size = frame_size
        self.num_actions = num_actions

        self._frames_input = np.zeros((capacity, window_length * frame_size), dtype=np.float32)

    def evaluate(
        self,
        windows: Sequence[Window],
        is_valid_action: Callable[[int], bool] = all_actions_valid,
    ) -> List[Policy]:
        """
        Evaluate up to `capacity` windows.

        Args:
            windows: Temporal windows, each of exactly window_length frames
            is_valid_action: Legality filter applied to every window

        Returns:
            One Policy per window, in order

        Raises:
            ValueError: On too many windows or a window of the wrong length
            InvariantError: If the approximator returns a non-finite Q-value
        """
        n = len(windows)
        if n > self.capacity:
            raise ValueError(f"cannot evaluate {n} windows with capacity {self.capacity}")

        for row, window in zip(self._frames_input, windows):
            if len(window) != self.window_length:
                raise ValueError(f"window of {len(window)} frames, expected {self.window_length}")
            fill_frames(row, window, self.frame_size)
        self._frames_input[n:] = 0.0

        q_values = self.approximator.batch_forward(self._frames_input)

        if not np.all(np.isfinite(q_values[:n])):
            raise InvariantError("approximator produced non-finite Q-values")

        legal = [action for action in range(self.num_actions) if is_valid_action(action)]
        return [self._best_policy(q_values[index], legal) for index in range(n)]

    @staticmethod
    def _best_policy(q_row: np.ndarray, legal: List[int]) -> Policy:
        best = Policy.random()
        best_q = -np.inf
        for action in legal:
            q = float(q_row[action])
            if q > best_q:
                best_q = q
                best = Policy(action, q)
        return best
