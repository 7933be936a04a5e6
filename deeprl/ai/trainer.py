"""
Minibatch Trainer
=================

One training step of temporal-difference learning:

    1. Sample MINIBATCH_SIZE experiences uniformly (with repetition)
    2. For every non-terminal sample build the next state's window:
       input_frames shifted left by one, next_frame appended
    3. Evaluate those windows in one batch, every action legal:
       V' = max_a Q(next_state, a)
    4. Target r' = reward + gamma * V'   (non-terminal)
              r' = reward                (terminal)
    5. Masked regression on the sampled windows: only the taken action's
       slot carries r' (filter 1.0), every other slot is 0

All per-step buffers are allocated once and reused.
"""

from collections import deque
from typing import List, Optional

import numpy as np

from .evaluator import PolicyEvaluator, all_actions_valid
from .experience import Experience, InvariantError, is_valid_q
from .frame import Window, fill_frames, shift_window
from .replay_memory import ReplayMemory


class Trainer:
    """
    Samples the replay memory and issues one gradient step per train() call.

    Attributes:
        steps: Gradient steps performed
        losses: Recent loss values (bounded)
    """

    def __init__(
        self,
        memory: ReplayMemory,
        evaluator: PolicyEvaluator,
        approximator,
        minibatch_size: int,
        gamma: float,
        num_actions: int,
        reward_min: float = -1.0,
        reward_max: float = 1.0,
    ):
        if evaluator.capacity < minibatch_size:
            raise ValueError("evaluator capacity is smaller than the minibatch")

        self.memory = memory
        self.evaluator = evaluator
        self.approximator = approximator
        self.minibatch_size = minibatch_size
        self.gamma = gamma
        self.num_actions = num_actions
        self.reward_min = reward_min
        self.reward_max = reward_max

        self.window_length = evaluator.window_length
        self.frame_size = evaluator.frame_size

        empty_window: Window = (None,) * self.window_length
        self._samples: List[Optional[Experience]] = [None] * minibatch_size
        self._bootstrap_windows: List[Window] = [empty_window] * minibatch_size
        self._frames_input = np.zeros(
            (minibatch_size, self.window_length * self.frame_size), dtype=np.float32
        )
        self._target_input = np.zeros((minibatch_size, num_actions), dtype=np.float32)
        self._filter_input = np.zeros((minibatch_size, num_actions), dtype=np.float32)
        self._empty_window = empty_window

        self.steps = 0
        self.losses: deque = deque(maxlen=10000)

    def train(self, rng: np.random.Generator) -> Optional[float]:
        """
        Perform one training step.

        Args:
            rng: Random generator used for minibatch sampling

        Returns:
            Loss value if a step was taken, None if the memory is not ready

        Raises:
            InvariantError: On an invalid sample, a non-finite target,
                            or a failed gradient step
        """
        if not self.memory.has_enough():
            return None

        for k in range(self.minibatch_size):
            e = self.memory.sample(rng)
            e.check_sanity(self.num_actions, self.reward_min, self.reward_max, self.window_length)
            self._samples[k] = e
            if e.next_frame is not None:
                self._bootstrap_windows[k] = shift_window(e.input_frames, e.next_frame)
            else:
                # Evaluated for shape only; terminal targets ignore it
                self._bootstrap_windows[k] = self._empty_window

        policies = self.evaluator.evaluate(self._bootstrap_windows, all_actions_valid)

        self._target_input.fill(0.0)
        self._filter_input.fill(0.0)

        for index in range(self.minibatch_size):
            e = self._samples[index]
            if e.next_frame is not None:
                target = e.reward + self.gamma * policies[index].value
            else:
                target = e.reward

            if not is_valid_q(target):
                raise InvariantError(f"non-finite training target: {target}")

            fill_frames(self._frames_input[index], e.input_frames, self.frame_size)
            self._target_input[index, e.action] = target
            self._filter_input[index, e.action] = 1.0

        loss = self.approximator.train_step(
            self._frames_input, self._target_input, self._filter_input
        )

        self.steps += 1
        self.losses.append(loss)
        return loss

    def get_average_loss(self, n: int = 100) -> float:
        """Average of the last n losses (0.0 before the first step)."""
        if not self.losses:
            return 0.0
        recent = list(self.losses)[-n:]
        return float(np.mean(recent))
