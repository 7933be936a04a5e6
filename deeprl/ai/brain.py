"""
Brain: Per-Agent Adapter
========================

Keeps one agent's sliding window of frames and turns its per-tick
forward/backward calls into committed experiences.

Tick contract (enforced by the simulation):
    forward(frame)   - start of tick: observe, choose an action
    ... world applies every agent's action ...
    backward(reward) - end of tick: reward for the action just applied

An experience therefore spans two ticks. forward() at tick t opens it
(window ending at frame_t, action_t), backward() at tick t attaches
reward_t, and forward() at tick t+1 closes it with next_frame = frame_{t+1}
and commits it. The next state only becomes observable at the start of the
following tick, which is why the commit is deferred to then.

Until the window holds WINDOW_LENGTH frames the brain is warming up: it
acts through the caller's random action generator and builds nothing.
When the network is not learning the brain still acts on the network's
policy (with the test epsilon) but opens no experiences.
"""

from collections import deque
from enum import Enum
from typing import Callable, Deque, Optional

from .deep_network import DeepNetwork
from .experience import Experience, Policy
from .frame import Frame
from ..utils.logger import get_logger

logger = get_logger(__name__)


class BrainState(Enum):
    WARMUP = 'warmup'
    ACTIVE = 'active'


class Brain:
    """
    Two-phase experience builder for one acting agent.

    Attributes:
        network: Shared network this brain acts and learns through
        agent_index: Slot of the owning agent in its world (non-owning)
        frame_window: Most recent frames, oldest first
        forward_passes: forward() calls that carried a frame
        pending: Experience waiting for its next frame
    """

    def __init__(self, network: DeepNetwork, agent_index: Optional[int] = None):
        self.network = network
        self.agent_index = agent_index
        self.window_length = network.config.WINDOW_LENGTH

        self.frame_window: Deque[Frame] = deque(maxlen=self.window_length)
        self.forward_passes = 0
        self.pending: Optional[Experience] = None

        self.last_policy: Optional[Policy] = None
        self.last_greedy_policy: Optional[Policy] = None

    @property
    def has_pending(self) -> bool:
        return self.pending is not None

    @property
    def state(self) -> BrainState:
        if len(self.frame_window) >= self.window_length:
            return BrainState.ACTIVE
        return BrainState.WARMUP

    def forward(
        self,
        frame: Optional[Frame],
        random_action: Callable[[], int],
        is_valid_action: Callable[[int], bool],
    ) -> int:
        """
        Observe a frame and choose this tick's action.

        Args:
            frame: This tick's observation, or None if the agent could not
                   be observed (the tick is skipped and no state changes)
            random_action: Caller's generator of a random legal action
            is_valid_action: Caller's legality filter

        Returns:
            Action for the simulation to apply this tick
        """
        if frame is None:
            logger.debug(f"brain {self.agent_index}: no frame this tick, skipping")
            return random_action()

        self.forward_passes += 1

        self.flush(frame)

        # Bounded deque: appending drops the oldest frame once full
        self.frame_window.append(frame)

        if self.state is BrainState.WARMUP:
            return random_action()

        window = tuple(self.frame_window)
        p = self.network.predict_policy(window, random_action, is_valid_action)
        self.last_policy = p
        if not p.is_random:
            self.last_greedy_policy = p
        # Inference only: act on the weights, store nothing
        if self.network.is_learning:
            self.pending = Experience(input_frames=window, action=p.action)
        return p.action

    def backward(self, reward: float) -> None:
        """Attach this tick's reward to the open experience."""
        if self.pending is not None:
            self.pending.reward = float(reward)

    def flush(self, next_frame: Optional[Frame]) -> None:
        """
        Close and commit the open experience, if any.

        Args:
            next_frame: Observation that followed the experience's action,
                        None if the episode ended
        """
        if self.pending is None:
            return
        experience, self.pending = self.pending, None
        experience.next_frame = next_frame
        self.network.commit(experience)

    def notify_terminal(self) -> None:
        """
        End the episode for this agent.

        Commits the open experience without a next frame and forgets the
        frame history, so a reused brain warms up again.
        """
        self.flush(None)
        self.frame_window.clear()
        self.forward_passes = 0

    def detail(self) -> str:
        """Short description of the latest decisions, e.g. '3:0.42 *RAND* 1'."""
        greedy = str(self.last_greedy_policy) if self.last_greedy_policy else '-'
        if self.last_policy is not None and self.last_policy.is_random:
            return f"{greedy} *RAND* {self.last_policy.action}"
        return greedy
