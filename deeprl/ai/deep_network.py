"""
Deep Network Facade
===================

What a population of brains shares: one approximator, one replay memory,
one exploration schedule, and the evaluator/trainer pair that connects
them.

Brains only ever call:
    predict / predict_policy   - epsilon-greedy action choice
    commit                     - hand over a completed experience
and the outer loop calls:
    train                      - one gradient step if enough data is stored

Several DeepNetworks may live side by side (e.g. one per pawn archetype);
they share nothing, not even their random generator.
"""

from typing import Callable, Optional

import numpy as np

from config import Config
from .evaluator import PolicyEvaluator
from .experience import Experience, InvariantError, Policy, is_valid_action
from .exploration import ExplorationSchedule
from .frame import Window
from .network import TorchApproximator
from .replay_memory import ReplayMemory
from .trainer import Trainer
from ..utils.logger import get_logger

logger = get_logger(__name__)


class DeepNetwork:
    """
    Epsilon-greedy policy + experience replay + TD training around one approximator.

    Attributes:
        epsilon: Exploration schedule (age = committed experiences)
        replay_memory: Experience store
        evaluator: Greedy policy extraction
        trainer: Minibatch TD trainer
        rng: The only source of randomness for this network

    Example:
        >>> net = DeepNetwork.from_config(Config(SEED=0))
        >>> action = net.predict(window, random_action, is_valid_action)
        >>> net.commit(experience)
        >>> loss = net.train()
    """

    def __init__(
        self,
        approximator,
        config: Optional[Config] = None,
        rng: Optional[np.random.Generator] = None,
        name: str = '',
    ):
        """
        Args:
            approximator: Object implementing batch_forward / train_step / save / load
            config: Configuration object
            rng: Random generator (default: seeded from config.SEED)
            name: Label used in logs
        """
        self.config = config or Config()
        self.approximator = approximator
        self.rng = rng if rng is not None else np.random.default_rng(self.config.SEED)
        self.name = name
        self.num_actions = self.config.NUM_ACTIONS
        self.gamma = self.config.GAMMA

        self.epsilon = ExplorationSchedule.from_config(self.config)
        self.replay_memory = ReplayMemory(self.config.REPLAY_CAPACITY, self.config.BURNIN)
        self.evaluator = PolicyEvaluator(
            approximator,
            capacity=self.config.MINIBATCH_SIZE,
            window_length=self.config.WINDOW_LENGTH,
            frame_size=self.config.FRAME_SIZE,
            num_actions=self.num_actions,
        )
        self.trainer = Trainer(
            self.replay_memory,
            self.evaluator,
            approximator,
            minibatch_size=self.config.MINIBATCH_SIZE,
            gamma=self.gamma,
            num_actions=self.num_actions,
            reward_min=self.config.REWARD_MIN,
            reward_max=self.config.REWARD_MAX,
        )

    @classmethod
    def from_config(
        cls,
        config: Config,
        rng: Optional[np.random.Generator] = None,
        name: str = '',
    ) -> 'DeepNetwork':
        """Build a network backed by a fresh TorchApproximator."""
        return cls(TorchApproximator.from_config(config), config, rng=rng, name=name)

    @property
    def is_learning(self) -> bool:
        return self.epsilon.is_learning

    @is_learning.setter
    def is_learning(self, value: bool) -> None:
        self.epsilon.is_learning = value

    # ------------------------------------------------------------------
    # Acting
    # ------------------------------------------------------------------

    def policy(self, window: Window, is_valid_action: Callable[[int], bool]) -> Policy:
        """Greedy legal policy for one window (RANDOM if nothing is legal)."""
        return self.evaluator.evaluate([window], is_valid_action)[0]

    def predict_policy(
        self,
        window: Window,
        random_action: Callable[[], int],
        is_valid_action: Callable[[int], bool],
    ) -> Policy:
        """
        Epsilon-greedy decision.

        Args:
            window: Temporal window to act on
            random_action: Caller's generator of a random legal action
            is_valid_action: Caller's legality filter

        Returns:
            Greedy Policy, or a RANDOM Policy holding random_action()
        """
        if self.epsilon.should_explore(self.rng):
            return Policy.random(self._checked(random_action()))

        p = self.policy(window, is_valid_action)
        if not p.is_random and is_valid_action(p.action):
            return p

        logger.warning(f"{self.name or 'network'}: no legal greedy action, falling back to random")
        return Policy.random(self._checked(random_action()))

    def predict(
        self,
        window: Window,
        random_action: Callable[[], int],
        is_valid_action: Callable[[int], bool],
    ) -> int:
        """Epsilon-greedy action for one window."""
        return self.predict_policy(window, random_action, is_valid_action).action

    def _checked(self, action: int) -> int:
        if not is_valid_action(action, self.num_actions):
            raise InvariantError(f"random action out of range: {action}")
        return action

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def commit(self, experience: Experience) -> Optional[float]:
        """
        Store a completed experience.

        Advances the exploration schedule by one and, under the
        'on_commit' train policy, runs a training step immediately.

        Returns:
            Loss of the immediate training step, if one was taken
        """
        experience.check_sanity(
            self.num_actions,
            self.config.REWARD_MIN,
            self.config.REWARD_MAX,
            self.config.WINDOW_LENGTH,
        )
        self.epsilon.advance()
        self.replay_memory.push(experience, self.rng)

        if self.config.TRAIN_POLICY == 'on_commit':
            return self.train()
        return None

    def train(self) -> Optional[float]:
        """One gradient step, or None while the replay memory is still burning in."""
        return self.trainer.train(self.rng)

    def get_average_loss(self, n: int = 100) -> float:
        return self.trainer.get_average_loss(n)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, filepath: str, **metadata) -> None:
        """Save approximator weights. Replay memory and brains are untouched."""
        self.approximator.save(filepath, age=self.epsilon.age, **metadata)

    def load(self, filepath: str) -> dict:
        """
        Load approximator weights.

        Safe between epochs or ticks: experiences held by brains and the
        replay memory reference frames, not weights, so nothing in flight
        is invalidated.
        """
        return self.approximator.load(filepath)

    def __repr__(self) -> str:
        return (f"DeepNetwork(name={self.name!r}, memory={len(self.replay_memory)}/"
                f"{self.replay_memory.capacity}, {self.epsilon!r})")
