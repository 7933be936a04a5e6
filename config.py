"""
Configuration file for the Deep RL Arena
========================================

All hyperparameters, observation geometry, and simulation settings are
centralized here. Modify these values to experiment with different training
configurations.

Usage:
    from config import Config
    cfg = Config()
    print(cfg.NUM_ACTIONS)
"""

from dataclasses import dataclass, field
from typing import List, Optional
import torch


TRAIN_POLICIES = ('per_tick', 'on_commit')


@dataclass
class Config:
    """
    Central configuration for the entire project.

    Sections:
    1. Observation Geometry - Frame and temporal window layout
    2. Q-Network - Function approximator configuration
    3. Training - Replay memory and TD-learning hyperparameters
    4. Exploration - Annealed epsilon-greedy settings
    5. Simulation - Arena used to produce frames and rewards
    6. System - Hardware, paths and logging
    """

    # =========================================================================
    # OBSERVATION GEOMETRY
    # =========================================================================

    # Number of past frames kept besides the current one.
    # Every network input is a window of TEMPORAL_WINDOW + 1 frames.
    TEMPORAL_WINDOW: int = 3

    # Side of the square, ego-centred view each pawn observes
    SIGHT_DIAMETER: int = 16

    # Skill slots per pawn (each adds one action and one image channel)
    MAX_SKILLS: int = 2

    # +x, +y, -x, -y
    NUM_MOVE_DIRS: int = 4

    @property
    def WINDOW_LENGTH(self) -> int:
        """Frames per temporal window (oldest first)."""
        return self.TEMPORAL_WINDOW + 1

    @property
    def NUM_ACTIONS(self) -> int:
        """Attack + one move per direction + one action per skill."""
        return 1 + self.NUM_MOVE_DIRS + self.MAX_SKILLS

    @property
    def CHANNELS(self) -> int:
        """Image channels per frame."""
        return 5 + self.MAX_SKILLS

    @property
    def NUM_STATS(self) -> int:
        """Length of the scalar stat vector per frame."""
        return 4 + self.MAX_SKILLS

    @property
    def IMAGE_SIZE(self) -> int:
        return self.CHANNELS * self.SIGHT_DIAMETER * self.SIGHT_DIAMETER

    @property
    def FRAME_SIZE(self) -> int:
        """Flattened size of one frame (image followed by stats)."""
        return self.IMAGE_SIZE + self.NUM_STATS

    @property
    def INPUT_SIZE(self) -> int:
        """Flattened size of one temporal window."""
        return self.WINDOW_LENGTH * self.FRAME_SIZE

    # =========================================================================
    # Q-NETWORK
    # =========================================================================

    # Hidden layer architecture of the MLP approximator
    HIDDEN_LAYERS: List[int] = field(default_factory=lambda: [256, 64])

    # Activation function: 'relu', 'leaky_relu', 'tanh', 'elu'
    ACTIVATION: str = 'relu'

    # Split the output into value and advantage streams
    USE_DUELING: bool = False

    # Learning rate - How big of steps to take during optimization
    LEARNING_RATE: float = 0.0005

    # Gradient clipping to prevent exploding gradients (0 disables)
    GRAD_CLIP: float = 1.0

    # =========================================================================
    # TRAINING HYPERPARAMETERS
    # =========================================================================

    # Experiences per gradient step
    MINIBATCH_SIZE: int = 32

    # Discount factor for the bootstrapped target
    GAMMA: float = 0.95

    # Experiences over which epsilon anneals from 1.0 to EPSILON_MIN
    LEARNING_STEPS_TOTAL: int = 500_000

    # Experiences of pure exploration before annealing starts.
    # -1 means LEARNING_STEPS_TOTAL / 10.
    LEARNING_STEPS_BURNIN: int = -1

    # Replay memory capacity. 0 means EXPERIENCE_FRACTION * LEARNING_STEPS_TOTAL.
    EXPERIENCE_SIZE: int = 0
    EXPERIENCE_FRACTION: float = 0.2

    # Valid reward range; anything outside aborts the run
    REWARD_MIN: float = -1.0
    REWARD_MAX: float = 1.0

    # When gradient steps happen:
    #   'per_tick'  - the outer loop calls train() on every network once per tick
    #   'on_commit' - every committed experience triggers a training step
    TRAIN_POLICY: str = 'per_tick'

    @property
    def BURNIN(self) -> int:
        """Resolved burn-in length (in committed experiences)."""
        if self.LEARNING_STEPS_BURNIN < 0:
            return self.LEARNING_STEPS_TOTAL // 10
        return self.LEARNING_STEPS_BURNIN

    @property
    def REPLAY_CAPACITY(self) -> int:
        """Resolved replay memory capacity."""
        if self.EXPERIENCE_SIZE > 0:
            return self.EXPERIENCE_SIZE
        return max(1, int(self.LEARNING_STEPS_TOTAL * self.EXPERIENCE_FRACTION))

    # =========================================================================
    # EXPLORATION SETTINGS (Annealed Epsilon-Greedy)
    # =========================================================================

    # Floor reached after LEARNING_STEPS_TOTAL committed experiences
    EPSILON_MIN: float = 0.1

    # Fixed exploration rate outside learning mode (never 0 to avoid loops)
    EPSILON_TEST: float = 0.1

    # =========================================================================
    # SIMULATION
    # =========================================================================

    # Side of the square arena
    WORLD_SIZE: int = 8

    # Total ticks to simulate across all epochs
    ITERATIONS: int = 1_000_000

    # Upper bound on ticks per epoch (0 = until a hero dies)
    MAX_EPOCH_TICKS: int = 2000

    # Placement attempts before a spawn is deferred to the next tick
    SPAWN_TRIALS: int = 1000

    # Raw per-tick rewards are scaled by this before clipping to the reward range
    REWARD_SCALE: float = 0.1

    # Terminal reward for the winning (+) and losing (-) team
    WIN_REWARD: float = 1.0

    # Pawns spawned per team at the start of every epoch
    MINIONS_PER_TEAM: int = 2
    RANGED_PER_TEAM: int = 0
    HEROES_PER_TEAM: int = 1

    # Number of recent world events kept for inspection
    EVENT_LOG_SIZE: int = 10

    # =========================================================================
    # SYSTEM SETTINGS
    # =========================================================================

    # Force CPU device (small models are usually faster there)
    FORCE_CPU: bool = False

    @property
    def DEVICE(self) -> torch.device:
        """Auto-detect CUDA/MPS/CPU, or force CPU if configured."""
        if self.FORCE_CPU:
            return torch.device('cpu')
        if torch.cuda.is_available():
            return torch.device('cuda')
        elif hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
            return torch.device('mps')
        return torch.device('cpu')

    # Paths
    MODEL_DIR: str = 'models'
    LOG_DIR: str = 'logs'

    # 'DEBUG', 'INFO', 'WARNING', 'ERROR'
    LOG_LEVEL: str = 'INFO'

    # Log training metrics every N epochs
    LOG_EVERY: int = 10

    # Save networks every N epochs (0 = only at the end)
    SAVE_EVERY: int = 100

    # Random seed for reproducibility (None for random)
    SEED: Optional[int] = None

    def __post_init__(self):
        """Validation of hyperparameter ranges."""
        assert self.LEARNING_RATE > 0, "Learning rate must be positive"
        assert 0 < self.GAMMA <= 1, "Gamma must be in (0, 1]"
        assert self.MINIBATCH_SIZE > 0, "Minibatch size must be positive"
        assert self.TEMPORAL_WINDOW >= 0, "Temporal window must be non-negative"
        assert 0.0 <= self.EPSILON_MIN <= 1.0, "Epsilon min must be in [0, 1]"
        assert 0.0 < self.EPSILON_TEST <= 1.0, "Epsilon test must be in (0, 1]"
        assert self.REWARD_MIN < self.REWARD_MAX, "Reward range is empty"
        assert self.TRAIN_POLICY in TRAIN_POLICIES, f"Unknown train policy: {self.TRAIN_POLICY}"
        assert self.LEARNING_STEPS_TOTAL > self.BURNIN, "Burn-in must be shorter than total learning steps"
        assert self.WORLD_SIZE > 1, "World must have room for more than one pawn"


# Global config instance for easy importing
config = Config()
