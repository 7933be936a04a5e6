"""
AI Module
=========

Temporal-difference training core.

Classes:
    Frame                - Immutable per-agent observation
    Experience / Policy  - Training sample / action decision
    ExplorationSchedule  - Annealed epsilon-greedy probability
    ReplayMemory         - Fixed-capacity, random-overwrite experience store
    QNetwork             - Q-value approximator (PyTorch)
    PolicyEvaluator      - Batched, legality-filtered greedy policies
    Trainer              - Minibatch TD training step
    DeepNetwork          - Facade composing all of the above
    Brain                - Per-agent two-phase experience builder
"""

from .frame import Frame
from .experience import Experience, Policy, InvariantError
from .exploration import ExplorationSchedule
from .replay_memory import ReplayMemory
from .network import QNetwork, TorchApproximator
from .evaluator import PolicyEvaluator
from .trainer import Trainer
from .deep_network import DeepNetwork
from .brain import Brain, BrainState

__all__ = [
    'Frame', 'Experience', 'Policy', 'InvariantError', 'ExplorationSchedule',
    'ReplayMemory', 'QNetwork', 'TorchApproximator', 'PolicyEvaluator',
    'Trainer', 'DeepNetwork', 'Brain', 'BrainState',
]
