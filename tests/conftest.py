"""
Pytest configuration for the test suite.

This file is automatically loaded by pytest and provides the small
configurations, frames and fake approximators shared by the tests.
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Config
from deeprl.ai.frame import Frame


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


def make_config(**overrides) -> Config:
    """A configuration small enough to train on a CPU in milliseconds."""
    settings = dict(
        TEMPORAL_WINDOW=1,
        SIGHT_DIAMETER=3,
        MAX_SKILLS=2,
        HIDDEN_LAYERS=[16],
        MINIBATCH_SIZE=4,
        LEARNING_STEPS_TOTAL=100,
        LEARNING_STEPS_BURNIN=5,
        EXPERIENCE_SIZE=50,
        WORLD_SIZE=6,
        MAX_EPOCH_TICKS=50,
        FORCE_CPU=True,
        SEED=0,
        LOG_EVERY=0,
        SAVE_EVERY=0,
    )
    settings.update(overrides)
    return Config(**settings)


class FixedQApproximator:
    """
    Approximator returning the same Q-row for every input row.

    Records every call so tests can inspect what the core fed it.
    """

    def __init__(self, q_row, batch_size: int):
        self.q_row = np.asarray(q_row, dtype=np.float32)
        self.batch_size = batch_size
        self.forward_inputs = []
        self.train_calls = []

    def batch_forward(self, inputs: np.ndarray) -> np.ndarray:
        assert inputs.shape[0] == self.batch_size
        self.forward_inputs.append(inputs.copy())
        return np.tile(self.q_row, (inputs.shape[0], 1))

    def train_step(self, inputs, targets, filters) -> float:
        self.train_calls.append((inputs.copy(), targets.copy(), filters.copy()))
        return 0.5

    def save(self, filepath, **metadata):
        self.saved = (filepath, metadata)

    def load(self, filepath):
        return {}


@pytest.fixture
def small_config():
    return make_config()


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def make_frame(small_config):
    """Frame factory: every float of the frame equals `value`."""
    def _make(value: float = 0.0, config: Config = small_config) -> Frame:
        sight = config.SIGHT_DIAMETER
        return Frame(
            np.full((config.CHANNELS, sight, sight), value, dtype=np.float32),
            np.full(config.NUM_STATS, value, dtype=np.float32),
        )
    return _make


@pytest.fixture
def fixed_q():
    """Factory for FixedQApproximator."""
    return FixedQApproximator


@pytest.fixture
def config_factory():
    """Factory for small configurations with overrides."""
    return make_config
