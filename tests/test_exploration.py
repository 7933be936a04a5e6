"""
Tests for the annealed exploration schedule.
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from deeprl.ai.exploration import ExplorationSchedule
from deeprl.ai.experience import InvariantError


@pytest.fixture
def schedule():
    return ExplorationSchedule(burnin=100, total_steps=1100, epsilon_min=0.1, epsilon_test=0.05)


class TestSchedule:
    """Test epsilon as a function of age."""

    def test_pure_exploration_until_burnin(self, schedule):
        for age in (0, 50, 100):
            schedule.age = age
            assert schedule.get() == 1.0

    def test_linear_between_burnin_and_total(self, schedule):
        schedule.age = 600
        assert schedule.get() == pytest.approx(0.5)

    def test_floor_after_total(self, schedule):
        schedule.age = 5000
        assert schedule.get() == pytest.approx(0.1)

    def test_monotonically_non_increasing(self, schedule):
        values = []
        for age in range(0, 1500, 10):
            schedule.age = age
            values.append(schedule.get())
        assert all(a >= b for a, b in zip(values, values[1:]))
        assert all(0.1 <= v <= 1.0 for v in values)

    def test_not_learning_uses_test_epsilon(self, schedule):
        schedule.is_learning = False
        for age in (0, 600, 5000):
            schedule.age = age
            assert schedule.get() == 0.05

    def test_advance_counts_commits(self, schedule):
        for _ in range(3):
            schedule.advance()
        assert schedule.age == 3

    def test_total_must_exceed_burnin(self):
        with pytest.raises(ValueError):
            ExplorationSchedule(burnin=10, total_steps=10)

    def test_from_config(self, small_config):
        schedule = ExplorationSchedule.from_config(small_config)
        assert schedule.burnin == small_config.BURNIN
        assert schedule.total_steps == small_config.LEARNING_STEPS_TOTAL
        assert schedule.is_learning


class TestShouldExplore:
    """Test the random draw."""

    def test_always_explores_during_burnin(self, schedule, rng):
        assert all(schedule.should_explore(rng) for _ in range(100))

    def test_explore_rate_matches_epsilon(self, schedule):
        rng = np.random.default_rng(0)
        schedule.age = 600
        hits = sum(schedule.should_explore(rng) for _ in range(4000))
        assert 0.45 < hits / 4000 < 0.55

    def test_out_of_range_epsilon_raises(self, rng):
        schedule = ExplorationSchedule(burnin=0, total_steps=10, epsilon_test=1.5, is_learning=False)
        with pytest.raises(InvariantError):
            schedule.should_explore(rng)
