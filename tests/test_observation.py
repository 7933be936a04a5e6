"""
Tests for pawn observations.
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from deeprl.sim.observation import ALLY, ENEMY, HEALTH, KIND, SKILL_CHANNEL_OFFSET, WALL, produce_observation
from deeprl.sim.pawn import ARCHETYPES
from deeprl.sim.world import World


@pytest.fixture
def world(small_config):
    return World(small_config, np.random.default_rng(0))


def place(world, name, team, pos):
    pawn = world.spawn(ARCHETYPES[name], team)
    pawn.pos = pos
    return pawn


class TestObservation:
    """Test the ego-centred frame."""

    def test_frame_geometry(self, world, small_config):
        pawn = place(world, 'minion', 0, (2, 2))
        frame = produce_observation(world, pawn, small_config)
        sight = small_config.SIGHT_DIAMETER
        assert frame.image.shape == (small_config.CHANNELS, sight, sight)
        assert frame.stats.shape == (small_config.NUM_STATS,)
        assert frame.size == small_config.FRAME_SIZE

    def test_corner_sees_walls(self, world, small_config):
        pawn = place(world, 'minion', 0, (0, 0))
        image = produce_observation(world, pawn, small_config).image
        assert np.all(image[WALL, 0, :] == 1.0)
        assert np.all(image[WALL, :, 0] == 1.0)
        assert image[WALL, 1, 1] == 0.0
        assert image[WALL, 2, 2] == 0.0

    def test_self_is_ally_at_centre(self, world, small_config):
        pawn = place(world, 'minion', 0, (2, 2))
        image = produce_observation(world, pawn, small_config).image
        centre = small_config.SIGHT_DIAMETER // 2
        assert image[ALLY, centre, centre] == 1.0
        assert image[HEALTH, centre, centre] == 1.0
        assert image[KIND, centre, centre] > 0.0

    def test_enemy_relative_position(self, world, small_config):
        pawn = place(world, 'minion', 0, (2, 2))
        enemy = place(world, 'minion', 1, (3, 2))
        enemy.health = 1
        image = produce_observation(world, pawn, small_config).image
        assert image[ENEMY, 2, 1] == 1.0
        assert image[HEALTH, 2, 1] == pytest.approx(0.5)
        assert image[ENEMY].sum() == 1.0

    def test_pawns_out_of_sight_are_not_drawn(self, world, small_config):
        pawn = place(world, 'minion', 0, (0, 0))
        place(world, 'minion', 1, (5, 5))
        image = produce_observation(world, pawn, small_config).image
        assert image[ENEMY].sum() == 0.0

    def test_stats(self, world, small_config):
        pawn = place(world, 'minion', 0, (5, 0))
        pawn.cooldown = pawn.archetype.max_cooldown
        stats = produce_observation(world, pawn, small_config).stats
        np.testing.assert_allclose(stats[:4], [1.0, 1.0, 1.0, 0.0])
        assert not stats[4:].any()

    def test_hero_skill_readiness(self, world, small_config):
        hero = place(world, 'hero', 0, (2, 2))
        place(world, 'minion', 1, (3, 3))
        frame = produce_observation(world, hero, small_config)
        # Full health: heal not ready; adjacent enemy: cleave ready
        np.testing.assert_array_equal(frame.stats[4:], [0.0, 1.0])
        centre = small_config.SIGHT_DIAMETER // 2
        assert frame.image[SKILL_CHANNEL_OFFSET + 1, centre, centre] == 1.0

    def test_unplaced_pawn_rejected(self, world, small_config):
        pawn = world.spawn(ARCHETYPES['minion'], 0)
        pawn.pos = None
        with pytest.raises(ValueError):
            produce_observation(world, pawn, small_config)
