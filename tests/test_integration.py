"""
Integration tests for the arena runner and the command line entry point.

These tests verify that all components work together:
    - Networks built per population with independent randomness
    - Epochs run to completion and train every network
    - Checkpoints round-trip between epochs
    - Command line overrides
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from deeprl.sim.runner import ArenaRunner, build_networks
from deeprl.sim.world import NO_WINNER

import main as entry


@pytest.fixture
def config(config_factory):
    return config_factory(MAX_EPOCH_TICKS=30)


@pytest.fixture
def runner(config):
    return ArenaRunner(config, build_networks(config), rng=np.random.default_rng(3))


class TestBuildNetworks:
    """Test population layout."""

    def test_ranged_minions_share_the_minion_network(self, config):
        networks = build_networks(config)
        assert networks['ranged'] is networks['minion']
        assert networks['hero'] is not networks['minion']
        assert networks['hero'].name == 'hero'

    def test_networks_have_independent_streams(self, config):
        networks = build_networks(config)
        a = networks['hero'].rng.random(5)
        b = networks['minion'].rng.random(5)
        assert not np.allclose(a, b)

    def test_same_seed_same_streams(self, config):
        first = build_networks(config, seed=5)['hero'].rng.random(3)
        second = build_networks(config, seed=5)['hero'].rng.random(3)
        np.testing.assert_array_equal(first, second)


class TestArenaRunner:
    """Test the epoch loop."""

    def test_unique_networks(self, runner):
        assert len(runner.unique_networks()) == 2

    def test_epoch_runs_and_records_stats(self, runner, config):
        stats = runner.run_epoch()
        assert 0 < stats.ticks <= config.MAX_EPOCH_TICKS
        assert stats.winner in (NO_WINNER, 0, 1)
        assert runner.epoch == 1
        assert runner.clock == stats.ticks
        assert sum(runner.scores) == (0 if stats.winner == NO_WINNER else 1)

    def test_epoch_fills_replay_memories(self, runner):
        runner.run_epoch()
        for network in runner.unique_networks():
            assert len(network.replay_memory) > 0
            assert network.epsilon.age >= len(network.replay_memory)

    def test_no_pending_experience_after_epoch(self, runner):
        runner.run_epoch()
        for pawn in runner.world.pawns:
            if pawn is not None and pawn.brain is not None:
                assert not pawn.brain.has_pending

    @pytest.mark.slow
    def test_run_trains_every_network(self, runner):
        runner.run(iterations=120)
        assert runner.clock >= 120
        for network in runner.unique_networks():
            assert network.trainer.steps > 0
            assert np.isfinite(network.get_average_loss())

    def test_run_zero_iterations_runs_nothing(self, runner):
        assert runner.run(iterations=0) == []
        assert runner.epoch == 0
        assert runner.clock == 0

    def test_on_commit_policy_trains_without_outer_loop(self, config_factory):
        config = config_factory(TRAIN_POLICY='on_commit', MAX_EPOCH_TICKS=30)
        runner = ArenaRunner(config, build_networks(config), rng=np.random.default_rng(3))
        runner.run_epoch()
        assert runner.networks['minion'].trainer.steps > 0

    def test_not_learning_stores_nothing(self, runner):
        for network in runner.unique_networks():
            network.is_learning = False
        runner.run_epoch()
        for network in runner.unique_networks():
            assert len(network.replay_memory) == 0
            assert network.trainer.steps == 0

    def test_save_and_load_networks(self, runner, config, tmp_path):
        runner.run_epoch()
        paths = runner.save_networks(str(tmp_path), tag='test')
        assert sorted(os.path.basename(p) for p in paths) == ['hero_test.pth', 'minion_test.pth']

        other = ArenaRunner(config, build_networks(config, seed=99), rng=np.random.default_rng(4))
        other.load_networks(str(tmp_path), tag='test')

        batch = np.ones((config.MINIBATCH_SIZE, config.INPUT_SIZE), dtype=np.float32)
        for name in ('hero', 'minion'):
            np.testing.assert_allclose(
                other.networks[name].approximator.batch_forward(batch),
                runner.networks[name].approximator.batch_forward(batch),
                rtol=1e-6,
            )

    def test_load_between_epochs_keeps_replay(self, runner, tmp_path):
        runner.run_epoch()
        stored = {name: len(net.replay_memory) for name, net in runner.networks.items()}
        runner.save_networks(str(tmp_path))
        runner.load_networks(str(tmp_path))
        assert {name: len(net.replay_memory) for name, net in runner.networks.items()} == stored
        runner.run_epoch()


class TestCommandLine:
    """Test argument parsing and config overrides."""

    def test_defaults(self):
        args = entry.parse_args([])
        config = entry.build_config(args)
        assert config.TRAIN_POLICY == 'per_tick'
        assert config.SEED is None

    def test_overrides(self):
        args = entry.parse_args([
            '--iterations', '50', '--seed', '7', '--cpu', '--save', 'out',
            '--log-level', 'DEBUG', '--train-policy', 'on_commit',
        ])
        config = entry.build_config(args)
        assert config.ITERATIONS == 50
        assert config.SEED == 7
        assert config.FORCE_CPU
        assert config.MODEL_DIR == 'out'
        assert config.LOG_LEVEL == 'DEBUG'
        assert config.TRAIN_POLICY == 'on_commit'

    def test_test_and_load_flags(self):
        args = entry.parse_args(['--test', '--load', 'models'])
        assert args.test
        assert args.load == 'models'

    def test_unknown_train_policy_rejected(self):
        with pytest.raises(SystemExit):
            entry.parse_args(['--train-policy', 'never'])
