"""
Arena Runner
============

Outer loop around the World:
    1. Start an epoch with a fresh world and the configured line-up
    2. Tick until a hero dies (or the epoch tick limit is hit)
    3. Train every network once per tick (TRAIN_POLICY == 'per_tick')
    4. Track team scores, log metrics, save checkpoints between epochs

Networks outlive worlds: brains are rebuilt every epoch, while replay
memories, exploration schedules and weights carry over.
"""

import os
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from config import Config
from ..ai.deep_network import DeepNetwork
from ..utils.logger import get_logger, log_training_metrics
from .world import NO_WINNER, World

logger = get_logger(__name__)

# Archetype name -> network population. Ranged minions learn with the minions.
POPULATIONS: Dict[str, str] = {'hero': 'hero', 'minion': 'minion', 'ranged': 'minion'}


def build_networks(
    config: Config,
    seed: Optional[int] = None,
) -> Dict[str, DeepNetwork]:
    """
    One DeepNetwork per population, each with its own random stream.

    Returns:
        Archetype name -> network (archetypes of one population share it)
    """
    seed = config.SEED if seed is None else seed
    names = sorted(set(POPULATIONS.values()))
    streams = np.random.SeedSequence(seed).spawn(len(names))
    by_population = {
        name: DeepNetwork.from_config(config, rng=np.random.default_rng(stream), name=name)
        for name, stream in zip(names, streams)
    }
    return {archetype: by_population[population] for archetype, population in POPULATIONS.items()}


@dataclass
class EpochStats:
    """Statistics for a single epoch."""
    epoch: int
    ticks: int
    winner: int
    duration: float
    losses: Dict[str, Optional[float]]


class ArenaRunner:
    """
    Runs epochs of the arena and trains the networks driving it.

    Example:
        >>> networks = build_networks(config)
        >>> runner = ArenaRunner(config, networks)
        >>> runner.run(iterations=10_000)
    """

    def __init__(
        self,
        config: Config,
        networks: Dict[str, DeepNetwork],
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Args:
            config: Configuration object
            networks: Archetype name -> network, as built by build_networks()
            rng: World randomness (spawns, random actions); separate from
                 the networks' own streams
        """
        self.config = config
        self.networks = networks
        self.rng = rng if rng is not None else np.random.default_rng(config.SEED)

        self.epoch = 0
        self.clock = 0
        self.scores = [0, 0]
        self.history: List[EpochStats] = []
        self.world: Optional[World] = None

    def unique_networks(self) -> List[DeepNetwork]:
        """Each network once, in a stable order."""
        seen = {}
        for network in self.networks.values():
            seen.setdefault(id(network), network)
        return list(seen.values())

    @property
    def is_learning(self) -> bool:
        return any(network.is_learning for network in self.unique_networks())

    def new_world(self) -> World:
        world = World(self.config, self.rng, self.networks)
        world.populate()
        return world

    def run_epoch(self, max_ticks: Optional[int] = None) -> EpochStats:
        """
        Play one epoch to the end.

        Args:
            max_ticks: Stop after this many ticks even if nobody has won
                       (default: MAX_EPOCH_TICKS, 0 for no limit)
        """
        start = time.time()
        max_ticks = self.config.MAX_EPOCH_TICKS if max_ticks is None else max_ticks
        world = self.world = self.new_world()

        while not world.quit:
            world.tick()
            self.clock += 1
            if self.is_learning and self.config.TRAIN_POLICY == 'per_tick':
                for network in self.unique_networks():
                    network.train()
            if max_ticks and world.clock >= max_ticks:
                break

        if not world.quit:
            # Timed out: nobody saw the end of the episode yet
            for pawn in world.pawns:
                if pawn is not None and pawn.brain is not None:
                    pawn.brain.notify_terminal()

        if world.final_winner != NO_WINNER:
            self.scores[world.final_winner] += 1

        stats = EpochStats(
            epoch=self.epoch,
            ticks=world.clock,
            winner=world.final_winner,
            duration=time.time() - start,
            losses={network.name: network.get_average_loss(100) if network.trainer.losses else None
                    for network in self.unique_networks()},
        )
        self.history.append(stats)
        self.epoch += 1
        return stats

    def run(self, iterations: Optional[int] = None) -> List[EpochStats]:
        """
        Run epochs until `iterations` ticks have been simulated.

        Returns:
            Stats of every epoch run by this call
        """
        if iterations is None:
            iterations = self.config.ITERATIONS
        target = self.clock + iterations
        mode = 'training' if self.is_learning else 'testing'

        logger.info("=" * 60)
        logger.info(f"Arena {mode}: {iterations:,} ticks on {self.config.DEVICE}")
        logger.info(f"   Input size: {self.config.INPUT_SIZE:,}  Actions: {self.config.NUM_ACTIONS}")
        for network in self.unique_networks():
            logger.info(f"   {network!r}")
        logger.info("=" * 60)

        first = len(self.history)
        while self.clock < target:
            stats = self.run_epoch()

            if self.config.LOG_EVERY and stats.epoch % self.config.LOG_EVERY == 0:
                self.log_metrics(stats)

            if (self.is_learning and self.config.SAVE_EVERY
                    and stats.epoch > 0 and stats.epoch % self.config.SAVE_EVERY == 0):
                self.save_networks(self.config.MODEL_DIR, tag=f'ep{stats.epoch}')

        logger.info(f"Done: {self.epoch} epochs, {self.clock:,} ticks, score {self.scores[0]}:{self.scores[1]}")
        return self.history[first:]

    def log_metrics(self, stats: EpochStats) -> None:
        for network in self.unique_networks():
            log_training_metrics(
                epoch=stats.epoch,
                clock=self.clock,
                epsilon=network.epsilon.get(),
                loss=stats.losses.get(network.name),
                memory=len(network.replay_memory),
                scores=tuple(self.scores),
                name=network.name,
            )
        if self.world is not None:
            for event in self.world.events:
                logger.debug(f"   {event}")

    def save_networks(self, directory: str, tag: str = 'final') -> List[str]:
        """Save every network as <directory>/<name>_<tag>.pth."""
        os.makedirs(directory, exist_ok=True)
        paths = []
        for network in self.unique_networks():
            path = os.path.join(directory, f'{network.name}_{tag}.pth')
            network.save(path, epoch=self.epoch, clock=self.clock)
            paths.append(path)
        return paths

    def load_networks(self, directory: str, tag: str = 'final') -> None:
        """Load every network from <directory>/<name>_<tag>.pth."""
        for network in self.unique_networks():
            network.load(os.path.join(directory, f'{network.name}_{tag}.pth'))
