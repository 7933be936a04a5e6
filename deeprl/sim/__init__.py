"""
Simulation Module
=================

Two-team arena that produces frames and rewards for the training core.

Classes:
    Archetype / Pawn  - Capability tables and the agents using them
    World             - Pawn ownership and the forward/act/backward tick
    ArenaRunner       - Epoch loop, training cadence, checkpoints
"""

from .pawn import ARCHETYPES, Archetype, Pawn, Skill
from .observation import produce_observation
from .world import NO_WINNER, World
from .runner import ArenaRunner, EpochStats, build_networks

__all__ = [
    'ARCHETYPES', 'Archetype', 'Pawn', 'Skill', 'produce_observation',
    'NO_WINNER', 'World', 'ArenaRunner', 'EpochStats', 'build_networks',
]
