"""
Pawn Observations
=================

Builds the Frame a pawn sees at the start of a tick.

Image: CHANNELS x SIGHT_DIAMETER x SIGHT_DIAMETER, centred on the pawn
    0   wall (cell outside the arena)
    1   ally
    2   enemy
    3   health fraction of the pawn in the cell
    4   archetype of the pawn in the cell, (index + 1) / number of archetypes
    5+  per skill slot: 1.0 if that pawn could cast the skill now

Stats:
    health fraction, attack cooldown fraction, x and y scaled to [0, 1],
    then one readiness flag per skill slot
"""

from typing import TYPE_CHECKING

import numpy as np

from config import Config
from ..ai.frame import Frame
from .pawn import ARCHETYPE_INDEX, ARCHETYPES, Pawn

if TYPE_CHECKING:
    from .world import World

WALL, ALLY, ENEMY, HEALTH, KIND = range(5)
SKILL_CHANNEL_OFFSET = 5


def skill_readiness(pawn: Pawn, world: 'World', num_skills: int) -> np.ndarray:
    """1.0 for every skill slot the pawn could cast this tick."""
    ready = np.zeros(num_skills, dtype=np.float32)
    for slot, skill in enumerate(pawn.archetype.skills):
        if pawn.skill_cooldowns[slot] == 0 and skill.is_ready(pawn, world):
            ready[slot] = 1.0
    return ready


def produce_observation(world: 'World', pawn: Pawn, config: Config) -> Frame:
    """
    Ego-centred view of the arena for one placed pawn.

    Args:
        world: Arena being observed
        pawn: Observer (must be placed)
        config: Supplies the frame geometry

    Returns:
        Frame matching config.FRAME_SIZE
    """
    if not pawn.is_placed:
        raise ValueError(f"cannot observe from unplaced pawn in slot {pawn.index}")

    sight = config.SIGHT_DIAMETER
    half = sight // 2
    image = np.zeros((config.CHANNELS, sight, sight), dtype=np.float32)

    px, py = pawn.pos
    for i in range(sight):
        for j in range(sight):
            if not world.in_bounds((px - half + i, py - half + j)):
                image[WALL, i, j] = 1.0

    for other in world.placed_pawns():
        i = other.pos[0] - px + half
        j = other.pos[1] - py + half
        if not (0 <= i < sight and 0 <= j < sight):
            continue
        image[ALLY if other.team == pawn.team else ENEMY, i, j] = 1.0
        image[HEALTH, i, j] = other.health / other.archetype.max_health
        image[KIND, i, j] = (ARCHETYPE_INDEX[other.archetype.name] + 1) / len(ARCHETYPES)
        ready = skill_readiness(other, world, config.MAX_SKILLS)
        image[SKILL_CHANNEL_OFFSET:, i, j] = ready

    span = max(1, world.size - 1)
    stats = np.concatenate([
        np.array([
            pawn.health / pawn.archetype.max_health,
            pawn.cooldown / max(1, pawn.archetype.max_cooldown),
            px / span,
            py / span,
        ], dtype=np.float32),
        skill_readiness(pawn, world, config.MAX_SKILLS),
    ])

    return Frame(image, stats)
