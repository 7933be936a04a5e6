"""
Pawns and Archetypes
====================

A Pawn is a plain record; what it can do comes from its Archetype's
capability table rather than from a subclass chain:

    attack  - hit the nearest enemy within range (action 0)
    move    - step in one of four directions     (actions 1..4)
    skills  - archetype-specific abilities       (actions 5..)

Action layout (fixed for every archetype, so all pawns share one action
space and one network output size):

    0          attack
    1 .. 4     move +x, +y, -x, -y
    5 ..       skill slot 0, 1, ...

A slot the archetype does not fill is simply never a valid action.

Archetype registry:
    ARCHETYPES maps names ('minion', 'ranged', 'hero') to archetypes.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

import numpy as np

if TYPE_CHECKING:
    from ..ai.brain import Brain
    from .world import World

Vector = Tuple[int, int]

DIRECTIONS: Tuple[Vector, ...] = ((1, 0), (0, 1), (-1, 0), (0, -1))

ATTACK_ACTION = 0
MOVE_ACTION_OFFSET = 1
SKILL_ACTION_OFFSET = MOVE_ACTION_OFFSET + len(DIRECTIONS)


def distance2(a: Vector, b: Vector) -> int:
    """Squared euclidean distance."""
    return (a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2


@dataclass(frozen=True)
class Skill:
    """
    One skill slot.

    is_ready(pawn, world) says whether it can be cast now (cooldown is
    checked separately); cast(pawn, world) applies it.
    """
    name: str
    cooldown: int
    is_ready: Callable[['Pawn', 'World'], bool]
    cast: Callable[['Pawn', 'World'], None]


def _can_heal(pawn: 'Pawn', world: 'World') -> bool:
    return pawn.health < pawn.archetype.max_health


def _heal(pawn: 'Pawn', world: 'World') -> None:
    pawn.health = min(pawn.archetype.max_health, pawn.health + 1)


def _adjacent_enemies(pawn: 'Pawn', world: 'World') -> List['Pawn']:
    return [other for other in world.enemies_of(pawn) if distance2(pawn.pos, other.pos) <= 2]


def _can_cleave(pawn: 'Pawn', world: 'World') -> bool:
    return bool(_adjacent_enemies(pawn, world))


def _cleave(pawn: 'Pawn', world: 'World') -> None:
    for enemy in _adjacent_enemies(pawn, world):
        enemy.take_damage(1, pawn, world)


HEAL = Skill('heal', cooldown=10, is_ready=_can_heal, cast=_heal)
CLEAVE = Skill('cleave', cooldown=8, is_ready=_can_cleave, cast=_cleave)


@dataclass(frozen=True)
class Archetype:
    """
    Stats and capability table shared by every pawn of one kind.

    Attributes:
        name: Registry key, also the network population it trains
        code: One-letter symbol used in event logs
        max_health: Starting health
        max_cooldown: Ticks between attacks
        range: Attack reach (squared distance < (range + 1)^2)
        attack_reward: Raw reward an attacker earns per hit on this pawn
        kill_reward: Raw reward an attacker earns for killing this pawn
        can_attack / can_move: Capability switches
        skills: Filled skill slots, in slot order
        respawns: Whether a dead pawn is replaced next tick
        decisive: Whether this pawn's death ends the epoch
    """
    name: str
    code: str
    max_health: int
    max_cooldown: int
    range: int
    attack_reward: float
    kill_reward: float
    can_attack: bool = True
    can_move: bool = True
    skills: Tuple[Skill, ...] = ()
    respawns: bool = True
    decisive: bool = False


ARCHETYPES: Dict[str, Archetype] = {
    'minion': Archetype('minion', 'm', max_health=2, max_cooldown=5, range=1,
                        attack_reward=0.1, kill_reward=0.5),
    'ranged': Archetype('ranged', 'r', max_health=1, max_cooldown=3, range=2,
                        attack_reward=0.1, kill_reward=0.5),
    'hero': Archetype('hero', 'H', max_health=3, max_cooldown=15, range=3,
                      attack_reward=0.2, kill_reward=1.0,
                      skills=(HEAL, CLEAVE), respawns=False, decisive=True),
}

ARCHETYPE_INDEX: Dict[str, int] = {name: i for i, name in enumerate(ARCHETYPES)}


@dataclass(eq=False)
class Pawn:
    """
    One agent in the arena.

    The world owns pawns in an indexed slot list; `index` is the slot. A
    pawn whose pos is None could not be placed and sits out until a spot
    frees up.
    """
    archetype: Archetype
    team: int
    num_skills: int
    index: int = -1
    pos: Optional[Vector] = None
    health: int = 0
    cooldown: int = 0
    skill_cooldowns: List[int] = field(default_factory=list)
    reward: float = 0.0
    action: int = -1
    pending_kill: bool = False
    brain: Optional['Brain'] = None

    def __post_init__(self):
        if self.team not in (0, 1):
            raise ValueError(f"invalid team: {self.team}")
        if len(self.archetype.skills) > self.num_skills:
            raise ValueError(f"{self.archetype.name} has more skills than the action space allows")
        self.health = self.archetype.max_health
        self.skill_cooldowns = [0] * len(self.archetype.skills)

    @property
    def num_actions(self) -> int:
        return SKILL_ACTION_OFFSET + self.num_skills

    @property
    def is_placed(self) -> bool:
        return self.pos is not None

    @property
    def is_alive(self) -> bool:
        return self.is_placed and not self.pending_kill

    def label(self) -> str:
        return f"{self.archetype.code}[t:{self.team}]"

    # ------------------------------------------------------------------
    # Capability dispatch
    # ------------------------------------------------------------------

    def is_valid_action(self, action: int, world: 'World') -> bool:
        if not 0 <= action < self.num_actions or not self.is_alive:
            return False
        if action == ATTACK_ACTION:
            return (self.archetype.can_attack and self.cooldown == 0
                    and world.find_target(self) is not None)
        if action < SKILL_ACTION_OFFSET:
            return self.archetype.can_move and self._can_move(DIRECTIONS[action - MOVE_ACTION_OFFSET], world)

        slot = action - SKILL_ACTION_OFFSET
        if slot >= len(self.archetype.skills) or self.skill_cooldowns[slot] > 0:
            return False
        return self.archetype.skills[slot].is_ready(self, world)

    def do_action(self, action: int, world: 'World') -> None:
        if action == ATTACK_ACTION:
            self.cooldown = self.archetype.max_cooldown
            target = world.find_target(self)
            if target is not None:
                target.take_damage(1, self, world)
        elif action < SKILL_ACTION_OFFSET:
            dx, dy = DIRECTIONS[action - MOVE_ACTION_OFFSET]
            new_pos = (self.pos[0] + dx, self.pos[1] + dy)
            if world.can_move_to(new_pos):
                self.pos = new_pos
        else:
            slot = action - SKILL_ACTION_OFFSET
            skill = self.archetype.skills[slot]
            self.skill_cooldowns[slot] = skill.cooldown
            skill.cast(self, world)

    def random_action(self, world: 'World', rng: np.random.Generator) -> int:
        """
        A uniformly random legal action.

        With nothing legal this still returns an in-range action; the tick
        skips applying it.
        """
        legal = [a for a in range(self.num_actions) if self.is_valid_action(a, world)]
        if legal:
            return legal[int(rng.integers(len(legal)))]
        return int(rng.integers(self.num_actions))

    def _can_move(self, direction: Vector, world: 'World') -> bool:
        return world.can_move_to((self.pos[0] + direction[0], self.pos[1] + direction[1]))

    # ------------------------------------------------------------------
    # Combat
    # ------------------------------------------------------------------

    def take_damage(self, damage: int, attacker: Optional['Pawn'], world: 'World') -> None:
        self.health -= damage
        if attacker is not None and not attacker.pending_kill:
            attacker.reward += self.archetype.attack_reward
        if self.health <= 0:
            self.health = 0
            self.die(attacker, world)

    def die(self, attacker: Optional['Pawn'], world: 'World') -> None:
        if self.pending_kill:
            return
        self.pending_kill = True
        if attacker is not None and not attacker.pending_kill:
            attacker.reward += self.archetype.kill_reward
        world.on_death(self, attacker)

    def cool_down(self) -> None:
        """Advance all cooldowns by one tick."""
        if self.cooldown > 0:
            self.cooldown -= 1
        self.skill_cooldowns = [max(0, c - 1) for c in self.skill_cooldowns]
