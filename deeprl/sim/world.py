"""
Arena World
===========

Tick-based two-team skirmish that feeds the training core.

Ownership:
    The World owns every Pawn in an indexed slot list. A Brain knows its
    pawn only by slot index and shares its DeepNetwork with the rest of
    its population; nothing points back from a network to a brain.

Tick order (the contract the brains rely on):
    1. Replace pawns killed last tick (respawn in the same slot or free it)
    2. Retry placement of pawns that could not be placed
    3. forward  - every placed pawn observes and picks an action
    4. act      - every pawn still alive applies its action
    5. backward - every placed pawn reports its reward; pawns that died,
                  or every pawn if the game ended, flush terminally

A hero's death ends the epoch; the killer's team wins.
"""

from collections import deque
from typing import Callable, Deque, Dict, Iterator, List, Optional

import numpy as np

from config import Config
from ..ai.brain import Brain
from ..ai.deep_network import DeepNetwork
from ..utils.logger import get_logger
from .observation import produce_observation
from .pawn import ARCHETYPES, Archetype, Pawn, Vector, distance2

logger = get_logger(__name__)

NO_WINNER = -1


class World:
    """
    Square arena of WORLD_SIZE x WORLD_SIZE cells.

    Attributes:
        pawns: Slot list; None marks a free slot
        networks: Archetype name -> network driving pawns of that archetype
        clock: Ticks simulated in this world
        quit: Set once the epoch is over
        final_winner: Winning team, or NO_WINNER

    Example:
        >>> world = World(config, rng, networks)
        >>> world.populate()
        >>> while not world.quit:
        ...     world.tick()
    """

    def __init__(
        self,
        config: Config,
        rng: np.random.Generator,
        networks: Optional[Dict[str, DeepNetwork]] = None,
    ):
        self.config = config
        self.rng = rng
        self.networks = networks or {}
        self.size = config.WORLD_SIZE

        self.pawns: List[Optional[Pawn]] = []
        self.clock = 0
        self.quit = False
        self.final_winner = NO_WINNER
        self.events: Deque[str] = deque(maxlen=config.EVENT_LOG_SIZE)

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def populate(self) -> None:
        """Spawn the configured line-up for both teams."""
        for team in (0, 1):
            for _ in range(self.config.MINIONS_PER_TEAM):
                self.spawn(ARCHETYPES['minion'], team)
            for _ in range(self.config.RANGED_PER_TEAM):
                self.spawn(ARCHETYPES['ranged'], team)
            for _ in range(self.config.HEROES_PER_TEAM):
                self.spawn(ARCHETYPES['hero'], team)

    def spawn(self, archetype: Archetype, team: int, slot: Optional[int] = None) -> Pawn:
        """
        Create a pawn, give it a brain if its archetype has a network, and place it.

        Args:
            archetype: Kind of pawn
            team: 0 or 1
            slot: Reuse this slot instead of appending a new one
        """
        pawn = Pawn(archetype, team, num_skills=self.config.MAX_SKILLS)
        if slot is None:
            slot = len(self.pawns)
            self.pawns.append(pawn)
        else:
            self.pawns[slot] = pawn
        pawn.index = slot

        network = self.networks.get(archetype.name)
        if network is not None:
            pawn.brain = Brain(network, agent_index=slot)

        self._place(pawn)
        return pawn

    def _spawn_row(self, team: int) -> int:
        return team * (self.size - 1)

    def _place(self, pawn: Pawn) -> bool:
        row = self._spawn_row(pawn.team)
        for _ in range(self.config.SPAWN_TRIALS):
            pos = (int(self.rng.integers(self.size)), row)
            if self.is_vacant(pos):
                pawn.pos = pos
                return True
        logger.debug(f"could not place {pawn.label()} in slot {pawn.index}, retrying next tick")
        return False

    def placed_pawns(self) -> Iterator[Pawn]:
        return (p for p in self.pawns if p is not None and p.is_placed)

    def enemies_of(self, pawn: Pawn) -> Iterator[Pawn]:
        return (p for p in self.placed_pawns() if p.team != pawn.team and not p.pending_kill)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def in_bounds(self, pos: Vector) -> bool:
        return 0 <= pos[0] < self.size and 0 <= pos[1] < self.size

    def is_vacant(self, pos: Vector) -> bool:
        if not self.in_bounds(pos):
            return False
        return all(p.pos != pos for p in self.placed_pawns())

    def can_move_to(self, pos: Vector) -> bool:
        return self.is_vacant(pos)

    def find_target(self, pawn: Pawn) -> Optional[Pawn]:
        """Nearest living enemy within the pawn's range (first found on ties)."""
        best_dist = (pawn.archetype.range + 1) ** 2
        best = None
        for other in self.enemies_of(pawn):
            dist = distance2(pawn.pos, other.pos)
            if dist < best_dist:
                best_dist = dist
                best = other
        return best

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def log_event(self, message: str) -> None:
        self.events.append(message)
        logger.debug(message)

    def on_death(self, pawn: Pawn, attacker: Optional[Pawn]) -> None:
        killer = attacker.label() if attacker is not None else 'nobody'
        self.log_event(f"{killer} killed {pawn.label()}")
        if pawn.archetype.decisive and not self.quit:
            self.game_over(attacker.team if attacker is not None else NO_WINNER)

    def game_over(self, winner: int) -> None:
        self.final_winner = winner
        self.quit = True
        self.log_event(f"game over, winner: {winner if winner != NO_WINNER else 'none'}")

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """Advance the world by one tick."""
        self.clock += 1

        self._collect_dead()
        for pawn in self.pawns:
            if pawn is not None and not pawn.is_placed:
                self._place(pawn)

        acting = list(self.placed_pawns())

        for pawn in acting:
            self._forward(pawn)

        for pawn in acting:
            if not pawn.pending_kill and pawn.is_valid_action(pawn.action, self):
                pawn.do_action(pawn.action, self)

        for pawn in acting:
            pawn.cool_down()
            self._backward(pawn)

        if not any(p is not None for p in self.pawns):
            self.quit = True

    def _collect_dead(self) -> None:
        for slot, pawn in enumerate(self.pawns):
            if pawn is None or not pawn.pending_kill:
                continue
            if pawn.archetype.respawns:
                self.spawn(pawn.archetype, pawn.team, slot=slot)
            else:
                self.pawns[slot] = None

    def _forward(self, pawn: Pawn) -> None:
        pawn.reward = 0.0
        random_action: Callable[[], int] = lambda: pawn.random_action(self, self.rng)
        if pawn.brain is None:
            pawn.action = random_action()
            return
        frame = produce_observation(self, pawn, self.config)
        pawn.action = pawn.brain.forward(
            frame,
            random_action,
            lambda action: pawn.is_valid_action(action, self),
        )

    def _scaled_reward(self, pawn: Pawn) -> float:
        reward = pawn.reward * self.config.REWARD_SCALE
        return float(np.clip(reward, self.config.REWARD_MIN, self.config.REWARD_MAX))

    def _backward(self, pawn: Pawn) -> None:
        if pawn.brain is None:
            return

        if self.quit:
            if self.final_winner == NO_WINNER:
                reward = 0.0
            elif pawn.team == self.final_winner:
                reward = self.config.WIN_REWARD
            else:
                reward = -self.config.WIN_REWARD
            reward = float(np.clip(reward, self.config.REWARD_MIN, self.config.REWARD_MAX))
            pawn.brain.backward(reward)
            pawn.brain.notify_terminal()
        elif pawn.pending_kill:
            pawn.brain.backward(self._scaled_reward(pawn))
            pawn.brain.notify_terminal()
        else:
            pawn.brain.backward(self._scaled_reward(pawn))

    def describe(self) -> List[str]:
        """One line per placed pawn, e.g. 'H[t:0] hp:3 cd:0 R(0.20) B(1:0.42)'."""
        lines = []
        for pawn in self.placed_pawns():
            brain = pawn.brain.detail() if pawn.brain is not None else 'none'
            lines.append(f"{pawn.label()} hp:{pawn.health} cd:{pawn.cooldown} "
                         f"R({pawn.reward:.2f}) B({brain})")
        return lines
