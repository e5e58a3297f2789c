"""
Base combat resolution system with common mechanics.
"""

import logging
import random
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from ..config import RuleBook
from ..map import GRID_ROWS, Position, is_tower
from ..state import GameState, InvariantViolation
from ..units import Unit, UnitStatus

logger = logging.getLogger(__name__)


class CombatResult(Enum):
    DAMAGED = "damaged"
    KILLED = "killed"
    HEALED = "healed"


@dataclass
class SplashHit:
    unit_id: str
    damage: int
    killed: bool = False


@dataclass
class CombatReport:
    """Report of a single attack or heal."""
    attacker_id: str
    defender_id: str
    turn: int
    result: CombatResult
    damage: int = 0
    healing: int = 0
    self_healing: int = 0
    location: Optional[tuple[int, int]] = None
    buff_applied: Optional[str] = None
    splash: list[SplashHit] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def kills(self) -> list[str]:
        """Ids of every unit knocked out by this attack."""
        killed = [self.defender_id] if self.result == CombatResult.KILLED else []
        return killed + [hit.unit_id for hit in self.splash if hit.killed]


def recovery_tiles(state: GameState, unit: Unit) -> list[Position]:
    """
    Candidate tiles for a knocked-out unit in its own safe column.

    Towers are always excluded. Occupied tiles are excluded as well unless
    that would leave nothing.
    """
    column = [Position(unit.owner.safe_x, y) for y in range(GRID_ROWS)]
    column = [pos for pos in column if not is_tower(pos)]
    occupied = {u.pos for u in state.units if u.id != unit.id}
    free = [pos for pos in column if pos not in occupied]
    return free or column


def knock_out(state: GameState, unit_id: str, rng: random.Random, book: RuleBook) -> GameState:
    """
    Apply the death rule to a unit that just reached 0 hp.

    The unit is relocated to its safe column and starts recovering; its
    owner's morale stack grows by one.
    """
    unit = state.require_unit(unit_id)
    tiles = recovery_tiles(state, unit)
    if not tiles:
        raise InvariantViolation(f"No recovery tile available for {unit_id}")

    pos = rng.choice(tiles)
    fallen = replace(
        unit,
        hp=0,
        pos=pos,
        status=UnitStatus.RECOVERING,
        recovery_turns=book.rules.recovery_turns,
        buffs=(),
        is_resting=False,
    )
    logger.info(f"{unit_id} knocked out, recovering at {tuple(pos)}")

    state = state.with_unit(fallen)
    return state.with_morale(unit.owner, state.morale(unit.owner) + 1)


class CombatResolver:
    """Base class for combat resolution."""

    def __init__(self, book: RuleBook, rng: random.Random):
        self.book = book
        self.rng = rng

    def calculate_damage(self, attacker: Unit, target: Unit, morale_stack: int) -> int:
        """Damage dealt by attacker to target after every modifier."""
        stats = self.book.stats_for(attacker)
        damage = stats.damage

        if stats.crit_below_hp is not None and target.hp < stats.crit_below_hp:
            damage *= stats.crit_multiplier

        reduction = self.book.stats_for(target).damage_reduction
        if reduction:
            damage = max(1, damage - reduction)

        # Each morale stack point takes one off outgoing damage
        return max(1, damage - morale_stack)

    def apply_damage(self, state: GameState, unit_id: str, damage: int) -> tuple[GameState, bool]:
        """Subtract hp; returns the new state and whether the unit died."""
        unit = state.require_unit(unit_id)
        hp = max(0, unit.hp - damage)
        state = state.with_unit(replace(unit, hp=hp))
        if hp == 0 and unit.hp > 0:
            return knock_out(state, unit_id, self.rng, self.book), True
        return state, False
