"""
Frontline and supply system.

Handles:
- Frontline computation per player and time of day
- Attrition for active units pushed beyond their own frontline
"""

import logging
import random
from dataclasses import replace

from .combat.base import knock_out
from .config import RuleBook
from .state import GameState
from .units import Player, TimeOfDay, Unit, UnitStatus

logger = logging.getLogger(__name__)


def is_frontline_unit(unit: Unit, player: Player, time: TimeOfDay) -> bool:
    """
    Living, fit-for-duty units of the given shift.

    For the current time of day this is exactly the ACTIVE set; asking
    about the other shift counts its garrisoned units instead.
    """
    return (
        unit.owner == player
        and unit.assigned_time == time
        and unit.status not in (UnitStatus.DONE, UnitStatus.RECOVERING)
        and unit.is_alive
    )


def frontline_x(state: GameState, player: Player, time: TimeOfDay, book: RuleBook) -> float:
    """
    X coordinate of a player's supply line for one time of day.

    The line sits between the two most forward qualifying units. A lone
    unit pushes it half a tile past itself; with none the line hugs the
    home column.
    """
    offset = book.rules.frontline_offset
    forward = 1 if player == Player.P1 else -1

    xs = [u.pos.x for u in state.units if is_frontline_unit(u, player, time)]
    if not xs:
        return player.safe_x + forward * offset

    xs.sort(reverse=(player == Player.P1))
    if len(xs) == 1:
        return xs[0] + forward * offset
    return (xs[0] + xs[1]) / 2


def is_beyond_frontline(unit: Unit, line: float) -> bool:
    """Further from home than the line."""
    if unit.owner == Player.P1:
        return unit.pos.x > line
    return unit.pos.x < line


def apply_supply_starvation(state: GameState, rng: random.Random, book: RuleBook) -> GameState:
    """Damage every active unit standing beyond its side's frontline."""
    lines = {p: frontline_x(state, p, state.time_of_day, book) for p in Player}
    damage = book.rules.supply_damage

    starving = [
        u.id for u in state.units
        if u.status == UnitStatus.ACTIVE and u.is_alive and is_beyond_frontline(u, lines[u.owner])
    ]
    for unit_id in starving:
        unit = state.require_unit(unit_id)
        hp = max(0, unit.hp - damage)
        state = state.with_unit(replace(unit, hp=hp))
        logger.debug(f"{unit_id} out of supply at {tuple(unit.pos)}, hp {unit.hp} -> {hp}")
        if hp == 0:
            state = knock_out(state, unit_id, rng, book).with_log(
                f"{unit.owner.value} {book.stats_for(unit).name} collapsed from supply shortage."
            )

    if starving:
        state = state.with_log(f"Supply shortage: {len(starving)} unit(s) beyond the frontline.")
    return state
