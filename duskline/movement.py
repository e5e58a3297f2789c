"""
Movement-cost model for the combat loop.

Handles:
- Orthogonal steps between open ground and trenches
- Terrain boundary crossings, which drain all remaining AP
- The bank-to-bank river jump
"""

import logging
from dataclasses import replace
from typing import Optional

from .config import RuleBook
from .map import (
    ORTHOGONAL_STEPS,
    RIVER_BANKS,
    Position,
    as_position,
    is_river,
    is_tower,
    is_trench,
    is_valid_pos,
)
from .state import GameState, Phase, reject
from .units import Unit, UnitStatus

logger = logging.getLogger(__name__)


def can_move(unit: Unit) -> bool:
    """Whether the unit has any movement left this turn."""
    if unit.status != UnitStatus.ACTIVE or not unit.is_alive:
        return False
    if unit.ap <= 0:
        return False
    # Attacking after a move ends the unit's movement
    return not (unit.has_attacked and unit.has_moved)


def is_river_jump(start: Position, end: Position) -> bool:
    return start.y == end.y and {start.x, end.x} == set(RIVER_BANKS)


def move_cost(unit: Unit, dest: Position, trenches, book: RuleBook) -> int:
    """
    AP spent moving unit to an adjacent tile or across the river.

    Crossing the trench/open boundary in either direction costs whatever
    AP the unit has left.
    """
    if is_trench(unit.pos, trenches) != is_trench(dest, trenches):
        return unit.ap
    if is_river_jump(unit.pos, dest):
        return book.rules.river_jump_cost
    return 1


def _is_open_destination(unit: Unit, dest: Position, occupied: set[Position]) -> bool:
    if not is_valid_pos(dest) or is_river(dest) or is_tower(dest):
        return False
    if dest in occupied:
        return False
    return not unit.owner.opponent.in_safe_zone(dest)


def valid_moves(state: GameState, unit_id: str, book: RuleBook) -> list[Position]:
    """Tiles the unit could legally move to with a single step."""
    unit = state.unit(unit_id)
    if unit is None or not can_move(unit):
        return []

    occupied = state.occupied()
    moves = []
    for dx, dy in ORTHOGONAL_STEPS:
        dest = unit.pos.offset(dx, dy)
        if not _is_open_destination(unit, dest, occupied):
            continue
        if unit.ap >= move_cost(unit, dest, state.trenches, book):
            moves.append(dest)

    jump = _jump_destination(unit)
    if jump is not None and unit.ap >= book.rules.river_jump_cost:
        if _is_open_destination(unit, jump, occupied):
            moves.append(jump)
    return moves


def _jump_destination(unit: Unit) -> Optional[Position]:
    low, high = RIVER_BANKS
    if unit.pos.x == low:
        return Position(high, unit.pos.y)
    if unit.pos.x == high:
        return Position(low, unit.pos.y)
    return None


def move_unit(state: GameState, unit_id: str, dest: Position, book: RuleBook) -> GameState:
    """Move one of the acting player's units a single step."""
    if state.phase != Phase.GAME_LOOP or state.is_over:
        return reject(state, "move_unit", f"not in the combat loop ({state.phase.value})")

    unit = state.unit(unit_id)
    if unit is None or unit.owner != state.current_player:
        return reject(state, "move_unit", f"{unit_id} cannot be moved by {state.current_player}")

    dest = as_position(dest)
    if dest is None:
        return reject(state, "move_unit", "malformed destination")
    if dest not in valid_moves(state, unit_id, book):
        return reject(state, "move_unit", f"{unit_id} cannot reach {tuple(dest)}")

    cost = move_cost(unit, dest, state.trenches, book)
    moved = replace(
        unit,
        pos=dest,
        ap=max(0, unit.ap - cost),
        has_moved=True,
        crossed_river=unit.crossed_river or abs(unit.pos.x - dest.x) == 2,
    )
    logger.debug(f"{unit_id} moved {tuple(unit.pos)} -> {tuple(dest)} for {cost} AP")

    state = state.with_unit(moved)
    if moved.ap == 0 and state.selected_unit_id == unit_id:
        state = replace(state, selected_unit_id=None)
    return state
