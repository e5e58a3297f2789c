"""
Blind deployment of drafted units into the safe zones.

P1 places every queued unit first, then P2. Once both queues are empty
the first trench blueprint selection starts.
"""

import logging
import random
from dataclasses import replace

from .config import RuleBook
from .map import GRID_ROWS, Position, as_position, is_tower
from .state import GameState, Phase, SetupStep, reject
from .trenches import start_trench_selection
from .units import Player

logger = logging.getLogger(__name__)

PLACE_STEPS = {SetupStep.P1_PLACE: Player.P1, SetupStep.P2_PLACE: Player.P2}


def placement_tiles(state: GameState, player: Player) -> list[Position]:
    """Free tiles in the player's safe column."""
    occupied = state.occupied()
    tiles = []
    for y in range(GRID_ROWS):
        pos = Position(player.safe_x, y)
        if not is_tower(pos) and pos not in occupied:
            tiles.append(pos)
    return tiles


def place_unit(
    state: GameState,
    unit_id: str,
    pos: Position,
    rng: random.Random,
    book: RuleBook,
) -> GameState:
    """Move a queued unit onto the board."""
    if state.phase != Phase.SETUP_PLACEMENT or state.setup_step not in PLACE_STEPS:
        return reject(state, "place_unit", f"not deploying ({state.phase.value})")

    player = PLACE_STEPS[state.setup_step]
    queued = {u.id: u for u in state.queued_for(player)}
    if unit_id not in queued:
        return reject(state, "place_unit", f"{unit_id} is not waiting for {player.value}")

    pos = as_position(pos)
    if pos is None:
        return reject(state, "place_unit", "malformed position")
    if pos not in placement_tiles(state, player):
        return reject(state, "place_unit", f"{tuple(pos)} is not a free safe-zone tile")

    unit = replace(queued[unit_id], pos=pos, start_pos=pos)
    state = replace(
        state,
        units=state.units + (unit,),
        placement_queue=tuple(u for u in state.placement_queue if u.id != unit_id),
        selected_unit_id=None,
    )
    logger.debug(f"{player.value} deployed {unit_id} at {tuple(pos)}")

    if state.queued_for(player):
        return state

    state = state.with_log(f"{player.value} finished deployment.")
    if player == Player.P1:
        return replace(state, setup_step=SetupStep.P2_PLACE)
    return start_trench_selection(state, rng, book)
