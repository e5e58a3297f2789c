"""
Trench blueprint system.

Handles:
- Random blueprint generation (connected shapes grown cell by cell)
- Blind selection of one blueprint per player from a shared pool
- Rotation and mirrored placement; every commit toggles a tile together
  with its point reflection, so the trench set stays symmetric
"""

import logging
import random
from dataclasses import replace

from .config import RuleBook, Rules
from .map import ORTHOGONAL_STEPS, Position, as_position, is_buildable, mirror
from .state import GameState, Phase, SetupStep, TrenchShape, reject
from .units import Player

logger = logging.getLogger(__name__)

SELECT_STEPS = {SetupStep.P1_SELECT_TRENCH: Player.P1, SetupStep.P2_SELECT_TRENCH: Player.P2}
PLACE_STEPS = {SetupStep.P1_PLACE_TRENCH: Player.P1, SetupStep.P2_PLACE_TRENCH: Player.P2}

ROTATIONS = range(4)


def generate_shape(rng: random.Random, rules: Rules) -> TrenchShape:
    """Grow a connected shape from a seed cell, normalized to the origin."""
    box = rules.trench_shape_box
    seed = Position(box // 2, box // 2)
    cells = [seed]

    for _ in range(rules.trench_growth_attempts):
        if len(cells) >= rules.trench_shape_cells:
            break
        base = rng.choice(cells)
        dx, dy = rng.choice(ORTHOGONAL_STEPS)
        candidate = base.offset(dx, dy)
        if 0 <= candidate.x < box and 0 <= candidate.y < box and candidate not in cells:
            cells.append(candidate)

    min_x = min(c.x for c in cells)
    min_y = min(c.y for c in cells)
    return tuple(Position(c.x - min_x, c.y - min_y) for c in cells)


def generate_options(rng: random.Random, rules: Rules) -> tuple[TrenchShape, ...]:
    return tuple(generate_shape(rng, rules) for _ in range(rules.trench_options))


def start_trench_selection(state: GameState, rng: random.Random, book: RuleBook) -> GameState:
    """Offer a fresh blueprint pool; P1 picks first."""
    logger.info(f"Trench blueprint selection opens (turn {state.turn})")
    return replace(
        state,
        phase=Phase.SETUP_TRENCH_SELECT,
        setup_step=SetupStep.P1_SELECT_TRENCH,
        trench_options=generate_options(rng, book.rules),
        p1_trench_choice=None,
        p2_trench_choice=None,
        current_player=None,
        selected_unit_id=None,
    ).with_log("Trench works: choose a blueprint in secret.")


def select_trench_option(state: GameState, index: int) -> GameState:
    """Record a blind blueprint pick."""
    if state.phase != Phase.SETUP_TRENCH_SELECT or state.setup_step not in SELECT_STEPS:
        return reject(state, "select_trench_option", f"not selecting ({state.phase.value})")
    if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(state.trench_options):
        return reject(state, "select_trench_option", f"no blueprint {index!r}")

    player = SELECT_STEPS[state.setup_step]
    state = state.with_trench_choice(player, index).with_log(f"{player.value} chose a blueprint.")
    if player == Player.P1:
        return replace(state, setup_step=SetupStep.P2_SELECT_TRENCH)

    return replace(
        state,
        phase=Phase.SETUP_TRENCH_PLACE,
        setup_step=SetupStep.P1_PLACE_TRENCH,
    ).with_log("Trench placement: P1 digs first.")


def rotate(cell: Position, rotation: int) -> Position:
    """Quarter turns via (x, y) -> (-y, x)."""
    x, y = cell
    for _ in range(rotation % 4):
        x, y = -y, x
    return Position(x, y)


def blueprint_tiles(shape: TrenchShape, root: Position, rotation: int) -> list[Position]:
    """Board tiles covered by a shape rotated about its origin and anchored at root."""
    tiles = []
    for cell in shape:
        turned = rotate(cell, rotation)
        tiles.append(Position(root.x + turned.x, root.y + turned.y))
    return tiles


def placement_tiles(player: Player, shape: TrenchShape, root: Position, rotation: int) -> list[Position]:
    """Blueprint tiles that survive the own-half and buildable-band filters."""
    return [
        tile for tile in blueprint_tiles(shape, root, rotation)
        if is_buildable(tile) and player.owns_half(tile)
    ]


def mirrored(tiles: list[Position]) -> set[Position]:
    """Tiles plus their point reflections."""
    return set(tiles) | {mirror(t) for t in tiles}


def trench_preview(state: GameState, root: Position, rotation: int) -> set[Position]:
    """Tiles a commit at root would toggle for the placing player."""
    player = PLACE_STEPS.get(state.setup_step)
    root = as_position(root)
    if state.phase != Phase.SETUP_TRENCH_PLACE or player is None or root is None:
        return set()
    choice = state.trench_choice(player)
    if choice is None or not isinstance(rotation, int):
        return set()
    return mirrored(placement_tiles(player, state.trench_options[choice], root, rotation % 4))


def place_trench(state: GameState, root: Position, rotation: int, book: RuleBook) -> GameState:
    """Commit the placing player's blueprint, toggling tiles symmetrically."""
    if state.phase != Phase.SETUP_TRENCH_PLACE or state.setup_step not in PLACE_STEPS:
        return reject(state, "place_trench", f"not placing trenches ({state.phase.value})")
    if not isinstance(rotation, int) or isinstance(rotation, bool) or rotation not in ROTATIONS:
        return reject(state, "place_trench", f"malformed rotation {rotation!r}")

    player = PLACE_STEPS[state.setup_step]
    choice = state.trench_choice(player)
    if choice is None or not 0 <= choice < len(state.trench_options):
        return reject(state, "place_trench", f"{player.value} has no blueprint")

    root = as_position(root)
    if root is None:
        return reject(state, "place_trench", "malformed root")
    tiles = placement_tiles(player, state.trench_options[choice], root, rotation)
    if not tiles:
        return reject(state, "place_trench", f"no buildable tiles at {tuple(root)}")

    toggled = mirrored(tiles)
    trenches = state.trenches ^ frozenset(toggled)
    added = len(trenches - state.trenches)
    removed = len(state.trenches - trenches)
    logger.info(f"{player.value} trench commit: +{added} -{removed} tiles")

    state = replace(state, trenches=trenches).with_log(
        f"{player.value} reshaped the trenches (+{added} / -{removed})."
    )
    if player == Player.P1:
        return replace(state, setup_step=SetupStep.P2_PLACE_TRENCH)

    from .turn import start_game_loop
    return start_game_loop(state, book)
