"""
Board geometry and terrain predicates for the Duskline rules engine.

The board is a fixed 19x13 grid with (x, y) integer coordinates.
Column 9 is the river, columns 0 and 18 are the two safe zones, and a
command tower sits in the middle of each safe zone. Nothing here holds
state: trench membership is always passed in by the caller.
"""

from typing import Iterable, NamedTuple, Optional


class Position(NamedTuple):
    """Integer grid coordinate."""
    x: int
    y: int

    def offset(self, dx: int, dy: int) -> "Position":
        return Position(self.x + dx, self.y + dy)


GRID_COLS = 19
GRID_ROWS = 13
RIVER_X = 9

# River banks; a river jump goes straight across between these two columns
RIVER_BANKS = (8, 10)

P1_SAFE_X = 0
P2_SAFE_X = GRID_COLS - 1

P1_HQ = Position(1, 6)
P2_HQ = Position(17, 6)
COMMAND_TOWERS = frozenset({Position(0, 6), Position(18, 6)})

# Trenches may only be dug inside these columns (safe zones, their
# neighbours and the three river columns are excluded)
BUILDABLE_COLUMNS = frozenset(range(2, 8)) | frozenset(range(11, 17))

ORTHOGONAL_STEPS = ((0, -1), (0, 1), (-1, 0), (1, 0))


def as_position(value) -> Optional[Position]:
    """Coerce an (x, y) pair of ints; None for anything else."""
    if not isinstance(value, (tuple, list)) or len(value) != 2:
        return None
    x, y = value
    if any(not isinstance(c, int) or isinstance(c, bool) for c in (x, y)):
        return None
    return Position(x, y)


def is_valid_pos(pos: Position) -> bool:
    return 0 <= pos.x < GRID_COLS and 0 <= pos.y < GRID_ROWS


def manhattan(a: Position, b: Position) -> int:
    """Grid distance used for ranges and HQ adjacency."""
    return abs(a.x - b.x) + abs(a.y - b.y)


def chebyshev(a: Position, b: Position) -> int:
    return max(abs(a.x - b.x), abs(a.y - b.y))


def mirror(pos: Position) -> Position:
    """Point reflection through the board centre (9, 6)."""
    return Position(GRID_COLS - 1 - pos.x, GRID_ROWS - 1 - pos.y)


def is_river(pos: Position) -> bool:
    return pos.x == RIVER_X


def is_tower(pos: Position) -> bool:
    return pos in COMMAND_TOWERS


def is_hq(pos: Position) -> bool:
    return pos == P1_HQ or pos == P2_HQ


def is_trench(pos: Position, trenches: Iterable[Position]) -> bool:
    return pos in trenches


def is_buildable(pos: Position) -> bool:
    """Whether a trench may ever occupy this tile."""
    if not is_valid_pos(pos):
        return False
    if pos.x not in BUILDABLE_COLUMNS:
        return False
    return not (is_hq(pos) or is_tower(pos) or is_river(pos))


def orthogonal_neighbors(pos: Position) -> list[Position]:
    """In-bounds tiles sharing an edge with pos."""
    neighbors = [pos.offset(dx, dy) for dx, dy in ORTHOGONAL_STEPS]
    return [p for p in neighbors if is_valid_pos(p)]


def is_aligned(a: Position, b: Position) -> bool:
    """True when b lies on one of the 8 principal directions from a."""
    dx = abs(a.x - b.x)
    dy = abs(a.y - b.y)
    return dx == 0 or dy == 0 or dx == dy


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def tiles_between(start: Position, end: Position) -> list[Position]:
    """
    Tiles strictly between two aligned positions, walking from start.

    Callers must check alignment first; for unaligned pairs the walk would
    never land on end.
    """
    if not is_aligned(start, end):
        raise ValueError(f"{start} and {end} are not aligned")

    dx = _sign(end.x - start.x)
    dy = _sign(end.y - start.y)
    tiles = []
    current = start.offset(dx, dy)
    while current != end:
        tiles.append(current)
        current = current.offset(dx, dy)
    return tiles


def first_obstruction(
    start: Position,
    end: Position,
    trenches: Iterable[Position],
    blocking_units: Iterable[Position] = (),
) -> Optional[Position]:
    """
    Scan tile-by-tile from start towards end (both exclusive).

    Command towers, trenches, HQ tiles and any tile in blocking_units
    stop line of sight. Returns the first blocking tile, or None.
    """
    trench_set = set(trenches)
    blockers = set(blocking_units)
    for tile in tiles_between(start, end):
        if is_tower(tile) or is_hq(tile):
            return tile
        if tile in trench_set or tile in blockers:
            return tile
    return None
