"""
Attack targeting: which tiles a unit may fire on or heal this turn.
"""

from ..config import RuleBook
from ..map import Position, first_obstruction, is_aligned, manhattan
from ..state import GameState
from ..units import BuffType, Unit, UnitStatus


def can_attack(unit: Unit, book: RuleBook) -> bool:
    """Whether the unit still has its attack this turn."""
    if not unit.is_active or unit.has_attacked:
        return False
    if unit.has_buff(BuffType.ROOT):
        return False
    if unit.crossed_river and not book.stats_for(unit).ignores_river_crossing:
        return False
    return True


def is_valid_target(state: GameState, attacker: Unit, target: Unit, book: RuleBook) -> bool:
    stats = book.stats_for(attacker)

    if target.id == attacker.id:
        return False
    # Day units never engage night units
    if target.assigned_time != attacker.assigned_time:
        return False
    if not target.is_alive or target.status != UnitStatus.ACTIVE:
        return False

    if stats.is_healer:
        if target.owner != attacker.owner:
            return False
    else:
        if target.owner == attacker.owner:
            return False
        if target.owner.in_safe_zone(target.pos):
            return False

    if manhattan(attacker.pos, target.pos) > stats.range:
        return False

    if stats.line_of_sight:
        if not is_aligned(attacker.pos, target.pos):
            return False
        enemy_tiles = [u.pos for u in state.units_of(attacker.owner.opponent)]
        if first_obstruction(attacker.pos, target.pos, state.trenches, enemy_tiles) is not None:
            return False

    return True


def valid_attack_tiles(state: GameState, unit_id: str, book: RuleBook) -> list[Position]:
    """Tiles holding a unit the given unit may attack (or heal) right now."""
    attacker = state.unit(unit_id)
    if attacker is None or not can_attack(attacker, book):
        return []
    return [
        target.pos for target in state.units
        if is_valid_target(state, attacker, target, book)
    ]
