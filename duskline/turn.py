"""
Turn sequencing for the combat loop.

Each round is P1's turn, then P2's, then the adjustment phase:
time of day flips -> unit resets -> morale decay -> supply attrition ->
HQ threat -> win check -> (once) mid-game trench works
"""

import logging
import random
from dataclasses import replace
from typing import Optional

from .config import RuleBook
from .logistics import apply_supply_starvation
from .map import Position, chebyshev, manhattan
from .movement import valid_moves
from .state import GameState, Phase, SetupStep, Winner, reject
from .trenches import start_trench_selection
from .units import Player, TimeOfDay, Unit, UnitStatus

logger = logging.getLogger(__name__)


def refresh_unit(unit: Unit, time: TimeOfDay, book: RuleBook) -> Unit:
    """Status for the given time of day, cleared flags and a full AP pool."""
    max_ap = book.stats_for(unit).max_ap_for_hp(unit.hp)
    if unit.status == UnitStatus.DONE:
        status = UnitStatus.DONE
    elif unit.assigned_time == time:
        status = UnitStatus.ACTIVE
    else:
        status = UnitStatus.GARRISONED
    return replace(unit.clear_turn_flags(), status=status, max_ap=max_ap, ap=max_ap)


def start_game_loop(state: GameState, book: RuleBook) -> GameState:
    """Start or resume the combat loop with P1 to act."""
    units = [
        u if u.status == UnitStatus.RECOVERING else refresh_unit(u, state.time_of_day, book)
        for u in state.units
    ]
    logger.info(f"Combat loop starts: turn {state.turn}, {state.time_of_day.value}")
    return replace(
        state.with_units(units),
        phase=Phase.GAME_LOOP,
        setup_step=SetupStep.DONE,
        current_player=Player.P1,
        selected_unit_id=None,
    ).with_log(f"Turn {state.turn} ({state.time_of_day.value}): P1 to move.")


def rest(state: GameState, unit_id: str, book: RuleBook) -> GameState:
    """Voluntarily end a unit's turn to recover hp."""
    if state.phase != Phase.GAME_LOOP or state.is_over:
        return reject(state, "rest", f"not in the combat loop ({state.phase.value})")

    unit = state.unit(unit_id)
    if unit is None or unit.owner != state.current_player or not unit.is_active:
        return reject(state, "rest", f"{unit_id} cannot rest now")
    if unit.is_resting:
        return reject(state, "rest", f"{unit_id} is already resting")

    rested = replace(unit.heal(book.rules.rest_heal), ap=0, is_resting=True)
    state = state.with_unit(rested)
    if state.selected_unit_id == unit_id:
        state = replace(state, selected_unit_id=None)
    return state.with_log(f"{unit.owner.value} {book.stats_for(unit).name} rests.")


def _auto_rest(state: GameState, player: Player, book: RuleBook) -> GameState:
    """Units that did nothing at all this turn rest without spending AP."""
    units = []
    for u in state.units:
        if u.owner == player and u.is_active and u.ap == u.max_ap and not u.has_attacked:
            u = replace(u.heal(book.rules.rest_heal), is_resting=True)
        units.append(u)
    return state.with_units(units)


def end_turn(state: GameState, rng: random.Random, book: RuleBook) -> GameState:
    """Hand over to P2, or close the round after P2."""
    if state.phase != Phase.GAME_LOOP or state.is_over or state.current_player is None:
        return reject(state, "end_turn", f"not in the combat loop ({state.phase.value})")

    player = state.current_player
    state = replace(_auto_rest(state, player, book), selected_unit_id=None)

    if player == Player.P1:
        return replace(state, current_player=Player.P2).with_log("P2 to move.")
    return run_adjustment_phase(state, rng, book)


def _adjust_unit(unit: Unit, time: TimeOfDay, book: RuleBook) -> Unit:
    if unit.status != UnitStatus.RECOVERING:
        return refresh_unit(unit, time, book)

    turns_left = unit.recovery_turns - 1
    if turns_left > 0:
        return replace(unit, recovery_turns=turns_left, buffs=())

    # Back at full strength, on duty only if its time has come round
    recovered = replace(unit, recovery_turns=0, hp=unit.max_hp, status=UnitStatus.GARRISONED)
    return refresh_unit(recovered, time, book)


def hq_threatened(state: GameState, player: Player, book: RuleBook) -> bool:
    """Any enemy within striking distance of the player's HQ."""
    distance = book.rules.hq_threat_distance
    return any(
        u.is_alive and u.status != UnitStatus.RECOVERING and manhattan(u.pos, player.hq) <= distance
        for u in state.units_of(player.opponent)
    )


def _holds_enemy_hq(state: GameState, player: Player) -> bool:
    hq = player.opponent.hq
    units = [u for u in state.units_of(player) if u.is_alive]
    occupier = any(u.pos == hq for u in units)
    escort = any(u.pos != hq and manhattan(u.pos, hq) <= 1 for u in units)
    return occupier and escort


def check_winner(state: GameState) -> Optional[Winner]:
    """An HQ falls to an occupier plus a second, adjacent escort."""
    p1 = _holds_enemy_hq(state, Player.P1)
    p2 = _holds_enemy_hq(state, Player.P2)
    if p1 and p2:
        return Winner.DRAW
    if p1:
        return Winner.P1
    if p2:
        return Winner.P2
    return None


def run_adjustment_phase(state: GameState, rng: random.Random, book: RuleBook) -> GameState:
    """Close a full round and open the next one."""
    rules = book.rules
    previous_turn = state.turn
    time = state.time_of_day.flipped

    state = replace(state, turn=previous_turn + 1, time_of_day=time)
    state = state.with_units(_adjust_unit(u, time, book) for u in state.units)
    state = state.with_log(f"--- Turn {state.turn} ({time.value}) ---")

    for player in Player:
        state = state.with_morale(player, state.morale(player) - rules.morale_decay)

    state = apply_supply_starvation(state, rng, book)

    if state.turn > rules.hq_threat_after_turn:
        for player in Player:
            if hq_threatened(state, player, book):
                state = state.with_morale(player, state.morale(player) + rules.hq_threat_penalty)
                state = state.with_log(f"{player.value} HQ under threat: morale falters.")

    winner = check_winner(state)
    if winner is not None:
        logger.info(f"Game over on turn {state.turn}: {winner.value}")
        message = "The game ends in a draw." if winner == Winner.DRAW else f"{winner.value} wins!"
        return replace(
            state,
            winner=winner,
            phase=Phase.GAME_OVER,
            current_player=None,
            selected_unit_id=None,
        ).with_log(message)

    if previous_turn == rules.midgame_trench_turn:
        return start_trench_selection(state, rng, book)

    logger.info(f"Turn {state.turn} begins ({time.value})")
    return replace(state, phase=Phase.GAME_LOOP, current_player=Player.P1)


def hq_warning_tiles(state: GameState, unit_id: str, book: RuleBook) -> list[Position]:
    """
    Legal moves that would bring a unit next to the enemy HQ.

    Purely a hint for the board: reported once the HQ-threat morale rule
    can fire, never consulted by movement itself.
    """
    if state.phase != Phase.GAME_LOOP or state.turn < book.rules.hq_threat_after_turn:
        return []
    unit = state.unit(unit_id)
    if unit is None:
        return []
    hq = unit.owner.opponent.hq
    return [t for t in valid_moves(state, unit_id, book) if chebyshev(t, hq) <= book.rules.hq_threat_distance]
