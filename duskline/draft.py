"""
Squad draft: each player picks their day and night rosters in turn.

A class may sit in only one of a player's two lists. Picking a class
already in the list removes it again.
"""

import logging
from dataclasses import replace

from .config import RuleBook
from .state import GameState, Phase, SetupStep, reject
from .units import Player, TimeOfDay, UnitClass, create_unit

logger = logging.getLogger(__name__)

DRAFT_STEPS = {SetupStep.P1_DRAFT: Player.P1, SetupStep.P2_DRAFT: Player.P2}


def available_classes(state: GameState, player: Player, time: TimeOfDay) -> list[UnitClass]:
    """Classes the player may still add to the given time slot."""
    taken = state.roster(player).for_time(time.flipped)
    return [c for c in UnitClass if c not in taken]


def draft_unit(state: GameState, unit_class: UnitClass, time: TimeOfDay, book: RuleBook) -> GameState:
    """Toggle a class in the drafting player's roster for one time slot."""
    if state.phase != Phase.SETUP_DRAFT or state.setup_step not in DRAFT_STEPS:
        return reject(state, "draft_unit", f"not drafting ({state.phase.value})")
    if not isinstance(unit_class, UnitClass) or not isinstance(time, TimeOfDay):
        return reject(state, "draft_unit", f"malformed pick {unit_class!r} / {time!r}")

    player = DRAFT_STEPS[state.setup_step]
    roster = state.roster(player)
    current = roster.for_time(time)

    if unit_class in current:
        updated = tuple(c for c in current if c != unit_class)
        return state.with_roster(player, roster.with_time(time, updated))

    if unit_class in roster.for_time(time.flipped):
        return reject(state, "draft_unit", f"{unit_class.value} already drafted for {time.flipped.value}")
    if len(current) >= book.rules.squad_size:
        return reject(state, "draft_unit", f"{time.value} roster is full")

    return state.with_roster(player, roster.with_time(time, current + (unit_class,)))


def is_roster_complete(state: GameState, player: Player, book: RuleBook) -> bool:
    roster = state.roster(player)
    size = book.rules.squad_size
    return len(roster.day) == size and len(roster.night) == size


def confirm_draft(state: GameState, book: RuleBook) -> GameState:
    """Lock in the drafting player's rosters and move on."""
    if state.phase != Phase.SETUP_DRAFT or state.setup_step not in DRAFT_STEPS:
        return reject(state, "confirm_draft", f"not drafting ({state.phase.value})")

    player = DRAFT_STEPS[state.setup_step]
    if not is_roster_complete(state, player, book):
        return reject(state, "confirm_draft", f"{player.value} roster incomplete")

    state = state.with_log(f"{player.value} confirmed their squad.")
    if player == Player.P1:
        return replace(state, setup_step=SetupStep.P2_DRAFT)

    return start_placement(state, book)


def start_placement(state: GameState, book: RuleBook) -> GameState:
    """Instantiate every drafted unit and queue it for deployment."""
    queue = []
    for player in Player:
        roster = state.roster(player)
        for time in TimeOfDay:
            for unit_class in roster.for_time(time):
                queue.append(create_unit(book.unit_type(unit_class), player, time))

    logger.info(f"Draft complete, {len(queue)} units queued for deployment")
    return replace(
        state,
        phase=Phase.SETUP_PLACEMENT,
        setup_step=SetupStep.P1_PLACE,
        units=(),
        placement_queue=tuple(queue),
    ).with_log("Deployment begins. P1 places units in the left safe zone.")
