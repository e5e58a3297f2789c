"""
Game state machine for Duskline.

Phases run SETUP_DRAFT -> SETUP_PLACEMENT -> SETUP_TRENCH_SELECT ->
SETUP_TRENCH_PLACE -> GAME_LOOP, with the trench works recurring once
mid-game and GAME_OVER as the terminal phase.

Every intent goes through apply_intent, a pure
(state, intent, rng, book) -> state transition. Intents that are not
legal right now return the same state object.
"""

import logging
import random
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Optional, Union

from .combat import attack, valid_attack_tiles
from .config import RuleBook, default_rulebook
from .deployment import place_unit
from .draft import available_classes, confirm_draft, draft_unit
from .fog_of_war import get_visible_state
from .logistics import frontline_x
from .map import Position
from .movement import move_unit, valid_moves
from .state import GameState, InvariantViolation, Phase, new_game, reject
from .trenches import place_trench, select_trench_option, trench_preview
from .turn import end_turn, hq_warning_tiles, rest
from .units import Player, TimeOfDay, UnitClass, UnitStatus

logger = logging.getLogger(__name__)


# Intents

@dataclass(frozen=True)
class DraftUnit:
    unit_class: UnitClass
    time: TimeOfDay


@dataclass(frozen=True)
class ConfirmDraft:
    pass


@dataclass(frozen=True)
class PlaceUnit:
    unit_id: str
    pos: Position


@dataclass(frozen=True)
class SelectTrenchOption:
    index: int


@dataclass(frozen=True)
class PlaceTrench:
    root: Position
    rotation: int = 0


@dataclass(frozen=True)
class SelectUnit:
    unit_id: str


@dataclass(frozen=True)
class MoveUnit:
    unit_id: str
    pos: Position


@dataclass(frozen=True)
class Attack:
    attacker_id: str
    target_pos: Position


@dataclass(frozen=True)
class Rest:
    unit_id: str


@dataclass(frozen=True)
class EndTurn:
    pass


Intent = Union[
    DraftUnit, ConfirmDraft, PlaceUnit, SelectTrenchOption, PlaceTrench,
    SelectUnit, MoveUnit, Attack, Rest, EndTurn,
]


def select_unit(state: GameState, unit_id: str) -> GameState:
    """Select a unit for the acting player; selecting it again clears the selection."""
    player = state.acting_player
    if player is None:
        return reject(state, "select_unit", "nobody is acting")

    if state.selected_unit_id == unit_id:
        return replace(state, selected_unit_id=None)

    if state.phase == Phase.SETUP_PLACEMENT:
        if unit_id not in {u.id for u in state.queued_for(player)}:
            return reject(state, "select_unit", f"{unit_id} is not waiting for deployment")
    elif state.phase == Phase.GAME_LOOP:
        unit = state.unit(unit_id)
        if unit is None or unit.owner != player or unit.status != UnitStatus.ACTIVE or not unit.is_alive:
            return reject(state, "select_unit", f"{unit_id} cannot be selected")
    else:
        return reject(state, "select_unit", f"no unit selection in {state.phase.value}")

    return replace(state, selected_unit_id=unit_id)


_HANDLERS: dict[type, Callable[[GameState, object, random.Random, RuleBook], GameState]] = {
    DraftUnit: lambda s, i, rng, book: draft_unit(s, i.unit_class, i.time, book),
    ConfirmDraft: lambda s, i, rng, book: confirm_draft(s, book),
    PlaceUnit: lambda s, i, rng, book: place_unit(s, i.unit_id, i.pos, rng, book),
    SelectTrenchOption: lambda s, i, rng, book: select_trench_option(s, i.index),
    PlaceTrench: lambda s, i, rng, book: place_trench(s, i.root, i.rotation, book),
    SelectUnit: lambda s, i, rng, book: select_unit(s, i.unit_id),
    MoveUnit: lambda s, i, rng, book: move_unit(s, i.unit_id, i.pos, book),
    Attack: lambda s, i, rng, book: attack(s, i.attacker_id, i.target_pos, rng, book),
    Rest: lambda s, i, rng, book: rest(s, i.unit_id, book),
    EndTurn: lambda s, i, rng, book: end_turn(s, rng, book),
}


def apply_intent(
    state: GameState,
    intent: Intent,
    rng: random.Random,
    book: Optional[RuleBook] = None,
) -> GameState:
    """Run one intent through the state machine."""
    handler = _HANDLERS.get(type(intent))
    if handler is None:
        raise InvariantViolation(f"Unknown intent: {intent!r}")
    if state.is_over:
        return reject(state, type(intent).__name__, "the game is over")
    return handler(state, intent, rng, book or default_rulebook())


class GameEngine:
    """
    Stateful facade for a single game.

    Holds the current immutable GameState and the seeded RNG that drives
    every random roll, so replaying a seed with the same intents
    reproduces the game exactly.
    """

    def __init__(self, seed: Optional[int] = None, data_path: Optional[Union[str, Path]] = None):
        self.seed = seed
        self.rng = random.Random(seed)
        self.book = default_rulebook(str(data_path)) if data_path else default_rulebook()
        self.state = new_game(self.rng.choice(list(TimeOfDay)))
        logger.info(f"New game (seed={seed}), starting at {self.state.time_of_day.value}")

    def apply(self, intent: Intent) -> bool:
        """Apply an intent; returns whether it changed anything."""
        previous = self.state
        self.state = apply_intent(self.state, intent, self.rng, self.book)
        return self.state is not previous

    # Intents
    def draft_unit(self, unit_class: UnitClass, time: TimeOfDay) -> bool:
        return self.apply(DraftUnit(unit_class, time))

    def confirm_draft(self) -> bool:
        return self.apply(ConfirmDraft())

    def place_unit(self, unit_id: str, pos: Position) -> bool:
        return self.apply(PlaceUnit(unit_id, pos))

    def select_trench_option(self, index: int) -> bool:
        return self.apply(SelectTrenchOption(index))

    def place_trench(self, root: Position, rotation: int = 0) -> bool:
        return self.apply(PlaceTrench(root, rotation))

    def select_unit(self, unit_id: str) -> bool:
        return self.apply(SelectUnit(unit_id))

    def move_unit(self, unit_id: str, pos: Position) -> bool:
        return self.apply(MoveUnit(unit_id, pos))

    def attack(self, attacker_id: str, target_pos: Position) -> bool:
        return self.apply(Attack(attacker_id, target_pos))

    def rest(self, unit_id: str) -> bool:
        return self.apply(Rest(unit_id))

    def end_turn(self) -> bool:
        return self.apply(EndTurn())

    # Queries
    def snapshot(self) -> GameState:
        return self.state

    def valid_move_tiles(self, unit_id: str) -> list[Position]:
        if self.state.phase != Phase.GAME_LOOP:
            return []
        return valid_moves(self.state, unit_id, self.book)

    def valid_attack_tiles(self, unit_id: str) -> list[Position]:
        if self.state.phase != Phase.GAME_LOOP:
            return []
        return valid_attack_tiles(self.state, unit_id, self.book)

    def frontline_x(self, player: Player, time: TimeOfDay) -> float:
        return frontline_x(self.state, player, time, self.book)

    def hq_warning_tiles(self, unit_id: str) -> list[Position]:
        return hq_warning_tiles(self.state, unit_id, self.book)

    def available_classes(self, player: Player, time: TimeOfDay) -> list[UnitClass]:
        """Draft picks still open to the player for one time slot."""
        return available_classes(self.state, player, time)

    def trench_preview(self, root: Position, rotation: int = 0) -> list[Position]:
        """Tiles the placing player's blueprint would toggle at root."""
        return sorted(trench_preview(self.state, root, rotation))

    def view(self, player: Player) -> dict:
        return get_visible_state(self.state, player)

    @property
    def log(self) -> tuple[str, ...]:
        return self.state.log
