"""
Game state aggregate for the Duskline rules engine.

GameState is immutable: every transition builds a new instance with
dataclasses.replace, so callers can hold before/after snapshots.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Optional

from .map import Position
from .units import Player, TimeOfDay, Unit, UnitClass

logger = logging.getLogger(__name__)


class InvariantViolation(RuntimeError):
    """Internal contract failure. Never raised for a merely invalid intent."""


class Phase(Enum):
    """Top-level phases in order of play."""
    SETUP_DRAFT = "setup_draft"
    SETUP_PLACEMENT = "setup_placement"
    SETUP_TRENCH_SELECT = "setup_trench_select"  # Blind pick
    SETUP_TRENCH_PLACE = "setup_trench_place"
    GAME_LOOP = "game_loop"
    GAME_OVER = "game_over"


class SetupStep(Enum):
    """Whose sequential turn it is inside the current phase."""
    P1_DRAFT = "P1_DRAFT"
    P2_DRAFT = "P2_DRAFT"
    P1_PLACE = "P1_PLACE"
    P2_PLACE = "P2_PLACE"
    P1_SELECT_TRENCH = "P1_SELECT_TRENCH"
    P2_SELECT_TRENCH = "P2_SELECT_TRENCH"
    P1_PLACE_TRENCH = "P1_PLACE_TRENCH"
    P2_PLACE_TRENCH = "P2_PLACE_TRENCH"
    DONE = "DONE"

    @property
    def player(self) -> Optional[Player]:
        if self is SetupStep.DONE:
            return None
        return Player.P1 if self.value.startswith("P1") else Player.P2


class Winner(Enum):
    P1 = "P1"
    P2 = "P2"
    DRAW = "DRAW"


@dataclass(frozen=True)
class Roster:
    """One player's drafted classes per time slot."""
    day: tuple[UnitClass, ...] = ()
    night: tuple[UnitClass, ...] = ()

    def for_time(self, time: TimeOfDay) -> tuple[UnitClass, ...]:
        return self.day if time == TimeOfDay.DAY else self.night

    def with_time(self, time: TimeOfDay, classes: tuple[UnitClass, ...]) -> "Roster":
        if time == TimeOfDay.DAY:
            return replace(self, day=classes)
        return replace(self, night=classes)


TrenchShape = tuple[Position, ...]


@dataclass(frozen=True)
class GameState:
    """Complete game state."""
    phase: Phase = Phase.SETUP_DRAFT
    setup_step: SetupStep = SetupStep.P1_DRAFT
    turn: int = 1
    time_of_day: TimeOfDay = TimeOfDay.DAY
    units: tuple[Unit, ...] = ()
    trenches: frozenset[Position] = frozenset()
    p1_morale: int = 0
    p2_morale: int = 0
    current_player: Optional[Player] = None  # Only set inside the combat loop
    winner: Optional[Winner] = None
    log: tuple[str, ...] = ()

    # Setup
    p1_roster: Roster = field(default_factory=Roster)
    p2_roster: Roster = field(default_factory=Roster)
    placement_queue: tuple[Unit, ...] = ()
    trench_options: tuple[TrenchShape, ...] = ()
    p1_trench_choice: Optional[int] = None
    p2_trench_choice: Optional[int] = None

    selected_unit_id: Optional[str] = None

    @property
    def is_over(self) -> bool:
        return self.winner is not None

    @property
    def acting_player(self) -> Optional[Player]:
        """Player allowed to act right now, if any."""
        if self.is_over:
            return None
        if self.phase == Phase.GAME_LOOP:
            return self.current_player
        return self.setup_step.player

    # Lookups
    def unit(self, unit_id: str) -> Optional[Unit]:
        for u in self.units:
            if u.id == unit_id:
                return u
        return None

    def require_unit(self, unit_id: str) -> Unit:
        unit = self.unit(unit_id)
        if unit is None:
            raise InvariantViolation(f"Unit {unit_id} is not on the board")
        return unit

    def unit_at(self, pos: Position) -> Optional[Unit]:
        for u in self.units:
            if u.pos == pos:
                return u
        return None

    def occupied(self) -> set[Position]:
        return {u.pos for u in self.units}

    def units_of(self, player: Player) -> list[Unit]:
        return [u for u in self.units if u.owner == player]

    def queued_for(self, player: Player) -> list[Unit]:
        return [u for u in self.placement_queue if u.owner == player]

    def roster(self, player: Player) -> Roster:
        return self.p1_roster if player == Player.P1 else self.p2_roster

    def morale(self, player: Player) -> int:
        return self.p1_morale if player == Player.P1 else self.p2_morale

    def trench_choice(self, player: Player) -> Optional[int]:
        return self.p1_trench_choice if player == Player.P1 else self.p2_trench_choice

    # Transforms
    def with_roster(self, player: Player, roster: Roster) -> "GameState":
        if player == Player.P1:
            return replace(self, p1_roster=roster)
        return replace(self, p2_roster=roster)

    def with_morale(self, player: Player, value: int) -> "GameState":
        value = max(0, value)
        if player == Player.P1:
            return replace(self, p1_morale=value)
        return replace(self, p2_morale=value)

    def with_trench_choice(self, player: Player, index: Optional[int]) -> "GameState":
        if player == Player.P1:
            return replace(self, p1_trench_choice=index)
        return replace(self, p2_trench_choice=index)

    def with_unit(self, unit: Unit) -> "GameState":
        """Swap in a new version of an existing unit."""
        if self.unit(unit.id) is None:
            raise InvariantViolation(f"Cannot update unknown unit {unit.id}")
        return replace(self, units=tuple(unit if u.id == unit.id else u for u in self.units))

    def with_units(self, units: Iterable[Unit]) -> "GameState":
        return replace(self, units=tuple(units))

    def with_log(self, *entries: str) -> "GameState":
        return replace(self, log=self.log + tuple(entries))


def new_game(time_of_day: TimeOfDay) -> GameState:
    """Fresh state at the start of the draft."""
    return GameState(
        time_of_day=time_of_day,
        log=("Welcome to Duskline. Draft your squads.",),
    )


def reject(state: GameState, action: str, reason: str) -> GameState:
    """Log an ignored intent and hand back the untouched state."""
    logger.debug(f"Ignored {action}: {reason}")
    return state
