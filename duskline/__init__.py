"""
Duskline rules engine: a two-player day/night trench war game.

Core modules:
- map: Board geometry and terrain predicates
- units: Unit model and capability table entries
- config: YAML-backed rules and unit classes
- state: Immutable game state and phases
- draft / deployment / trenches: Setup phases
- movement, combat/: Main loop actions
- logistics: Frontline and supply attrition
- turn: Turn sequencing and the adjustment phase
- fog_of_war: Per-player views
- engine: State machine and GameEngine facade
"""

from .map import Position, GRID_COLS, GRID_ROWS, mirror
from .units import (
    Player, TimeOfDay, UnitClass, UnitStatus, BuffType, Buff, UnitType, Unit,
)
from .config import RuleBook, Rules, default_rulebook
from .state import GameState, Phase, SetupStep, Winner, Roster, InvariantViolation
from .fog_of_war import get_visible_state
from .engine import (
    GameEngine, apply_intent,
    DraftUnit, ConfirmDraft, PlaceUnit, SelectTrenchOption, PlaceTrench,
    SelectUnit, MoveUnit, Attack, Rest, EndTurn,
)

__all__ = [
    # Map
    "Position", "GRID_COLS", "GRID_ROWS", "mirror",
    # Units
    "Player", "TimeOfDay", "UnitClass", "UnitStatus", "BuffType", "Buff",
    "UnitType", "Unit",
    # Config
    "RuleBook", "Rules", "default_rulebook",
    # State
    "GameState", "Phase", "SetupStep", "Winner", "Roster", "InvariantViolation",
    # Fog of War
    "get_visible_state",
    # Engine
    "GameEngine", "apply_intent",
    "DraftUnit", "ConfirmDraft", "PlaceUnit", "SelectTrenchOption", "PlaceTrench",
    "SelectUnit", "MoveUnit", "Attack", "Rest", "EndTurn",
]
