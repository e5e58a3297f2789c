"""Shared fixtures: a rulebook, a seeded RNG and builders for loop states."""

import random
from dataclasses import replace

import pytest

from duskline.config import default_rulebook
from duskline.draft import confirm_draft, draft_unit
from duskline.map import Position
from duskline.state import GameState, Phase, SetupStep
from duskline.units import Player, TimeOfDay, UnitClass, UnitStatus, create_unit


@pytest.fixture
def book():
    return default_rulebook()


@pytest.fixture
def rng():
    return random.Random(7)


@pytest.fixture
def make_unit(book):
    """Build an ACTIVE, placed unit; keyword overrides go straight into the record."""
    def _make(unit_class: UnitClass, owner: Player, pos, time: TimeOfDay = TimeOfDay.DAY, **overrides):
        unit = create_unit(book.unit_type(unit_class), owner, time)
        pos = Position(*pos)
        unit = replace(unit, pos=pos, start_pos=pos, status=UnitStatus.ACTIVE)
        return replace(unit, **overrides)
    return _make


@pytest.fixture
def loop_state():
    """Build a combat-loop state at DAY with P1 to act."""
    def _state(*units, **overrides) -> GameState:
        state = GameState(
            phase=Phase.GAME_LOOP,
            setup_step=SetupStep.DONE,
            time_of_day=TimeOfDay.DAY,
            current_player=Player.P1,
            units=tuple(units),
        )
        return replace(state, **overrides)
    return _state


@pytest.fixture
def placement_state(book):
    """Both squads drafted (same classes), P1 about to deploy."""
    state = GameState()
    for _ in Player:
        for unit_class in (UnitClass.SNIPER, UnitClass.ARMOR, UnitClass.MACHINE_GUN):
            state = draft_unit(state, unit_class, TimeOfDay.DAY, book)
        for unit_class in (UnitClass.ARTILLERY, UnitClass.SCOUT, UnitClass.MEDIC):
            state = draft_unit(state, unit_class, TimeOfDay.NIGHT, book)
        state = confirm_draft(state, book)
    return state
