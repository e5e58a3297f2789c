"""
Fog of war for hot-seat play.

Handles:
- Hiding the opponent's draft while rosters are being picked
- Hiding the opponent's deployed units during blind deployment
- Hiding the opponent's trench blueprint choice
"""

from .state import GameState, Phase
from .units import Player, Unit


def unit_to_dict(unit: Unit) -> dict:
    return {
        "id": unit.id,
        "class": unit.unit_class.value,
        "owner": unit.owner.value,
        "assigned_time": unit.assigned_time.value,
        "pos": [unit.pos.x, unit.pos.y],
        "start_pos": [unit.start_pos.x, unit.start_pos.y],
        "hp": unit.hp,
        "max_hp": unit.max_hp,
        "ap": unit.ap,
        "max_ap": unit.max_ap,
        "status": unit.status.value,
        "recovery_turns": unit.recovery_turns,
        "buffs": [{"type": b.type.value, "duration": b.duration} for b in unit.buffs],
        "has_moved": unit.has_moved,
        "has_attacked": unit.has_attacked,
        "crossed_river": unit.crossed_river,
        "is_resting": unit.is_resting,
    }


def can_see_enemy_roster(state: GameState) -> bool:
    return state.phase != Phase.SETUP_DRAFT


def can_see_enemy_units(state: GameState) -> bool:
    """Deployment is blind; every later phase shows the whole board."""
    return state.phase != Phase.SETUP_PLACEMENT


def get_visible_state(state: GameState, viewer: Player) -> dict:
    """Game state as one player is allowed to see it."""
    enemy = viewer.opponent
    own_roster = state.roster(viewer)

    visible = {
        "viewer": viewer.value,
        "phase": state.phase.value,
        "setup_step": state.setup_step.value,
        "turn": state.turn,
        "time_of_day": state.time_of_day.value,
        "current_player": state.current_player.value if state.current_player else None,
        "winner": state.winner.value if state.winner else None,
        "morale": {p.value: state.morale(p) for p in Player},
        "trenches": sorted([t.x, t.y] for t in state.trenches),
        "trench_options": [[[c.x, c.y] for c in shape] for shape in state.trench_options],
        "trench_choice": state.trench_choice(viewer),
        "selected_unit_id": state.selected_unit_id,
        "rosters": {
            viewer.value: {
                "day": [c.value for c in own_roster.day],
                "night": [c.value for c in own_roster.night],
            },
        },
        "own_units": [unit_to_dict(u) for u in state.units_of(viewer)],
        "enemy_units": [],
        "placement_queue": [unit_to_dict(u) for u in state.queued_for(viewer)],
        "log": list(state.log),
    }

    if can_see_enemy_roster(state):
        enemy_roster = state.roster(enemy)
        visible["rosters"][enemy.value] = {
            "day": [c.value for c in enemy_roster.day],
            "night": [c.value for c in enemy_roster.night],
        }

    if can_see_enemy_units(state):
        visible["enemy_units"] = [unit_to_dict(u) for u in state.units_of(enemy)]

    return visible
