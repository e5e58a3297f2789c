from dataclasses import replace

from duskline.deployment import place_unit
from duskline.fog_of_war import get_visible_state
from duskline.map import Position
from duskline.state import GameState, Phase, Roster, SetupStep
from duskline.units import Player, UnitClass


def test_opponent_draft_is_hidden(book):
    state = GameState(
        setup_step=SetupStep.P2_DRAFT,
        p1_roster=Roster(day=(UnitClass.SNIPER,)),
    )
    p2_view = get_visible_state(state, Player.P2)
    assert "P1" not in p2_view["rosters"]
    assert get_visible_state(state, Player.P1)["rosters"]["P1"]["day"] == ["SNIPER"]


def test_opponent_deployment_is_hidden(placement_state, rng, book):
    state = place_unit(placement_state, "P1-DAY-SNIPER", Position(0, 4), rng, book)
    p2_view = get_visible_state(state, Player.P2)
    assert p2_view["enemy_units"] == []
    assert all(u["owner"] == "P2" for u in p2_view["placement_queue"])
    assert [u["id"] for u in get_visible_state(state, Player.P1)["own_units"]] == ["P1-DAY-SNIPER"]


def test_blueprint_choice_is_private():
    state = GameState(
        phase=Phase.SETUP_TRENCH_SELECT,
        setup_step=SetupStep.P2_SELECT_TRENCH,
        trench_options=((Position(0, 0),), (Position(0, 0), Position(1, 0))),
        p1_trench_choice=1,
    )
    p2_view = get_visible_state(state, Player.P2)
    assert p2_view["trench_choice"] is None
    assert get_visible_state(state, Player.P1)["trench_choice"] == 1


def test_combat_loop_reveals_the_board(make_unit, loop_state):
    own = make_unit(UnitClass.SCOUT, Player.P1, (3, 3))
    enemy = make_unit(UnitClass.ARMOR, Player.P2, (14, 3))
    view = get_visible_state(loop_state(own, enemy), Player.P1)

    assert [u["id"] for u in view["enemy_units"]] == [enemy.id]
    assert view["enemy_units"][0]["pos"] == [14, 3]
    assert view["rosters"].keys() == {"P1", "P2"}
    assert view["current_player"] == "P1"


def test_trenches_are_shared(loop_state):
    state = replace(loop_state(), trenches=frozenset({Position(3, 2), Position(15, 10)}))
    assert get_visible_state(state, Player.P2)["trenches"] == [[3, 2], [15, 10]]
