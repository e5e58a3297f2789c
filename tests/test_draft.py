from duskline.draft import available_classes, confirm_draft, draft_unit
from duskline.state import GameState, Phase, SetupStep
from duskline.units import Player, TimeOfDay, UnitClass, UnitStatus

DAY = (UnitClass.SNIPER, UnitClass.ARMOR, UnitClass.MACHINE_GUN)
NIGHT = (UnitClass.ARTILLERY, UnitClass.SCOUT, UnitClass.MEDIC)


def draft_squad(state, book, day=DAY, night=NIGHT):
    for unit_class in day:
        state = draft_unit(state, unit_class, TimeOfDay.DAY, book)
    for unit_class in night:
        state = draft_unit(state, unit_class, TimeOfDay.NIGHT, book)
    return state


def test_pick_toggles(book):
    state = draft_unit(GameState(), UnitClass.SNIPER, TimeOfDay.DAY, book)
    assert state.p1_roster.day == (UnitClass.SNIPER,)
    state = draft_unit(state, UnitClass.SNIPER, TimeOfDay.DAY, book)
    assert state.p1_roster.day == ()


def test_class_cannot_be_in_both_lists(book):
    state = draft_unit(GameState(), UnitClass.SNIPER, TimeOfDay.DAY, book)
    after = draft_unit(state, UnitClass.SNIPER, TimeOfDay.NIGHT, book)
    assert after is state
    assert UnitClass.SNIPER not in available_classes(state, Player.P1, TimeOfDay.NIGHT)


def test_roster_size_capped(book):
    state = draft_squad(GameState(), book, night=())
    after = draft_unit(state, UnitClass.SCOUT, TimeOfDay.DAY, book)
    assert after is state
    assert len(state.p1_roster.day) == 3


def test_confirm_requires_full_rosters(book):
    state = draft_squad(GameState(), book, night=(UnitClass.SCOUT,))
    assert confirm_draft(state, book) is state


def test_sequential_draft_into_placement(book):
    state = confirm_draft(draft_squad(GameState(), book), book)
    assert state.setup_step == SetupStep.P2_DRAFT
    assert state.p2_roster.day == ()

    # P2 may pick the same classes as P1
    state = draft_squad(state, book)
    assert state.p2_roster.day == DAY
    state = confirm_draft(state, book)

    assert state.phase == Phase.SETUP_PLACEMENT
    assert state.setup_step == SetupStep.P1_PLACE
    assert state.units == ()
    assert len(state.placement_queue) == 12
    ids = {u.id for u in state.placement_queue}
    assert "P1-DAY-SNIPER" in ids
    assert "P2-NIGHT-MEDIC" in ids
    assert all(not u.is_placed for u in state.placement_queue)
    assert all(u.status == UnitStatus.GARRISONED for u in state.placement_queue)


def test_draft_rejected_outside_setup(book, loop_state):
    state = loop_state()
    assert draft_unit(state, UnitClass.SNIPER, TimeOfDay.DAY, book) is state
    assert confirm_draft(state, book) is state


def test_malformed_pick_is_rejected(book):
    state = GameState()
    assert draft_unit(state, "SNIPER", TimeOfDay.DAY, book) is state
    assert draft_unit(state, UnitClass.SNIPER, "DAY", book) is state
