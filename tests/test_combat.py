import random
from dataclasses import replace

import pytest

from duskline.combat import AttackResolver, attack, valid_attack_tiles
from duskline.combat.base import recovery_tiles
from duskline.map import Position, is_tower
from duskline.state import InvariantViolation, Phase
from duskline.units import Buff, BuffType, Player, TimeOfDay, UnitClass, UnitStatus


def test_sniper_doubles_on_wounded_target(make_unit, loop_state, rng, book):
    sniper = make_unit(UnitClass.SNIPER, Player.P1, (3, 3))
    target = make_unit(UnitClass.MACHINE_GUN, Player.P2, (3, 6), hp=40)
    state = attack(loop_state(sniper, target), sniper.id, Position(3, 6), rng, book)

    assert state.unit(target.id).hp == 10
    assert state.unit(sniper.id).has_attacked


def test_morale_stack_reduces_damage(make_unit, loop_state, rng, book):
    sniper = make_unit(UnitClass.SNIPER, Player.P1, (3, 3))
    target = make_unit(UnitClass.MACHINE_GUN, Player.P2, (3, 6), hp=40)
    state = loop_state(sniper, target, p1_morale=5, p2_morale=9)

    state = attack(state, sniper.id, Position(3, 6), rng, book)
    assert state.unit(target.id).hp == 15


def test_armor_reduction_and_damage_floor(make_unit, loop_state, rng, book):
    scout = make_unit(UnitClass.SCOUT, Player.P1, (3, 3))
    armor = make_unit(UnitClass.ARMOR, Player.P2, (4, 4))
    state = loop_state(scout, armor, p1_morale=3)

    state = attack(state, scout.id, Position(4, 4), rng, book)
    assert state.unit(armor.id).hp == 99


def test_calculate_damage_modifiers(make_unit, rng, book):
    resolver = AttackResolver(book, rng)
    sniper = make_unit(UnitClass.SNIPER, Player.P1, (3, 3))
    armor = make_unit(UnitClass.ARMOR, Player.P2, (3, 5))

    assert resolver.calculate_damage(sniper, armor, 0) == 5
    assert resolver.calculate_damage(sniper, replace(armor, hp=50), 0) == 5
    assert resolver.calculate_damage(sniper, replace(armor, hp=49), 0) == 20
    assert resolver.calculate_damage(sniper, replace(armor, hp=49), 30) == 1


def test_kill_relocates_and_raises_victim_morale(make_unit, loop_state, rng, book):
    gunner = make_unit(UnitClass.MACHINE_GUN, Player.P1, (5, 5))
    target = make_unit(UnitClass.SCOUT, Player.P2, (5, 7), hp=10, buffs=(Buff(BuffType.SLOW),))
    state = attack(loop_state(gunner, target, p2_morale=1), gunner.id, Position(5, 7), rng, book)

    fallen = state.unit(target.id)
    assert fallen.hp == 0
    assert fallen.status == UnitStatus.RECOVERING
    assert fallen.recovery_turns == 2
    assert fallen.buffs == ()
    assert fallen.pos.x == 18
    assert not is_tower(fallen.pos)
    assert state.unit_at(Position(5, 7)) is None
    assert state.p2_morale == 2
    assert state.p1_morale == 0


def test_sniper_kill_adds_extra_morale(make_unit, loop_state, rng, book):
    sniper = make_unit(UnitClass.SNIPER, Player.P1, (3, 3))
    target = make_unit(UnitClass.MEDIC, Player.P2, (6, 6), hp=20)
    state = attack(loop_state(sniper, target), sniper.id, Position(6, 6), rng, book)

    assert state.unit(target.id).status == UnitStatus.RECOVERING
    assert state.p2_morale == 2
    assert state.p1_morale == 0


@pytest.mark.parametrize("seed", range(10))
def test_relocation_never_lands_on_tower_or_unit(seed, make_unit, loop_state, book):
    gunner = make_unit(UnitClass.MACHINE_GUN, Player.P2, (13, 5))
    target = make_unit(UnitClass.SCOUT, Player.P1, (10, 5), hp=5)
    resting = [
        make_unit(UnitClass.ARMOR, Player.P1, (0, 0), status=UnitStatus.GARRISONED),
        make_unit(UnitClass.MEDIC, Player.P1, (0, 12), status=UnitStatus.GARRISONED),
    ]
    state = loop_state(gunner, target, *resting, current_player=Player.P2)
    state = attack(state, gunner.id, Position(10, 5), random.Random(seed), book)

    pos = state.unit(target.id).pos
    assert pos.x == 0
    assert pos not in {Position(0, 6), Position(0, 0), Position(0, 12)}


def test_recovery_tiles_fall_back_when_column_is_full(make_unit, loop_state):
    victim = make_unit(UnitClass.SCOUT, Player.P1, (5, 5))
    crowd = [
        make_unit(UnitClass.ARMOR, Player.P1, (0, y), status=UnitStatus.GARRISONED)
        for y in range(13) if y != 6
    ]
    # Ids clash but only positions matter here
    tiles = recovery_tiles(loop_state(victim, *crowd), victim)
    assert len(tiles) == 12
    assert Position(0, 6) not in tiles


def test_armor_roots_survivor(make_unit, loop_state, rng, book):
    armor = make_unit(UnitClass.ARMOR, Player.P1, (3, 3))
    target = make_unit(UnitClass.SNIPER, Player.P2, (5, 3))
    state = attack(loop_state(armor, target), armor.id, Position(5, 3), rng, book)

    hit = state.unit(target.id)
    assert hit.hp == 75
    assert hit.has_buff(BuffType.ROOT)
    assert valid_attack_tiles(state, target.id, book) == []


def test_scout_slows_survivor(make_unit, loop_state, rng, book):
    scout = make_unit(UnitClass.SCOUT, Player.P1, (3, 3))
    target = make_unit(UnitClass.SNIPER, Player.P2, (4, 4))
    state = attack(loop_state(scout, target), scout.id, Position(4, 4), rng, book)
    assert state.unit(target.id).has_buff(BuffType.SLOW)


def test_medic_overflow_heals_self(make_unit, loop_state, rng, book):
    medic = make_unit(UnitClass.MEDIC, Player.P1, (3, 3), hp=50)
    ally = make_unit(UnitClass.MACHINE_GUN, Player.P1, (4, 3), hp=95)
    state = attack(loop_state(medic, ally), medic.id, Position(4, 3), rng, book)

    assert state.unit(ally.id).hp == 100
    assert state.unit(medic.id).hp == 65


def test_medic_self_heal_is_capped(make_unit, loop_state, rng, book):
    medic = make_unit(UnitClass.MEDIC, Player.P1, (3, 3), hp=95)
    ally = make_unit(UnitClass.MACHINE_GUN, Player.P1, (3, 4))
    state = attack(loop_state(medic, ally), medic.id, Position(3, 4), rng, book)
    assert state.unit(medic.id).hp == 100


def test_medic_targets_allies_only(make_unit, loop_state, book):
    medic = make_unit(UnitClass.MEDIC, Player.P1, (3, 3))
    ally = make_unit(UnitClass.SCOUT, Player.P1, (3, 4))
    enemy = make_unit(UnitClass.SCOUT, Player.P2, (4, 3))
    tiles = valid_attack_tiles(loop_state(medic, ally, enemy), medic.id, book)
    assert tiles == [Position(3, 4)]


def test_artillery_splash(make_unit, loop_state, rng, book):
    artillery = make_unit(UnitClass.ARTILLERY, Player.P1, (3, 3))
    target = make_unit(UnitClass.SNIPER, Player.P2, (3, 7))
    beside = make_unit(UnitClass.SCOUT, Player.P2, (4, 7))
    off_shift = make_unit(UnitClass.MEDIC, Player.P2, (2, 7), TimeOfDay.NIGHT, status=UnitStatus.GARRISONED)
    friendly = make_unit(UnitClass.ARMOR, Player.P1, (3, 8))
    state = loop_state(artillery, target, beside, off_shift, friendly)

    state = attack(state, artillery.id, Position(3, 7), rng, book)
    assert state.unit(target.id).hp == 85
    assert state.unit(beside.id).hp == 85
    assert state.unit(off_shift.id).hp == 100
    assert state.unit(friendly.id).hp == 100
    assert state.unit(artillery.id).ap == 0


def test_splash_kill_counts_as_death(make_unit, loop_state, rng, book):
    artillery = make_unit(UnitClass.ARTILLERY, Player.P1, (3, 3))
    target = make_unit(UnitClass.SNIPER, Player.P2, (5, 5))
    beside = make_unit(UnitClass.SCOUT, Player.P2, (5, 6), hp=10)
    state = loop_state(artillery, target, beside)

    state = attack(state, artillery.id, Position(5, 5), rng, book)
    assert state.unit(target.id).hp == 85
    assert state.unit(beside.id).status == UnitStatus.RECOVERING
    assert state.unit(beside.id).pos.x == 18
    assert state.p2_morale == 1


def test_ap_after_attack(make_unit, loop_state, rng, book):
    fresh = make_unit(UnitClass.SNIPER, Player.P1, (3, 3))
    walked = make_unit(UnitClass.MACHINE_GUN, Player.P1, (3, 9), ap=1, has_moved=True)
    target = make_unit(UnitClass.ARMOR, Player.P2, (3, 6))
    state = loop_state(fresh, walked, target)

    state = attack(state, fresh.id, Position(3, 6), rng, book)
    assert state.unit(fresh.id).ap == 3
    state = attack(state, walked.id, Position(3, 6), rng, book)
    assert state.unit(walked.id).ap == 0


def test_line_of_sight(make_unit, loop_state, book):
    sniper = make_unit(UnitClass.SNIPER, Player.P1, (3, 3))
    target = make_unit(UnitClass.SCOUT, Player.P2, (3, 6))
    off_axis = make_unit(UnitClass.MEDIC, Player.P2, (4, 5))
    diagonal = make_unit(UnitClass.ARMOR, Player.P2, (5, 5))

    state = loop_state(sniper, target, off_axis, diagonal)
    assert set(valid_attack_tiles(state, sniper.id, book)) == {Position(3, 6), Position(5, 5)}

    blocked = replace(state, trenches=frozenset({Position(3, 4)}))
    assert Position(3, 6) not in valid_attack_tiles(blocked, sniper.id, book)

    screen = make_unit(UnitClass.MACHINE_GUN, Player.P2, (3, 5))
    screened = replace(state, units=state.units + (screen,))
    assert Position(3, 6) not in valid_attack_tiles(screened, sniper.id, book)
    assert Position(3, 5) in valid_attack_tiles(screened, sniper.id, book)

    ally = make_unit(UnitClass.MACHINE_GUN, Player.P1, (3, 5))
    covered = replace(state, units=state.units + (ally,))
    assert Position(3, 6) in valid_attack_tiles(covered, sniper.id, book)


def test_target_restrictions(make_unit, loop_state, book):
    sniper = make_unit(UnitClass.SNIPER, Player.P1, (13, 3))
    sheltered = make_unit(UnitClass.SCOUT, Player.P2, (18, 3))
    night = make_unit(UnitClass.SCOUT, Player.P2, (13, 6), TimeOfDay.NIGHT)
    garrisoned = make_unit(UnitClass.MEDIC, Player.P2, (14, 4), status=UnitStatus.GARRISONED)
    state = loop_state(sniper, sheltered, night, garrisoned)
    assert valid_attack_tiles(state, sniper.id, book) == []


def test_river_crossing_blocks_attack_except_armor(make_unit, loop_state, book):
    sniper = make_unit(UnitClass.SNIPER, Player.P1, (10, 3), crossed_river=True)
    armor = make_unit(UnitClass.ARMOR, Player.P1, (10, 7), crossed_river=True)
    enemy = make_unit(UnitClass.SCOUT, Player.P2, (11, 5))
    state = loop_state(sniper, armor, enemy)

    assert valid_attack_tiles(state, sniper.id, book) == []
    assert valid_attack_tiles(state, armor.id, book) == [Position(11, 5)]


def test_invalid_attacks_are_ignored(make_unit, loop_state, rng, book):
    sniper = make_unit(UnitClass.SNIPER, Player.P1, (3, 3))
    target = make_unit(UnitClass.SCOUT, Player.P2, (3, 6))
    state = loop_state(sniper, target)

    assert attack(state, sniper.id, Position(3, 7), rng, book) is state
    assert attack(state, target.id, Position(3, 3), rng, book) is state
    off_phase = replace(state, phase=Phase.SETUP_TRENCH_SELECT)
    assert attack(off_phase, sniper.id, Position(3, 6), rng, book) is off_phase
    done = attack(state, sniper.id, Position(3, 6), rng, book)
    assert attack(done, sniper.id, Position(3, 6), rng, book) is done


def test_resolving_against_empty_tile_is_a_contract_failure(make_unit, loop_state, rng, book):
    sniper = make_unit(UnitClass.SNIPER, Player.P1, (3, 3))
    with pytest.raises(InvariantViolation):
        AttackResolver(book, rng).resolve(loop_state(sniper), sniper.id, Position(3, 6))


def test_attack_logs_events(make_unit, loop_state, rng, book):
    sniper = make_unit(UnitClass.SNIPER, Player.P1, (3, 3))
    target = make_unit(UnitClass.SCOUT, Player.P2, (3, 6), hp=10)
    state = attack(loop_state(sniper, target), sniper.id, Position(3, 6), rng, book)
    assert state.log[-2] == "P1 Sniper hit P2 Scout for 30."
    assert "down" in state.log[-1]


@pytest.mark.parametrize("target", [None, (3,), ("3", 6), {"x": 3, "y": 6}])
def test_malformed_target_is_rejected(make_unit, loop_state, rng, book, target):
    sniper = make_unit(UnitClass.SNIPER, Player.P1, (3, 3))
    enemy = make_unit(UnitClass.MACHINE_GUN, Player.P2, (3, 6))
    state = loop_state(sniper, enemy)
    assert attack(state, sniper.id, target, rng, book) is state
