"""
Attack resolution for the combat loop.

Handles:
- Damage with crit, armor and morale modifiers
- Knock-outs (relocation to the safe column, morale gain for the victim's side)
- On-hit buffs, cross-shaped splash and medic heals with self-overflow
- AP accounting for the attacker
"""

import logging
import random
from dataclasses import replace

from ..config import RuleBook
from ..map import Position, as_position, orthogonal_neighbors
from ..state import GameState, InvariantViolation, Phase, reject
from ..units import Buff, Unit, UnitStatus
from .base import CombatReport, CombatResolver, CombatResult, SplashHit
from .targeting import valid_attack_tiles

logger = logging.getLogger(__name__)

# Splash only lands on units that can be engaged at all
SPLASH_IMMUNE = (UnitStatus.GARRISONED, UnitStatus.RECOVERING)


class AttackResolver(CombatResolver):
    """Resolves one attack intent against a unit standing on a tile."""

    def resolve(self, state: GameState, attacker_id: str, target_pos: Position) -> tuple[GameState, CombatReport]:
        attacker = state.require_unit(attacker_id)
        target = state.unit_at(target_pos)
        if target is None:
            raise InvariantViolation(f"{attacker_id} attacked {tuple(target_pos)} but no unit stands there")

        state = state.with_unit(self._spend_attack(attacker))

        if self.book.stats_for(attacker).is_healer:
            return self._heal(state, attacker_id, target)
        return self._strike(state, attacker, target)

    def _spend_attack(self, attacker: Unit) -> Unit:
        stats = self.book.stats_for(attacker)
        ap = attacker.ap
        if attacker.has_moved or stats.drains_ap_on_attack:
            ap = 0
        return replace(attacker, ap=ap, has_attacked=True)

    def _heal(self, state: GameState, medic_id: str, target: Unit) -> tuple[GameState, CombatReport]:
        amount = self.book.stats_for(state.require_unit(medic_id)).heal
        missing = target.max_hp - target.hp
        healed = target.heal(amount)
        state = state.with_unit(healed)

        overflow = max(0, amount - missing)
        medic = state.require_unit(medic_id)
        restored = medic.heal(overflow)
        state = state.with_unit(restored)

        report = CombatReport(
            attacker_id=medic_id,
            defender_id=target.id,
            turn=state.turn,
            result=CombatResult.HEALED,
            healing=healed.hp - target.hp,
            self_healing=restored.hp - medic.hp,
            location=tuple(target.pos),
        )
        return state, report

    def _strike(self, state: GameState, attacker: Unit, target: Unit) -> tuple[GameState, CombatReport]:
        stats = self.book.stats_for(attacker)
        damage = self.calculate_damage(attacker, target, state.morale(attacker.owner))
        state, killed = self.apply_damage(state, target.id, damage)

        report = CombatReport(
            attacker_id=attacker.id,
            defender_id=target.id,
            turn=state.turn,
            result=CombatResult.KILLED if killed else CombatResult.DAMAGED,
            damage=damage,
            location=tuple(target.pos),
        )

        if killed and stats.kill_morale_bonus:
            state = state.with_morale(target.owner, state.morale(target.owner) + stats.kill_morale_bonus)
            report.notes.append(f"morale +{stats.kill_morale_bonus} for {target.owner.value}")

        if not killed and stats.on_hit_buff is not None:
            victim = state.require_unit(target.id)
            buff = Buff(stats.on_hit_buff, duration=self.book.rules.buff_duration)
            state = state.with_unit(victim.with_buff(buff))
            report.buff_applied = stats.on_hit_buff.value

        if stats.splash_damage:
            state = self._splash(state, attacker, target.pos, stats.splash_damage, report)

        return state, report

    def _splash(self, state: GameState, attacker: Unit, center: Position, damage: int, report: CombatReport) -> GameState:
        """Flat damage to enemies on the four tiles around the impact."""
        for tile in orthogonal_neighbors(center):
            unit = state.unit_at(tile)
            if unit is None or unit.owner == attacker.owner or not unit.is_alive:
                continue
            if unit.status in SPLASH_IMMUNE:
                continue
            state, killed = self.apply_damage(state, unit.id, damage)
            report.splash.append(SplashHit(unit.id, damage, killed))
        return state


def describe(report: CombatReport, state: GameState, book: RuleBook) -> list[str]:
    """Event log lines for a resolved attack."""
    def name(unit_id):
        unit = state.require_unit(unit_id)
        return f"{unit.owner.value} {book.stats_for(unit).name}"

    attacker = name(report.attacker_id)
    defender = name(report.defender_id)

    if report.result == CombatResult.HEALED:
        lines = [f"{attacker} healed {defender} for {report.healing}."]
        if report.self_healing:
            lines.append(f"{attacker} recovered {report.self_healing} hp.")
        return lines

    lines = [f"{attacker} hit {defender} for {report.damage}."]
    if report.buff_applied:
        lines.append(f"{defender} is {report.buff_applied.lower()}ed.")
    for hit in report.splash:
        lines.append(f"Splash hit {name(hit.unit_id)} for {hit.damage}.")
    for unit_id in report.kills:
        lines.append(f"{name(unit_id)} is down and evacuated to the safe zone.")
    return lines


def attack(
    state: GameState,
    attacker_id: str,
    target_pos: Position,
    rng: random.Random,
    book: RuleBook,
) -> GameState:
    """Attack (or heal) the unit on target_pos with one of the acting player's units."""
    if state.phase != Phase.GAME_LOOP or state.is_over:
        return reject(state, "attack", f"not in the combat loop ({state.phase.value})")

    attacker = state.unit(attacker_id)
    if attacker is None or attacker.owner != state.current_player:
        return reject(state, "attack", f"{attacker_id} cannot attack for {state.current_player}")

    target_pos = as_position(target_pos)
    if target_pos is None:
        return reject(state, "attack", "malformed target")
    if target_pos not in valid_attack_tiles(state, attacker_id, book):
        return reject(state, "attack", f"{attacker_id} has no target at {tuple(target_pos)}")

    state, report = AttackResolver(book, rng).resolve(state, attacker_id, target_pos)
    logger.info(
        f"{attacker_id} -> {report.defender_id}: {report.result.value} "
        f"(damage {report.damage}, healing {report.healing}, splash {len(report.splash)})"
    )
    return replace(state, selected_unit_id=None).with_log(*describe(report, state, book))
