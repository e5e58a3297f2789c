"""
Unit model for the Duskline rules engine.

Handles:
- Sides, time-of-day and unit status enums
- Per-class capability table entries (UnitType)
- The immutable Unit record and its small query helpers
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from .map import P1_HQ, P1_SAFE_X, P2_HQ, P2_SAFE_X, RIVER_X, Position


class Player(Enum):
    P1 = "P1"
    P2 = "P2"

    @property
    def opponent(self) -> "Player":
        return Player.P2 if self is Player.P1 else Player.P1

    @property
    def safe_x(self) -> int:
        """Home column; also where knocked-out units recover."""
        return P1_SAFE_X if self is Player.P1 else P2_SAFE_X

    @property
    def hq(self) -> Position:
        return P1_HQ if self is Player.P1 else P2_HQ

    def in_safe_zone(self, pos: Position) -> bool:
        return pos.x == self.safe_x

    def owns_half(self, pos: Position) -> bool:
        """Own side of the river."""
        return pos.x < RIVER_X if self is Player.P1 else pos.x > RIVER_X


class TimeOfDay(Enum):
    DAY = "DAY"
    NIGHT = "NIGHT"

    @property
    def flipped(self) -> "TimeOfDay":
        return TimeOfDay.NIGHT if self is TimeOfDay.DAY else TimeOfDay.DAY


class UnitClass(Enum):
    SNIPER = "SNIPER"
    ARMOR = "ARMOR"
    MACHINE_GUN = "MACHINE_GUN"
    ARTILLERY = "ARTILLERY"
    SCOUT = "SCOUT"
    MEDIC = "MEDIC"


class UnitStatus(Enum):
    ACTIVE = "ACTIVE"          # Fighting this half of the round
    GARRISONED = "GARRISONED"  # Off-shift, invulnerable
    RECOVERING = "RECOVERING"  # Knocked out, waiting in the safe zone
    DONE = "DONE"


class BuffType(Enum):
    ROOT = "ROOT"    # Cannot attack
    SLOW = "SLOW"
    MORALE_DOWN = "MORALE_DOWN"
    SUPPLY_SHORTAGE = "SUPPLY_SHORTAGE"


@dataclass(frozen=True)
class Buff:
    """Timed status effect on a unit."""
    type: BuffType
    duration: int = 1
    value: Optional[int] = None


@dataclass(frozen=True)
class UnitType:
    """Capability table entry for one unit class."""
    unit_class: UnitClass
    name: str
    max_hp: int
    max_ap: int
    range: int
    damage: int
    heal: int = 0  # Non-zero turns the attack into a heal on allies
    line_of_sight: bool = False  # Needs an aligned, unobstructed line
    on_hit_buff: Optional[BuffType] = None
    crit_below_hp: Optional[int] = None
    crit_multiplier: int = 1
    damage_reduction: int = 0  # Subtracted from incoming damage
    splash_damage: int = 0
    ignores_river_crossing: bool = False
    drains_ap_on_attack: bool = False
    kill_morale_bonus: int = 0  # Extra morale stack given to the victim's side
    ap_bonus_hp_thresholds: tuple[int, ...] = ()
    description: str = ""

    @property
    def is_healer(self) -> bool:
        return self.heal > 0

    def max_ap_for_hp(self, hp: int) -> int:
        """Base AP plus one for every hp threshold reached."""
        bonus = sum(1 for threshold in self.ap_bonus_hp_thresholds if hp >= threshold)
        return self.max_ap + bonus


# Deployment has not happened yet
UNPLACED = Position(-1, -1)


@dataclass(frozen=True)
class Unit:
    """A single squad member. Never removed from the game once drafted."""
    id: str
    unit_class: UnitClass
    owner: Player
    assigned_time: TimeOfDay
    hp: int
    max_hp: int
    ap: int
    max_ap: int
    pos: Position = UNPLACED
    start_pos: Position = UNPLACED
    status: UnitStatus = UnitStatus.GARRISONED
    recovery_turns: int = 0
    buffs: tuple[Buff, ...] = field(default_factory=tuple)
    has_moved: bool = False
    has_attacked: bool = False
    crossed_river: bool = False
    is_resting: bool = False

    @property
    def is_alive(self) -> bool:
        return self.hp > 0

    @property
    def is_active(self) -> bool:
        return self.status == UnitStatus.ACTIVE and self.hp > 0

    @property
    def is_placed(self) -> bool:
        return self.pos != UNPLACED

    def has_buff(self, buff_type: BuffType) -> bool:
        return any(b.type == buff_type for b in self.buffs)

    def with_buff(self, buff: Buff) -> "Unit":
        return replace(self, buffs=self.buffs + (buff,))

    def heal(self, amount: int) -> "Unit":
        return replace(self, hp=min(self.max_hp, self.hp + amount))

    def clear_turn_flags(self) -> "Unit":
        return replace(
            self,
            has_moved=False,
            has_attacked=False,
            crossed_river=False,
            is_resting=False,
            buffs=(),
        )


def unit_id_for(owner: Player, time: TimeOfDay, unit_class: UnitClass) -> str:
    """Ids are unique because a class is drafted at most once per player."""
    return f"{owner.value}-{time.value}-{unit_class.value}"


def create_unit(unit_type: UnitType, owner: Player, time: TimeOfDay) -> Unit:
    """Instantiate a freshly drafted, unplaced unit."""
    return Unit(
        id=unit_id_for(owner, time, unit_type.unit_class),
        unit_class=unit_type.unit_class,
        owner=owner,
        assigned_time=time,
        hp=unit_type.max_hp,
        max_hp=unit_type.max_hp,
        ap=unit_type.max_ap,
        max_ap=unit_type.max_ap,
    )
