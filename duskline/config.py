"""
Rule and unit-class configuration.

Loads the capability table and the numeric game rules from YAML schema
files, falling back to built-in defaults when a file is absent.
"""

import logging
from dataclasses import dataclass, fields
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml

from .units import BuffType, UnitClass, UnitType

logger = logging.getLogger(__name__)

DEFAULT_DATA_PATH = Path(__file__).parent / "data"


@dataclass(frozen=True)
class Rules:
    """Numeric rules shared by every phase."""
    squad_size: int = 3  # Per time slot
    trench_options: int = 4
    trench_shape_cells: int = 9
    trench_shape_box: int = 5  # Shapes grow inside a box this wide
    trench_growth_attempts: int = 50
    midgame_trench_turn: int = 5  # Blueprint phase recurs after this turn
    river_jump_cost: int = 2
    rest_heal: int = 20
    recovery_turns: int = 2
    buff_duration: int = 1
    supply_damage: int = 10
    morale_decay: int = 1
    hq_threat_after_turn: int = 5
    hq_threat_penalty: int = 2
    hq_threat_distance: int = 1
    frontline_offset: float = 0.5


DEFAULT_UNIT_TYPES = {
    UnitClass.SNIPER: UnitType(
        unit_class=UnitClass.SNIPER,
        name="Sniper",
        max_hp=100, max_ap=3, range=6, damage=15,
        line_of_sight=True,
        crit_below_hp=50,
        crit_multiplier=2,
        kill_morale_bonus=1,
        description="Double damage on targets under 50 hp. Kills shake enemy morale.",
    ),
    UnitClass.ARMOR: UnitType(
        unit_class=UnitClass.ARMOR,
        name="Armor",
        max_hp=100, max_ap=2, range=3, damage=25,
        on_hit_buff=BuffType.ROOT,
        damage_reduction=10,
        ignores_river_crossing=True,
        description="Hits root the target. Takes 10 less damage.",
    ),
    UnitClass.MACHINE_GUN: UnitType(
        unit_class=UnitClass.MACHINE_GUN,
        name="Machine Gun",
        max_hp=100, max_ap=2, range=4, damage=15,
        line_of_sight=True,
        description="Straight-line fire.",
    ),
    UnitClass.ARTILLERY: UnitType(
        unit_class=UnitClass.ARTILLERY,
        name="Artillery",
        max_hp=100, max_ap=3, range=5, damage=15,
        line_of_sight=True,
        splash_damage=15,
        drains_ap_on_attack=True,
        description="Cross-shaped splash. Cannot move after firing.",
    ),
    UnitClass.SCOUT: UnitType(
        unit_class=UnitClass.SCOUT,
        name="Scout",
        max_hp=100, max_ap=4, range=3, damage=10,
        on_hit_buff=BuffType.SLOW,
        ap_bonus_hp_thresholds=(50, 80),
        description="Hits slow the target. Extra AP while healthy.",
    ),
    UnitClass.MEDIC: UnitType(
        unit_class=UnitClass.MEDIC,
        name="Medic",
        max_hp=100, max_ap=3, range=2, damage=0,
        heal=20,
        description="Heals allies. Overflow heals the medic.",
    ),
}


class RuleBook:
    """Capability table plus numeric rules, loaded from a data directory."""

    def __init__(self, data_path: Path | str = DEFAULT_DATA_PATH):
        self.data_path = Path(data_path)
        self.unit_types: dict[UnitClass, UnitType] = dict(DEFAULT_UNIT_TYPES)
        self.rules = Rules()

        self._load_unit_schema()
        self._load_rules()

    def _load_unit_schema(self):
        """Load unit class definitions from schema."""
        schema_path = self.data_path / "schema" / "units.yaml"
        if not schema_path.exists():
            logger.debug(f"Unit schema not found, using defaults: {schema_path}")
            return

        with open(schema_path) as f:
            data = yaml.safe_load(f) or {}

        for class_id, info in data.get("unit_classes", {}).items():
            try:
                unit_class = UnitClass(class_id.upper())
            except ValueError:
                raise ValueError(f"Unknown unit class in {schema_path}: {class_id}") from None

            buff = info.get("on_hit_buff")
            self.unit_types[unit_class] = UnitType(
                unit_class=unit_class,
                name=info.get("name", class_id.title()),
                max_hp=info.get("max_hp", 100),
                max_ap=info.get("max_ap", 3),
                range=info.get("range", 1),
                damage=info.get("damage", 0),
                heal=info.get("heal", 0),
                line_of_sight=info.get("line_of_sight", False),
                on_hit_buff=BuffType(buff.upper()) if buff else None,
                crit_below_hp=info.get("crit_below_hp"),
                crit_multiplier=info.get("crit_multiplier", 1),
                damage_reduction=info.get("damage_reduction", 0),
                splash_damage=info.get("splash_damage", 0),
                ignores_river_crossing=info.get("ignores_river_crossing", False),
                drains_ap_on_attack=info.get("drains_ap_on_attack", False),
                kill_morale_bonus=info.get("kill_morale_bonus", 0),
                ap_bonus_hp_thresholds=tuple(info.get("ap_bonus_hp_thresholds", ())),
                description=info.get("description", ""),
            )

        logger.info(f"Loaded {len(self.unit_types)} unit classes from {schema_path}")

    def _load_rules(self):
        """Load numeric rule overrides."""
        rules_path = self.data_path / "schema" / "rules.yaml"
        if not rules_path.exists():
            return

        with open(rules_path) as f:
            data = yaml.safe_load(f) or {}

        known = {f.name for f in fields(Rules)}
        overrides = {k: v for k, v in data.get("rules", {}).items() if k in known}
        for key in data.get("rules", {}):
            if key not in known:
                logger.warning(f"Ignoring unknown rule '{key}' in {rules_path}")

        self.rules = Rules(**overrides)

    def unit_type(self, unit_class: UnitClass) -> UnitType:
        return self.unit_types[unit_class]

    def stats_for(self, unit) -> UnitType:
        """Capability entry for a unit instance."""
        return self.unit_types[unit.unit_class]


@lru_cache(maxsize=None)
def default_rulebook(data_path: Optional[str] = None) -> RuleBook:
    """Shared rulebook for the bundled data directory."""
    return RuleBook(data_path or DEFAULT_DATA_PATH)
