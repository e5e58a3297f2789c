"""
Combat resolution for the main loop.

Targeting decides which tiles a unit may fire on; the resolver applies
damage, heals, splash and knock-outs.
"""

from .base import CombatReport, CombatResolver, CombatResult, knock_out
from .resolver import AttackResolver, attack
from .targeting import can_attack, valid_attack_tiles

__all__ = [
    "CombatReport",
    "CombatResolver",
    "CombatResult",
    "AttackResolver",
    "attack",
    "can_attack",
    "knock_out",
    "valid_attack_tiles",
]
