from typing import Callable, Dict

from ..core.player import PlayerSnapshot
from .model import EffectType


def _floor_zero(current: int, value: int) -> int:
    return max(0, current + value)


def _clamp_percent(current: int, value: int) -> int:
    return max(0, min(100, current + value))


_RULES: Dict[EffectType, Callable[[int, int], int]] = {
    EffectType.CASH: _floor_zero,
    EffectType.XP: _floor_zero,
    EffectType.REPUTATION: _floor_zero,
    EffectType.HEAT: _clamp_percent,
    EffectType.HEALTH: _clamp_percent,
    EffectType.ENERGY: _clamp_percent,
}


def apply_effect(snapshot: PlayerSnapshot, effect_type: EffectType, value: int) -> int:
    """
    Applies a resource delta to the snapshot in place and returns the
    realized delta after clamping.
    """
    rule = _RULES[effect_type]
    stat = effect_type.value
    current = getattr(snapshot, stat, 0) or 0
    updated = rule(current, value)
    setattr(snapshot, stat, updated)

    if effect_type is EffectType.CASH and value > 0:
        snapshot.total_earnings = (snapshot.total_earnings or 0) + value

    return updated - current
