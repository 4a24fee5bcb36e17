from typing import Dict, Optional

from ..core.config import EngineConfig
from ..core.player import PlayerSnapshot
from ..core.rng import RandomSource
from .model import Category


def category_weights(snapshot: PlayerSnapshot, config: EngineConfig) -> Dict[Category, int]:
    """
    Base weights adjusted by player state. A matching rule replaces the
    category's base weight; later rules win over earlier ones.
    """
    weights = {category: config.base_weights.get(category, 0) for category in Category}
    for rule in config.weight_rules:
        if rule.applies(snapshot):
            weights[rule.category] = rule.weight
    return weights


def select_category(weights: Dict[Category, int], rng: RandomSource) -> Optional[Category]:
    """
    Ordered weighted walk: draw r in [0, total), subtract each weight in
    Category declaration order, stop at the first category that brings r to
    or below zero. Consumes exactly one draw when total > 0.
    """
    ordered = [(category, weights.get(category, 0)) for category in Category]
    ordered = [(category, weight) for category, weight in ordered if weight > 0]
    total = sum(weight for _, weight in ordered)
    if total <= 0:
        return None

    r = rng.random() * total
    for category, weight in ordered:
        r -= weight
        if r <= 0:
            return category
    return ordered[-1][0] # Float residue on the last bucket
