from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Any, Optional

import yaml

from .errors import ConfigurationError
from ..events.model import Category

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent.parent / "data" / "engine.yaml"

SNAPSHOT_STATS = ("level", "heat", "cash", "reputation", "energy", "health", "xp")


@dataclass(frozen=True)
class WeightRule:
    """Overrides a category's weight when a snapshot stat passes a threshold."""
    category: Category
    stat: str
    weight: int
    above: Optional[int] = None # stat > above
    at_least: Optional[int] = None # stat >= at_least

    def applies(self, snapshot) -> bool:
        value = getattr(snapshot, self.stat, 0) or 0
        if self.above is not None and not value > self.above:
            return False
        if self.at_least is not None and not value >= self.at_least:
            return False
        return True


def _default_weights() -> Dict[Category, int]:
    return {
        Category.OPPORTUNITY: 30,
        Category.THREAT: 15,
        Category.BONUS: 20,
        Category.RANDOM: 15,
        Category.POLICE: 10,
        Category.GANG: 5,
    }


def _default_rules() -> List[WeightRule]:
    return [
        WeightRule(Category.THREAT, "heat", 25, above=50),
        WeightRule(Category.POLICE, "heat", 20, above=30),
        WeightRule(Category.GANG, "level", 15, at_least=3),
    ]


@dataclass
class EngineConfig:
    min_regeneration_interval_minutes: int = 5
    max_active_events: int = 5
    spawn_chance: float = 0.6
    history_limit: int = 50
    base_weights: Dict[Category, int] = field(default_factory=_default_weights)
    weight_rules: List[WeightRule] = field(default_factory=_default_rules)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_rule(r_data: Dict[str, Any], path: Path) -> WeightRule:
    if not isinstance(r_data, dict):
        raise ConfigurationError(f"Weight rules in {path} must be mappings: {r_data!r}")
    for key in ("category", "stat", "weight"):
        if key not in r_data:
            raise ConfigurationError(f"Missing key '{key}' in weight rule in {path}: {r_data}")
    if r_data["stat"] not in SNAPSHOT_STATS:
        raise ConfigurationError(f"Unknown stat '{r_data['stat']}' in weight rule in {path}")
    if not (_is_int(r_data["weight"]) and r_data["weight"] >= 0):
        raise ConfigurationError(f"Invalid weight in weight rule in {path}: {r_data['weight']!r}")
    if ("above" in r_data) == ("at_least" in r_data):
        raise ConfigurationError(f"Weight rule in {path} must define EITHER 'above' OR 'at_least': {r_data}")
    threshold = r_data.get("above", r_data.get("at_least"))
    if not _is_int(threshold):
        raise ConfigurationError(f"Threshold in weight rule in {path} must be an integer: {threshold!r}")
    try:
        category = Category(r_data["category"])
    except ValueError:
        raise ConfigurationError(f"Unknown category '{r_data['category']}' in {path}") from None
    return WeightRule(
        category=category,
        stat=r_data["stat"],
        weight=r_data["weight"],
        above=r_data.get("above"),
        at_least=r_data.get("at_least"),
    )


def load_engine_config(path: Path) -> EngineConfig:
    """Loads engine settings from YAML; keys left out keep their defaults."""
    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Top level of {path} must be a mapping.")

    config = EngineConfig()
    for key in ("min_regeneration_interval_minutes", "max_active_events", "history_limit"):
        if key in data:
            if not (_is_int(data[key]) and data[key] > 0):
                raise ConfigurationError(f"Invalid '{key}' in {path}: {data[key]}")
            setattr(config, key, data[key])

    if "spawn_chance" in data:
        spawn_chance = data["spawn_chance"]
        if isinstance(spawn_chance, bool) or not (
            isinstance(spawn_chance, (int, float)) and 0.0 <= spawn_chance <= 1.0
        ):
            raise ConfigurationError(f"Invalid 'spawn_chance' in {path}: {spawn_chance}")
        config.spawn_chance = float(spawn_chance)

    if "base_weights" in data:
        if not isinstance(data["base_weights"], dict):
            raise ConfigurationError(f"'base_weights' in {path} must be a mapping of category to weight.")
        weights = {}
        for name, weight in data["base_weights"].items():
            try:
                category = Category(name)
            except ValueError:
                raise ConfigurationError(f"Unknown category '{name}' in {path}") from None
            if not (_is_int(weight) and weight >= 0):
                raise ConfigurationError(f"Invalid weight for '{name}' in {path}: {weight}")
            weights[category] = weight
        config.base_weights = weights

    if "weight_rules" in data:
        if not isinstance(data["weight_rules"], list):
            raise ConfigurationError(f"'weight_rules' in {path} must be a list.")
        config.weight_rules = [_parse_rule(r_data, path) for r_data in data["weight_rules"]]

    return config
