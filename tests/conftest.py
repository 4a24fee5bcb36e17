from datetime import datetime, timezone
from typing import List

import pytest

from src.lifeevents.core.config import EngineConfig
from src.lifeevents.core.player import PlayerSnapshot
from src.lifeevents.core.sim import EventEngine
from src.lifeevents.events.ledger import EventLedger
from src.lifeevents.events.model import (
    Category,
    ChoiceAction,
    ChoiceEffect,
    ChoiceTemplate,
    EffectType,
    EventInstance,
)
from src.lifeevents.events.registry import template_catalog, DEFAULT_CATALOG_PATH


class ScriptedRng:
    """Returns queued values from random(); fails loudly if a test draws more than it scripted."""

    def __init__(self, values: List[float]):
        self.values = list(values)
        self.draws = 0

    def random(self) -> float:
        if not self.values:
            raise AssertionError("RNG drawn more times than scripted")
        self.draws += 1
        return self.values.pop(0)


@pytest.fixture(autouse=True)
def setup_catalog():
    # Ensure the bundled template catalog is loaded before tests
    if not template_catalog.is_loaded():
        template_catalog.load_from_yaml(DEFAULT_CATALOG_PATH)


@pytest.fixture
def scripted_rng():
    return ScriptedRng


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def snapshot() -> PlayerSnapshot:
    return PlayerSnapshot(level=1, heat=10, cash=1000, reputation=10, energy=50, health=100, xp=0)


@pytest.fixture
def engine() -> EventEngine:
    return EventEngine(config=EngineConfig())


@pytest.fixture
def ledger() -> EventLedger:
    return EventLedger()


@pytest.fixture
def make_event(now):
    """Builds an active-style EventInstance with sensible defaults."""
    def _make(event_id=1, effect_type=EffectType.CASH, effect_value=1000, choices=None, **kwargs):
        if choices is None:
            choices = (
                ChoiceTemplate(label="Take the Job", action=ChoiceAction.ACCEPT, success_rate=0.7),
                ChoiceTemplate(label="Pass", action=ChoiceAction.DECLINE),
            )
        kwargs.setdefault("expires_at", now.replace(hour=13))
        return EventInstance(
            id=event_id,
            title=kwargs.pop("title", f"Event {event_id}"),
            description=kwargs.pop("description", "Something happened."),
            category=kwargs.pop("category", Category.OPPORTUNITY),
            effect_type=effect_type,
            effect_value=effect_value,
            created_at=kwargs.pop("created_at", now),
            choices=tuple(choices),
            **kwargs,
        )
    return _make


@pytest.fixture
def fight_choice() -> ChoiceTemplate:
    return ChoiceTemplate(label="Join the Fight", action=ChoiceAction.ACCEPT, success_rate=0.5, effect=ChoiceEffect.FIGHT)
