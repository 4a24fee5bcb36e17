import random

import pytest
import yaml

from src.lifeevents.core.errors import ConfigurationError
from src.lifeevents.core.player import PlayerSnapshot
from src.lifeevents.core.sim import EventEngine
from src.lifeevents.events.eligibility import is_eligible, eligible_templates
from src.lifeevents.events.model import Category, ChoiceAction, ChoiceEffect, EffectType
from src.lifeevents.events.registry import TemplateCatalog, template_catalog, DEFAULT_CATALOG_PATH


def _minimal_catalog(**template_overrides):
    template = {
        "title": "Hot Tip",
        "description": "Inside information.",
        "effect_type": "cash",
        "min_value": 100,
        "max_value": 200,
        "duration_minutes": 15,
        "choices": [
            {"label": "Take the Job", "action": "accept", "success_rate": 0.7},
            {"label": "Pass", "action": "decline"},
        ],
    }
    template.update(template_overrides)
    return {"version": 1, "categories": {"opportunity": [template]}}


def test_bundled_catalog_loads():
    assert template_catalog.version == 1
    counts = {category: len(template_catalog.templates_for(category)) for category in Category}
    assert counts == {
        Category.OPPORTUNITY: 4,
        Category.THREAT: 4,
        Category.BONUS: 4,
        Category.RANDOM: 3,
        Category.POLICE: 2,
        Category.GANG: 2,
    }
    assert len(template_catalog.all_templates()) == 19


def test_bundled_catalog_parses_choices_and_gates():
    shakedown = next(t for t in template_catalog.templates_for(Category.THREAT) if t.title == "Gang Shakedown")
    assert shakedown.effect_type is EffectType.CASH
    assert (shakedown.min_value, shakedown.max_value) == (-2000, -500)
    assert shakedown.choices[0].action is ChoiceAction.ACCEPT
    assert shakedown.choices[0].effect is ChoiceEffect.PAY
    assert shakedown.choices[0].success_rate == pytest.approx(1.0)
    assert shakedown.choices[1].success_rate == pytest.approx(0.4)

    warrant = next(t for t in template_catalog.templates_for(Category.POLICE) if t.title == "Warrant Check")
    assert warrant.heat_required == 30
    recruitment = next(t for t in template_catalog.templates_for(Category.GANG) if t.title == "Gang Recruitment")
    assert recruitment.level_required == 5

    for template in template_catalog.templates_for(Category.BONUS):
        assert template.auto_apply
        assert template.choices == ()


def test_min_greater_than_max_fails_at_load():
    catalog = TemplateCatalog()
    with pytest.raises(ConfigurationError, match="min_value"):
        catalog.load_from_dict(_minimal_catalog(min_value=500, max_value=100))


@pytest.mark.parametrize("overrides", [
    {"effect_type": "karma"},
    {"duration_minutes": 0},
    {"choices": [{"label": "Maybe", "action": "shrug"}]},
    {"choices": [{"label": "Go", "action": "accept", "effect": "teleport"}]},
    {"choices": [{"label": "Go", "action": "accept", "success_rate": 1.5}]},
    {"choices": []},
    {"auto_apply": True},
    {"level_required": -1},
    {"level_required": True},
    {"min_value": True},
    {"choices": ["Take the Job"]},
    {"choices": {"label": "Go", "action": "accept"}},
    {"choices": [{"label": "Go", "action": "accept", "success_rate": True}]},
])
def test_malformed_templates_are_rejected(overrides):
    catalog = TemplateCatalog()
    with pytest.raises(ConfigurationError):
        catalog.load_from_dict(_minimal_catalog(**overrides))


@pytest.mark.parametrize("data", [
    [{"version": 1}],
    "version: 1",
    {"version": True, "categories": {}},
    {"version": 1, "categories": {"opportunity": ["Hot Tip"]}},
    {"version": 1, "categories": {"opportunity": {"title": "Hot Tip"}}},
])
def test_malformed_catalog_shapes_are_rejected(data):
    catalog = TemplateCatalog()
    with pytest.raises(ConfigurationError):
        catalog.load_from_dict(data)


def test_malformed_catalog_yaml_is_rejected(tmp_path):
    path = tmp_path / "catalog.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ConfigurationError):
        TemplateCatalog().load_from_yaml(path)


def test_engines_do_not_share_the_global_catalog():
    engine = EventEngine()
    assert engine.catalog is not template_catalog
    assert len(engine.catalog.all_templates()) == 19
    assert EventEngine().catalog is not engine.catalog


def test_unknown_category_and_missing_version_are_rejected():
    catalog = TemplateCatalog()
    data = _minimal_catalog()
    data["categories"]["weather"] = data["categories"].pop("opportunity")
    with pytest.raises(ConfigurationError, match="weather"):
        catalog.load_from_dict(data)

    with pytest.raises(ConfigurationError, match="version"):
        catalog.load_from_dict({"categories": {}})


def test_failed_reload_keeps_previous_templates(tmp_path):
    catalog = TemplateCatalog()
    catalog.load_from_dict(_minimal_catalog())

    bad_path = tmp_path / "bad.yaml"
    with open(bad_path, "w") as f:
        yaml.safe_dump(_minimal_catalog(min_value=10, max_value=1), f)
    with pytest.raises(ConfigurationError):
        catalog.load_from_yaml(bad_path)

    assert len(catalog.templates_for(Category.OPPORTUNITY)) == 1
    assert catalog.templates_for(Category.OPPORTUNITY)[0].min_value == 100


def test_empty_yaml_is_rejected(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    with pytest.raises(ConfigurationError):
        TemplateCatalog().load_from_yaml(path)


def test_eligibility_gates():
    recruitment = next(t for t in template_catalog.templates_for(Category.GANG) if t.title == "Gang Recruitment")
    warrant = next(t for t in template_catalog.templates_for(Category.POLICE) if t.title == "Warrant Check")

    assert not is_eligible(recruitment, PlayerSnapshot(level=4))
    assert is_eligible(recruitment, PlayerSnapshot(level=5))
    assert not is_eligible(warrant, PlayerSnapshot(heat=29))
    assert is_eligible(warrant, PlayerSnapshot(heat=30))

    turf_war = next(t for t in template_catalog.templates_for(Category.GANG) if t.title == "Turf War")
    assert eligible_templates(template_catalog.templates_for(Category.GANG), PlayerSnapshot()) == [turf_war]


def test_heat_gated_template_never_eligible_below_threshold():
    warrant = next(t for t in template_catalog.templates_for(Category.POLICE) if t.title == "Warrant Check")
    rng = random.Random(99)
    matches = 0
    for _ in range(1000):
        snapshot = PlayerSnapshot(
            level=rng.randint(0, 50),
            heat=rng.randint(0, 29),
            cash=rng.randint(0, 100_000),
            reputation=rng.randint(0, 500),
        )
        if warrant in eligible_templates(template_catalog.templates_for(Category.POLICE), snapshot):
            matches += 1
    assert matches == 0


def test_eligibility_tolerates_missing_fields():
    class Bare:
        pass

    recruitment = next(t for t in template_catalog.templates_for(Category.GANG) if t.title == "Gang Recruitment")
    turf_war = next(t for t in template_catalog.templates_for(Category.GANG) if t.title == "Turf War")
    assert is_eligible(recruitment, Bare()) is False
    assert is_eligible(turf_war, Bare()) is True


def test_catalog_file_lives_in_data_dir():
    assert DEFAULT_CATALOG_PATH.name == "event_templates.yaml"
    assert DEFAULT_CATALOG_PATH.exists()
