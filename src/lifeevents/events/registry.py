import logging
from pathlib import Path
from typing import Dict, List, Any, Optional

import yaml

from ..core.errors import ConfigurationError
from .model import (
    Category,
    ChoiceAction,
    ChoiceEffect,
    ChoiceTemplate,
    EffectType,
    EventTemplate,
)

logger = logging.getLogger(__name__)

DATA_PATH = Path(__file__).parent.parent.parent.parent / "data"
DEFAULT_CATALOG_PATH = DATA_PATH / "event_templates.yaml"


def _enum_value(enum_cls, raw: Any, where: str):
    try:
        return enum_cls(raw)
    except ValueError:
        raise ConfigurationError(f"Unknown {enum_cls.__name__} '{raw}' in {where}.") from None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _optional_int(t_data: Dict[str, Any], key: str, where: str) -> Optional[int]:
    value = t_data.get(key)
    if value is None:
        return None
    if not _is_int(value) or value < 0:
        raise ConfigurationError(f"Invalid '{key}' in {where}: {value}")
    return value


def parse_choice(c_data: Dict[str, Any], where: str) -> ChoiceTemplate:
    if not isinstance(c_data, dict):
        raise ConfigurationError(f"Choice entries must be mappings in {where}: {c_data!r}")
    for key in ("label", "action"):
        if key not in c_data:
            raise ConfigurationError(f"Missing key '{key}' in choice of {where}")

    success_rate = c_data.get("success_rate", 1.0)
    if not isinstance(success_rate, (int, float)) or isinstance(success_rate, bool) or not 0.0 <= success_rate <= 1.0:
        raise ConfigurationError(f"Invalid 'success_rate' in choice '{c_data['label']}' of {where}: {success_rate}")

    effect = c_data.get("effect")
    return ChoiceTemplate(
        label=c_data["label"],
        action=_enum_value(ChoiceAction, c_data["action"], where),
        success_rate=float(success_rate),
        effect=_enum_value(ChoiceEffect, effect, where) if effect is not None else None,
    )


def parse_template(t_data: Dict[str, Any], category: Category, path: Path) -> EventTemplate:
    """Builds and validates one template. Raises ConfigurationError on bad data."""
    if not isinstance(t_data, dict):
        raise ConfigurationError(f"Template entries under '{category.value}' in {path} must be mappings: {t_data!r}")
    where = f"template '{t_data.get('title', 'N/A')}' ({category.value}) in {path}"
    for key in ("title", "description", "effect_type", "min_value", "max_value", "duration_minutes"):
        if key not in t_data:
            raise ConfigurationError(f"Missing key '{key}' in {where}")

    min_value, max_value = t_data["min_value"], t_data["max_value"]
    if not (_is_int(min_value) and _is_int(max_value)):
        raise ConfigurationError(f"Effect bounds must be integers in {where}")
    if min_value > max_value:
        raise ConfigurationError(f"min_value {min_value} > max_value {max_value} in {where}")

    duration = t_data["duration_minutes"]
    if not (_is_int(duration) and duration > 0):
        raise ConfigurationError(f"Invalid 'duration_minutes' in {where}: {duration}")

    auto_apply = bool(t_data.get("auto_apply", False))
    c_list = t_data.get("choices") or []
    if not isinstance(c_list, list):
        raise ConfigurationError(f"'choices' must be a list in {where}")
    choices = tuple(parse_choice(c_data, where) for c_data in c_list)
    if auto_apply and choices:
        raise ConfigurationError(f"Auto-apply {where} must not declare choices")
    if not auto_apply and not choices:
        raise ConfigurationError(f"Interactive {where} has no choices")

    return EventTemplate(
        title=t_data["title"],
        description=t_data["description"],
        category=category,
        effect_type=_enum_value(EffectType, t_data["effect_type"], where),
        min_value=min_value,
        max_value=max_value,
        duration_minutes=duration,
        auto_apply=auto_apply,
        choices=choices,
        level_required=_optional_int(t_data, "level_required", where),
        heat_required=_optional_int(t_data, "heat_required", where),
    )


class TemplateCatalog:
    def __init__(self):
        self.version: int = 0
        self._templates: Dict[Category, List[EventTemplate]] = {}

    def load_from_yaml(self, path: Path):
        with open(path, 'r') as f:
            data = yaml.safe_load(f)

        if data is None:
            raise ConfigurationError(f"YAML file '{path}' is empty or malformed.")
        self.load_from_dict(data, path)

    def load_from_dict(self, data: Dict[str, Any], path: Path = Path("<memory>")):
        if not isinstance(data, dict):
            raise ConfigurationError(f"Top level of {path} must be a mapping.")
        version = data.get("version")
        if not _is_int(version) or version < 1:
            raise ConfigurationError(f"Missing or invalid catalog 'version' in {path}")
        categories = data.get("categories")
        if not isinstance(categories, dict):
            raise ConfigurationError(f"Top level of {path} must define a 'categories' mapping.")

        # Parse everything before swapping in, so a bad file leaves the catalog untouched
        templates: Dict[Category, List[EventTemplate]] = {}
        for category_name, t_list in categories.items():
            category = _enum_value(Category, category_name, str(path))
            if t_list is not None and not isinstance(t_list, list):
                raise ConfigurationError(f"Category '{category_name}' in {path} must hold a list of templates.")
            templates[category] = [parse_template(t_data, category, path) for t_data in t_list or []]

        self.version = version
        self._templates = templates
        logger.info(
            "Loaded event catalog v%d from %s: %d templates",
            version, path, sum(len(t) for t in templates.values()),
        )

    def add(self, template: EventTemplate):
        if template.min_value > template.max_value:
            raise ConfigurationError(f"min_value > max_value in template '{template.title}'")
        self._templates.setdefault(template.category, []).append(template)

    def templates_for(self, category: Category) -> List[EventTemplate]:
        return list(self._templates.get(category, []))

    def categories(self) -> List[Category]:
        return [category for category in Category if category in self._templates]

    def all_templates(self) -> List[EventTemplate]:
        return [t for category in self.categories() for t in self._templates[category]]

    def is_loaded(self) -> bool:
        return bool(self._templates)


# Shared catalog for read-only lookups; engines get their own copy from default_catalog()
template_catalog = TemplateCatalog()


def default_catalog() -> TemplateCatalog:
    """A fresh catalog loaded from the bundled data file, private to its caller."""
    catalog = TemplateCatalog()
    catalog.load_from_yaml(DEFAULT_CATALOG_PATH)
    return catalog
