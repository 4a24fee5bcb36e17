from typing import List

from ..core.player import PlayerSnapshot
from .model import EventTemplate


def is_eligible(template: EventTemplate, snapshot: PlayerSnapshot) -> bool:
    """Level and heat gating. Missing snapshot values count as 0."""
    level = getattr(snapshot, "level", 0) or 0
    heat = getattr(snapshot, "heat", 0) or 0
    if template.level_required is not None and level < template.level_required:
        return False
    if template.heat_required is not None and heat < template.heat_required:
        return False
    return True


def eligible_templates(templates: List[EventTemplate], snapshot: PlayerSnapshot) -> List[EventTemplate]:
    return [t for t in templates if is_eligible(t, snapshot)]
