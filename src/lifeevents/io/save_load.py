import json
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Callable

from ..core.errors import PersistenceFailure
from ..core.ids import EventId
from ..events.ledger import EventLedger, HISTORY_LIMIT
from ..events.model import (
    Category,
    ChoiceAction,
    ChoiceEffect,
    ChoiceTemplate,
    EffectType,
    EventInstance,
    EventResult,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def choice_to_dict(choice: ChoiceTemplate) -> Dict[str, Any]:
    return {
        "label": choice.label,
        "action": choice.action.value,
        "success_rate": choice.success_rate,
        "effect": choice.effect.value if choice.effect else None,
    }


def instance_to_dict(instance: EventInstance) -> Dict[str, Any]:
    return {
        "id": instance.id,
        "title": instance.title,
        "description": instance.description,
        "category": instance.category.value,
        "effect_type": instance.effect_type.value,
        "effect_value": instance.effect_value,
        "created_at": _ts(instance.created_at),
        "expires_at": _ts(instance.expires_at),
        "auto_apply": instance.auto_apply,
        "choices": [choice_to_dict(c) for c in instance.choices],
        "result": instance.result.value if instance.result else None,
        "choice_label": instance.choice_label,
        "completed_at": _ts(instance.completed_at),
        "realized": {effect_type.value: delta for effect_type, delta in instance.realized.items()},
    }


def instance_from_dict(data: Dict[str, Any]) -> EventInstance:
    choices = tuple(
        ChoiceTemplate(
            label=c_data["label"],
            action=ChoiceAction(c_data["action"]),
            success_rate=c_data.get("success_rate", 1.0),
            effect=ChoiceEffect(c_data["effect"]) if c_data.get("effect") else None,
        )
        for c_data in data.get("choices", [])
    )
    return EventInstance(
        id=EventId(data["id"]),
        title=data["title"],
        description=data.get("description", ""),
        category=Category(data["category"]),
        effect_type=EffectType(data["effect_type"]),
        effect_value=data["effect_value"],
        created_at=_parse_ts(data["created_at"]),
        expires_at=_parse_ts(data.get("expires_at")),
        auto_apply=data.get("auto_apply", False),
        choices=choices,
        result=EventResult(data["result"]) if data.get("result") else None,
        choice_label=data.get("choice_label"),
        completed_at=_parse_ts(data.get("completed_at")),
        realized={EffectType(k): v for k, v in data.get("realized", {}).items()},
    )


def to_dict(ledger: EventLedger) -> Dict[str, Any]:
    """Converts an EventLedger to a dictionary for serialization."""
    return {
        "schema_version": SCHEMA_VERSION,
        "next_id": ledger.next_id,
        "last_generation_at": _ts(ledger.last_generation_at),
        "history_limit": ledger.history_limit,
        "active": [instance_to_dict(i) for i in ledger.active.values()],
        "history": [instance_to_dict(i) for i in ledger.history],
    }


# --- Migrations ---

def _migrate_legacy_event(e_data: Dict[str, Any]) -> Dict[str, Any]:
    auto_apply = bool(e_data.get("autoApply", False))
    result = e_data.get("result")
    if result == "completed": # Fallthrough result of old clients
        result = EventResult.SUCCESS.value
    return {
        "id": e_data["id"],
        "title": e_data.get("title", ""),
        "description": e_data.get("description", ""),
        "category": e_data.get("type", Category.RANDOM.value),
        "effect_type": e_data["effect_type"],
        "effect_value": int(e_data.get("effect_value", 0)),
        "created_at": e_data.get("created_at") or e_data.get("expires_at"),
        "expires_at": None if auto_apply else e_data.get("expires_at"),
        "auto_apply": auto_apply,
        "choices": [
            {
                "label": c_data.get("label", ""),
                "action": c_data.get("action", ChoiceAction.DECLINE.value),
                "success_rate": c_data.get("successRate", 1.0),
                "effect": c_data.get("effect"),
            }
            for c_data in e_data.get("choices") or []
        ],
        "result": result,
        "choice_label": e_data.get("choice_made"),
        "completed_at": e_data.get("completed_at"),
        "realized": {},
    }


def _migrate_v1_to_v2(data: Dict[str, Any]) -> Dict[str, Any]:
    """v1 is the browser client's save blob: camelCase keys and epoch-millisecond generation time."""
    last_ms = data.get("lastEventGeneration") or 0
    last_generation_at = None
    if last_ms:
        last_generation_at = datetime.fromtimestamp(last_ms / 1000.0, tz=timezone.utc).isoformat()
    return {
        "schema_version": 2,
        "next_id": data.get("nextEventId", 1),
        "last_generation_at": last_generation_at,
        "history_limit": HISTORY_LIMIT,
        "active": [_migrate_legacy_event(e) for e in data.get("active") or []],
        "history": [_migrate_legacy_event(e) for e in data.get("history") or []],
    }


MIGRATIONS: Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    1: _migrate_v1_to_v2,
}


def migrate(data: Dict[str, Any]) -> Dict[str, Any]:
    """Upgrades a ledger blob to SCHEMA_VERSION. Blobs without a version are v1."""
    version = data.get("schema_version", 1)
    if version > SCHEMA_VERSION:
        raise PersistenceFailure(f"Ledger schema v{version} is newer than supported v{SCHEMA_VERSION}.")
    while version < SCHEMA_VERSION:
        logger.info("Migrating ledger schema v%d -> v%d", version, version + 1)
        data = MIGRATIONS[version](data)
        version = data["schema_version"]
    return data


def from_dict(data: Dict[str, Any]) -> EventLedger:
    """Creates an EventLedger from a dictionary, migrating older schemas first."""
    data = migrate(data)
    active = {}
    for e_data in data.get("active", []):
        instance = instance_from_dict(e_data)
        active[instance.id] = instance

    return EventLedger(
        active=active,
        history=[instance_from_dict(e_data) for e_data in data.get("history", [])],
        last_generation_at=_parse_ts(data.get("last_generation_at")),
        next_id=data.get("next_id", 1),
        history_limit=data.get("history_limit", HISTORY_LIMIT),
    )


def save_to_json(ledger: EventLedger, path: str):
    with open(path, 'w') as f:
        json.dump(to_dict(ledger), f, indent=2)


def load_from_json(path: str) -> EventLedger:
    with open(path, 'r') as f:
        data = json.load(f)
    return from_dict(data)
