from __future__ import annotations
from datetime import datetime, timedelta
import logging
from typing import TYPE_CHECKING, Optional, Protocol

from ..core.config import EngineConfig
from ..core.log import AuditLog
from ..core.player import PlayerSnapshot
from ..core.rng import RandomSource, chance, pick, roll_int
from .effects import apply_effect
from .eligibility import eligible_templates
from .ledger import EventLedger
from .model import Category, EventInstance, EventResult, EventTemplate
from .selector import category_weights, select_category

if TYPE_CHECKING:
    from .registry import TemplateCatalog

logger = logging.getLogger(__name__)


class NotificationBridge(Protocol):
    def on_event_created(self, instance: EventInstance) -> None:
        ...


def instantiate(template: EventTemplate, ledger: EventLedger, now: datetime, rng: RandomSource) -> EventInstance:
    """Rolls the effect value and builds a self-contained instance with a fresh ledger id."""
    effect_value = roll_int(rng, template.min_value, template.max_value)
    expires_at = None
    if not template.auto_apply:
        expires_at = now + timedelta(minutes=template.duration_minutes)

    return EventInstance(
        id=ledger.allocate_id(),
        title=template.title,
        description=template.description,
        category=template.category,
        effect_type=template.effect_type,
        effect_value=effect_value,
        created_at=now,
        expires_at=expires_at,
        auto_apply=template.auto_apply,
        choices=template.choices,
    )


def _notify(notifier: Optional[NotificationBridge], instance: EventInstance):
    if notifier is None:
        return
    try:
        notifier.on_event_created(instance)
    except Exception:
        # Bridge failures are logged; the spawn stands
        logger.exception("Notification bridge failed for event %s", instance.id)


def spawn_event(
    ledger: EventLedger,
    snapshot: PlayerSnapshot,
    now: datetime,
    rng: RandomSource,
    catalog: TemplateCatalog,
    config: EngineConfig,
    log: AuditLog,
    notifier: Optional[NotificationBridge] = None,
    category: Optional[Category] = None,
) -> Optional[EventInstance]:
    """
    Category pick, eligibility filter, template pick, instantiation and
    auto-apply. Returns None when the chosen category has nothing eligible.
    """
    if category is None:
        weights = category_weights(snapshot, config)
        category = select_category(weights, rng)
        if category is None:
            log.add_entry("events.no_spawn", now, reason="All category weights are zero.")
            return None

    candidates = eligible_templates(catalog.templates_for(category), snapshot)
    if not candidates:
        log.add_entry(
            "events.no_spawn",
            now,
            reason=f"No eligible '{category.value}' templates.",
            details={"category": category.value},
        )
        return None

    template = pick(rng, candidates)
    instance = instantiate(template, ledger, now, rng)

    if template.auto_apply:
        delta = apply_effect(snapshot, instance.effect_type, instance.effect_value)
        ledger.record(instance, EventResult.AUTO, now, realized={instance.effect_type: delta})
        log.add_entry(
            "events.auto_applied",
            now,
            event_id=instance.id,
            delta=delta,
            reason=f"'{instance.title}' applied {delta:+d} {instance.effect_type.value}.",
            details={"category": category.value, "effect_value": instance.effect_value},
        )
        return instance

    ledger.add_active(instance)
    log.add_entry(
        "events.spawned",
        now,
        event_id=instance.id,
        reason=f"'{instance.title}' is active until {instance.expires_at.isoformat()}.",
        details={"category": category.value, "effect_value": instance.effect_value},
    )
    _notify(notifier, instance)
    return instance


def maybe_generate(
    ledger: EventLedger,
    snapshot: PlayerSnapshot,
    now: datetime,
    rng: RandomSource,
    catalog: TemplateCatalog,
    config: EngineConfig,
    log: AuditLog,
    notifier: Optional[NotificationBridge] = None,
) -> Optional[EventInstance]:
    """Time gate, cap check and spawn roll in front of spawn_event."""
    interval = timedelta(minutes=config.min_regeneration_interval_minutes)
    if ledger.last_generation_at is not None and now - ledger.last_generation_at < interval:
        return None

    if len(ledger.active) >= config.max_active_events:
        ledger.last_generation_at = now
        log.add_entry("events.cap_reached", now, reason=f"{len(ledger.active)} events already active.")
        return None

    spawn = chance(rng, config.spawn_chance)
    ledger.last_generation_at = now
    if not spawn:
        log.add_entry("events.no_spawn", now, reason="Spawn roll failed.")
        return None

    return spawn_event(ledger, snapshot, now, rng, catalog, config, log, notifier)
