from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import List, Optional

from .clock import Clock, SystemClock
from .config import EngineConfig
from .errors import InvalidChoiceIndex, InvalidReference
from .ids import EventId
from .log import AuditLog
from .player import PlayerSnapshot
from .rng import RandomSource
from ..events.generator import NotificationBridge, maybe_generate, spawn_event
from ..events.ledger import EventLedger
from ..events.model import Category, EventInstance
from ..events.registry import TemplateCatalog, default_catalog
from ..events.resolver import ChoiceOutcome, resolve

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    ledger: EventLedger
    log: AuditLog
    spawned: Optional[EventInstance] = None
    expired: List[EventInstance] = field(default_factory=list)


@dataclass
class Resolution:
    ledger: EventLedger
    snapshot: PlayerSnapshot
    outcome: ChoiceOutcome


class EventEngine:
    """
    Public surface of the life-event engine. Holds only read-only
    collaborators; ledgers, snapshots, timestamps and RNGs are passed per call.
    The clock is only consulted to stamp resolutions made without a `now`.
    """

    def __init__(
        self,
        catalog: Optional[TemplateCatalog] = None,
        config: Optional[EngineConfig] = None,
        notifier: Optional[NotificationBridge] = None,
        clock: Optional[Clock] = None,
    ):
        self.catalog = catalog if catalog is not None else default_catalog()
        self.config = config or EngineConfig()
        self.notifier = notifier
        self.clock = clock or SystemClock()

    def new_ledger(self) -> EventLedger:
        return EventLedger(history_limit=self.config.history_limit)

    def tick(self, ledger: EventLedger, snapshot: PlayerSnapshot, now: datetime, rng: RandomSource) -> TickReport:
        """Sweeps expired events, then maybe spawns one."""
        log = AuditLog()
        expired = self._sweep(ledger, now, log)
        spawned = maybe_generate(ledger, snapshot, now, rng, self.catalog, self.config, log, self.notifier)
        return TickReport(ledger=ledger, log=log, spawned=spawned, expired=expired)

    def force_generate(
        self,
        ledger: EventLedger,
        snapshot: PlayerSnapshot,
        now: datetime,
        rng: RandomSource,
        category: Optional[Category] = None,
    ) -> TickReport:
        """
        Spawns an event right away, skipping the interval gate and the spawn
        roll. The active cap still applies and last_generation_at is untouched.
        """
        log = AuditLog()
        expired = self._sweep(ledger, now, log)
        if len(ledger.active) >= self.config.max_active_events:
            log.add_entry("events.cap_reached", now, reason=f"{len(ledger.active)} events already active.")
            return TickReport(ledger=ledger, log=log, expired=expired)
        spawned = spawn_event(
            ledger, snapshot, now, rng, self.catalog, self.config, log, self.notifier, category=category
        )
        return TickReport(ledger=ledger, log=log, spawned=spawned, expired=expired)

    def resolve_choice(
        self,
        ledger: EventLedger,
        event_id: EventId,
        choice_index: int,
        snapshot: PlayerSnapshot,
        rng: RandomSource,
        now: Optional[datetime] = None,
    ) -> Resolution:
        """
        Resolves a player's choice on an active event and archives it.
        Raises InvalidReference or InvalidChoiceIndex without mutating anything.
        When `now` is given, an event already past its expiry counts as gone.
        """
        instance = ledger.get_active(event_id)
        if now is not None and instance.is_expired(now):
            raise InvalidReference(event_id)
        if not 0 <= choice_index < len(instance.choices):
            raise InvalidChoiceIndex(event_id, choice_index, len(instance.choices))

        choice = instance.choices[choice_index]
        outcome = resolve(instance, choice, snapshot, rng)
        ledger.archive(
            event_id,
            outcome.result,
            now or self.clock.now(),
            choice_label=choice.label,
            realized=outcome.realized,
        )
        logger.debug("Event %s resolved as %s via '%s'", event_id, outcome.result.value, choice.label)
        return Resolution(ledger=ledger, snapshot=snapshot, outcome=outcome)

    def list_active(self, ledger: EventLedger, now: datetime) -> List[EventInstance]:
        ledger.sweep_expired(now)
        return ledger.active_events()

    def list_history(self, ledger: EventLedger) -> List[EventInstance]:
        return list(ledger.history)

    def _sweep(self, ledger: EventLedger, now: datetime, log: AuditLog) -> List[EventInstance]:
        expired = ledger.sweep_expired(now)
        for instance in expired:
            log.add_entry(
                "events.expired",
                now,
                event_id=instance.id,
                reason=f"'{instance.title}' expired unanswered.",
            )
        return expired
