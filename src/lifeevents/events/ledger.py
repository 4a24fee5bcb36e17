from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Dict, List, Optional

from ..core.errors import InvalidReference
from ..core.ids import EventId
from .model import EffectType, EventInstance, EventResult

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


@dataclass
class EventLedger:
    """
    Per-player event state. Active events are keyed by id in insertion order;
    history is newest first and capped at `history_limit`.
    """
    active: Dict[EventId, EventInstance] = field(default_factory=dict)
    history: List[EventInstance] = field(default_factory=list)
    last_generation_at: Optional[datetime] = None
    next_id: int = 1
    history_limit: int = HISTORY_LIMIT

    def allocate_id(self) -> EventId:
        event_id = EventId(self.next_id)
        self.next_id += 1
        return event_id

    def add_active(self, instance: EventInstance):
        if instance.id in self.active:
            raise ValueError(f"Event {instance.id} is already active.")
        self.active[instance.id] = instance

    def get_active(self, event_id: EventId) -> EventInstance:
        if event_id not in self.active:
            raise InvalidReference(event_id)
        return self.active[event_id]

    def archive(
        self,
        event_id: EventId,
        result: EventResult,
        at: datetime,
        choice_label: Optional[str] = None,
        realized: Optional[Dict[EffectType, int]] = None,
    ) -> EventInstance:
        """Moves one active event into history with its terminal result."""
        instance = self.get_active(event_id)
        self._stamp(instance, result, at, choice_label, realized)
        del self.active[event_id]
        self._push_history(instance)
        return instance

    def record(
        self,
        instance: EventInstance,
        result: EventResult,
        at: datetime,
        realized: Optional[Dict[EffectType, int]] = None,
    ) -> EventInstance:
        """Archives an instance that never entered the active set (auto-apply)."""
        if instance.id in self.active:
            raise ValueError(f"Event {instance.id} is active; use archive().")
        self._stamp(instance, result, at, None, realized)
        self._push_history(instance)
        return instance

    def sweep_expired(self, now: datetime) -> List[EventInstance]:
        """
        Archives every active event whose expiry has passed. The batch goes to
        the head of history as a block, in active order; remaining active
        events keep their order. Running it again at the same `now` is a no-op.
        """
        expired_ids = [event_id for event_id, instance in self.active.items() if instance.is_expired(now)]
        expired = []
        for event_id in expired_ids:
            instance = self.active.pop(event_id)
            self._stamp(instance, EventResult.EXPIRED, now, None, None)
            expired.append(instance)
        if expired:
            self.history[0:0] = expired
            del self.history[self.history_limit:]
            logger.debug("Expired %d event(s): %s", len(expired), expired_ids)
        return expired

    def active_events(self) -> List[EventInstance]:
        return list(self.active.values())

    @staticmethod
    def _stamp(instance, result, at, choice_label, realized):
        if instance.result is not None:
            raise ValueError(f"Event {instance.id} already has result '{instance.result.value}'.")
        instance.result = result
        instance.choice_label = choice_label
        instance.completed_at = at
        instance.realized = dict(realized or {})

    def _push_history(self, instance: EventInstance):
        self.history.insert(0, instance)
        if len(self.history) > self.history_limit:
            del self.history[self.history_limit:]
