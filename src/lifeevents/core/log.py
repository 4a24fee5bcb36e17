from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Dict, Any

from .ids import EventId


@dataclass
class AuditEntry:
    type: str
    at: datetime
    event_id: Optional[EventId] = None
    delta: int = 0
    reason: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class AuditLog:
    def __init__(self):
        self.entries: List[AuditEntry] = []

    def add_entry(
        self,
        type: str,
        at: datetime,
        event_id: Optional[EventId] = None,
        delta: int = 0,
        reason: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        entry = AuditEntry(
            type=type,
            at=at,
            event_id=event_id,
            delta=delta,
            reason=reason,
            details=details or {},
        )
        self.entries.append(entry)

    def of_type(self, type: str) -> List[AuditEntry]:
        return [entry for entry in self.entries if entry.type == type]
