from dataclasses import dataclass, fields
from typing import Dict, Any


@dataclass
class PlayerSnapshot:
    level: int = 0
    heat: int = 0
    cash: int = 0
    reputation: int = 0
    energy: int = 0
    health: int = 0
    xp: int = 0
    total_earnings: int = 0 # Lifetime positive cash from events

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlayerSnapshot":
        """Builds a snapshot from a save blob, defaulting missing or null fields to 0."""
        values = {}
        for f in fields(cls):
            raw = data.get(f.name)
            values[f.name] = int(raw) if raw is not None else 0
        return cls(**values)

    def to_dict(self) -> Dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
