from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple

from ..core.ids import EventId


class Category(str, Enum):
    # Declaration order is the selector's walk order
    OPPORTUNITY = "opportunity"
    THREAT = "threat"
    BONUS = "bonus"
    RANDOM = "random"
    POLICE = "police"
    GANG = "gang"


class EffectType(str, Enum):
    CASH = "cash"
    HEAT = "heat"
    REPUTATION = "reputation"
    ENERGY = "energy"
    HEALTH = "health"
    XP = "xp"


class ChoiceAction(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"


class ChoiceEffect(str, Enum):
    AVOID = "avoid"
    PAY = "pay"
    FIGHT = "fight"
    ESCAPE = "escape"
    HEAT = "heat"
    REP_LOSS = "rep_loss"
    REPUTATION = "reputation" # Resolves like an untagged choice


class EventResult(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    DECLINED = "declined"
    IGNORED = "ignored"
    PAID = "paid"
    AVOIDED = "avoided"
    EXPIRED = "expired"
    AUTO = "auto"


@dataclass(frozen=True)
class ChoiceTemplate:
    label: str
    action: ChoiceAction
    success_rate: float = 1.0
    effect: Optional[ChoiceEffect] = None


@dataclass(frozen=True)
class EventTemplate:
    title: str
    description: str
    category: Category
    effect_type: EffectType
    min_value: int
    max_value: int
    duration_minutes: int
    auto_apply: bool = False
    choices: Tuple[ChoiceTemplate, ...] = ()
    level_required: Optional[int] = None
    heat_required: Optional[int] = None


@dataclass
class EventInstance:
    id: EventId
    title: str
    description: str
    category: Category
    effect_type: EffectType
    effect_value: int
    created_at: datetime
    expires_at: Optional[datetime] = None
    auto_apply: bool = False
    choices: Tuple[ChoiceTemplate, ...] = ()

    # Set once, when the instance leaves the active set
    result: Optional[EventResult] = None
    choice_label: Optional[str] = None
    completed_at: Optional[datetime] = None
    realized: Dict[EffectType, int] = field(default_factory=dict)

    @property
    def is_archived(self) -> bool:
        return self.result is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now
