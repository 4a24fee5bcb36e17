from dataclasses import dataclass, field
from typing import Dict, Optional

from ..core.ids import EventId
from ..core.player import PlayerSnapshot
from ..core.rng import RandomSource, chance
from .effects import apply_effect
from .model import ChoiceAction, ChoiceEffect, ChoiceTemplate, EffectType, EventInstance, EventResult

FIGHT_HEALTH_PENALTY = 20
FIGHT_CASH_PENALTY = 500
DECLINE_REPUTATION_PENALTY = 5


@dataclass
class ChoiceOutcome:
    event_id: EventId
    result: EventResult
    choice_label: Optional[str] = None
    realized: Dict[EffectType, int] = field(default_factory=dict)
    reason: str = ""


def resolve(
    instance: EventInstance,
    choice: ChoiceTemplate,
    snapshot: PlayerSnapshot,
    rng: RandomSource,
) -> ChoiceOutcome:
    """
    Decides the terminal result of a choice and applies its resource changes
    to the snapshot. Does not touch the ledger.

    Tag rows win over action rows: `pay` and `avoid`/`escape` resolve the same
    way whichever action carries them. Only `accept` without such a tag draws
    from the RNG.
    """
    outcome = ChoiceOutcome(event_id=instance.id, result=EventResult.FAILED, choice_label=choice.label)
    realized = outcome.realized

    if choice.effect is ChoiceEffect.PAY:
        cost = abs(instance.effect_value)
        realized[EffectType.CASH] = apply_effect(snapshot, EffectType.CASH, -cost)
        outcome.result = EventResult.PAID
        outcome.reason = f"Paid {cost}."

    elif choice.effect in (ChoiceEffect.AVOID, ChoiceEffect.ESCAPE):
        outcome.result = EventResult.AVOIDED
        outcome.reason = "Crisis averted."

    elif choice.action is ChoiceAction.DECLINE:
        if choice.effect is ChoiceEffect.HEAT:
            realized[EffectType.HEAT] = apply_effect(snapshot, EffectType.HEAT, abs(instance.effect_value))
            outcome.result = EventResult.IGNORED
            outcome.reason = "Ignoring the threat drew attention."
        elif choice.effect is ChoiceEffect.REP_LOSS:
            realized[EffectType.REPUTATION] = apply_effect(
                snapshot, EffectType.REPUTATION, -DECLINE_REPUTATION_PENALTY
            )
            outcome.result = EventResult.DECLINED
            outcome.reason = "Turning them down cost reputation."
        else:
            # Declining is free, threats included
            outcome.result = EventResult.DECLINED
            outcome.reason = "Event declined."

    elif chance(rng, choice.success_rate):
        realized[instance.effect_type] = apply_effect(snapshot, instance.effect_type, instance.effect_value)
        outcome.result = EventResult.SUCCESS
        outcome.reason = "Choice succeeded."

    elif choice.effect is ChoiceEffect.FIGHT:
        realized[EffectType.HEALTH] = apply_effect(snapshot, EffectType.HEALTH, -FIGHT_HEALTH_PENALTY)
        realized[EffectType.CASH] = apply_effect(snapshot, EffectType.CASH, -FIGHT_CASH_PENALTY)
        outcome.reason = "Fight lost."

    elif instance.effect_type is EffectType.CASH and instance.effect_value > 0:
        outcome.reason = "Failed, no reward."

    else:
        outcome.reason = "That didn't work out."

    return outcome
