from datetime import datetime
from typing import Dict, List

from ..core.log import AuditLog
from ..events.model import EffectType, EventInstance


def format_delta(effect_type: EffectType, delta: int) -> str:
    """Short toast text for a realized resource change, e.g. '+$500' or '-20 HP'."""
    sign = "+" if delta >= 0 else "-"
    amount = abs(delta)
    if effect_type is EffectType.CASH:
        return f"{sign}${amount:,}"
    if effect_type is EffectType.REPUTATION:
        return f"{sign}{amount} Rep"
    if effect_type is EffectType.HEAT:
        return f"{sign}{amount} Heat"
    if effect_type is EffectType.ENERGY:
        return f"{sign}{amount} Energy"
    if effect_type is EffectType.HEALTH:
        return f"{sign}{amount} HP"
    return f"{sign}{amount} XP"


def format_realized(realized: Dict[EffectType, int]) -> str:
    parts = [format_delta(effect_type, delta) for effect_type, delta in realized.items() if delta]
    return ", ".join(parts) if parts else "no change"


def describe_history(history: List[EventInstance], limit: int = 10) -> List[str]:
    lines = []
    for instance in history[:limit]:
        line = f"#{instance.id} {instance.title} [{instance.result.value}]"
        if instance.choice_label:
            line += f" via '{instance.choice_label}'"
        line += f": {format_realized(instance.realized)}"
        lines.append(line)
    return lines


def generate_feed(log: AuditLog, at: datetime) -> str:
    """
    Generates a concise per-tick feed from an AuditLog.
    """
    lines = [f"== {at.strftime('%Y-%m-%d %H:%M')} =="]
    for entry in log.entries:
        reason = entry.reason or ""
        if reason:
            lines.append(f"[{entry.type}] {reason}")
        else:
            lines.append(f"[{entry.type}]")
    return "\n".join(lines) + "\n"
