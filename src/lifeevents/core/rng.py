import random
from typing import Protocol, Sequence, TypeVar

T = TypeVar("T")


class RandomSource(Protocol):
    """Anything exposing random() -> float in [0, 1). random.Random qualifies."""

    def random(self) -> float:
        ...


def get_seeded_rng(seed: int) -> random.Random:
    """Returns a new random.Random instance seeded with the given integer."""
    return random.Random(seed)


def chance(rng: RandomSource, probability: float) -> bool:
    """Bernoulli trial. Consumes exactly one draw."""
    return rng.random() < probability


def roll_int(rng: RandomSource, low: int, high: int) -> int:
    """Uniform integer over the inclusive range [low, high], one draw."""
    span = high - low + 1
    return low + min(int(rng.random() * span), span - 1)


def pick(rng: RandomSource, items: Sequence[T]) -> T:
    """Uniform choice over a non-empty sequence, one draw."""
    index = min(int(rng.random() * len(items)), len(items) - 1)
    return items[index]
