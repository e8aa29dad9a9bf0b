# solar_engine_pro/random_source.py

from __future__ import annotations
import random
from typing import Optional, Protocol, Tuple


class RandomSource(Protocol):
    """Anything returning uniform floats in [0, 1]."""

    def random(self) -> float:
        ...


class LCGRandom:
    """
    Linear congruential generator for reproducible runs:
    s = (s * 1103515245 + 12345) & 0x7fffffff
    """

    MULTIPLIER = 1103515245
    INCREMENT = 12345
    MASK = 0x7FFFFFFF

    def __init__(self, seed: int):
        self.state = seed & self.MASK

    def random(self) -> float:
        self.state = (self.state * self.MULTIPLIER + self.INCREMENT) & self.MASK
        return self.state / self.MASK


class SystemRandomSource:
    """Unseeded source backed by the stdlib Mersenne Twister."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def random(self) -> float:
        return self._rng.random()


def random_in_range(source: RandomSource, bounds: Tuple[float, float]) -> float:
    low, high = bounds
    return low + source.random() * (high - low)
