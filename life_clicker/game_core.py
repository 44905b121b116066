from __future__ import annotations

import math
import random
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Point:
    x: float
    y: float

    def distance_to(self, x: float, y: float) -> float:
        return math.hypot(x - self.x, y - self.y)


@dataclass(frozen=True, slots=True)
class Size:
    width: float
    height: float

    @property
    def radius(self) -> float:
        """Bounding radius used for hit-testing."""
        return max(self.width, self.height) / 2.0


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def choice(self, seq: Sequence[T]) -> T:
        return self._rng.choice(seq)

    def uniform(self, a: float, b: float) -> float:
        return self._rng.uniform(a, b)


def clamp(x: float, lo: float, hi: float) -> float:
    return float(lo) if x <= lo else float(hi) if x >= hi else float(x)


def clamp01(x: float) -> float:
    return clamp(x, 0.0, 1.0)
