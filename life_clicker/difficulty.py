"""Adaptive difficulty controller.

A rolling window of the most recent challenge outcomes drives a bounded
difficulty offset. Once enough samples are in, a high success rate nudges the
offset up and a low one nudges it down; everything the scheduler derives from
the offset (event difficulty, time limits) is clamped to fixed bounds, so the
loop cannot run away.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field

from .game_core import clamp

logger = logging.getLogger(__name__)

MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 5.0

DEFAULT_STAGE_WEIGHTS: Mapping[str, float] = {
    "baby": 1.0,
    "child": 2.0,
    "teen": 3.0,
    "adult": 4.0,
    "elder": 3.0,
}


@dataclass(frozen=True, slots=True)
class DifficultyConfig:
    window_size: int = 10
    min_samples: int = 3
    raise_above: float = 0.8
    lower_below: float = 0.3
    step: float = 0.5
    min_offset: float = -2.0
    max_offset: float = 2.0
    min_time_limit_ms: float = 1000.0
    time_compression: float = 0.15  # fraction of the time limit removed per difficulty level
    stage_weights: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_STAGE_WEIGHTS))

    def __post_init__(self) -> None:
        if self.window_size < 1:
            raise ValueError("window_size must be >= 1")
        if not (1 <= self.min_samples <= self.window_size):
            raise ValueError("min_samples must be in [1, window_size]")
        if not (0.0 <= self.lower_below <= self.raise_above <= 1.0):
            raise ValueError("thresholds must satisfy 0 <= lower_below <= raise_above <= 1")
        if self.step <= 0:
            raise ValueError("step must be > 0")
        if self.min_offset > self.max_offset:
            raise ValueError("min_offset must be <= max_offset")
        if self.min_time_limit_ms < 0:
            raise ValueError("min_time_limit_ms must be >= 0")


@dataclass(frozen=True, slots=True)
class OutcomeRecord:
    success: bool
    difficulty: float
    completion_time_ms: float | None


@dataclass(frozen=True, slots=True)
class PerformanceStats:
    sample_count: int
    success_rate: float
    mean_completion_time_ms: float | None
    consecutive_successes: int
    consecutive_failures: int
    offset: float


class DifficultyController:
    def __init__(self, config: DifficultyConfig | None = None) -> None:
        self._config = config or DifficultyConfig()
        self._window: deque[OutcomeRecord] = deque(maxlen=self._config.window_size)
        self._offset = 0.0
        self._enabled = True
        self._consecutive_successes = 0
        self._consecutive_failures = 0

    @property
    def config(self) -> DifficultyConfig:
        return self._config

    @property
    def offset(self) -> float:
        return self._offset

    @property
    def enabled(self) -> bool:
        return self._enabled

    def samples(self) -> list[OutcomeRecord]:
        return list(self._window)

    def stage_weight(self, stage_id: str | None) -> float:
        if stage_id is None:
            return 1.0
        return float(self._config.stage_weights.get(stage_id, 1.0))

    def record_outcome(self, success: bool, difficulty: float, completion_time_ms: float | None) -> None:
        self._window.append(
            OutcomeRecord(
                success=bool(success),
                difficulty=float(difficulty),
                completion_time_ms=None if completion_time_ms is None else float(completion_time_ms),
            )
        )
        if success:
            self._consecutive_successes += 1
            self._consecutive_failures = 0
        else:
            self._consecutive_failures += 1
            self._consecutive_successes = 0

        self._retune()

    def compute_event_difficulty(self, base_difficulty: float, stage_id: str | None) -> float:
        raw = base_difficulty + self.stage_weight(stage_id) - 1.0 + self._offset
        return clamp(raw, MIN_DIFFICULTY, MAX_DIFFICULTY)

    def adjust_time_limit(self, base_time_limit_ms: float, difficulty: float) -> float:
        cfg = self._config
        d = clamp(difficulty, MIN_DIFFICULTY, MAX_DIFFICULTY)
        factor = max(0.0, 1.0 - cfg.time_compression * (d - 1.0))
        return max(cfg.min_time_limit_ms, float(base_time_limit_ms) * factor)

    def current_difficulty(self, stage_id: str | None) -> float:
        return clamp(self.stage_weight(stage_id) + self._offset, MIN_DIFFICULTY, MAX_DIFFICULTY)

    def performance_stats(self) -> PerformanceStats:
        n = len(self._window)
        successes = [r for r in self._window if r.success]
        times = [r.completion_time_ms for r in successes if r.completion_time_ms is not None]
        return PerformanceStats(
            sample_count=n,
            success_rate=0.0 if n == 0 else len(successes) / n,
            mean_completion_time_ms=None if not times else sum(times) / len(times),
            consecutive_successes=self._consecutive_successes,
            consecutive_failures=self._consecutive_failures,
            offset=self._offset,
        )

    def set_offset(self, offset: float) -> None:
        self._offset = clamp(offset, self._config.min_offset, self._config.max_offset)

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = bool(enabled)

    def reset(self) -> None:
        self._window.clear()
        self._offset = 0.0
        self._consecutive_successes = 0
        self._consecutive_failures = 0

    def _retune(self) -> None:
        cfg = self._config
        n = len(self._window)
        if not self._enabled or n < cfg.min_samples:
            return

        success_rate = sum(1 for r in self._window if r.success) / n
        old = self._offset
        if success_rate > cfg.raise_above:
            self._offset = clamp(old + cfg.step, cfg.min_offset, cfg.max_offset)
        elif success_rate < cfg.lower_below:
            self._offset = clamp(old - cfg.step, cfg.min_offset, cfg.max_offset)

        if self._offset != old:
            logger.debug("difficulty offset %.2f -> %.2f (success rate %.2f over %d)", old, self._offset, success_rate, n)
