from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Stage:
    id: str
    name: str
    difficulty_weight: float
    start_time_ms: float
    duration_ms: float

    @property
    def end_time_ms(self) -> float:
        return self.start_time_ms + self.duration_ms

    def contains(self, game_time_ms: float) -> bool:
        return self.start_time_ms <= game_time_ms < self.end_time_ms

    def progress(self, game_time_ms: float) -> float:
        if game_time_ms < self.start_time_ms:
            return 0.0
        if game_time_ms >= self.end_time_ms:
            return 1.0
        return (game_time_ms - self.start_time_ms) / self.duration_ms

    def remaining_ms(self, game_time_ms: float) -> float:
        if game_time_ms < self.start_time_ms:
            return self.duration_ms
        return max(0.0, self.end_time_ms - game_time_ms)


class StageProvider(Protocol):
    """Source of the current life stage consumed by the scheduler."""

    def current_stage(self) -> Stage | None:
        ...

    def is_active(self) -> bool:
        ...


DEFAULT_STAGES: tuple[Stage, ...] = (
    Stage("baby", "Infancy", 1.0, 0.0, 15_000.0),
    Stage("child", "Childhood", 2.0, 15_000.0, 20_000.0),
    Stage("teen", "Adolescence", 3.0, 35_000.0, 20_000.0),
    Stage("adult", "Adulthood", 4.0, 55_000.0, 30_000.0),
    Stage("elder", "Old age", 3.0, 85_000.0, 15_000.0),
)


class LifeTimeline:
    """Game clock that walks through the ordered life stages.

    Implements :class:`StageProvider`. Game time only advances while the
    timeline is active; reaching the end of the last stage ends the game.
    """

    def __init__(self, stages: tuple[Stage, ...] = DEFAULT_STAGES) -> None:
        if not stages:
            raise ValueError("stages must not be empty")
        ordered = tuple(sorted(stages, key=lambda s: s.start_time_ms))
        for s in ordered:
            if s.duration_ms <= 0:
                raise ValueError(f"stage {s.id!r} must have a positive duration")
        self._stages = ordered
        self._total_ms = max(s.end_time_ms for s in ordered)
        self._game_time_ms = 0.0
        self._current: Stage | None = None
        self._active = False
        self._complete = False

    @property
    def game_time_ms(self) -> float:
        return self._game_time_ms

    @property
    def total_duration_ms(self) -> float:
        return self._total_ms

    def stages(self) -> tuple[Stage, ...]:
        return self._stages

    def stage_by_id(self, stage_id: str) -> Stage | None:
        for s in self._stages:
            if s.id == stage_id:
                return s
        return None

    def stage_for_time(self, game_time_ms: float) -> Stage:
        for s in reversed(self._stages):
            if game_time_ms >= s.start_time_ms:
                return s
        return self._stages[0]

    def start(self) -> None:
        self._game_time_ms = 0.0
        self._active = True
        self._complete = False
        self._current = self._stages[0]
        logger.debug("timeline started in stage %s", self._current.id)

    def reset(self) -> None:
        self._game_time_ms = 0.0
        self._active = False
        self._complete = False
        self._current = None

    def update(self, dt_ms: float) -> None:
        if not self._active or self._complete:
            return
        if dt_ms < 0:
            raise ValueError("dt_ms must be non-negative")

        self._game_time_ms += dt_ms
        stage = self.stage_for_time(self._game_time_ms)
        if self._current is None or stage.id != self._current.id:
            logger.debug(
                "stage transition %s -> %s at %.0f ms",
                None if self._current is None else self._current.id,
                stage.id,
                self._game_time_ms,
            )
            self._current = stage

        if self._game_time_ms >= self._total_ms:
            self._active = False
            self._complete = True
            logger.debug("timeline complete at %.0f ms", self._game_time_ms)

    def current_stage(self) -> Stage | None:
        return self._current

    def is_active(self) -> bool:
        return self._active

    def is_complete(self) -> bool:
        return self._complete

    def stage_progress(self) -> float:
        if self._current is None:
            return 0.0
        return self._current.progress(self._game_time_ms)

    def game_progress(self) -> float:
        return min(1.0, self._game_time_ms / self._total_ms)

    def time_left_ms(self) -> float:
        return max(0.0, self._total_ms - self._game_time_ms)
