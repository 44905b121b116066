from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from .clock import Clock
from .difficulty import DifficultyConfig, DifficultyController
from .game_core import SeededRng
from .interactions import InputEvent
from .scheduler import ChallengeNotification, ChallengeView, EventScheduler, SchedulerConfig
from .scoring import Evaluation, ScoreLedger
from .stages import DEFAULT_STAGES, LifeTimeline, Stage
from .templates import DEFAULT_TEMPLATES, ChallengeTemplate, validate_templates

logger = logging.getLogger(__name__)


class GamePhase(StrEnum):
    READY = "ready"
    PLAYING = "playing"
    FINISHED = "finished"


@dataclass(frozen=True, slots=True)
class GameConfig:
    stages: tuple[Stage, ...] = DEFAULT_STAGES
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    difficulty: DifficultyConfig = field(default_factory=DifficultyConfig)
    adaptive: bool = True

    def __post_init__(self) -> None:
        if not self.stages:
            raise ValueError("stages must not be empty")


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    phase: GamePhase
    stage_id: str | None
    stage_name: str | None
    stage_progress: float
    game_progress: float
    time_left_ms: float
    score: int
    completed_count: int
    difficulty_offset: float
    challenges: tuple[ChallengeView, ...]
    evaluation: Evaluation | None = None


class GameSession:
    """One playthrough: ready -> playing -> finished.

    The owner ticks :meth:`update` with the frame delta and forwards pointer
    input to :meth:`handle_input`. The session ends by itself when the last
    life stage runs out; :meth:`finish` can also be called early.
    """

    def __init__(
        self,
        *,
        timeline: LifeTimeline,
        difficulty: DifficultyController,
        ledger: ScoreLedger,
        scheduler: EventScheduler,
    ) -> None:
        self._timeline = timeline
        self._difficulty = difficulty
        self._ledger = ledger
        self._scheduler = scheduler
        self._phase = GamePhase.READY
        self._evaluation: Evaluation | None = None

    @property
    def phase(self) -> GamePhase:
        return self._phase

    @property
    def timeline(self) -> LifeTimeline:
        return self._timeline

    @property
    def difficulty(self) -> DifficultyController:
        return self._difficulty

    @property
    def ledger(self) -> ScoreLedger:
        return self._ledger

    @property
    def scheduler(self) -> EventScheduler:
        return self._scheduler

    @property
    def evaluation(self) -> Evaluation | None:
        return self._evaluation

    def start(self) -> None:
        if self._phase is GamePhase.PLAYING:
            return
        self._timeline.start()
        self._scheduler.reset()
        self._ledger.reset()
        self._difficulty.reset()
        self._evaluation = None
        self._phase = GamePhase.PLAYING
        logger.info("session started")

    def update(self, dt_ms: float) -> None:
        if self._phase is not GamePhase.PLAYING:
            return
        self._timeline.update(dt_ms)
        self._scheduler.update(dt_ms)
        if self._timeline.is_complete():
            self.finish()

    def handle_input(self, event: InputEvent) -> bool:
        if self._phase is not GamePhase.PLAYING:
            return False
        return self._scheduler.process_interaction(event)

    def drain_notifications(self) -> list[ChallengeNotification]:
        return self._scheduler.drain_notifications()

    def finish(self) -> Evaluation:
        if self._evaluation is not None:
            return self._evaluation
        self._scheduler.pause_generation()
        stats = self._scheduler.stats()
        self._ledger.set_total_possible_events(stats.generated)
        self._evaluation = self._ledger.evaluate()
        self._phase = GamePhase.FINISHED
        logger.info(
            "session finished: %s (%.1f%%, %d/%d, score %d)",
            self._evaluation.tier,
            self._evaluation.percentage,
            self._evaluation.completed_count,
            self._evaluation.total_possible_events,
            self._evaluation.total_score,
        )
        return self._evaluation

    def snapshot(self) -> SessionSnapshot:
        stage = self._timeline.current_stage()
        return SessionSnapshot(
            phase=self._phase,
            stage_id=None if stage is None else stage.id,
            stage_name=None if stage is None else stage.name,
            stage_progress=self._timeline.stage_progress(),
            game_progress=self._timeline.game_progress(),
            time_left_ms=self._timeline.time_left_ms(),
            score=self._ledger.total_score,
            completed_count=self._ledger.completed_count,
            difficulty_offset=self._difficulty.offset,
            challenges=self._scheduler.snapshot() if self._phase is GamePhase.PLAYING else (),
            evaluation=self._evaluation,
        )


def build_game_session(
    *,
    clock: Clock,
    seed: int,
    config: GameConfig | None = None,
    templates: Mapping[str, Sequence[ChallengeTemplate]] | None = None,
) -> GameSession:
    cfg = config or GameConfig()
    catalog = DEFAULT_TEMPLATES if templates is None else templates
    problems = validate_templates(catalog)
    if problems:
        raise ValueError("invalid challenge templates: " + "; ".join(problems))

    timeline = LifeTimeline(cfg.stages)
    difficulty = DifficultyController(cfg.difficulty)
    difficulty.set_enabled(cfg.adaptive)
    ledger = ScoreLedger()
    scheduler = EventScheduler(
        stages=timeline,
        difficulty=difficulty,
        ledger=ledger,
        templates=catalog,
        rng=SeededRng(seed),
        clock=clock,
        config=cfg.scheduler,
    )
    return GameSession(timeline=timeline, difficulty=difficulty, ledger=ledger, scheduler=scheduler)
