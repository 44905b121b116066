"""Event scheduler: spawns, times out and retires challenges.

The scheduler is ticked by its owner. Each tick first retires challenges whose
time ran out, then advances the generation cadence and, if there is room under
the concurrency cap, spawns a new challenge from the current stage's template
pool. Input is routed to at most one challenge per call (first claim in
insertion order). Outcomes are reported synchronously to the difficulty
controller and the score ledger, and queued as notifications for the UI.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .challenge import Challenge, MovementBounds, Urgency
from .clock import Clock
from .difficulty import DifficultyController
from .game_core import Point, SeededRng
from .interactions import InputEvent, MovingTarget, TargetSpec, ValidatorRegistry
from .scoring import ScoreLedger, ScoreRecord
from .stages import Stage, StageProvider
from .templates import ChallengeTemplate, PointArea, fill_random_points, scale_target

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SchedulerConfig:
    generation_interval_ms: float = 2000.0
    max_active: int = 3
    field_width: float = 800.0
    field_height: float = 600.0
    margin: float = 100.0
    scale_targets: bool = True

    def __post_init__(self) -> None:
        if self.generation_interval_ms <= 0:
            raise ValueError("generation_interval_ms must be > 0")
        if self.max_active < 1:
            raise ValueError("max_active must be >= 1")
        if self.field_width <= 0 or self.field_height <= 0:
            raise ValueError("field dimensions must be > 0")
        if self.margin < 0:
            raise ValueError("margin must be >= 0")
        if 2 * self.margin > self.field_width or 2 * self.margin > self.field_height:
            raise ValueError("margin leaves no room to spawn inside the field")


@dataclass(frozen=True, slots=True)
class ChallengeNotification:
    id: str
    name: str
    success: bool


@dataclass(frozen=True, slots=True)
class ChallengeView:
    """Read-only rendering data for one active challenge."""

    id: str
    name: str
    kind: str
    position: Point
    target: TargetSpec
    progress: float
    time_remaining_ratio: float
    urgency: Urgency


@dataclass(frozen=True, slots=True)
class SchedulerStats:
    generated: int
    completed: int
    failed: int
    active: int
    completion_rate: float  # completed / (completed + failed)


class EventScheduler:
    def __init__(
        self,
        *,
        stages: StageProvider,
        difficulty: DifficultyController,
        ledger: ScoreLedger,
        templates: Mapping[str, Sequence[ChallengeTemplate]],
        rng: SeededRng,
        clock: Clock,
        config: SchedulerConfig | None = None,
        registry: ValidatorRegistry | None = None,
    ) -> None:
        self._stages = stages
        self._difficulty = difficulty
        self._ledger = ledger
        self._templates = templates
        self._rng = rng
        self._clock = clock
        self._config = config or SchedulerConfig()
        self._registry = registry

        self._active: list[Challenge] = []
        self._notifications: list[ChallengeNotification] = []
        self._since_generation_ms = 0.0
        self._game_time_ms = 0.0
        self._paused = False
        self._next_id = 1
        self._generated = 0
        self._completed = 0
        self._failed = 0

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def game_time_ms(self) -> float:
        return self._game_time_ms

    @property
    def is_generation_paused(self) -> bool:
        return self._paused

    def active_challenges(self) -> list[Challenge]:
        return list(self._active)

    def active_count(self) -> int:
        return len(self._active)

    def update(self, dt_ms: float) -> None:
        if dt_ms < 0:
            raise ValueError("dt_ms must be non-negative")

        # Expired challenges go first so their slots are free for admission.
        for challenge in list(self._active):
            challenge.update(dt_ms)
            if challenge.is_failed:
                self._retire_failed(challenge)

        self._since_generation_ms += dt_ms
        self._game_time_ms += dt_ms

        if self._since_generation_ms < self._config.generation_interval_ms:
            return
        if self._paused or len(self._active) >= self._config.max_active:
            return
        if not self._stages.is_active():
            return
        stage = self._stages.current_stage()
        if stage is None:
            return

        self.generate(stage)
        self._since_generation_ms = 0.0

    def generate(self, stage: Stage) -> Challenge | None:
        pool = self._templates.get(stage.id, ())
        if not pool:
            logger.debug("no templates for stage %s", stage.id)
            return None

        template = self._rng.choice(pool)
        difficulty = self._difficulty.compute_event_difficulty(template.difficulty, stage.id)
        time_limit_ms = self._difficulty.adjust_time_limit(template.time_limit_ms, difficulty)
        cfg = self._config
        area = self._point_area()
        target = fill_random_points(template.target, self._rng, area)
        if cfg.scale_targets:
            target = scale_target(target, template.kind, difficulty, rng=self._rng, area=area)

        position = Point(
            self._rng.uniform(cfg.margin, cfg.field_width - cfg.margin),
            self._rng.uniform(cfg.margin, cfg.field_height - cfg.margin),
        )
        velocity: Point | None = None
        bounds: MovementBounds | None = None
        if isinstance(target, MovingTarget):
            angle = self._rng.uniform(0.0, 2.0 * math.pi)
            velocity = Point(math.cos(angle) * target.speed, math.sin(angle) * target.speed)
            r = target.size.radius
            bounds = MovementBounds(r, r, cfg.field_width - r, cfg.field_height - r)

        challenge = Challenge(
            challenge_id=f"challenge-{self._next_id}",
            name=template.name,
            kind=template.kind,
            difficulty=difficulty,
            time_limit_ms=time_limit_ms,
            points=template.points,
            position=position,
            target=target,
            started_at_ms=self._clock.now_ms(),
            stage_id=stage.id,
            velocity=velocity,
            bounds=bounds,
            registry=self._registry,
        )
        self._next_id += 1
        self._generated += 1
        self._active.append(challenge)
        logger.debug(
            "spawned %s %r (%s, difficulty %.1f, %.0f ms)",
            challenge.id,
            challenge.name,
            challenge.kind,
            difficulty,
            time_limit_ms,
        )
        return challenge

    def process_interaction(self, event: InputEvent) -> bool:
        """Route ``event`` to the first challenge that claims it.

        Returns True if some challenge consumed the input, whether or not it
        completed as a result.
        """

        now_ms = self._clock.now_ms()
        for challenge in list(self._active):
            if not challenge.claims(event):
                continue
            if challenge.handle_interaction(event, now_ms):
                self._retire_completed(challenge, now_ms)
            return True
        return False

    def complete_challenge(self, challenge_id: str) -> bool:
        for challenge in self._active:
            if challenge.id == challenge_id:
                now_ms = self._clock.now_ms()
                challenge.complete(now_ms)
                self._retire_completed(challenge, now_ms)
                return True
        return False

    def snapshot(self) -> tuple[ChallengeView, ...]:
        now_ms = self._clock.now_ms()
        return tuple(
            ChallengeView(
                id=c.id,
                name=c.name,
                kind=c.kind,
                position=c.position,
                target=c.target,
                progress=c.progress(now_ms),
                time_remaining_ratio=c.time_remaining_ratio(),
                urgency=c.urgency(),
            )
            for c in self._active
        )

    def drain_notifications(self) -> list[ChallengeNotification]:
        out = self._notifications
        self._notifications = []
        return out

    def pause_generation(self) -> None:
        self._paused = True

    def resume_generation(self) -> None:
        self._paused = False

    def stats(self) -> SchedulerStats:
        finished = self._completed + self._failed
        return SchedulerStats(
            generated=self._generated,
            completed=self._completed,
            failed=self._failed,
            active=len(self._active),
            completion_rate=0.0 if finished == 0 else self._completed / finished,
        )

    def reset(self) -> None:
        self._active.clear()
        self._notifications.clear()
        self._since_generation_ms = 0.0
        self._game_time_ms = 0.0
        self._paused = False
        self._next_id = 1
        self._generated = 0
        self._completed = 0
        self._failed = 0

    def _point_area(self) -> PointArea:
        cfg = self._config
        return (cfg.margin, cfg.margin, cfg.field_width - cfg.margin, cfg.field_height - cfg.margin)

    def _retire_completed(self, challenge: Challenge, now_ms: float) -> None:
        self._active.remove(challenge)
        self._completed += 1
        self._difficulty.record_outcome(True, challenge.difficulty, challenge.duration_ms(now_ms))
        self._ledger.add_completed_event(
            ScoreRecord(
                id=challenge.id,
                points=challenge.points,
                stage_id=challenge.stage_id,
                completed_at_game_time_ms=self._game_time_ms,
            )
        )
        self._notifications.append(ChallengeNotification(challenge.id, challenge.name, True))
        logger.debug("completed %s %r", challenge.id, challenge.name)

    def _retire_failed(self, challenge: Challenge) -> None:
        self._active.remove(challenge)
        self._failed += 1
        self._difficulty.record_outcome(False, challenge.difficulty, None)
        self._notifications.append(ChallengeNotification(challenge.id, challenge.name, False))
        logger.debug("expired %s %r", challenge.id, challenge.name)
