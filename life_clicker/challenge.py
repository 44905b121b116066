from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from .game_core import Point, clamp01
from .interactions import (
    DEFAULT_REGISTRY,
    InputEvent,
    InteractionState,
    TargetSpec,
    ValidatorRegistry,
)


class ChallengeStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class Urgency(StrEnum):
    NORMAL = "normal"
    URGENT = "urgent"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class MovementBounds:
    left: float
    top: float
    right: float
    bottom: float


class Challenge:
    """One spawned, time-boxed challenge.

    ACTIVE is the only non-terminal status. The challenge leaves it exactly
    once, either by a successful interaction (COMPLETED) or by running out of
    time (FAILED); every later call is a no-op.
    """

    def __init__(
        self,
        *,
        challenge_id: str,
        name: str,
        kind: str,
        difficulty: float,
        time_limit_ms: float,
        points: int,
        position: Point,
        target: TargetSpec,
        started_at_ms: float,
        stage_id: str = "",
        velocity: Point | None = None,
        bounds: MovementBounds | None = None,
        registry: ValidatorRegistry | None = None,
    ) -> None:
        if time_limit_ms <= 0:
            raise ValueError("time_limit_ms must be > 0")
        if points < 0:
            raise ValueError("points must be >= 0")

        self._id = str(challenge_id)
        self._name = name
        self._kind = kind
        self._difficulty = float(difficulty)
        self._time_limit_ms = float(time_limit_ms)
        self._time_remaining_ms = float(time_limit_ms)
        self._points = int(points)
        self._position = position
        self._target = target
        self._stage_id = stage_id
        self._started_at_ms = float(started_at_ms)
        self._completed_at_ms: float | None = None
        self._status = ChallengeStatus.ACTIVE
        self._velocity = velocity
        self._bounds = bounds
        self._registry = registry or DEFAULT_REGISTRY
        self.state = InteractionState()

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def difficulty(self) -> float:
        return self._difficulty

    @property
    def time_limit_ms(self) -> float:
        return self._time_limit_ms

    @property
    def time_remaining_ms(self) -> float:
        return self._time_remaining_ms

    @property
    def points(self) -> int:
        return self._points

    @property
    def position(self) -> Point:
        return self._position

    @property
    def target(self) -> TargetSpec:
        return self._target

    @property
    def stage_id(self) -> str:
        return self._stage_id

    @property
    def status(self) -> ChallengeStatus:
        return self._status

    @property
    def started_at_ms(self) -> float:
        return self._started_at_ms

    @property
    def completed_at_ms(self) -> float | None:
        return self._completed_at_ms

    @property
    def is_completed(self) -> bool:
        return self._status is ChallengeStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self._status is ChallengeStatus.FAILED

    @property
    def is_terminal(self) -> bool:
        return self._status is not ChallengeStatus.ACTIVE

    def is_active(self) -> bool:
        return self._status is ChallengeStatus.ACTIVE and self._time_remaining_ms > 0

    def update(self, dt_ms: float) -> None:
        if self._status is not ChallengeStatus.ACTIVE:
            return
        if dt_ms < 0:
            raise ValueError("dt_ms must be non-negative")

        self._time_remaining_ms -= dt_ms
        if self._time_remaining_ms <= 0:
            self.fail()
            return

        if self._velocity is not None and self._bounds is not None:
            self._move(dt_ms, self._velocity, self._bounds)

    def handle_interaction(self, event: InputEvent, now_ms: float) -> bool:
        """Feed one input event to the validator. Returns True on completion."""

        if self._status is not ChallengeStatus.ACTIVE:
            return False
        if self._registry.validate(self, event, now_ms):
            self.complete(now_ms)
            return True
        return False

    def claims(self, event: InputEvent) -> bool:
        """Whether the event targets this challenge (kind-specific hit-test)."""

        if not self.is_active():
            return False
        return self._registry.hit_test(self, event)

    def complete(self, now_ms: float) -> None:
        if self._status is not ChallengeStatus.ACTIVE:
            return
        self._status = ChallengeStatus.COMPLETED
        self._completed_at_ms = float(now_ms)

    def fail(self) -> None:
        if self._status is not ChallengeStatus.ACTIVE:
            return
        self._status = ChallengeStatus.FAILED

    def is_point_inside(self, x: float, y: float) -> bool:
        radius = self._target.size.radius
        return self._position.distance_to(x, y) <= radius

    def progress(self, now_ms: float) -> float:
        return self._registry.progress(self, now_ms)

    def duration_ms(self, now_ms: float) -> float:
        end = self._completed_at_ms if self._completed_at_ms is not None else now_ms
        return end - self._started_at_ms

    def time_remaining_ratio(self) -> float:
        return clamp01(self._time_remaining_ms / self._time_limit_ms)

    def urgency(self) -> Urgency:
        used = 1.0 - self.time_remaining_ratio()
        if used > 0.8:
            return Urgency.CRITICAL
        if used > 0.5:
            return Urgency.URGENT
        return Urgency.NORMAL

    def _move(self, dt_ms: float, velocity: Point, b: MovementBounds) -> None:
        vx, vy = velocity.x, velocity.y
        x = self._position.x + vx * dt_ms / 1000.0
        y = self._position.y + vy * dt_ms / 1000.0

        # Bounce off the movement bounds.
        if x <= b.left or x >= b.right:
            vx = -vx
        if y <= b.top or y >= b.bottom:
            vy = -vy

        self._velocity = Point(vx, vy)
        self._position = Point(min(max(x, b.left), b.right), min(max(y, b.top), b.bottom))

    def __repr__(self) -> str:
        return f"Challenge(id={self._id!r}, kind={self._kind!r}, status={self._status.value!r})"
