"""Interaction kinds, normalized input events and the validator registry.

Every interaction kind has one validator. A validator decides three things
about a challenge of its kind:

* ``hit_test`` - whether an input event targets the challenge at all;
* ``validate`` - whether the event completes the challenge (it may update the
  challenge's interaction counters on the way);
* ``progress`` - a [0, 1] estimate for UI feedback only.

Validators are stateless; all per-challenge counters live in
:class:`InteractionState` on the challenge itself. Unknown kinds and target
specs of the wrong variant validate ``False`` and report progress ``0.0``.
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from .game_core import Point, Size, clamp01

if TYPE_CHECKING:
    from .challenge import Challenge


DOUBLE_CLICK_WINDOW_MS = 500.0
RHYTHM_TOLERANCE = 0.2
CIRCLE_MIN_POINTS = 10
CIRCLE_RADIUS_TOLERANCE = 0.3
CIRCLE_VALID_RATIO = 0.7
CIRCLE_PROGRESS_POINTS = 20


class InteractionKind(StrEnum):
    SIMPLE_CLICK = "simple_click"
    RAPID_CLICK = "rapid_click"
    DRAG_TARGET = "drag_target"
    MOVING_OBJECT = "moving_object"
    LONG_PRESS = "long_press"
    SWIPE_GESTURE = "swipe_gesture"
    DOUBLE_CLICK = "double_click"
    SEQUENCE_CLICK = "sequence_click"
    DRAW_CIRCLE = "draw_circle"
    RHYTHM_CLICK = "rhythm_click"
    MULTI_TOUCH = "multi_touch"


class InputType(StrEnum):
    CLICK = "click"
    DRAG = "drag"
    PRESS_START = "press_start"
    PRESS_END = "press_end"
    SWIPE = "swipe"
    MULTI_TOUCH = "multi_touch"


class SwipeDirection(StrEnum):
    RIGHT = "right"
    DOWN = "down"
    LEFT = "left"
    UP = "up"
    ANY = "any"


@dataclass(frozen=True, slots=True)
class InputEvent:
    """Normalized pointer input in play-field coordinates.

    For drags and swipes ``(x, y)`` is the current pointer position and
    ``(delta_x, delta_y)`` the displacement from where the gesture started.
    """

    type: InputType
    x: float = 0.0
    y: float = 0.0
    delta_x: float = 0.0
    delta_y: float = 0.0
    touches: tuple[Point, ...] = ()

    @property
    def origin(self) -> Point:
        return Point(self.x - self.delta_x, self.y - self.delta_y)


# -- target specs (one variant per parameter set) -----------------------------


@dataclass(frozen=True, slots=True)
class TargetPoint:
    x: float
    y: float
    radius: float = 30.0

    @property
    def center(self) -> Point:
        return Point(self.x, self.y)

    def contains(self, x: float, y: float) -> bool:
        return self.center.distance_to(x, y) <= self.radius


@dataclass(frozen=True, slots=True)
class ClickTarget:
    size: Size = Size(80.0, 80.0)
    required_clicks: int = 1


@dataclass(frozen=True, slots=True)
class DragTarget:
    size: Size = Size(80.0, 80.0)
    drag_distance: float = 100.0


@dataclass(frozen=True, slots=True)
class MovingTarget:
    size: Size = Size(60.0, 60.0)
    speed: float = 100.0


@dataclass(frozen=True, slots=True)
class PressTarget:
    size: Size = Size(80.0, 80.0)
    required_duration_ms: float = 1500.0


@dataclass(frozen=True, slots=True)
class SwipeTarget:
    size: Size = Size(80.0, 80.0)
    direction: SwipeDirection = SwipeDirection.ANY
    min_distance: float = 50.0


@dataclass(frozen=True, slots=True)
class DoubleClickTarget:
    size: Size = Size(80.0, 80.0)


@dataclass(frozen=True, slots=True)
class SequenceTarget:
    size: Size = Size(80.0, 80.0)
    sequence: tuple[TargetPoint, ...] = ()


@dataclass(frozen=True, slots=True)
class CircleTarget:
    size: Size = Size(120.0, 120.0)


@dataclass(frozen=True, slots=True)
class RhythmTarget:
    size: Size = Size(80.0, 80.0)
    beat_interval_ms: float = 800.0
    required_beats: int = 4


@dataclass(frozen=True, slots=True)
class MultiTouchTarget:
    size: Size = Size(80.0, 80.0)
    touch_points: tuple[TargetPoint, ...] = ()


TargetSpec = (
    ClickTarget
    | DragTarget
    | MovingTarget
    | PressTarget
    | SwipeTarget
    | DoubleClickTarget
    | SequenceTarget
    | CircleTarget
    | RhythmTarget
    | MultiTouchTarget
)


@dataclass(slots=True)
class InteractionState:
    """Mutable counters owned by the validator of the challenge's kind."""

    click_count: int = 0
    drag_distance: float = 0.0
    press_start_ms: float | None = None
    is_pressing: bool = False
    last_click_ms: float | None = None
    sequence_index: int = 0
    draw_path: list[Point] = field(default_factory=list)
    correct_beats: int = 0


# -- geometry helpers ----------------------------------------------------------


def swipe_direction(delta_x: float, delta_y: float) -> SwipeDirection:
    """Bucket a displacement into one of four screen directions (y grows down)."""

    degrees = math.degrees(math.atan2(delta_y, delta_x))
    if -45.0 <= degrees < 45.0:
        return SwipeDirection.RIGHT
    if 45.0 <= degrees < 135.0:
        return SwipeDirection.DOWN
    if -135.0 <= degrees < -45.0:
        return SwipeDirection.UP
    return SwipeDirection.LEFT


def is_circular_path(path: list[Point]) -> bool:
    if len(path) < CIRCLE_MIN_POINTS:
        return False

    n = float(len(path))
    cx = sum(p.x for p in path) / n
    cy = sum(p.y for p in path) / n
    radii = [math.hypot(p.x - cx, p.y - cy) for p in path]
    mean_radius = sum(radii) / n
    if mean_radius <= 0.0:
        return False

    band = mean_radius * CIRCLE_RADIUS_TOLERANCE
    valid = sum(1 for r in radii if abs(r - mean_radius) <= band)
    return valid / n >= CIRCLE_VALID_RATIO


def beat_offset_ms(elapsed_ms: float, beat_interval_ms: float) -> float:
    """Distance in ms from ``elapsed_ms`` to the nearest beat boundary."""

    phase = elapsed_ms % beat_interval_ms
    return min(phase, beat_interval_ms - phase)


# -- validators ----------------------------------------------------------------


class InteractionValidator(Protocol):
    target_type: type

    def hit_test(self, challenge: Challenge, event: InputEvent) -> bool:
        ...

    def validate(self, challenge: Challenge, event: InputEvent, now_ms: float) -> bool:
        ...

    def progress(self, challenge: Challenge, now_ms: float) -> float:
        ...


class _PointerValidator:
    """Shared behaviour: consume some input types that land on the challenge."""

    target_type: type = object
    consumes: frozenset[InputType] = frozenset({InputType.CLICK})

    def hit_test(self, challenge: Challenge, event: InputEvent) -> bool:
        if event.type not in self.consumes:
            return False
        return challenge.is_point_inside(event.x, event.y)

    def progress(self, challenge: Challenge, now_ms: float) -> float:
        _ = now_ms
        return 1.0 if challenge.is_completed else 0.0


class ClickCountValidator(_PointerValidator):
    """simple_click and rapid_click: count hits up to ``required_clicks``."""

    target_type = ClickTarget

    def validate(self, challenge: Challenge, event: InputEvent, now_ms: float) -> bool:
        if not self.hit_test(challenge, event):
            return False
        challenge.state.click_count += 1
        return challenge.state.click_count >= challenge.target.required_clicks

    def progress(self, challenge: Challenge, now_ms: float) -> float:
        required = challenge.target.required_clicks
        if required <= 0:
            return super().progress(challenge, now_ms)
        return clamp01(challenge.state.click_count / required)


class DragDistanceValidator(_PointerValidator):
    target_type = DragTarget
    consumes = frozenset({InputType.DRAG})

    def hit_test(self, challenge: Challenge, event: InputEvent) -> bool:
        # A drag belongs to the challenge it started on.
        if event.type is not InputType.DRAG:
            return False
        origin = event.origin
        return challenge.is_point_inside(origin.x, origin.y)

    def validate(self, challenge: Challenge, event: InputEvent, now_ms: float) -> bool:
        if event.type is not InputType.DRAG:
            return False
        distance = math.hypot(event.delta_x, event.delta_y)
        state = challenge.state
        state.drag_distance = max(state.drag_distance, distance)
        return state.drag_distance >= challenge.target.drag_distance

    def progress(self, challenge: Challenge, now_ms: float) -> float:
        required = challenge.target.drag_distance
        if required <= 0:
            return super().progress(challenge, now_ms)
        return clamp01(challenge.state.drag_distance / required)


class MovingObjectValidator(_PointerValidator):
    target_type = MovingTarget

    def validate(self, challenge: Challenge, event: InputEvent, now_ms: float) -> bool:
        return self.hit_test(challenge, event)


class LongPressValidator(_PointerValidator):
    target_type = PressTarget
    consumes = frozenset({InputType.PRESS_START, InputType.PRESS_END})

    def hit_test(self, challenge: Challenge, event: InputEvent) -> bool:
        # Only the challenge being held owns the release, wherever it lands.
        if event.type is InputType.PRESS_END:
            return challenge.state.is_pressing
        return super().hit_test(challenge, event)

    def validate(self, challenge: Challenge, event: InputEvent, now_ms: float) -> bool:
        state = challenge.state
        if event.type is InputType.PRESS_START and self.hit_test(challenge, event):
            state.press_start_ms = now_ms
            state.is_pressing = True
            return False
        if event.type is InputType.PRESS_END and state.is_pressing:
            started = state.press_start_ms if state.press_start_ms is not None else now_ms
            state.is_pressing = False
            return now_ms - started >= challenge.target.required_duration_ms
        return False

    def progress(self, challenge: Challenge, now_ms: float) -> float:
        if challenge.is_completed:
            return 1.0
        state = challenge.state
        if not state.is_pressing or state.press_start_ms is None:
            return 0.0
        required = challenge.target.required_duration_ms
        if required <= 0:
            return 1.0
        return clamp01((now_ms - state.press_start_ms) / required)


class SwipeValidator(_PointerValidator):
    target_type = SwipeTarget
    consumes = frozenset({InputType.SWIPE})

    def hit_test(self, challenge: Challenge, event: InputEvent) -> bool:
        if event.type is not InputType.SWIPE:
            return False
        origin = event.origin
        return challenge.is_point_inside(origin.x, origin.y)

    def validate(self, challenge: Challenge, event: InputEvent, now_ms: float) -> bool:
        if event.type is not InputType.SWIPE:
            return False
        required = challenge.target.direction
        if required is SwipeDirection.ANY:
            return True
        return swipe_direction(event.delta_x, event.delta_y) == required


class DoubleClickValidator(_PointerValidator):
    target_type = DoubleClickTarget

    def validate(self, challenge: Challenge, event: InputEvent, now_ms: float) -> bool:
        if not self.hit_test(challenge, event):
            return False
        state = challenge.state
        if state.last_click_ms is not None and now_ms - state.last_click_ms < DOUBLE_CLICK_WINDOW_MS:
            return True
        state.last_click_ms = now_ms
        return False


class SequenceValidator(_PointerValidator):
    """Clicks must land on the sequence points in order, wherever they are.

    Only a click near the next expected point targets the challenge.
    """

    target_type = SequenceTarget

    def hit_test(self, challenge: Challenge, event: InputEvent) -> bool:
        if event.type is not InputType.CLICK:
            return False
        nxt = self._next_point(challenge)
        return nxt is not None and nxt.contains(event.x, event.y)

    def validate(self, challenge: Challenge, event: InputEvent, now_ms: float) -> bool:
        if event.type is not InputType.CLICK:
            return False
        nxt = self._next_point(challenge)
        if nxt is None or not nxt.contains(event.x, event.y):
            return False
        challenge.state.sequence_index += 1
        return challenge.state.sequence_index >= len(challenge.target.sequence)

    def progress(self, challenge: Challenge, now_ms: float) -> float:
        total = len(challenge.target.sequence)
        if total == 0:
            return 0.0
        return clamp01(challenge.state.sequence_index / total)

    def _next_point(self, challenge: Challenge) -> TargetPoint | None:
        sequence = challenge.target.sequence
        index = challenge.state.sequence_index
        if index >= len(sequence):
            return None
        return sequence[index]


class DrawCircleValidator(_PointerValidator):
    target_type = CircleTarget
    consumes = frozenset({InputType.DRAG})

    def hit_test(self, challenge: Challenge, event: InputEvent) -> bool:
        if event.type is not InputType.DRAG:
            return False
        origin = event.origin
        return challenge.is_point_inside(origin.x, origin.y)

    def validate(self, challenge: Challenge, event: InputEvent, now_ms: float) -> bool:
        if event.type is not InputType.DRAG:
            return False
        path = challenge.state.draw_path
        path.append(Point(event.x, event.y))
        if len(path) > CIRCLE_MIN_POINTS:
            return is_circular_path(path)
        return False

    def progress(self, challenge: Challenge, now_ms: float) -> float:
        if challenge.is_completed:
            return 1.0
        return clamp01(len(challenge.state.draw_path) / CIRCLE_PROGRESS_POINTS)


class RhythmValidator(_PointerValidator):
    target_type = RhythmTarget

    def validate(self, challenge: Challenge, event: InputEvent, now_ms: float) -> bool:
        if not self.hit_test(challenge, event):
            return False
        interval = challenge.target.beat_interval_ms
        if interval <= 0:
            return False
        offset = beat_offset_ms(now_ms - challenge.started_at_ms, interval)
        if offset <= interval * RHYTHM_TOLERANCE:
            challenge.state.correct_beats += 1
        return challenge.state.correct_beats >= challenge.target.required_beats

    def progress(self, challenge: Challenge, now_ms: float) -> float:
        required = challenge.target.required_beats
        if required <= 0:
            return super().progress(challenge, now_ms)
        return clamp01(challenge.state.correct_beats / required)


class MultiTouchValidator(_PointerValidator):
    target_type = MultiTouchTarget
    consumes = frozenset({InputType.MULTI_TOUCH})

    def hit_test(self, challenge: Challenge, event: InputEvent) -> bool:
        # Touch points are absolute; no containment in the spawn circle.
        return event.type is InputType.MULTI_TOUCH

    def validate(self, challenge: Challenge, event: InputEvent, now_ms: float) -> bool:
        if event.type is not InputType.MULTI_TOUCH:
            return False
        targets = challenge.target.touch_points
        if not targets:
            return False
        # Each target point needs its own touch.
        free = list(event.touches)
        for point in targets:
            touch = next((t for t in free if point.contains(t.x, t.y)), None)
            if touch is None:
                return False
            free.remove(touch)
        return True


# -- registry ------------------------------------------------------------------


class ValidatorRegistry(Mapping[str, InteractionValidator]):
    """Read-only mapping from interaction kind to validator."""

    def __init__(self, validators: Mapping[InteractionKind, InteractionValidator]) -> None:
        self._validators = dict(validators)

    def __getitem__(self, kind: str) -> InteractionValidator:
        return self._validators[kind]  # type: ignore[index]

    def __iter__(self) -> Iterator[str]:
        return iter(self._validators)

    def __len__(self) -> int:
        return len(self._validators)

    def _resolve(self, challenge: Challenge) -> InteractionValidator | None:
        validator = self._validators.get(challenge.kind)  # type: ignore[call-overload]
        if validator is None or not isinstance(challenge.target, validator.target_type):
            return None
        return validator

    def validate(self, challenge: Challenge, event: InputEvent, now_ms: float) -> bool:
        validator = self._resolve(challenge)
        if validator is None:
            return False
        return bool(validator.validate(challenge, event, now_ms))

    def progress(self, challenge: Challenge, now_ms: float) -> float:
        validator = self._resolve(challenge)
        if validator is None:
            return 0.0
        return clamp01(validator.progress(challenge, now_ms))

    def hit_test(self, challenge: Challenge, event: InputEvent) -> bool:
        validator = self._resolve(challenge)
        if validator is None:
            return False
        return bool(validator.hit_test(challenge, event))


def build_default_registry() -> ValidatorRegistry:
    click = ClickCountValidator()
    return ValidatorRegistry(
        {
            InteractionKind.SIMPLE_CLICK: click,
            InteractionKind.RAPID_CLICK: click,
            InteractionKind.DRAG_TARGET: DragDistanceValidator(),
            InteractionKind.MOVING_OBJECT: MovingObjectValidator(),
            InteractionKind.LONG_PRESS: LongPressValidator(),
            InteractionKind.SWIPE_GESTURE: SwipeValidator(),
            InteractionKind.DOUBLE_CLICK: DoubleClickValidator(),
            InteractionKind.SEQUENCE_CLICK: SequenceValidator(),
            InteractionKind.DRAW_CIRCLE: DrawCircleValidator(),
            InteractionKind.RHYTHM_CLICK: RhythmValidator(),
            InteractionKind.MULTI_TOUCH: MultiTouchValidator(),
        }
    )


DEFAULT_REGISTRY = build_default_registry()

# Target variant each kind expects; used when validating template catalogs.
TARGET_TYPES: Mapping[InteractionKind, type] = {
    kind: DEFAULT_REGISTRY[kind].target_type for kind in InteractionKind
}


def validate_interaction(challenge: Challenge, event: InputEvent, now_ms: float) -> bool:
    return DEFAULT_REGISTRY.validate(challenge, event, now_ms)


def interaction_progress(challenge: Challenge, now_ms: float) -> float:
    return DEFAULT_REGISTRY.progress(challenge, now_ms)


def claims_input(challenge: Challenge, event: InputEvent) -> bool:
    return DEFAULT_REGISTRY.hit_test(challenge, event)
