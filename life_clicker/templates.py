"""Challenge templates: the per-stage pools the scheduler draws from.

A template fixes the name, interaction kind, base difficulty, base time limit,
reward and target parameters of a challenge. The scheduler turns a template
into a live :class:`~life_clicker.challenge.Challenge` by applying the current
difficulty to the time limit and (optionally) to the target parameters via
:func:`scale_target`. Sequence and multi-touch templates may leave their
points empty; they are laid out at random on spawn by :func:`fill_random_points`.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace

from .game_core import SeededRng, Size
from .interactions import (
    TARGET_TYPES,
    CircleTarget,
    ClickTarget,
    DoubleClickTarget,
    DragTarget,
    InteractionKind,
    MovingTarget,
    MultiTouchTarget,
    PressTarget,
    RhythmTarget,
    SequenceTarget,
    SwipeDirection,
    SwipeTarget,
    TargetPoint,
    TargetSpec,
)


@dataclass(frozen=True, slots=True)
class ChallengeTemplate:
    name: str
    kind: InteractionKind
    difficulty: int
    time_limit_ms: float
    points: int
    target: TargetSpec
    description: str = ""


TemplateCatalog = Mapping[str, Sequence[ChallengeTemplate]]

# left, top, right, bottom
PointArea = tuple[float, float, float, float]

DEFAULT_POINT_AREA: PointArea = (100.0, 100.0, 700.0, 500.0)
SEQUENCE_POINT_RADIUS = 25.0
TOUCH_POINT_RADIUS = 30.0
DEFAULT_SEQUENCE_POINTS = 3
DEFAULT_TOUCH_POINTS = 2
MIN_SEQUENCE_POINTS = 2
MAX_SEQUENCE_POINTS = 6


def _t(
    name: str,
    kind: InteractionKind,
    difficulty: int,
    time_limit_ms: float,
    points: int,
    target: TargetSpec,
    description: str = "",
) -> ChallengeTemplate:
    return ChallengeTemplate(name, kind, difficulty, time_limit_ms, points, target, description)


K = InteractionKind

DEFAULT_TEMPLATES: dict[str, tuple[ChallengeTemplate, ...]] = {
    "baby": (
        _t("First smile", K.SIMPLE_CLICK, 1, 4000, 10, ClickTarget(Size(120, 80), 1), "Smile at mum for the very first time"),
        _t("Rolling over", K.DRAG_TARGET, 1, 5000, 15, DragTarget(Size(100, 100), 60)),
        _t("First crawl", K.RAPID_CLICK, 1, 4500, 20, ClickTarget(Size(110, 70), 3)),
        _t("Recognising mum", K.SIMPLE_CLICK, 1, 3500, 25, ClickTarget(Size(130, 85), 1)),
        _t("Standing up", K.MOVING_OBJECT, 1, 4000, 30, MovingTarget(Size(80, 80), 40)),
        _t("A long nap", K.LONG_PRESS, 1, 4500, 20, PressTarget(Size(110, 110), 1200)),
    ),
    "child": (
        _t("Learning to walk", K.RAPID_CLICK, 2, 3500, 35, ClickTarget(Size(100, 60), 4)),
        _t("First day at kindergarten", K.MOVING_OBJECT, 2, 3000, 40, MovingTarget(Size(70, 70), 60)),
        _t("Riding a bike", K.DRAG_TARGET, 2, 4000, 45, DragTarget(Size(90, 90), 80)),
        _t("A first friend", K.SIMPLE_CLICK, 2, 3000, 50, ClickTarget(Size(110, 75), 1)),
        _t("Learning to swim", K.RAPID_CLICK, 2, 3500, 40, ClickTarget(Size(95, 65), 5)),
        _t("Knock knock", K.DOUBLE_CLICK, 2, 3500, 45, DoubleClickTarget(Size(100, 100))),
    ),
    "teen": (
        _t("Entrance exam", K.RAPID_CLICK, 3, 3000, 60, ClickTarget(Size(85, 55), 6)),
        _t("First crush", K.MOVING_OBJECT, 3, 2500, 70, MovingTarget(Size(55, 55), 90)),
        _t("Joining a club", K.DRAG_TARGET, 3, 3500, 55, DragTarget(Size(80, 80), 100)),
        _t("Choosing a major", K.SIMPLE_CLICK, 3, 4000, 80, ClickTarget(Size(100, 70), 1)),
        _t("Swiping through messages", K.SWIPE_GESTURE, 3, 3000, 60, SwipeTarget(Size(100, 100), SwipeDirection.LEFT)),
        _t("Morning routine", K.SEQUENCE_CLICK, 3, 4500, 75, SequenceTarget(Size(80, 80)), "Tap the chores in order"),
    ),
    "adult": (
        _t("Landing a first job", K.DRAG_TARGET, 4, 2500, 100, DragTarget(Size(70, 70), 120)),
        _t("Wedding day", K.RAPID_CLICK, 4, 2000, 120, ClickTarget(Size(80, 50), 7)),
        _t("Buying a home", K.MOVING_OBJECT, 4, 1800, 110, MovingTarget(Size(45, 45), 130)),
        _t("A child is born", K.SIMPLE_CLICK, 4, 3000, 150, ClickTarget(Size(90, 65), 1)),
        _t("Keeping the beat at work", K.RHYTHM_CLICK, 4, 5000, 130, RhythmTarget(Size(90, 90), 800, 4)),
        _t("Juggling family and career", K.MULTI_TOUCH, 4, 3500, 140, MultiTouchTarget(Size(80, 80))),
    ),
    "elder": (
        _t("Retirement party", K.SIMPLE_CLICK, 2, 4000, 80, ClickTarget(Size(110, 75), 1)),
        _t("Playing with grandchildren", K.DRAG_TARGET, 2, 4500, 90, DragTarget(Size(85, 85), 70)),
        _t("Remembering the old days", K.MOVING_OBJECT, 2, 3500, 70, MovingTarget(Size(60, 60), 50)),
        _t("Passing on wisdom", K.RAPID_CLICK, 2, 3000, 100, ClickTarget(Size(95, 65), 4)),
        _t("A quiet afternoon", K.LONG_PRESS, 1, 5000, 120, PressTarget(Size(120, 120), 1500)),
        _t("Writing a memoir", K.DRAW_CIRCLE, 2, 5000, 85, CircleTarget(Size(140, 140))),
    ),
}


def validate_templates(catalog: TemplateCatalog) -> list[str]:
    """Return human-readable problems found in ``catalog`` (empty if valid)."""

    errors: list[str] = []
    for stage_id, templates in catalog.items():
        for i, tpl in enumerate(templates):
            where = f"{stage_id}[{i}] {tpl.name!r}"
            if not tpl.name:
                errors.append(f"{where}: name is required")
            if not (1 <= tpl.difficulty <= 5):
                errors.append(f"{where}: difficulty must be between 1 and 5")
            if tpl.time_limit_ms < 1000:
                errors.append(f"{where}: time limit must be at least 1000 ms")
            if tpl.points < 0:
                errors.append(f"{where}: points cannot be negative")
            expected = TARGET_TYPES.get(tpl.kind)
            if expected is None:
                errors.append(f"{where}: unknown interaction kind {tpl.kind!r}")
            elif not isinstance(tpl.target, expected):
                errors.append(f"{where}: {tpl.kind} needs a {expected.__name__}")
    return errors


def random_points(
    rng: SeededRng,
    count: int,
    radius: float,
    area: PointArea = DEFAULT_POINT_AREA,
) -> tuple[TargetPoint, ...]:
    left, top, right, bottom = area
    return tuple(TargetPoint(rng.uniform(left, right), rng.uniform(top, bottom), radius) for _ in range(count))


def sequence_length(base: int, difficulty: float) -> int:
    """Number of sequence points for ``difficulty``; one more per level past 2."""

    return min(MAX_SEQUENCE_POINTS, max(MIN_SEQUENCE_POINTS, math.floor(base + float(difficulty) - 2.0)))


def fill_random_points(target: TargetSpec, rng: SeededRng, area: PointArea = DEFAULT_POINT_AREA) -> TargetSpec:
    """Give sequence and multi-touch targets without points a random layout."""

    if isinstance(target, SequenceTarget) and not target.sequence:
        return replace(target, sequence=random_points(rng, DEFAULT_SEQUENCE_POINTS, SEQUENCE_POINT_RADIUS, area))
    if isinstance(target, MultiTouchTarget) and not target.touch_points:
        return replace(target, touch_points=random_points(rng, DEFAULT_TOUCH_POINTS, TOUCH_POINT_RADIUS, area))
    return target


def scale_target(
    target: TargetSpec,
    kind: str,
    difficulty: float,
    rng: SeededRng | None = None,
    area: PointArea = DEFAULT_POINT_AREA,
) -> TargetSpec:
    """Make a target harder in proportion to ``difficulty - 1``.

    Sequences are only resized when ``rng`` is given; a resized sequence gets
    a fresh random layout inside ``area``.
    """

    level = max(0.0, float(difficulty) - 1.0)

    if kind == InteractionKind.RAPID_CLICK and isinstance(target, ClickTarget):
        clicks = max(1, math.floor(target.required_clicks * (1.0 + level * 0.3)))
        return replace(target, required_clicks=clicks)

    if isinstance(target, DragTarget):
        return replace(target, drag_distance=target.drag_distance * (1.0 + level * 0.25))

    if isinstance(target, PressTarget):
        return replace(target, required_duration_ms=target.required_duration_ms * (1.0 + level * 0.2))

    if isinstance(target, MovingTarget):
        shrink = level * 5.0
        size = Size(max(30.0, target.size.width - shrink), max(30.0, target.size.height - shrink))
        return replace(target, speed=target.speed * (1.0 + level * 0.4), size=size)

    if isinstance(target, RhythmTarget):
        return replace(
            target,
            beat_interval_ms=max(400.0, target.beat_interval_ms - level * 100.0),
            required_beats=max(2, target.required_beats + math.floor(level * 0.5)),
        )

    if isinstance(target, SequenceTarget) and rng is not None:
        count = sequence_length(len(target.sequence), difficulty)
        if count != len(target.sequence):
            return replace(target, sequence=random_points(rng, count, SEQUENCE_POINT_RADIUS, area))

    return target
