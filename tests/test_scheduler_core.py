from __future__ import annotations

from dataclasses import dataclass

import pytest

from life_clicker.difficulty import DifficultyConfig, DifficultyController
from life_clicker.game_core import Point, SeededRng, Size
from life_clicker.interactions import (
    ClickTarget,
    DragTarget,
    InputEvent,
    InputType,
    InteractionKind,
    MovingTarget,
    MultiTouchTarget,
    PressTarget,
    SequenceTarget,
)
from life_clicker.scheduler import EventScheduler, SchedulerConfig
from life_clicker.scoring import ScoreLedger
from life_clicker.stages import Stage
from life_clicker.templates import ChallengeTemplate


@dataclass
class FakeClock:
    t: float = 0.0

    def now_ms(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


@dataclass
class FakeStages:
    stage: Stage | None
    active: bool = True

    def current_stage(self) -> Stage | None:
        return self.stage

    def is_active(self) -> bool:
        return self.active


BABY = Stage("baby", "Infancy", 1, 0, 15_000)
CHILD = Stage("child", "Childhood", 2, 15_000, 20_000)
ADULT = Stage("adult", "Adulthood", 4, 55_000, 30_000)

SMILE = ChallengeTemplate("First smile", InteractionKind.SIMPLE_CLICK, 1, 3000, 10, ClickTarget(Size(80, 80), 1))


def _scheduler(
    *,
    templates=None,
    stage: Stage | None = BABY,
    config: SchedulerConfig | None = None,
) -> tuple[EventScheduler, FakeStages, DifficultyController, ScoreLedger, FakeClock]:
    stages = FakeStages(stage)
    # No time compression: spawned time limits equal the template's.
    difficulty = DifficultyController(DifficultyConfig(time_compression=0.0))
    ledger = ScoreLedger()
    clk = FakeClock()
    sched = EventScheduler(
        stages=stages,
        difficulty=difficulty,
        ledger=ledger,
        templates={"baby": (SMILE,)} if templates is None else templates,
        rng=SeededRng(11),
        clock=clk,
        config=config,
    )
    return sched, stages, difficulty, ledger, clk


# Every spawn lands on (100, 100).
PINNED = SchedulerConfig(field_width=200, field_height=200, margin=100)


def test_generation_follows_the_cadence() -> None:
    sched, *_ = _scheduler()
    sched.update(1999)
    assert sched.active_count() == 0
    sched.update(1)
    assert sched.active_count() == 1
    sched.update(1999)
    assert sched.active_count() == 1
    sched.update(1)
    assert sched.active_count() == 2


def test_concurrency_cap_is_respected() -> None:
    long_lived = ChallengeTemplate("Nap", InteractionKind.SIMPLE_CLICK, 1, 60_000, 5, ClickTarget())
    sched, *_ = _scheduler(templates={"baby": (long_lived,)})
    for _ in range(20):
        sched.update(2000)
        assert sched.active_count() <= 3
    assert sched.active_count() == 3
    assert sched.stats().generated == 3


def test_expiry_frees_capacity_before_admission_in_the_same_tick() -> None:
    sched, _, difficulty, _, _ = _scheduler(config=SchedulerConfig(max_active=1))

    sched.update(2000)
    [first] = sched.active_challenges()
    sched.update(2000)
    assert sched.active_challenges() == [first]

    sched.update(1000)
    notes = sched.drain_notifications()
    assert [(n.id, n.success) for n in notes] == [(first.id, False)]
    [second] = sched.active_challenges()
    assert second.id != first.id
    assert first.is_failed
    assert difficulty.samples()[-1].success is False


def test_no_generation_when_paused_or_inactive() -> None:
    sched, stages, *_ = _scheduler()
    sched.pause_generation()
    sched.update(5000)
    assert sched.active_count() == 0
    sched.resume_generation()

    stages.active = False
    sched.update(5000)
    assert sched.active_count() == 0

    stages.active = True
    stages.stage = None
    sched.update(5000)
    assert sched.active_count() == 0


def test_generate_without_templates_returns_none() -> None:
    sched, *_ = _scheduler(templates={})
    assert sched.generate(BABY) is None
    sched.update(4000)
    assert sched.stats().generated == 0


def test_adult_stage_end_to_end_difficulty_and_time_limit() -> None:
    wedding = ChallengeTemplate("Wedding day", InteractionKind.SIMPLE_CLICK, 4, 3000, 120, ClickTarget())
    stages = FakeStages(ADULT)
    difficulty = DifficultyController()
    sched = EventScheduler(
        stages=stages,
        difficulty=difficulty,
        ledger=ScoreLedger(),
        templates={"adult": (wedding,)},
        rng=SeededRng(3),
        clock=FakeClock(),
    )

    c = sched.generate(ADULT)
    assert c is not None
    assert c.difficulty == 5.0
    assert c.time_limit_ms == pytest.approx(difficulty.adjust_time_limit(3000, 5))
    assert c.time_limit_ms == pytest.approx(1200)
    assert c.stage_id == "adult"


def test_spawn_position_stays_inside_margins() -> None:
    sched, *_ = _scheduler()
    for _ in range(20):
        c = sched.generate(BABY)
        assert c is not None
        assert 100 <= c.position.x <= 700
        assert 100 <= c.position.y <= 500


def test_successful_click_scores_and_reports() -> None:
    sched, _, difficulty, ledger, clock = _scheduler()
    sched.update(2000)
    [c] = sched.active_challenges()

    clock.advance(400)
    assert sched.process_interaction(InputEvent(InputType.CLICK, c.position.x, c.position.y)) is True

    assert sched.active_count() == 0
    assert ledger.total_score == 10
    [record] = ledger.records()
    assert record.id == c.id
    assert record.stage_id == "baby"
    assert record.completed_at_game_time_ms == 2000
    assert difficulty.samples()[-1].success is True
    assert difficulty.samples()[-1].completion_time_ms == 400
    assert [(n.name, n.success) for n in sched.drain_notifications()] == [("First smile", True)]
    assert sched.drain_notifications() == []


def test_missed_click_is_not_consumed() -> None:
    sched, *_ = _scheduler(config=PINNED)
    sched.update(2000)
    assert sched.process_interaction(InputEvent(InputType.CLICK, 199, 199)) is False
    assert sched.active_count() == 1


def test_first_inserted_challenge_wins_overlapping_input() -> None:
    sched, *_ = _scheduler(config=PINNED)
    first = sched.generate(BABY)
    second = sched.generate(BABY)
    assert first is not None and second is not None
    assert first.position == second.position == Point(100, 100)

    assert sched.process_interaction(InputEvent(InputType.CLICK, 100, 100)) is True
    assert first.is_completed
    assert not second.is_terminal
    assert sched.active_challenges() == [second]


def test_input_goes_to_one_challenge_even_without_completion() -> None:
    rapid = ChallengeTemplate("Crawl", InteractionKind.RAPID_CLICK, 1, 5000, 20, ClickTarget(Size(80, 80), 3))
    sched, *_ = _scheduler(templates={"baby": (rapid,)}, config=PINNED)
    first = sched.generate(BABY)
    second = sched.generate(BABY)
    assert first is not None and second is not None

    assert sched.process_interaction(InputEvent(InputType.CLICK, 100, 100)) is True
    assert first.state.click_count == 1
    assert second.state.click_count == 0


def test_release_goes_to_the_held_long_press_not_the_first_overlap() -> None:
    small = ChallengeTemplate("Nap", InteractionKind.LONG_PRESS, 1, 5000, 20, PressTarget(Size(20, 20), 1500))
    big = ChallengeTemplate("Hug", InteractionKind.LONG_PRESS, 1, 5000, 20, PressTarget(Size(200, 200), 1500))
    sched, _, _, ledger, clock = _scheduler(
        templates={"baby": (small,), "child": (big,)},
        config=SchedulerConfig(field_width=200, field_height=200, margin=100, scale_targets=False),
    )
    a = sched.generate(BABY)
    b = sched.generate(CHILD)
    assert a is not None and b is not None
    assert a.position == b.position == Point(100, 100)

    # Only the big one is under the press point.
    assert sched.process_interaction(InputEvent(InputType.PRESS_START, 150, 100)) is True
    assert b.state.is_pressing
    assert not a.state.is_pressing

    clock.advance(2000)
    # Released over both; the first-inserted one is not held and must not claim it.
    assert sched.process_interaction(InputEvent(InputType.PRESS_END, 100, 100)) is True
    assert b.is_completed
    assert not a.is_terminal
    assert sched.active_challenges() == [a]
    assert ledger.completed_count == 1


def test_release_with_nothing_held_is_not_consumed() -> None:
    nap = ChallengeTemplate("Nap", InteractionKind.LONG_PRESS, 1, 5000, 20, PressTarget(Size(80, 80), 1500))
    sched, *_ = _scheduler(templates={"baby": (nap,)}, config=PINNED)
    c = sched.generate(BABY)
    assert c is not None
    assert sched.process_interaction(InputEvent(InputType.PRESS_END, 100, 100)) is False
    assert sched.process_interaction(InputEvent(InputType.PRESS_START, 190, 190)) is False
    assert not c.state.is_pressing


def test_complete_challenge_by_id() -> None:
    sched, _, _, ledger, _ = _scheduler()
    c = sched.generate(BABY)
    assert c is not None
    assert sched.complete_challenge("nope") is False
    assert sched.complete_challenge(c.id) is True
    assert c.is_completed
    assert ledger.completed_count == 1
    assert sched.complete_challenge(c.id) is False


def test_moving_targets_get_velocity() -> None:
    runner = ChallengeTemplate("Standing up", InteractionKind.MOVING_OBJECT, 1, 8000, 30, MovingTarget(Size(60, 60), 120))
    sched, *_ = _scheduler(templates={"baby": (runner,)})
    c = sched.generate(BABY)
    assert c is not None
    before = c.position
    sched.update(500)
    assert c.position != before


def test_targets_scale_with_difficulty_unless_disabled() -> None:
    drag = ChallengeTemplate("Landing a first job", InteractionKind.DRAG_TARGET, 4, 5000, 100, DragTarget(Size(70, 70), 100))

    sched, *_ = _scheduler(templates={"adult": (drag,)})
    scaled = sched.generate(ADULT)
    assert scaled is not None
    assert scaled.target.drag_distance == pytest.approx(200)

    plain, *_ = _scheduler(templates={"adult": (drag,)}, config=SchedulerConfig(scale_targets=False))
    unscaled = plain.generate(ADULT)
    assert unscaled is not None
    assert unscaled.target.drag_distance == 100


def test_snapshot_views_active_challenges() -> None:
    sched, *_ = _scheduler()
    sched.update(2000)
    sched.update(1600)
    [view] = sched.snapshot()
    [c] = sched.active_challenges()
    assert view.id == c.id
    assert view.kind == InteractionKind.SIMPLE_CLICK
    assert view.progress == 0.0
    assert view.time_remaining_ratio == pytest.approx(1400 / 3000)
    assert view.urgency == "urgent"


def test_stats_and_reset() -> None:
    sched, *_ = _scheduler(config=PINNED)
    sched.update(2000)
    sched.process_interaction(InputEvent(InputType.CLICK, 100, 100))
    sched.update(2000)
    sched.update(3000)

    stats = sched.stats()
    assert stats.generated == 3
    assert stats.completed == 1
    assert stats.failed == 1
    assert stats.active == 1
    assert stats.completion_rate == pytest.approx(0.5)

    sched.reset()
    assert sched.active_count() == 0
    assert sched.stats().generated == 0
    assert sched.drain_notifications() == []
    assert sched.game_time_ms == 0


def test_negative_dt_is_rejected() -> None:
    sched, *_ = _scheduler()
    with pytest.raises(ValueError):
        sched.update(-1)


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        SchedulerConfig(generation_interval_ms=0)
    with pytest.raises(ValueError):
        SchedulerConfig(max_active=0)
    with pytest.raises(ValueError):
        SchedulerConfig(field_width=150, margin=100)


def test_sequence_and_touch_points_are_laid_out_inside_the_field() -> None:
    chores = ChallengeTemplate("Chores", InteractionKind.SEQUENCE_CLICK, 1, 4000, 30, SequenceTarget(Size(80, 80)))
    juggle = ChallengeTemplate("Juggle", InteractionKind.MULTI_TOUCH, 1, 4000, 30, MultiTouchTarget(Size(80, 80)))
    sched, *_ = _scheduler(templates={"baby": (chores,), "child": (juggle,)}, config=SchedulerConfig(scale_targets=False))

    seq = sched.generate(BABY)
    touch = sched.generate(CHILD)
    assert seq is not None and touch is not None

    assert len(seq.target.sequence) == 3
    assert len(touch.target.touch_points) == 2
    for p in seq.target.sequence + touch.target.touch_points:
        assert 100 <= p.x <= 700
        assert 100 <= p.y <= 500
    assert {p.radius for p in seq.target.sequence} == {25.0}
    assert {p.radius for p in touch.target.touch_points} == {30.0}
    # The template itself is left alone.
    assert chores.target.sequence == ()


def test_sequence_length_follows_difficulty() -> None:
    chores = ChallengeTemplate("Chores", InteractionKind.SEQUENCE_CLICK, 4, 4000, 30, SequenceTarget(Size(80, 80)))
    sched, *_ = _scheduler(templates={"baby": (chores,), "adult": (chores,)})

    hardest = sched.generate(ADULT)
    assert hardest is not None
    assert hardest.difficulty == 5.0
    assert len(hardest.target.sequence) == 6

    easy = ChallengeTemplate("Chores", InteractionKind.SEQUENCE_CLICK, 1, 4000, 30, SequenceTarget(Size(80, 80)))
    sched, *_ = _scheduler(templates={"baby": (easy,)})
    c = sched.generate(BABY)
    assert c is not None
    assert c.difficulty == 1.0
    assert len(c.target.sequence) == 2


def test_random_layouts_repeat_for_the_same_seed() -> None:
    chores = ChallengeTemplate("Chores", InteractionKind.SEQUENCE_CLICK, 3, 4000, 30, SequenceTarget(Size(80, 80)))
    first, *_ = _scheduler(templates={"baby": (chores,)})
    second, *_ = _scheduler(templates={"baby": (chores,)})
    a = first.generate(BABY)
    b = second.generate(BABY)
    assert a is not None and b is not None
    assert a.target.sequence == b.target.sequence
