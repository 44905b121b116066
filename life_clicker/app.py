"""Pygame front end for Life Clicker.

The window is the play field: challenges are drawn as circles at their spawn
positions, and raw mouse / finger events are translated into the engine's
normalized pointer events by :class:`PointerTranslator`.

Game rules, timing and scoring live in the core modules; nothing here
decides whether a challenge succeeds.
"""

from __future__ import annotations

import logging
import math
import os
import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .clock import RealClock
from .challenge import Urgency
from .game_core import Point
from .interactions import (
    ClickTarget,
    DragTarget,
    InputEvent,
    InputType,
    InteractionKind,
    MultiTouchTarget,
    PressTarget,
    RhythmTarget,
    SequenceTarget,
    SwipeTarget,
)
from .scheduler import ChallengeView, SchedulerConfig
from .scoring import Evaluation
from .session import GameConfig, GamePhase, GameSession, build_game_session

logger = logging.getLogger(__name__)

WINDOW_SIZE = (800, 600)
TARGET_FPS = 60
MAX_FRAME_MS = 250.0
SEED_ENV = "LIFE_CLICKER_SEED"

SWIPE_MAX_DURATION_MS = 400.0
SWIPE_MIN_DISTANCE = 50.0
NOTIFICATION_TTL_MS = 1500.0

URGENCY_COLOURS: dict[Urgency, tuple[int, int, int]] = {
    Urgency.NORMAL: (72, 168, 255),
    Urgency.URGENT: (255, 184, 64),
    Urgency.CRITICAL: (240, 72, 72),
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class App:
    def __init__(self, surface: pygame.Surface) -> None:
        self._surface = surface
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def replace(self, screen: Screen) -> None:
        if self._screens:
            self._screens[-1] = screen
        else:
            self._screens.append(screen)

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class PointerTranslator:
    """Turn pygame mouse and finger events into engine ``InputEvent``s.

    - left button down: ``press_start`` then ``click``
    - motion with the left button held: ``drag`` (delta from the press point)
    - left button up: ``press_end``, plus ``swipe`` for a quick long stroke
    - two or more fingers down: ``multi_touch`` with every finger position
    """

    def __init__(self, field_size: tuple[int, int] = WINDOW_SIZE) -> None:
        self._field_w, self._field_h = field_size
        self._down_at: Point | None = None
        self._down_ms = 0.0
        self._fingers: dict[int, Point] = {}

    @property
    def is_pressed(self) -> bool:
        return self._down_at is not None

    def translate(self, event: pygame.event.Event, now_ms: float) -> list[InputEvent]:
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            x, y = event.pos
            self._down_at = Point(float(x), float(y))
            self._down_ms = now_ms
            return [
                InputEvent(InputType.PRESS_START, float(x), float(y)),
                InputEvent(InputType.CLICK, float(x), float(y)),
            ]

        if event.type == pygame.MOUSEMOTION and self._down_at is not None:
            buttons = getattr(event, "buttons", (1, 0, 0))
            if not buttons or not buttons[0]:
                return []
            x, y = event.pos
            return [
                InputEvent(
                    InputType.DRAG,
                    float(x),
                    float(y),
                    delta_x=float(x) - self._down_at.x,
                    delta_y=float(y) - self._down_at.y,
                )
            ]

        if event.type == pygame.MOUSEBUTTONUP and event.button == 1:
            x, y = event.pos
            out = [InputEvent(InputType.PRESS_END, float(x), float(y))]
            start = self._down_at
            self._down_at = None
            if start is not None:
                dx = float(x) - start.x
                dy = float(y) - start.y
                quick = now_ms - self._down_ms <= SWIPE_MAX_DURATION_MS
                if quick and math.hypot(dx, dy) >= SWIPE_MIN_DISTANCE:
                    out.append(InputEvent(InputType.SWIPE, float(x), float(y), delta_x=dx, delta_y=dy))
            return out

        if event.type in (pygame.FINGERDOWN, pygame.FINGERMOTION):
            self._fingers[event.finger_id] = Point(event.x * self._field_w, event.y * self._field_h)
            if event.type == pygame.FINGERDOWN and len(self._fingers) >= 2:
                return [InputEvent(InputType.MULTI_TOUCH, touches=tuple(self._fingers.values()))]
            return []

        if event.type == pygame.FINGERUP:
            self._fingers.pop(event.finger_id, None)
            return []

        return []

    def reset(self) -> None:
        self._down_at = None
        self._fingers.clear()


def _kind_hint(view: ChallengeView) -> str:
    target = view.target
    kind = view.kind
    if kind == InteractionKind.RAPID_CLICK and isinstance(target, ClickTarget):
        return f"Click x{target.required_clicks}"
    if isinstance(target, DragTarget):
        return f"Drag {target.drag_distance:.0f}px"
    if isinstance(target, PressTarget):
        return f"Hold {target.required_duration_ms / 1000.0:.1f}s"
    if isinstance(target, SwipeTarget):
        return f"Swipe {target.direction}"
    if isinstance(target, RhythmTarget):
        return f"Tap the beat x{target.required_beats}"
    if kind == InteractionKind.DOUBLE_CLICK:
        return "Double-click"
    if kind == InteractionKind.DRAW_CIRCLE:
        return "Draw a circle"
    if kind == InteractionKind.SEQUENCE_CLICK:
        return "Click in order"
    if kind == InteractionKind.MULTI_TOUCH:
        return "Touch all"
    if kind == InteractionKind.MOVING_OBJECT:
        return "Catch it"
    return "Click"


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem]) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._title_font = pygame.font.Font(None, 56)
        self._item_font = pygame.font.Font(None, 34)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._selected = (self._selected - 1) % len(self._items)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._selected = (self._selected + 1) % len(self._items)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._items[self._selected].action()
        elif event.key == pygame.K_ESCAPE:
            self._app.quit()

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        surface.fill((16, 20, 38))

        title = self._title_font.render(self._title, True, (240, 240, 250))
        surface.blit(title, title.get_rect(center=(w // 2, h // 4)))

        y = h // 2 - 20
        for idx, item in enumerate(self._items):
            selected = idx == self._selected
            row = pygame.Rect(w // 2 - 140, y, 280, 44)
            pygame.draw.rect(surface, (236, 240, 255) if selected else (30, 38, 70), row, border_radius=8)
            colour = (18, 24, 60) if selected else (220, 226, 240)
            text = self._item_font.render(item.label, True, colour)
            surface.blit(text, text.get_rect(center=row.center))
            y += 56

        hint = self._hint_font.render("Up/Down: Select  |  Enter: Confirm  |  Esc: Quit", True, (150, 160, 190))
        surface.blit(hint, hint.get_rect(midbottom=(w // 2, h - 16)))


class GameScreen:
    def __init__(self, app: App, *, session_factory: Callable[[], GameSession]) -> None:
        self._app = app
        self._session_factory = session_factory
        self._session = session_factory()
        self._clock = RealClock()
        self._translator = PointerTranslator()
        self._last_ms: float | None = None
        self._messages: list[tuple[str, bool, float]] = []

        self._hud_font = pygame.font.Font(None, 28)
        self._label_font = pygame.font.Font(None, 22)
        self._small_font = pygame.font.Font(None, 18)

        self._session.start()

    @property
    def session(self) -> GameSession:
        return self._session

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
            self._session.finish()
            self._show_results()
            return
        for input_event in self._translator.translate(event, self._clock.now_ms()):
            self._session.handle_input(input_event)

    def render(self, surface: pygame.Surface) -> None:
        now_ms = self._clock.now_ms()
        dt_ms = 0.0 if self._last_ms is None else min(MAX_FRAME_MS, now_ms - self._last_ms)
        self._last_ms = now_ms
        self._session.update(dt_ms)

        for note in self._session.drain_notifications():
            self._messages.append((note.name, note.success, now_ms + NOTIFICATION_TTL_MS))
        self._messages = [m for m in self._messages if m[2] > now_ms]

        if self._session.phase is GamePhase.FINISHED:
            self._show_results()
            return

        snap = self._session.snapshot()
        surface.fill((12, 14, 24))
        for view in snap.challenges:
            self._draw_challenge(surface, view)
        self._draw_hud(surface, snap.stage_name, snap.time_left_ms, snap.score, snap.stage_progress)
        self._draw_messages(surface)

    def _show_results(self) -> None:
        evaluation = self._session.finish()
        self._app.replace(ResultsScreen(self._app, evaluation=evaluation, restart=self._restart))

    def _restart(self) -> None:
        self._app.replace(GameScreen(self._app, session_factory=self._session_factory))

    def _draw_challenge(self, surface: pygame.Surface, view: ChallengeView) -> None:
        centre = (int(view.position.x), int(view.position.y))
        radius = max(8, int(view.target.size.radius))
        colour = URGENCY_COLOURS[view.urgency]

        pygame.draw.circle(surface, colour, centre, radius)
        pygame.draw.circle(surface, (240, 240, 250), centre, radius, 2)

        # Remaining time as an outer ring, progress as an inner arc.
        ring = pygame.Rect(0, 0, radius * 2 + 12, radius * 2 + 12)
        ring.center = centre
        if view.time_remaining_ratio > 0:
            pygame.draw.arc(surface, (200, 200, 210), ring, math.pi / 2, math.pi / 2 + 2 * math.pi * view.time_remaining_ratio, 3)
        if view.progress > 0:
            inner = pygame.Rect(0, 0, radius * 2 - 10, radius * 2 - 10)
            inner.center = centre
            pygame.draw.arc(surface, (90, 230, 120), inner, math.pi / 2, math.pi / 2 + 2 * math.pi * view.progress, 4)

        target = view.target
        if isinstance(target, SequenceTarget):
            for i, p in enumerate(target.sequence, start=1):
                pygame.draw.circle(surface, (250, 220, 120), (int(p.x), int(p.y)), int(p.radius), 2)
                num = self._small_font.render(str(i), True, (250, 220, 120))
                surface.blit(num, num.get_rect(center=(int(p.x), int(p.y))))
        elif isinstance(target, MultiTouchTarget):
            for p in target.touch_points:
                pygame.draw.circle(surface, (200, 140, 250), (int(p.x), int(p.y)), int(p.radius), 2)

        name = self._label_font.render(view.name, True, (240, 240, 250))
        surface.blit(name, name.get_rect(midtop=(centre[0], centre[1] + radius + 8)))
        hint = self._small_font.render(_kind_hint(view), True, (190, 196, 214))
        surface.blit(hint, hint.get_rect(midtop=(centre[0], centre[1] + radius + 26)))

    def _draw_hud(
        self,
        surface: pygame.Surface,
        stage_name: str | None,
        time_left_ms: float,
        score: int,
        stage_progress: float,
    ) -> None:
        w, _ = surface.get_size()
        bar = pygame.Rect(0, 0, w, 36)
        pygame.draw.rect(surface, (24, 28, 50), bar)

        stage = self._hud_font.render(stage_name or "-", True, (236, 240, 255))
        surface.blit(stage, (12, 8))
        score_txt = self._hud_font.render(f"Score {score}", True, (236, 240, 255))
        surface.blit(score_txt, score_txt.get_rect(midtop=(w // 2, 8)))
        left = self._hud_font.render(f"{time_left_ms / 1000.0:5.1f}s", True, (236, 240, 255))
        surface.blit(left, left.get_rect(topright=(w - 12, 8)))

        track = pygame.Rect(0, bar.bottom, w, 4)
        pygame.draw.rect(surface, (40, 46, 80), track)
        pygame.draw.rect(surface, (120, 200, 255), (0, bar.bottom, int(w * stage_progress), 4))

    def _draw_messages(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        y = h - 28
        for text, success, _ in reversed(self._messages[-4:]):
            colour = (110, 230, 140) if success else (240, 110, 110)
            label = self._label_font.render(("+ " if success else "x ") + text, True, colour)
            surface.blit(label, label.get_rect(bottomleft=(12, y)))
            y -= 22


class ResultsScreen:
    def __init__(self, app: App, *, evaluation: Evaluation, restart: Callable[[], None]) -> None:
        self._app = app
        self._evaluation = evaluation
        self._restart = restart
        self._big_font = pygame.font.Font(None, 72)
        self._mid_font = pygame.font.Font(None, 32)
        self._small_font = pygame.font.Font(None, 24)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            self._restart()
        elif event.key == pygame.K_ESCAPE:
            self._app.quit()

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        ev = self._evaluation
        surface.fill((16, 20, 38))

        tier = self._big_font.render(f"{ev.tier}", True, (250, 230, 140))
        surface.blit(tier, tier.get_rect(center=(w // 2, h // 4)))

        lines = [
            ev.description,
            f"Moments lived: {ev.completed_count} / {ev.total_possible_events} ({ev.percentage:.1f}%)",
            f"Score: {ev.total_score}",
        ]
        y = h // 2 - 30
        for line in lines:
            text = self._mid_font.render(line, True, (226, 232, 248))
            surface.blit(text, text.get_rect(center=(w // 2, y)))
            y += 44

        hint = self._small_font.render("Enter: Live again  |  Esc: Quit", True, (150, 160, 190))
        surface.blit(hint, hint.get_rect(midbottom=(w // 2, h - 16)))


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def _seed_from_env() -> int | None:
    raw = os.environ.get(SEED_ENV, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("ignoring non-integer %s=%r", SEED_ENV, raw)
        return None


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    seed: int | None = None,
) -> int:
    pygame.init()

    pygame.display.set_caption("Life Clicker")
    surface = pygame.display.set_mode(WINDOW_SIZE)

    clock = pygame.time.Clock()

    app = App(surface=surface)

    fixed_seed = seed if seed is not None else _seed_from_env()
    real_clock = RealClock()
    field_w, field_h = WINDOW_SIZE
    config = GameConfig(scheduler=SchedulerConfig(field_width=field_w, field_height=field_h))

    def make_session() -> GameSession:
        session_seed = fixed_seed if fixed_seed is not None else _new_seed()
        logger.info("new life with seed %d", session_seed)
        return build_game_session(clock=real_clock, seed=session_seed, config=config)

    def start_game() -> None:
        app.push(GameScreen(app, session_factory=make_session))

    app.push(
        MenuScreen(
            app,
            "Life Clicker",
            [
                MenuItem("Start a life", start_game),
                MenuItem("Quit", app.quit),
            ],
        )
    )

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
