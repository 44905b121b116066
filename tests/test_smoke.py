"""Smoke tests for the pygame front end.

These check that the main loop can start, enter a game, take some pointer
input, end the game and restart without raising when the SDL dummy video
driver is used. They do not check what ends up on screen.
"""

from __future__ import annotations

import os

# Use the dummy drivers before importing pygame or the application
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")


def test_app_runs_headless() -> None:
    """The title menu can run a few frames headlessly."""
    # Import inside the test so that environment variables take effect
    from life_clicker.app import run

    exit_code = run(max_frames=3)
    assert exit_code == 0


def test_app_plays_ends_and_restarts_headless() -> None:
    import pygame

    from life_clicker.app import run

    def key(k: int) -> pygame.event.Event:
        return pygame.event.Event(pygame.KEYDOWN, {"key": k, "unicode": ""})

    def inject(frame: int) -> None:
        if frame == 1:
            pygame.event.post(key(pygame.K_RETURN))  # Start a life
        elif frame == 3:
            pygame.event.post(pygame.event.Event(pygame.MOUSEBUTTONDOWN, {"pos": (400, 300), "button": 1}))
        elif frame == 4:
            pygame.event.post(
                pygame.event.Event(pygame.MOUSEMOTION, {"pos": (460, 300), "rel": (60, 0), "buttons": (1, 0, 0)})
            )
        elif frame == 5:
            pygame.event.post(pygame.event.Event(pygame.MOUSEBUTTONUP, {"pos": (460, 300), "button": 1}))
        elif frame == 7:
            pygame.event.post(key(pygame.K_ESCAPE))  # End the life early
        elif frame == 9:
            pygame.event.post(key(pygame.K_RETURN))  # Live again

    assert run(max_frames=14, event_injector=inject, seed=1234) == 0


def test_seed_can_come_from_the_environment(monkeypatch) -> None:
    from life_clicker.app import run

    monkeypatch.setenv("LIFE_CLICKER_SEED", "not-a-number")
    assert run(max_frames=2) == 0
