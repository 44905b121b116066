"""Test package for Life Clicker.

Core modules are tested directly with a fake millisecond clock; the
``*_headless_sim`` tests script whole lives through a ``GameSession``. The
pygame smoke tests use the SDL dummy video driver so no window opens. Run
``pytest`` from the project root.
"""
