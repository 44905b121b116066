from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

LOG_LEVEL_ENV = "LIFE_CLICKER_LOG_LEVEL"


def _ensure_repo_root_on_path() -> None:
    """Put the directory holding this package on ``sys.path``.

    Needed when the file is run directly (``python life_clicker/__main__.py``)
    rather than with ``python -m life_clicker``.
    """
    pkg_dir = Path(__file__).resolve().parent
    repo_root_str = str(pkg_dir.parent)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


try:
    # python -m life_clicker
    from .app import run  # type: ignore[attr-defined]
except ImportError:
    # Run as a plain script.
    _ensure_repo_root_on_path()
    from life_clicker.app import run  # type: ignore[attr-defined]


def main() -> int:
    """Entry point for playing from the command line."""
    level = os.environ.get(LOG_LEVEL_ENV, "WARNING").strip().upper() or "WARNING"
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
