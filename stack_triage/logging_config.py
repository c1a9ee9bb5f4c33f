"""Logging helpers for per-run debug traces."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

__all__ = [
    "DEBUG_FORMAT",
    "configure_debug_file_logger",
    "close_debug_logger",
]

DEBUG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
# Debug handlers carry the (level, propagate) the logger had before them.
_MARKER = "_stack_triage_debug"


def _drop_debug_handlers(logger: logging.Logger) -> Optional[Tuple[int, bool]]:
    saved: Optional[Tuple[int, bool]] = None
    for handler in list(logger.handlers):
        state = getattr(handler, _MARKER, None)
        if state is None:
            continue
        logger.removeHandler(handler)
        handler.close()
        if saved is None:
            saved = state
    return saved


def configure_debug_file_logger(
    name: str,
    path: Path,
    *,
    level: int = logging.DEBUG,
    formatter: logging.Formatter | None = None,
) -> logging.Logger:
    """Return the ``name`` logger with a handler writing to ``path``.

    Debug handlers installed by an earlier call are replaced, so each run
    starts a fresh trace file.  Records stop propagating to the root logger
    so the console keeps its own verbosity.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(name)
    saved = _drop_debug_handlers(logger)
    if saved is None:
        saved = (logger.level, logger.propagate)
    logger.setLevel(level)
    logger.propagate = False

    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    setattr(handler, _MARKER, saved)
    handler.setLevel(level)
    handler.setFormatter(formatter or logging.Formatter(DEBUG_FORMAT))
    logger.addHandler(handler)
    return logger


def close_debug_logger(logger: logging.Logger) -> None:
    """Tear down handlers installed by :func:`configure_debug_file_logger`.

    The logger's level and propagation are put back to what they were.
    """

    saved = _drop_debug_handlers(logger)
    if saved is not None:
        level, propagate = saved
        logger.setLevel(level)
        logger.propagate = propagate
