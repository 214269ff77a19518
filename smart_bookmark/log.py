"""Package logger.

The TUI owns the terminal, so log records go to a file instead of stderr.
"""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger("smart_bookmark")


def setup_logging(path: Path | None = None, level: int = logging.INFO) -> None:
    """Attach a file handler to the package logger.

    Calling this more than once replaces the previous file handler.
    """
    logger.setLevel(level)
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()
    if path is None:
        return
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError:
        logger.debug("Cannot open log file %s", path, exc_info=True)
        return
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
