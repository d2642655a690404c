# apphost/core/logger.py

"""
Logging helper for AppHost.

- One file (<log_dir>/apphost.log) plus the console
- Components log through children of the "apphost" logger, e.g.
  "apphost.SessionRegistry", so the name column tells which part of the
  embedding pipeline spoke
"""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_FILE_NAME = "apphost.log"


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(log_dir: Path | None = None, level: int | str = logging.INFO) -> logging.Logger:
    """
    Configure the "apphost" logger.

    Safe to call more than once: handlers are only created the first time;
    later calls just apply the new level (e.g. after the config changed).

    Args:
        log_dir: Directory for apphost.log (created if missing). Defaults to
            ./logs next to the package.
        level: Logging level or its name ("DEBUG", "info", ...). Unknown
            names fall back to INFO.

    Returns:
        The "apphost" logger
    """
    level = _resolve_level(level)
    logger = logging.getLogger("apphost")
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    if log_dir is None:
        log_dir = Path(__file__).resolve().parents[2] / "logs"
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    fmt = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setFormatter(fmt)
    fh.setLevel(level)
    logger.addHandler(fh)

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    ch.setLevel(level)
    logger.addHandler(ch)

    logger.info(f"AppHost logging to {log_file} at {logging.getLevelName(level)}")
    return logger
