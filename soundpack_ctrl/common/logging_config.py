"""Logging setup for soundpack-ctrl.

The CLI and the pack update scheduler call `configure_logging` once at start-up;
the install pipeline modules only call `get_logger`. Audit and validation
summaries go to DEBUG; `validate` output is its violation lines only.
Removals by the sanitizer and publish steps are logged at INFO.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

_LEVEL_MAP = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}


def configure_logging(level: str | int | None = None, *, force: bool = False) -> None:
    """Configure root logger.

    Order of precedence for level:
    1. Explicit `level` argument if given
    2. Environment variable `SOUNDPACK_LOG_LEVEL`
    3. Fallback to `INFO`
    """
    if level is None:
        level = os.environ.get("SOUNDPACK_LOG_LEVEL", "INFO")

    if isinstance(level, str):
        level = _LEVEL_MAP.get(level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=force,
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a project logger, configuring logging lazily on first access."""
    logger = logging.getLogger(name or "soundpack_ctrl")
    if not logging.getLogger().handlers:  # pragma: no cover
        configure_logging()
    return logger


__all__ = ["configure_logging", "get_logger"]
