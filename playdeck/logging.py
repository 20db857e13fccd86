"""Logging configuration utilities."""

from __future__ import annotations

import logging
from pathlib import Path
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    stream: bool = False,
) -> None:
    """Configure application wide logging handlers.

    The interactive client owns the terminal, so records only go to stderr when
    ``stream`` is requested (batch mode) or when no log file is configured.
    """

    handlers: list[logging.Handler] = []
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path))
    if stream or not handlers:
        handlers.append(logging.StreamHandler(sys.stderr))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
