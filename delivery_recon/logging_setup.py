"""Centralized logging configuration for the ``delivery_recon`` package.

Library modules only call ``get_logger(__name__)``. The CLI calls
``configure_logging()`` once at startup; until then the package root logger
carries a ``NullHandler`` so embedding applications see nothing unless they
opt in.

Environment variables:
    DELIVERY_RECON_LOG_LEVEL: DEBUG, INFO, WARNING or ERROR. Default: WARNING
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER_NAME = "delivery_recon"
DEFAULT_LOG_LEVEL = logging.WARNING

LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"
LOG_FORMAT_DEBUG = "%(levelname)s [%(name)s:%(lineno)d] %(message)s"

_configured = False

logging.getLogger(PACKAGE_LOGGER_NAME).addHandler(logging.NullHandler())


def parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        level = os.environ.get("DELIVERY_RECON_LOG_LEVEL", "")
    name = level.strip().upper()
    if name == "WARN":
        name = "WARNING"
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name) if name else None
    return numeric if isinstance(numeric, int) else DEFAULT_LOG_LEVEL


def configure_logging(level: int | str | None = None, *, stream: IO[str] | None = None) -> None:
    """Attach a single stderr handler to the package logger.

    Args:
        level: Level as int or name. None reads DELIVERY_RECON_LOG_LEVEL.
        stream: Output stream, defaults to sys.stderr.
    """
    global _configured

    resolved = parse_level(level)
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    if _configured:
        set_log_level(resolved)
        return

    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT_DEBUG if resolved == logging.DEBUG else LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(resolved)
    logger.propagate = False
    _configured = True


def set_log_level(level: int) -> None:
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    logger.setLevel(level)
    for handler in logger.handlers:
        if isinstance(handler, logging.NullHandler):
            continue
        handler.setFormatter(logging.Formatter(LOG_FORMAT_DEBUG if level == logging.DEBUG else LOG_FORMAT))


def get_logger(name: str) -> logging.Logger:
    if name == PACKAGE_LOGGER_NAME or name.startswith(PACKAGE_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER_NAME}.{name}")
