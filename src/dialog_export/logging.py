"""
Logging utilities for dialog-export.

All modules log through children of the ``dialog_export`` logger so a single
call to :func:`setup_logging` controls the watcher, the exporter and the web
server alike.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

_root_logger = logging.getLogger("dialog_export")

DEFAULT_FORMAT = "[%(asctime)s] %(message)s"
DEBUG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
DEFAULT_DATEFMT = "%H:%M:%S"


def setup_logging(
    level: str | int = "INFO",
    format: str | None = None,
    stream: TextIO | None = None,
    file: str | None = None,
) -> None:
    """
    Configure logging for dialog-export.

    Args:
        level: Log level name or number
        format: Custom log format string. Defaults to a short
            ``[HH:MM:SS] message`` line, or a verbose one at DEBUG level.
        stream: Output stream (defaults to stdout, where the watcher reports)
        file: Optional file path to also write logs to

    Example:
        from dialog_export.logging import setup_logging

        setup_logging("DEBUG", file="watcher.log")
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    _root_logger.setLevel(level)
    _root_logger.handlers.clear()
    _root_logger.propagate = False

    if format is None:
        format = DEBUG_FORMAT if level <= logging.DEBUG else DEFAULT_FORMAT

    formatter = logging.Formatter(format, datefmt=DEFAULT_DATEFMT)

    stream_handler = logging.StreamHandler(stream or sys.stdout)
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(level)
    _root_logger.addHandler(stream_handler)

    if file:
        file_handler = logging.FileHandler(file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(DEBUG_FORMAT))
        file_handler.setLevel(level)
        _root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger for a submodule.

    Args:
        name: Submodule name (e.g., "watcher", "exporter")
    """
    if name.startswith("dialog_export."):
        return logging.getLogger(name)
    return logging.getLogger(f"dialog_export.{name}")
