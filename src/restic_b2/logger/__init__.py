"""
restic-b2 Logger Module

Structured logging with per-run session tracking and optional JSON output.

Usage:
    from restic_b2.logger import create_logger

    logger = create_logger()                      # configured from environment
    logger = create_logger(level=logging.DEBUG, json_format=True,
                           log_file="~/.local/share/restic-logs/backup-%Y-%m.log")
    logger.info("Backup started", repository="b2:bucket:host")

Environment Variables (for logger name ``restic_b2``):
    RESTIC_B2_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL (default INFO)
    RESTIC_B2_LOG_FILE: Log file path, strftime placeholders allowed
    RESTIC_B2_LOG_JSON: "true" for JSON lines

Modules of the package log through ``logging.getLogger(__name__)``; their
records propagate into the ``restic_b2`` logger configured here.
"""

import logging
import os
from typing import Optional, TextIO

from .interface import Logger
from .structured_logger import (
    JsonFormatter,
    SessionFilter,
    StructuredLogger,
    TextFormatter,
    expand_log_path,
)

DEFAULT_LOGGER_NAME = "restic_b2"


def _env_prefix(name: str) -> str:
    """``restic_b2`` and ``restic-b2`` both map to ``RESTIC_B2``."""
    return name.upper().replace("-", "_").replace(".", "_")


def create_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: Optional[int] = None,
    log_file: Optional[str] = None,
    json_format: Optional[bool] = None,
    stream: Optional[TextIO] = None,
) -> Logger:
    """Build a StructuredLogger; arguments left as None come from the environment.

    Args:
        name: Logger name, also the environment variable prefix
        level: Logging level (default: ``{PREFIX}_LOG_LEVEL`` or INFO)
        log_file: Log file (default: ``{PREFIX}_LOG_FILE``)
        json_format: JSON output (default: ``{PREFIX}_LOG_JSON == "true"``)
        stream: Console stream (default: stderr)
    """
    prefix = _env_prefix(name)

    if level is None:
        level_name = os.environ.get(f"{prefix}_LOG_LEVEL", "INFO").upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            level = logging.INFO

    if log_file is None:
        log_file = os.environ.get(f"{prefix}_LOG_FILE") or None

    if json_format is None:
        json_format = os.environ.get(f"{prefix}_LOG_JSON", "").strip().lower() == "true"

    return StructuredLogger(
        name=name,
        level=level,
        log_file=log_file,
        json_format=json_format,
        stream=stream,
    )


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> Logger:
    """Logger configured entirely from environment variables."""
    return create_logger(name=name)


__all__ = [
    "DEFAULT_LOGGER_NAME",
    # Interface
    "Logger",
    # Implementation
    "StructuredLogger",
    "SessionFilter",
    "expand_log_path",
    # Formatters
    "JsonFormatter",
    "TextFormatter",
    # Factory functions
    "create_logger",
    "get_logger",
]
