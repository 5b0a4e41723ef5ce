"""
Structured logger for backup runs.

Console output goes to stderr so the reports printed on stdout stay
machine-readable. An optional log file may contain strftime placeholders,
which is how scheduled runs keep one file per month
(``~/.local/share/restic-logs/backup-%Y-%m.log``).
"""

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from .interface import Logger

TEXT_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] [session:%(session_id)s] %(message)s"

# LogRecord attributes that are never treated as extra fields
_RESERVED_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName", "session_id"}


def extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Structured fields attached to ``record`` through ``extra``."""
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_KEYS}


def expand_log_path(log_file: str, now: Optional[datetime] = None) -> Path:
    """Expand ``~`` and strftime placeholders in a log file path."""
    now = now or datetime.now()
    return Path(now.strftime(log_file)).expanduser()


class SessionFilter(logging.Filter):
    """Stamp the run's session id on records from child loggers."""

    def __init__(self, session_id: str):
        super().__init__()
        self.session_id = session_id

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session_id"):
            record.session_id = self.session_id
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; extra fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        session_id = getattr(record, "session_id", None)
        if session_id:
            entry["session_id"] = session_id
        entry.update(extra_fields(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable line with ``key=value`` pairs appended."""

    def __init__(self, fmt: str = TEXT_FORMAT):
        super().__init__(fmt)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = extra_fields(record)
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


class StructuredLogger(Logger):
    """Logger for one backup run.

    Configures the ``restic_b2`` stdlib logger (replacing handlers left by an
    earlier instance) and tags every record, including those from module
    loggers below it, with a short session id.

    Example:
        logger = StructuredLogger(
            json_format=True,
            log_file="~/.local/share/restic-logs/backup-%Y-%m.log",
        )
        logger.info("Backup complete", snapshot_id="1a2b3c4d", attempts=1)
    """

    def __init__(
        self,
        name: str = "restic_b2",
        level: int = logging.INFO,
        log_file: Optional[str] = None,
        json_format: bool = False,
        stream: Optional[TextIO] = None,
    ):
        """
        Args:
            name: Name of the stdlib logger to configure
            level: Minimum level emitted
            log_file: Optional log file; ``~`` and strftime placeholders are
                expanded and parent directories created
            json_format: JSON lines instead of text
            stream: Console stream (default: stderr)
        """
        self._session_id = uuid.uuid4().hex[:8]
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)
        self._logger.propagate = False
        for handler in list(self._logger.handlers):
            self._logger.removeHandler(handler)
            handler.close()

        formatter = JsonFormatter() if json_format else TextFormatter()
        self._add_handler(logging.StreamHandler(stream or sys.stderr), formatter)

        self.log_path: Optional[Path] = None
        if log_file:
            log_path = expand_log_path(log_file)
            try:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                self._add_handler(logging.FileHandler(log_path), formatter)
                self.log_path = log_path
            except OSError as e:
                # The run must not fail because its log file is unavailable
                self.warning(f"Cannot open log file {log_path}, logging to console only: {e}")

    def _add_handler(self, handler: logging.Handler, formatter: logging.Formatter) -> None:
        handler.setFormatter(formatter)
        handler.addFilter(SessionFilter(self._session_id))
        self._logger.addHandler(handler)

    def get_session_id(self) -> str:
        return self._session_id

    def log(self, level: int, message: str, **kwargs: Any) -> None:
        # Fields that collide with LogRecord attributes get a leading underscore
        extra = {(f"_{k}" if k in _RESERVED_KEYS else k): v for k, v in kwargs.items()}
        self._logger.log(level, message, extra=extra)
