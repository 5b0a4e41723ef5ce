"""
Logger interface for restic-b2.

The orchestrator only depends on this contract, so tests and embedding
applications can pass their own implementation.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any


class Logger(ABC):
    """Leveled logging with structured key/value context.

    Implementations provide ``log`` and ``get_session_id``; the level
    helpers delegate to ``log``.

    Example:
        logger.info("Backing up 3 paths...", repository="b2:bucket:host")
    """

    @abstractmethod
    def log(self, level: int, message: str, **kwargs: Any) -> None:
        """Emit ``message`` at ``level`` with ``kwargs`` as structured fields."""

    @abstractmethod
    def get_session_id(self) -> str:
        """Identifier shared by every record of one backup run."""

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log(logging.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        self.log(logging.CRITICAL, message, **kwargs)
