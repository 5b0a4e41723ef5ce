"""restic-b2 - restic backups to Backblaze B2, driven by a config directory.

This package provides:
- backup: validator, path resolver, retrying executor, retention, verification
- config: defensive env-file loader and immutable run settings
- logger: structured logging with session tracking and JSON support
- exceptions: phase exceptions carrying exit codes
"""

__version__ = "1.0.0"

from restic_b2.logger import (
    Logger,
    StructuredLogger,
    get_logger,
    create_logger,
)

from restic_b2.config import (
    ConfigPaths,
    EnvLoader,
    ResticSettings,
    RetentionPolicy,
    RetryPolicy,
    VerifyPolicy,
)

from restic_b2.exceptions import (
    ResticB2Error,
    ConfigError,
    BackupPermissionError,
    BackupError,
    NetworkError,
    VerificationError,
)

from restic_b2.backup import (
    BackupOrchestrator,
    BackupSummary,
    RunOptions,
    run_backup,
)

__all__ = [
    "__version__",
    # Logger
    "Logger",
    "StructuredLogger",
    "get_logger",
    "create_logger",
    # Config
    "ConfigPaths",
    "EnvLoader",
    "ResticSettings",
    "RetentionPolicy",
    "RetryPolicy",
    "VerifyPolicy",
    # Exceptions
    "ResticB2Error",
    "ConfigError",
    "BackupPermissionError",
    "BackupError",
    "NetworkError",
    "VerificationError",
    # Backup
    "BackupOrchestrator",
    "BackupSummary",
    "RunOptions",
    "run_backup",
]
