"""Exceptions for restic-b2.

Every exception carries the phase that failed and the exit code the process
terminates with:

    ConfigError            -> 10
    BackupPermissionError  -> 11
    BackupError            -> 12
    NetworkError           -> 13
    VerificationError      -> 14

Usage:
    from restic_b2.exceptions import ConfigError, NetworkError
"""

from restic_b2.exceptions.base import (
    EXIT_BACKUP_ERROR,
    EXIT_CONFIG_ERROR,
    EXIT_INTERRUPTED,
    EXIT_NETWORK_ERROR,
    EXIT_PERMISSION_ERROR,
    EXIT_SUCCESS,
    EXIT_VERIFICATION_ERROR,
    BackupError,
    BackupPermissionError,
    ConfigError,
    NetworkError,
    ResticB2Error,
    VerificationError,
)

__all__ = [
    # Base exception
    "ResticB2Error",
    # Phase exceptions
    "ConfigError",
    "BackupPermissionError",
    "BackupError",
    "NetworkError",
    "VerificationError",
    # Exit codes
    "EXIT_SUCCESS",
    "EXIT_CONFIG_ERROR",
    "EXIT_PERMISSION_ERROR",
    "EXIT_BACKUP_ERROR",
    "EXIT_NETWORK_ERROR",
    "EXIT_VERIFICATION_ERROR",
    "EXIT_INTERRUPTED",
]
