"""Base exception classes for restic-b2.

All restic-b2 exceptions include structured error information:
- code: Machine-readable error identifier
- message: Human-readable error description
- details: Additional context for debugging/recovery
- phase: Orchestrator phase that failed (shown as "Task" in reports)
- exit_code: Process exit status for the failing phase
"""

from typing import Any, Dict, Optional

EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 10
EXIT_PERMISSION_ERROR = 11
EXIT_BACKUP_ERROR = 12
EXIT_NETWORK_ERROR = 13
EXIT_VERIFICATION_ERROR = 14
EXIT_INTERRUPTED = 130


class ResticB2Error(Exception):
    """Base exception for all restic-b2 errors.

    Attributes:
        code: Machine-readable error code (e.g., "MISSING_CONFIG_FILES")
        message: Human-readable error message
        details: Optional additional context for debugging/recovery
        phase: Name of the phase that raised the error
        output: Diagnostic text (e.g. restic output) for the failure report
    """

    default_code = "RESTIC_B2_ERROR"
    default_phase = "Backup"
    exit_code = 1

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        phase: Optional[str] = None,
        output: str = "",
    ):
        """Initialize error with structured information.

        Args:
            message: Human-readable error message
            code: Error code (defaults to the class default)
            details: Optional additional context
            phase: Phase name (defaults to the class default)
            output: Raw diagnostic output, truncated when reported
        """
        self.code = code or self.default_code
        self.message = message
        self.details = details or {}
        self.phase = phase or self.default_phase
        self.output = output
        super().__init__(message)

    def __str__(self) -> str:
        """Return formatted error string."""
        if self.details:
            return f"{self.code}: {self.message} (details: {self.details})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization.

        Returns:
            Dictionary with code, message, details, phase and exit_code keys.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "phase": self.phase,
            "exit_code": self.exit_code,
        }


class ConfigError(ResticB2Error):
    """Missing or malformed configuration. Never retried."""

    default_code = "CONFIG_ERROR"
    default_phase = "Configuration validation"
    exit_code = EXIT_CONFIG_ERROR


class BackupPermissionError(ResticB2Error):
    """Insecure password file mode or inaccessible backup path. Never retried."""

    default_code = "PERMISSION_ERROR"
    default_phase = "Permission check"
    exit_code = EXIT_PERMISSION_ERROR


class BackupError(ResticB2Error):
    """Restic failed for a reason that is not worth retrying."""

    default_code = "BACKUP_ERROR"
    default_phase = "Backup"
    exit_code = EXIT_BACKUP_ERROR


class NetworkError(BackupError):
    """Transient transport failure that survived every retry attempt."""

    default_code = "NETWORK_ERROR"
    default_phase = "Network connection to B2"
    exit_code = EXIT_NETWORK_ERROR


class VerificationError(ResticB2Error):
    """Post-backup repository check failed."""

    default_code = "VERIFICATION_ERROR"
    default_phase = "Repository check"
    exit_code = EXIT_VERIFICATION_ERROR
