"""restic-b2 Backup Module

Phases of a backup run and the orchestrator that sequences them.

Usage:
    from restic_b2.backup import BackupOrchestrator, RunOptions
    from restic_b2.config import ConfigPaths

    orchestrator = BackupOrchestrator(ConfigPaths.from_env(), RunOptions(prune=False))
    exit_code = orchestrator.run()
"""

from restic_b2.backup.executor import BackupExecutor
from restic_b2.backup.housekeeping import ResticHousekeeping
from restic_b2.backup.notify import DesktopNotifier
from restic_b2.backup.paths import PathEntry, PathResolver
from restic_b2.backup.report import render_failure, render_success
from restic_b2.backup.restic import FailureCategory, ResticResult, ResticRunner
from restic_b2.backup.retry import RetryOutcome, exponential_backoff, retry_call
from restic_b2.backup.service import BackupOrchestrator, RunOptions, run_backup
from restic_b2.backup.summary import BackupSummary, format_duration, format_iec_bytes
from restic_b2.backup.validator import (
    check_config_files,
    check_password_file_mode,
    validate_config_dir,
)
from restic_b2.backup.verify import ResticVerifier

__all__ = [
    "BackupExecutor",
    "BackupOrchestrator",
    "BackupSummary",
    "DesktopNotifier",
    "FailureCategory",
    "PathEntry",
    "PathResolver",
    "ResticHousekeeping",
    "ResticResult",
    "ResticRunner",
    "ResticVerifier",
    "RetryOutcome",
    "RunOptions",
    "check_config_files",
    "check_password_file_mode",
    "exponential_backoff",
    "format_duration",
    "format_iec_bytes",
    "render_failure",
    "render_success",
    "retry_call",
    "run_backup",
    "validate_config_dir",
]
