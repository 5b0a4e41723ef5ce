"""Backup execution with bounded retry on network failures"""

import logging
import socket
import time
from datetime import date
from typing import Callable, List, Optional

from restic_b2.backup.restic import FailureCategory, ResticResult, ResticRunner
from restic_b2.backup.retry import exponential_backoff, retry_call
from restic_b2.backup.summary import BackupSummary
from restic_b2.config.settings import ResticSettings
from restic_b2.exceptions import BackupError, NetworkError

logger = logging.getLogger(__name__)

_CATEGORY_MESSAGES = {
    FailureCategory.REPOSITORY_NOT_FOUND: "Repository does not exist or cannot be opened",
    FailureCategory.LOCKED: "Repository is locked by another process",
    FailureCategory.WRONG_PASSWORD: "Wrong repository password",
    FailureCategory.INCOMPLETE_SNAPSHOT: "Snapshot is incomplete: some source files could not be read",
    FailureCategory.INTERRUPTED: "Backup was interrupted",
    FailureCategory.NOT_INSTALLED: "restic binary not found",
}


class BackupExecutor:
    """Runs ``restic backup`` until it succeeds, fails terminally or runs out of retries

    Args:
        settings: Settings with resolved backup paths
        runner: Restic runner configured with the settings' environment
        sleep: Sleep function used between attempts
        hostname: Host tag (defaults to this machine's name)
        today: Date tag (defaults to today)
    """

    def __init__(
        self,
        settings: ResticSettings,
        runner: ResticRunner,
        sleep: Callable[[float], None] = time.sleep,
        hostname: Optional[str] = None,
        today: Optional[date] = None,
    ):
        self.settings = settings
        self.runner = runner
        self.sleep = sleep
        self.hostname = hostname or socket.gethostname()
        self.today = today or date.today()

    def snapshot_tags(self) -> List[str]:
        tags = list(self.settings.tags)
        for extra in (self.today.isoformat(), self.hostname):
            if extra and extra not in tags:
                tags.append(extra)
        return tags

    def _attempt(self, attempt: int, dry_run: bool) -> ResticResult:
        retry = self.settings.retry
        logger.info(f"Running restic backup (attempt {attempt}/{retry.max_attempts})")
        return self.runner.backup(
            [str(p) for p in self.settings.backup_paths],
            exclude_file=str(self.settings.exclude_file),
            tags=self.snapshot_tags(),
            dry_run=dry_run,
        )

    def _on_retry(self, attempt: int, result: ResticResult, delay: float) -> None:
        logger.warning(
            f"Network error detected. Retrying in {delay:g} seconds... "
            f"(Attempt {attempt}/{self.settings.retry.max_attempts})"
        )

    def run(self, dry_run: bool = False) -> BackupSummary:
        """Back up the configured paths

        Raises:
            NetworkError: Every attempt failed with a network failure
            BackupError: restic failed for any other reason
        """
        retry = self.settings.retry
        outcome = retry_call(
            lambda attempt: self._attempt(attempt, dry_run),
            max_attempts=retry.max_attempts,
            backoff=exponential_backoff(retry.base_delay),
            should_retry=lambda result: result.category.retryable,
            sleep=self.sleep,
            on_retry=self._on_retry,
        )
        result = outcome.result

        if outcome.exhausted:
            raise NetworkError(
                f"Network error after {outcome.attempts} attempts:",
                details={
                    "attempts": outcome.attempts,
                    "delays": outcome.delays,
                    "restic_exit_code": result.returncode,
                },
                output=result.output,
            )

        if not result.success:
            reason = _CATEGORY_MESSAGES.get(result.category, "restic backup failed")
            raise BackupError(
                f"{reason} (restic exit code {result.returncode})",
                details={
                    "category": result.category.value,
                    "restic_exit_code": result.returncode,
                    "attempts": outcome.attempts,
                },
                phase=f"Attempting to back up to {self.settings.repository}",
                output=result.output,
            )

        summary = BackupSummary.from_output(result.stdout)
        if dry_run:
            summary = summary.model_copy(update={"dry_run": True})
        logger.info(
            f"Backup complete after {outcome.attempts} attempt(s)"
            + (f", snapshot {summary.short_id}" if summary.short_id else "")
        )
        return summary
