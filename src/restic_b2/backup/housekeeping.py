"""Snapshot retention

Applies the keep-daily/weekly/monthly/yearly policy with ``restic forget``.
A failed cleanup does not undo a successful backup, so it is reported as a
warning rather than raised.
"""

import logging

from restic_b2.backup.report import excerpt
from restic_b2.backup.restic import ResticRunner
from restic_b2.config.settings import RetentionPolicy


class ResticHousekeeping:
    """Manages snapshot retention in the restic repository"""

    def __init__(self, runner: ResticRunner, policy: RetentionPolicy):
        self.runner = runner
        self.policy = policy
        self.logger = logging.getLogger(__name__)

    def run_cleanup(self) -> bool:
        """Forget (and prune) snapshots outside the retention policy

        Returns:
            True if restic forget succeeded
        """
        args = self.policy.forget_args()
        self.logger.info(f"Cleaning up old snapshots: restic forget {' '.join(args)}")
        result = self.runner.forget(args)

        if not result.success:
            self.logger.warning(
                f"Cleanup failed (backup succeeded), restic exit code {result.returncode}: "
                + " | ".join(excerpt(result.output, max_lines=5))
            )
            return False

        self.logger.info("Cleanup completed")
        return True
