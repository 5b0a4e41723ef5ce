"""Repository verification

Runs ``restic check`` reading back a sampled subset of the pack data.
Verification is read-only: nothing is repaired or rolled back.
"""

import calendar
import logging
from datetime import date
from typing import Optional

from restic_b2.backup.restic import ResticRunner
from restic_b2.config.settings import VerifyPolicy
from restic_b2.exceptions import VerificationError


class ResticVerifier:
    """Verifies repository integrity after a backup"""

    def __init__(self, runner: ResticRunner, policy: VerifyPolicy):
        self.runner = runner
        self.policy = policy
        self.logger = logging.getLogger(__name__)

    def is_due(self, today: Optional[date] = None, mode: Optional[str] = None) -> bool:
        """Whether the check runs today

        Args:
            today: Date to evaluate (default: today)
            mode: Overrides the policy mode (always, monthly, never)
        """
        mode = (mode or self.policy.mode).lower()
        if mode == "always":
            return True
        if mode == "monthly":
            today = today or date.today()
            # Days 29-31 fall back to the last day of shorter months
            last_day = calendar.monthrange(today.year, today.month)[1]
            return today.day == min(self.policy.day_of_month, last_day)
        return False

    def verify(self) -> None:
        """Run the check

        Raises:
            VerificationError: restic check reported a problem
        """
        subset = self.policy.read_data_subset
        self.logger.info(f"Running repository check (read-data-subset={subset})")
        result = self.runner.check(read_data_subset=subset)

        if not result.success:
            raise VerificationError(
                f"Repository check failed (restic exit code {result.returncode})",
                details={
                    "restic_exit_code": result.returncode,
                    "read_data_subset": subset,
                    "category": result.category.value,
                },
                output=result.output,
            )

        self.logger.info(f"Repository check passed (read-data-subset={subset})")
