"""Desktop notifications via notify-send

Best effort: a missing notify-send or a failing notification is logged and
never changes the outcome of the run.
"""

import logging
import shutil
import subprocess
from typing import Optional

logger = logging.getLogger(__name__)


class DesktopNotifier:
    """Sends completion/failure notifications"""

    def __init__(self, binary: Optional[str] = None):
        self.binary = binary or shutil.which("notify-send")

    @property
    def available(self) -> bool:
        return self.binary is not None

    def send(self, title: str, body: str, critical: bool = False) -> bool:
        if not self.binary:
            logger.debug("notify-send not available, skipping notification")
            return False
        cmd = [self.binary]
        if critical:
            cmd.extend(["-u", "critical"])
        cmd.extend([title, body])
        try:
            subprocess.run(cmd, check=True, capture_output=True, timeout=10)
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Desktop notification failed: {e}")
            return False
        return True

    def backup_succeeded(self) -> bool:
        return self.send("Backup Complete", "Restic backup completed successfully")

    def backup_failed(self, exit_code: int) -> bool:
        return self.send(
            "Backup Failed",
            f"Restic backup failed with exit code {exit_code} - check logs",
            critical=True,
        )
