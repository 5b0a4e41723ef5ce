#!/usr/bin/env python3
"""Backup Orchestrator for restic-b2

Runs the phases of a backup strictly in order:

    validate config dir -> load settings -> resolve paths -> restic backup
    -> restic forget (retention) -> restic check (verification)

Every phase raises a ResticB2Error subclass on failure; this module is the
only place those errors are turned into a failure report and an exit code.
"""

import sys
import time
from dataclasses import dataclass
from datetime import date
from typing import Callable, Mapping, Optional, TextIO

from restic_b2.backup.executor import BackupExecutor
from restic_b2.backup.housekeeping import ResticHousekeeping
from restic_b2.backup.notify import DesktopNotifier
from restic_b2.backup.paths import PathResolver
from restic_b2.backup.report import render_failure, render_success
from restic_b2.backup.restic import ResticRunner
from restic_b2.backup.summary import BackupSummary
from restic_b2.backup.validator import validate_config_dir
from restic_b2.backup.verify import ResticVerifier
from restic_b2.config.settings import ConfigPaths, ResticSettings
from restic_b2.exceptions import EXIT_INTERRUPTED, EXIT_SUCCESS, ResticB2Error
from restic_b2.logger import Logger, create_logger

RunnerFactory = Callable[..., ResticRunner]


@dataclass(frozen=True)
class RunOptions:
    """Per-invocation switches

    Attributes:
        dry_run: Pass --dry-run to restic; skips retention and verification
        prune: Apply the retention policy after a successful backup
        verify_mode: Overrides the configured verify mode (always, monthly, never)
        strict_paths: Fail on inaccessible backup paths instead of skipping them
        notify: Send desktop notifications
    """

    dry_run: bool = False
    prune: bool = True
    verify_mode: Optional[str] = None
    strict_paths: bool = True
    notify: bool = False


class BackupOrchestrator:
    """Main backup orchestrator"""

    def __init__(
        self,
        config_paths: ConfigPaths,
        options: Optional[RunOptions] = None,
        logger: Optional[Logger] = None,
        runner_factory: RunnerFactory = ResticRunner,
        sleep: Callable[[float], None] = time.sleep,
        notifier: Optional[DesktopNotifier] = None,
        output: Optional[TextIO] = None,
        environ: Optional[Mapping[str, str]] = None,
        today: Optional[date] = None,
        hostname: Optional[str] = None,
    ):
        self.config_paths = config_paths
        self.options = options or RunOptions()
        self.logger = logger or create_logger()
        self.runner_factory = runner_factory
        self.sleep = sleep
        if notifier is None and self.options.notify:
            notifier = DesktopNotifier()
            if not notifier.available:
                self.logger.warning("Desktop notifications requested but notify-send is not installed")
        self.notifier = notifier
        self.output = output or sys.stdout
        self.environ = environ
        self.today = today
        self.hostname = hostname
        self.settings: Optional[ResticSettings] = None

    def load_settings(self) -> ResticSettings:
        """Validate the config dir, load credentials and resolve backup paths"""
        validate_config_dir(self.config_paths)
        settings = ResticSettings.from_files(self.config_paths, environ=self.environ)
        self.logger.info("Environment loaded", repository=settings.repository)

        resolver = PathResolver(self.config_paths.backup_paths_file, strict=self.options.strict_paths)
        return settings.with_backup_paths(resolver.resolve())

    def build_runner(self, settings: ResticSettings) -> ResticRunner:
        return self.runner_factory(
            settings.restic_binary,
            env=settings.restic_environment(self.environ),
            timeout=settings.timeout,
        )

    def run_phases(self) -> BackupSummary:
        self.settings = settings = self.load_settings()
        runner = self.build_runner(settings)

        self.logger.info(
            f"Backing up {len(settings.backup_paths)} paths...",
            repository=settings.repository,
            dry_run=self.options.dry_run,
        )
        executor = BackupExecutor(
            settings, runner, sleep=self.sleep, hostname=self.hostname, today=self.today
        )
        summary = executor.run(dry_run=self.options.dry_run)
        self._emit(render_success(summary, settings.repository, settings.backup_paths))

        if self.options.dry_run:
            self.logger.info("Dry run: skipping retention and verification")
            return summary

        if self.options.prune:
            ResticHousekeeping(runner, settings.retention).run_cleanup()

        verifier = ResticVerifier(runner, settings.verify)
        if verifier.is_due(self.today, mode=self.options.verify_mode):
            verifier.verify()
        else:
            self.logger.info("Repository check not due, skipping")

        return summary

    def run(self) -> int:
        """Run a complete backup

        Returns:
            Process exit code (0 on success, phase-specific otherwise)
        """
        self.logger.info("Starting restic backup...", config_dir=str(self.config_paths.config_dir))
        try:
            summary = self.run_phases()
        except ResticB2Error as error:
            self._emit(render_failure(error))
            self.logger.error(
                f"{error.phase} failed: {(error.message.splitlines() or [''])[0]}",
                code=error.code,
                exit_code=error.exit_code,
            )
            if self.notifier:
                self.notifier.backup_failed(error.exit_code)
            return error.exit_code
        except KeyboardInterrupt:
            self.logger.error("Backup interrupted; a stale restic lock may need `restic unlock`")
            return EXIT_INTERRUPTED

        self.logger.info(
            "All backup operations completed successfully",
            snapshot_id=summary.short_id or None,
            files_new=summary.files_new,
            files_changed=summary.files_changed,
            data_added=summary.data_added,
        )
        if self.notifier:
            self.notifier.backup_succeeded()
        return EXIT_SUCCESS

    def _emit(self, text: str) -> None:
        print(text, file=self.output, flush=True)


def run_backup(
    config_dir: Optional[str] = None,
    options: Optional[RunOptions] = None,
    logger: Optional[Logger] = None,
) -> int:
    """Convenience wrapper: run one backup against ``config_dir``"""
    orchestrator = BackupOrchestrator(
        ConfigPaths.from_env(config_dir),
        options=options,
        logger=logger,
    )
    return orchestrator.run()


if __name__ == "__main__":
    sys.exit(run_backup())
