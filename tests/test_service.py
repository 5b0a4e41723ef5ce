"""End-to-end tests for BackupOrchestrator with a scripted restic."""

import io
import json
from datetime import date
from pathlib import Path

import pytest

from restic_b2.backup.service import BackupOrchestrator, RunOptions, run_backup
from restic_b2.config import ConfigPaths
from restic_b2.logger import create_logger

from conftest import FakeRunner, make_result, network_failure


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def backup_succeeded(self):
        self.events.append("succeeded")
        return True

    def backup_failed(self, exit_code):
        self.events.append(("failed", exit_code))
        return True


class Harness:
    """Orchestrator wired to in-memory output, log stream and sleep."""

    def __init__(self, config_dir, runner=None, options=None, today=date(2026, 10, 18), notifier=None):
        self.runner = runner or FakeRunner()
        self.output = io.StringIO()
        self.log = io.StringIO()
        self.sleeps = []
        self.orchestrator = BackupOrchestrator(
            ConfigPaths(config_dir),
            options=options,
            logger=create_logger(stream=self.log),
            runner_factory=self.runner,
            sleep=self.sleeps.append,
            notifier=notifier,
            output=self.output,
            environ={"PATH": "/usr/bin"},
            today=today,
            hostname="laptop",
        )

    def run(self) -> int:
        return self.orchestrator.run()

    @property
    def report(self) -> str:
        return self.output.getvalue()


class TestSuccessfulRun:
    """All phases succeed."""

    def test_full_run(self, config_dir):
        harness = Harness(config_dir)

        assert harness.run() == 0
        assert harness.runner.commands() == ["backup", "forget", "check"]
        assert "BACKUP SUCCESSFUL" in harness.report
        assert "18KiB" in harness.report
        assert "All backup operations completed successfully" in harness.log.getvalue()

    def test_runner_receives_derived_environment(self, config_dir):
        harness = Harness(config_dir)
        harness.run()

        env = harness.runner.env
        assert env["PATH"] == "/usr/bin"
        assert env["RESTIC_REPOSITORY"] == "b2:my-bucket:host"
        assert env["RESTIC_PASSWORD_FILE"] == str(config_dir / "repository.password")
        assert harness.runner.binary == "restic"

    def test_no_prune(self, config_dir):
        harness = Harness(config_dir, options=RunOptions(prune=False))

        assert harness.run() == 0
        assert harness.runner.commands() == ["backup", "check"]

    def test_forget_without_prune(self, config_dir):
        with open(config_dir / "restic.env", "a") as env_file:
            env_file.write("RESTIC_PRUNE=false\n")
        harness = Harness(config_dir)

        assert harness.run() == 0
        forget_args = harness.runner.calls[1][1]
        assert forget_args[:2] == ["--keep-daily", "30"]
        assert "--prune" not in forget_args

    def test_notify_without_notify_send_warns(self, config_dir, monkeypatch):
        monkeypatch.setattr("shutil.which", lambda name: None)
        harness = Harness(config_dir, options=RunOptions(notify=True))

        assert harness.run() == 0
        assert "notify-send is not installed" in harness.log.getvalue()

    def test_dry_run_skips_retention_and_check(self, config_dir):
        harness = Harness(config_dir, options=RunOptions(dry_run=True))

        assert harness.run() == 0
        assert harness.runner.commands() == ["backup"]
        assert harness.runner.calls[0][4] is True
        assert "BACKUP SUCCESSFUL (DRY RUN)" in harness.report

    @pytest.mark.parametrize("day,commands", [(1, ["backup", "forget", "check"]), (2, ["backup", "forget"])])
    def test_monthly_verification(self, config_dir, day, commands):
        harness = Harness(config_dir, options=RunOptions(verify_mode="monthly"), today=date(2026, 10, day))

        assert harness.run() == 0
        assert harness.runner.commands() == commands

    def test_retention_failure_does_not_fail_run(self, config_dir):
        runner = FakeRunner(forget=make_result(1, stderr="Fatal: unable to create lock", args=("forget",)))
        harness = Harness(config_dir, runner=runner)

        assert harness.run() == 0
        assert runner.commands() == ["backup", "forget", "check"]
        assert "Cleanup failed" in harness.log.getvalue()

    def test_lenient_paths_skip_missing(self, config_dir, backup_source):
        (config_dir / "backup-paths.conf").write_text(f"{backup_source}\n/nonexistent/dir\n")
        harness = Harness(config_dir, options=RunOptions(strict_paths=False))

        assert harness.run() == 0
        assert harness.runner.calls[0][1] == [str(backup_source.resolve())]

    def test_notifies_success(self, config_dir):
        notifier = RecordingNotifier()
        harness = Harness(config_dir, notifier=notifier)

        harness.run()

        assert notifier.events == ["succeeded"]


class TestFailedRun:
    """Each phase failure maps to its exit code and a failure report."""

    def test_missing_config_file(self, config_dir):
        (config_dir / "restic.env").unlink()
        harness = Harness(config_dir)

        assert harness.run() == 10
        assert harness.runner.calls == []
        assert "BACKUP FAILED" in harness.report
        assert "Configuration validation" in harness.report
        assert str(config_dir / "restic.env") in harness.report

    def test_missing_env_variable(self, config_dir):
        (config_dir / "restic.env").write_text("B2_ACCOUNT_ID=x\nB2_ACCOUNT_KEY=y\n")

        assert Harness(config_dir).run() == 10

    def test_insecure_password_file(self, config_dir):
        (config_dir / "repository.password").chmod(0o644)
        harness = Harness(config_dir)

        assert harness.run() == 11
        assert harness.runner.calls == []

    def test_missing_backup_path(self, config_dir, backup_source):
        (config_dir / "backup-paths.conf").write_text(f"{backup_source}\n/nonexistent/dir\n")
        harness = Harness(config_dir)

        assert harness.run() == 11
        assert harness.report.count("(not found)") == 1
        assert harness.runner.calls == []

    def test_over_long_backup_path_reported(self, config_dir, backup_source, tmp_path):
        too_long = tmp_path / ("x" * 300) / "data"
        (config_dir / "backup-paths.conf").write_text(f"{backup_source}\n{too_long}\n")
        harness = Harness(config_dir)

        assert harness.run() == 11
        assert "BACKUP FAILED" in harness.report
        assert "(not found)" in harness.report
        assert harness.runner.calls == []

    def test_unsearchable_config_dir(self, config_dir, monkeypatch):
        def is_file(self):
            raise PermissionError(13, "Permission denied", str(self))

        monkeypatch.setattr(Path, "is_file", is_file)
        harness = Harness(config_dir)

        assert harness.run() == 11
        assert "Cannot access configuration file" in harness.report

    def test_network_failure_after_retries(self, config_dir):
        harness = Harness(config_dir, runner=FakeRunner(backup=[network_failure()]))

        assert harness.run() == 13
        assert harness.sleeps == [30, 60]
        assert harness.runner.commands() == ["backup"] * 3
        assert "Network error after 3 attempts:" in harness.report
        assert "connection refused" in harness.report

    def test_fatal_backup_failure(self, config_dir):
        runner = FakeRunner(backup=[make_result(12, stderr="Fatal: wrong password or no key found")])
        harness = Harness(config_dir, runner=runner)

        assert harness.run() == 12
        assert harness.sleeps == []
        assert "Attempting to back up to b2:my-bucket:host" in harness.report

    def test_file_names_do_not_look_like_network_errors(self, config_dir):
        status = {"message_type": "status", "current_files": ["/home/me/db-connection-pool.md"]}
        failure = make_result(
            1,
            stdout=json.dumps(status) + "\n",
            stderr="Fatal: unable to save snapshot: snapshot tree is corrupt",
        )
        harness = Harness(config_dir, runner=FakeRunner(backup=[failure]))

        assert harness.run() == 12
        assert harness.runner.commands() == ["backup"]
        assert harness.sleeps == []

    def test_verification_failure(self, config_dir):
        runner = FakeRunner(check=make_result(1, stderr="Fatal: pack abc is damaged", args=("check",)))
        harness = Harness(config_dir, runner=runner)

        assert harness.run() == 14
        assert "BACKUP SUCCESSFUL" in harness.report
        assert "BACKUP FAILED" in harness.report
        assert "pack abc is damaged" in harness.report

    def test_interrupted(self, config_dir):
        def interrupted_factory(binary, env=None, timeout=None):
            raise KeyboardInterrupt

        harness = Harness(config_dir)
        harness.orchestrator.runner_factory = interrupted_factory

        assert harness.run() == 130

    def test_notifies_failure(self, config_dir):
        (config_dir / "restic.env").unlink()
        notifier = RecordingNotifier()

        Harness(config_dir, notifier=notifier).run()

        assert notifier.events == [("failed", 10)]


def test_run_backup_missing_config_dir(tmp_path, capsys):
    exit_code = run_backup(str(tmp_path / "absent"), logger=create_logger(stream=io.StringIO()))

    assert exit_code == 10
    assert "BACKUP FAILED" in capsys.readouterr().out
