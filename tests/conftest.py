"""Shared fixtures: a populated configuration directory and a scripted restic."""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from restic_b2.backup.restic import ResticResult, classify_result, parse_json_lines
from restic_b2.config.settings import ConfigPaths

SUMMARY_RECORD = {
    "message_type": "summary",
    "files_new": 2,
    "files_changed": 1,
    "files_unmodified": 40,
    "dirs_new": 0,
    "dirs_changed": 1,
    "dirs_unmodified": 7,
    "data_added": 18432,
    "total_files_processed": 43,
    "total_bytes_processed": 1048576,
    "total_duration": 75.4,
    "snapshot_id": "1a2b3c4d5e6f7a8b9c0d",
}

ENV_TEXT = """\
# Backblaze credentials
B2_ACCOUNT_ID=0012345abcdef
B2_ACCOUNT_KEY='K001secret'
export RESTIC_REPOSITORY="b2:my-bucket:host"
"""


def make_result(
    returncode: int = 0,
    stdout: str = "",
    stderr: str = "",
    args: Sequence[str] = ("backup",),
) -> ResticResult:
    """Build a ResticResult classified the same way ResticRunner.run does."""
    result = ResticResult(args=list(args), returncode=returncode, stdout=stdout, stderr=stderr)
    result.records = parse_json_lines(stdout) + parse_json_lines(stderr)
    result.category = classify_result(result)
    return result


def summary_output(**overrides) -> str:
    record = dict(SUMMARY_RECORD, **overrides)
    status = {"message_type": "status", "percent_done": 1.0}
    return json.dumps(status) + "\n" + json.dumps(record) + "\n"


def network_failure() -> ResticResult:
    return make_result(1, stderr="Fatal: unable to open repository: dial tcp: connection refused")


class FakeRunner:
    """Stands in for ResticRunner; replays scripted results per subcommand."""

    def __init__(
        self,
        backup: Optional[List[ResticResult]] = None,
        forget: Optional[ResticResult] = None,
        check: Optional[ResticResult] = None,
    ):
        self.backup_results = list(backup or [make_result(0, stdout=summary_output())])
        self.forget_result = forget or make_result(0, args=("forget",))
        self.check_result = check or make_result(0, args=("check",))
        self.calls: List[tuple] = []
        self.binary: Optional[str] = None
        self.env: Optional[Dict[str, str]] = None
        self.timeout: Optional[float] = None

    def __call__(self, binary: str, env=None, timeout=None) -> "FakeRunner":
        # Used as the orchestrator's runner_factory
        self.binary = binary
        self.env = dict(env) if env is not None else None
        self.timeout = timeout
        return self

    def backup(self, paths, exclude_file, tags=(), dry_run=False) -> ResticResult:
        self.calls.append(("backup", list(paths), exclude_file, list(tags), dry_run))
        if len(self.backup_results) > 1:
            return self.backup_results.pop(0)
        return self.backup_results[0]

    def forget(self, policy_args) -> ResticResult:
        self.calls.append(("forget", list(policy_args)))
        return self.forget_result

    def check(self, read_data_subset=None) -> ResticResult:
        self.calls.append(("check", read_data_subset))
        return self.check_result

    def commands(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo StructuredLogger's handler setup so caplog sees package records."""
    yield
    package_logger = logging.getLogger("restic_b2")
    for handler in package_logger.handlers:
        handler.close()
    package_logger.handlers.clear()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def backup_source(tmp_path: Path) -> Path:
    source = tmp_path / "documents"
    source.mkdir()
    (source / "notes.txt").write_text("hello")
    return source


@pytest.fixture
def config_dir(tmp_path: Path, backup_source: Path) -> Path:
    directory = tmp_path / "config"
    directory.mkdir()
    (directory / "restic.env").write_text(ENV_TEXT)
    password = directory / "repository.password"
    password.write_text("correct horse battery staple\n")
    password.chmod(0o600)
    (directory / "backup-paths.conf").write_text(f"# what to back up\n\n{backup_source}\n")
    (directory / "exclude-patterns.conf").write_text("*.tmp\n.cache\n")
    return directory


@pytest.fixture
def config_paths(config_dir: Path) -> ConfigPaths:
    return ConfigPaths(config_dir)
