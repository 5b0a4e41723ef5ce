"""Thin wrapper around the restic binary

Runs restic as a subprocess with an explicit environment and classifies
failures. Classification prefers what restic itself reports (exit code,
``exit_error``/``error`` JSON records); keyword matching on the output text
is only a fallback for failures restic does not categorise.
"""

import json
import logging
import re
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)


class FailureCategory(str, Enum):
    """Why a restic invocation failed"""

    NONE = "none"
    NETWORK = "network"
    REPOSITORY_NOT_FOUND = "repository_not_found"
    LOCKED = "locked"
    WRONG_PASSWORD = "wrong_password"
    INCOMPLETE_SNAPSHOT = "incomplete_snapshot"
    INTERRUPTED = "interrupted"
    NOT_INSTALLED = "not_installed"
    FATAL = "fatal"

    @property
    def retryable(self) -> bool:
        return self is FailureCategory.NETWORK


# restic exit codes (restic >= 0.17 documents these as stable)
RESTIC_EXIT_CATEGORIES = {
    3: FailureCategory.INCOMPLETE_SNAPSHOT,
    10: FailureCategory.REPOSITORY_NOT_FOUND,
    11: FailureCategory.LOCKED,
    12: FailureCategory.WRONG_PASSWORD,
    130: FailureCategory.INTERRUPTED,
}

NETWORK_KEYWORDS = re.compile(r"network|connection|timeout|timed out|unreachable", re.IGNORECASE)
PROVIDER_KEYWORDS = re.compile(r"B2|[Bb]ackblaze")

# restic's own text for the categories above, for builds that exit 1 on everything
_MESSAGE_CATEGORIES = (
    (re.compile(r"wrong password or no key found"), FailureCategory.WRONG_PASSWORD),
    (re.compile(r"repository does not exist"), FailureCategory.REPOSITORY_NOT_FOUND),
    (re.compile(r"unable to create lock|repository is already locked"), FailureCategory.LOCKED),
)


def classify_by_keywords(text: str) -> FailureCategory:
    """Fallback classification on free-form output"""
    if NETWORK_KEYWORDS.search(text) or PROVIDER_KEYWORDS.search(text):
        return FailureCategory.NETWORK
    return FailureCategory.FATAL


def parse_json_lines(text: str) -> List[Dict[str, Any]]:
    """Every line of ``text`` that is a JSON object, in order"""
    records = []
    for line in text.splitlines():
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(record, dict):
            records.append(record)
    return records


@dataclass
class ResticResult:
    """Outcome of one restic invocation"""

    args: Sequence[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    category: FailureCategory = FailureCategory.NONE
    records: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined output, stderr first since that is where restic reports errors"""
        return "\n".join(part for part in (self.stderr.strip(), self.stdout.strip()) if part)

    def error_messages(self) -> List[str]:
        """Messages from ``exit_error`` and ``error`` JSON records"""
        messages = []
        for record in self.records:
            message_type = record.get("message_type")
            if message_type == "exit_error" and record.get("message"):
                messages.append(str(record["message"]))
            elif message_type == "error":
                error = record.get("error")
                if isinstance(error, dict) and error.get("message"):
                    messages.append(str(error["message"]))
        return messages

    def diagnostic_text(self) -> str:
        """Text the keyword fallback may inspect

        Plain-text lines of both streams plus the messages of restic's error
        records. Other JSON fields are left out since ``status`` records and
        the ``item`` of error records carry the names of files being backed up.
        """
        plain = [
            line
            for line in (self.stderr + "\n" + self.stdout).splitlines()
            if line.strip() and not line.lstrip().startswith("{")
        ]
        parts = [*plain, *self.error_messages()]
        return "\n".join(part for part in parts if part)


def classify_result(result: ResticResult) -> FailureCategory:
    """Decide why ``result`` failed

    1. restic's exit code when it carries a category
    2. restic's ``exit_error``/``error`` messages matched against its own wording
    3. keyword matching on stderr and error messages (see diagnostic_text)
    """
    if result.success:
        return FailureCategory.NONE

    category = RESTIC_EXIT_CATEGORIES.get(result.returncode)
    if category is not None:
        return category

    for message in result.error_messages():
        for pattern, message_category in _MESSAGE_CATEGORIES:
            if pattern.search(message):
                return message_category

    return classify_by_keywords(result.diagnostic_text())


class ResticRunner:
    """Runs restic subcommands

    Args:
        binary: restic executable name or path
        env: Complete environment for the subprocess
        timeout: Optional per-invocation timeout in seconds
    """

    def __init__(self, binary: str = "restic", env: Optional[Mapping[str, str]] = None,
                 timeout: Optional[float] = None):
        self.binary = binary
        self.env = dict(env) if env is not None else None
        self.timeout = timeout

    def run(self, *args: str) -> ResticResult:
        """Run ``restic <args>`` and classify the result. Never raises for restic failures."""
        cmd = [self.binary, *args]
        logger.debug(f"run: {' '.join(cmd)}")
        try:
            completed = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                env=self.env,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            return ResticResult(
                args=list(args),
                returncode=127,
                stderr=f"restic binary not found: {self.binary} ({exc})",
                category=FailureCategory.NOT_INSTALLED,
            )
        except subprocess.TimeoutExpired as exc:
            stdout = exc.stdout.decode() if isinstance(exc.stdout, bytes) else (exc.stdout or "")
            return ResticResult(
                args=list(args),
                returncode=124,
                stdout=stdout,
                stderr=f"restic {args[0] if args else ''} timed out after {self.timeout} seconds",
                category=FailureCategory.NETWORK,
            )

        result = ResticResult(
            args=list(args),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        result.records = parse_json_lines(result.stdout) + parse_json_lines(result.stderr)
        result.category = classify_result(result)
        return result

    def backup(self, paths: Sequence[str], exclude_file: str, tags: Sequence[str] = (),
               dry_run: bool = False) -> ResticResult:
        args = ["backup", "--json", f"--exclude-file={exclude_file}"]
        for tag in tags:
            args.extend(["--tag", tag])
        if dry_run:
            args.append("--dry-run")
        args.extend(str(p) for p in paths)
        return self.run(*args)

    def forget(self, policy_args: Sequence[str]) -> ResticResult:
        return self.run("forget", *policy_args)

    def check(self, read_data_subset: Optional[str] = None) -> ResticResult:
        args = ["check"]
        if read_data_subset:
            args.append(f"--read-data-subset={read_data_subset}")
        return self.run(*args)
