"""Typed settings for a restic-b2 run.

Design principles:
- One immutable settings object is built from the configuration directory
  and passed explicitly to every phase; nothing is exported into os.environ
- The restic subprocess receives a derived environment mapping
- Optional knobs come from the credentials file first, then the process
  environment, then defaults
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from restic_b2.config.env_loader import EnvLoader
from restic_b2.exceptions import ConfigError

DEFAULT_CONFIG_DIR = Path("~/.config/restic")
CONFIG_DIR_ENV = "RESTIC_B2_CONFIG_DIR"

REQUIRED_VARIABLES = ("B2_ACCOUNT_ID", "B2_ACCOUNT_KEY", "RESTIC_REPOSITORY")


@dataclass(frozen=True)
class ConfigPaths:
    """Fixed layout of the restic configuration directory

    Attributes:
        config_dir: Directory holding the four configuration files
    """

    config_dir: Path

    ENV_FILENAME = "restic.env"
    PASSWORD_FILENAME = "repository.password"
    BACKUP_PATHS_FILENAME = "backup-paths.conf"
    EXCLUDE_PATTERNS_FILENAME = "exclude-patterns.conf"

    @property
    def env_file(self) -> Path:
        return self.config_dir / self.ENV_FILENAME

    @property
    def password_file(self) -> Path:
        return self.config_dir / self.PASSWORD_FILENAME

    @property
    def backup_paths_file(self) -> Path:
        return self.config_dir / self.BACKUP_PATHS_FILENAME

    @property
    def exclude_file(self) -> Path:
        return self.config_dir / self.EXCLUDE_PATTERNS_FILENAME

    def required_files(self) -> Tuple[Path, ...]:
        """All files that must exist before a backup is attempted, in report order"""
        return (self.env_file, self.password_file, self.backup_paths_file, self.exclude_file)

    @classmethod
    def from_env(cls, config_dir: Optional[Path | str] = None) -> "ConfigPaths":
        """Resolve the configuration directory

        Precedence: explicit argument, RESTIC_B2_CONFIG_DIR, ~/.config/restic
        """
        raw = config_dir or os.environ.get(CONFIG_DIR_ENV) or DEFAULT_CONFIG_DIR
        return cls(config_dir=Path(raw).expanduser())


class RetryPolicy(BaseModel):
    """Bounded retry for transient network failures"""

    model_config = {"frozen": True}

    max_attempts: int = Field(default=3, ge=1, description="Total backup attempts")
    base_delay: float = Field(default=30.0, ge=0, description="Delay before the 2nd attempt, in seconds")


class RetentionPolicy(BaseModel):
    """Keep counts passed to ``restic forget``"""

    model_config = {"frozen": True}

    keep_hourly: Optional[int] = Field(default=None, ge=0)
    keep_daily: Optional[int] = Field(default=30, ge=0)
    keep_weekly: Optional[int] = Field(default=12, ge=0)
    keep_monthly: Optional[int] = Field(default=12, ge=0)
    keep_yearly: Optional[int] = Field(default=5, ge=0)
    tag: Optional[str] = Field(default="automated-backup", description="Only forget snapshots with this tag")
    prune: bool = Field(default=True, description="Pass --prune; False only forgets snapshots")

    def forget_args(self) -> Tuple[str, ...]:
        args = []
        for name in ("hourly", "daily", "weekly", "monthly", "yearly"):
            value = getattr(self, f"keep_{name}")
            if value is not None:
                args.extend([f"--keep-{name}", str(value)])
        if self.tag:
            args.extend(["--tag", self.tag])
        if self.prune:
            args.append("--prune")
        return tuple(args)


class VerifyPolicy(BaseModel):
    """When and how much of the repository ``restic check`` reads back"""

    model_config = {"frozen": True}

    mode: str = Field(default="always", description="always, monthly or never")
    day_of_month: int = Field(default=1, ge=1, le=31)
    read_data_subset: str = Field(default="5%")

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        valid = ["always", "monthly", "never"]
        if v.lower() not in valid:
            raise ValueError(f"Verify mode must be one of: {', '.join(valid)}")
        return v.lower()

    @field_validator("read_data_subset")
    @classmethod
    def validate_subset(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("read_data_subset must not be empty")
        return v


@dataclass(frozen=True)
class ResticSettings:
    """Configuration bundle handed from phase to phase

    Attributes:
        repository: Restic repository locator (e.g. b2:bucket:path)
        b2_account_id: B2 key id
        b2_account_key: B2 application key
        password_file: Validated repository password file
        exclude_file: File passed to ``--exclude-file``
        password: Inline repository password; when set it wins over password_file
        backup_paths: Resolved absolute paths, filled in by the path resolver
        retry: Retry policy for network failures
        retention: Keep counts for ``restic forget``
        verify: Repository check policy
        restic_binary: Executable name or path
        tags: Tags added to every snapshot
        timeout: Per-invocation timeout in seconds (None: no limit)
        file_env: Every variable from the credentials file, forwarded to restic
    """

    repository: str
    b2_account_id: str
    b2_account_key: str
    password_file: Path
    exclude_file: Path
    password: Optional[str] = None
    backup_paths: Tuple[Path, ...] = ()
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    retention: RetentionPolicy = field(default_factory=RetentionPolicy)
    verify: VerifyPolicy = field(default_factory=VerifyPolicy)
    restic_binary: str = "restic"
    tags: Tuple[str, ...] = ("automated-backup",)
    timeout: Optional[float] = None
    file_env: Mapping[str, str] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"ResticSettings(repository={self.repository!r}, "
            f"backup_paths={[str(p) for p in self.backup_paths]!r}, "
            f"password={'<set>' if self.password else None})"
        )

    def with_backup_paths(self, paths: Tuple[Path, ...]) -> "ResticSettings":
        return replace(self, backup_paths=tuple(paths))

    def restic_environment(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Environment for the restic subprocess

        Args:
            base: Inherited environment (defaults to os.environ)
        """
        env = dict(os.environ if base is None else base)
        env.update(self.file_env)
        env["RESTIC_REPOSITORY"] = self.repository
        env["B2_ACCOUNT_ID"] = self.b2_account_id
        env["B2_ACCOUNT_KEY"] = self.b2_account_key
        if self.password:
            env["RESTIC_PASSWORD"] = self.password
            env.pop("RESTIC_PASSWORD_FILE", None)
        else:
            env.pop("RESTIC_PASSWORD", None)
            env["RESTIC_PASSWORD_FILE"] = str(self.password_file)
        return env

    @classmethod
    def from_files(
        cls,
        paths: ConfigPaths,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ResticSettings":
        """Load settings from the credentials file of a configuration directory

        Args:
            paths: Configuration directory layout (already validated)
            environ: Fallback environment for variables missing from the file

        Environment variables (file first, then environ):
            B2_ACCOUNT_ID, B2_ACCOUNT_KEY, RESTIC_REPOSITORY: required
            RESTIC_PASSWORD: inline password (else the password file is used)
            RESTIC_MAX_RETRIES, RESTIC_RETRY_DELAY: retry policy
            RESTIC_KEEP_HOURLY/DAILY/WEEKLY/MONTHLY/YEARLY, RESTIC_FORGET_TAG,
                RESTIC_PRUNE (false: forget only, leave pruning to a later run): retention
            RESTIC_VERIFY, RESTIC_VERIFY_DAY, RESTIC_CHECK_SUBSET: verification
            RESTIC_BINARY, RESTIC_TAGS, RESTIC_TIMEOUT: invocation
        """
        environ = os.environ if environ is None else environ
        file_env = EnvLoader(paths.env_file).load()

        def lookup(name: str) -> Optional[str]:
            value = file_env.get(name)
            if value is None or value == "":
                value = environ.get(name)
            return value or None

        missing = [name for name in REQUIRED_VARIABLES if not lookup(name)]
        if missing:
            raise ConfigError(
                f"Missing environment variables in {paths.env_file}: {', '.join(missing)}",
                code="MISSING_ENV_VARIABLES",
                details={"missing": missing, "env_file": str(paths.env_file)},
                phase="Environment validation",
            )

        try:
            retry = RetryPolicy(
                max_attempts=_parse_int(lookup("RESTIC_MAX_RETRIES"), "RESTIC_MAX_RETRIES", 3),
                base_delay=_parse_float(lookup("RESTIC_RETRY_DELAY"), "RESTIC_RETRY_DELAY", 30.0),
            )
            retention = RetentionPolicy(
                keep_hourly=_parse_int(lookup("RESTIC_KEEP_HOURLY"), "RESTIC_KEEP_HOURLY", None),
                keep_daily=_parse_int(lookup("RESTIC_KEEP_DAILY"), "RESTIC_KEEP_DAILY", 30),
                keep_weekly=_parse_int(lookup("RESTIC_KEEP_WEEKLY"), "RESTIC_KEEP_WEEKLY", 12),
                keep_monthly=_parse_int(lookup("RESTIC_KEEP_MONTHLY"), "RESTIC_KEEP_MONTHLY", 12),
                keep_yearly=_parse_int(lookup("RESTIC_KEEP_YEARLY"), "RESTIC_KEEP_YEARLY", 5),
                tag=lookup("RESTIC_FORGET_TAG") or "automated-backup",
                prune=(lookup("RESTIC_PRUNE") or "true").strip().lower() in ("true", "1", "yes"),
            )
            verify = VerifyPolicy(
                mode=lookup("RESTIC_VERIFY") or "always",
                day_of_month=_parse_int(lookup("RESTIC_VERIFY_DAY"), "RESTIC_VERIFY_DAY", 1),
                read_data_subset=lookup("RESTIC_CHECK_SUBSET") or "5%",
            )
        except ValidationError as exc:
            raise ConfigError(
                f"Invalid settings in {paths.env_file}: {exc}",
                code="INVALID_SETTINGS",
                details={"env_file": str(paths.env_file)},
                phase="Environment validation",
            ) from exc

        tags_value = lookup("RESTIC_TAGS")
        tags = (
            tuple(t.strip() for t in tags_value.split(",") if t.strip())
            if tags_value
            else ("automated-backup",)
        )

        return cls(
            repository=lookup("RESTIC_REPOSITORY"),
            b2_account_id=lookup("B2_ACCOUNT_ID"),
            b2_account_key=lookup("B2_ACCOUNT_KEY"),
            password=lookup("RESTIC_PASSWORD"),
            password_file=paths.password_file,
            exclude_file=paths.exclude_file,
            retry=retry,
            retention=retention,
            verify=verify,
            restic_binary=lookup("RESTIC_BINARY") or "restic",
            tags=tags,
            timeout=_parse_float(lookup("RESTIC_TIMEOUT"), "RESTIC_TIMEOUT", None),
            file_env=dict(file_env),
        )


def _parse_int(value: Optional[str], name: str, default: Optional[int]) -> Optional[int]:
    """Convert optional string to int, raising ConfigError when invalid."""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(
            f"{name} must be an integer, got {value!r}",
            code="INVALID_SETTINGS",
            details={"variable": name},
            phase="Environment validation",
        ) from exc


def _parse_float(value: Optional[str], name: str, default: Optional[float]) -> Optional[float]:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(
            f"{name} must be a number, got {value!r}",
            code="INVALID_SETTINGS",
            details={"variable": name},
            phase="Environment validation",
        ) from exc
