"""Configuration directory validation

Checks that the four configuration files exist and that the repository
password file is readable by its owner only. Configuration defects are not
transient, so nothing here is retried.
"""

import logging
import stat
from pathlib import Path

from restic_b2.config.settings import ConfigPaths
from restic_b2.exceptions import BackupPermissionError, ConfigError

logger = logging.getLogger(__name__)

# Anything beyond owner read/write (0o600)
INSECURE_MODE_BITS = 0o177


def _inaccessible(path: Path, exc: OSError) -> BackupPermissionError:
    return BackupPermissionError(
        f"Cannot access configuration file {path}: {exc.strerror or exc}",
        code="CONFIG_FILE_INACCESSIBLE",
        details={"path": str(path), "errno": exc.errno},
        phase="Configuration validation",
    )


def check_config_files(paths: ConfigPaths) -> None:
    """Fail with ConfigError listing every missing configuration file

    Raises:
        ConfigError: One or more files are missing
        BackupPermissionError: A file's existence cannot be checked
            (e.g. the configuration directory is not searchable)
    """
    missing = []
    for path in paths.required_files():
        try:
            if not path.is_file():
                missing.append(str(path))
        except OSError as exc:
            raise _inaccessible(path, exc) from exc

    if missing:
        raise ConfigError(
            "Missing configuration files:\n" + "\n".join(missing),
            code="MISSING_CONFIG_FILES",
            details={"missing": missing, "config_dir": str(paths.config_dir)},
            phase="Configuration validation",
        )
    logger.debug(f"All configuration files present in {paths.config_dir}")


def check_password_file_mode(password_file: Path) -> None:
    """Fail with BackupPermissionError if the password file is group/other accessible

    Modes 0600, 0400 and 0200 pass; 0640, 0644, 0700 and the like fail.
    """
    try:
        mode = stat.S_IMODE(password_file.stat().st_mode)
    except OSError as exc:
        raise _inaccessible(password_file, exc) from exc

    if mode & INSECURE_MODE_BITS:
        raise BackupPermissionError(
            f"Password file {password_file} has insecure mode {mode:04o}; "
            f"run: chmod 600 {password_file}",
            code="INSECURE_PASSWORD_FILE",
            details={"password_file": str(password_file), "mode": f"{mode:04o}"},
            phase="Configuration validation",
        )


def validate_config_dir(paths: ConfigPaths) -> None:
    """Run every configuration directory check"""
    check_config_files(paths)
    check_password_file_mode(paths.password_file)
    logger.info(f"Configuration directory validated: {paths.config_dir}")
