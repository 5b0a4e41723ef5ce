"""Configuration Module for restic-b2

Example:
    from restic_b2.config import ConfigPaths, ResticSettings

    paths = ConfigPaths.from_env()           # ~/.config/restic by default
    settings = ResticSettings.from_files(paths)
"""

from restic_b2.config.env_loader import ENV_KEY_PATTERN, EnvLoader
from restic_b2.config.settings import (
    CONFIG_DIR_ENV,
    DEFAULT_CONFIG_DIR,
    REQUIRED_VARIABLES,
    ConfigPaths,
    ResticSettings,
    RetentionPolicy,
    RetryPolicy,
    VerifyPolicy,
)

__all__ = [
    # Env file parsing
    "ENV_KEY_PATTERN",
    "EnvLoader",
    # Settings
    "CONFIG_DIR_ENV",
    "DEFAULT_CONFIG_DIR",
    "REQUIRED_VARIABLES",
    "ConfigPaths",
    "ResticSettings",
    "RetentionPolicy",
    "RetryPolicy",
    "VerifyPolicy",
]
