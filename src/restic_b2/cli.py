#!/usr/bin/env python3
"""Command line entry point for restic-b2.

QUICK START:
    # Configuration lives in ~/.config/restic/ (or --config-dir):
    #   restic.env             B2_ACCOUNT_ID, B2_ACCOUNT_KEY, RESTIC_REPOSITORY, ...
    #   repository.password    chmod 600
    #   backup-paths.conf      one path per line, ~ allowed, # comments
    #   exclude-patterns.conf  restic --exclude-file patterns

    restic-b2                      # backup, retention, verification
    restic-b2 --no-prune           # backup only, skip retention
    restic-b2 --dry-run            # show what would be backed up
    restic-b2 --verify monthly     # check only on the configured day of month

EXIT CODES:
    0 success, 10 configuration, 11 permission, 12 backup, 13 network,
    14 verification, 130 interrupted
"""

import argparse
import logging
import os
import sys
from typing import Optional, Sequence

from restic_b2.backup.service import BackupOrchestrator, RunOptions
from restic_b2.config.settings import CONFIG_DIR_ENV, ConfigPaths
from restic_b2.logger import create_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="restic-b2",
        description="Back up local paths to Backblaze B2 with restic",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
EXAMPLES:
  Full backup with retention and verification:
    %(prog)s

  Backup only, skip pruning:
    %(prog)s --no-prune

  Skip missing paths instead of failing (systemd timer friendly):
    %(prog)s --lenient-paths --notify

ENVIRONMENT:
  RESTIC_B2_CONFIG_DIR   Configuration directory (default: ~/.config/restic)
  RESTIC_B2_LOG_LEVEL    DEBUG, INFO, WARNING, ERROR
  RESTIC_B2_LOG_FILE     Append logs to this file
  RESTIC_B2_LOG_JSON     "true" for JSON log lines
        """,
    )
    parser.add_argument(
        "--config-dir",
        default=os.environ.get(CONFIG_DIR_ENV),
        help="Configuration directory. Default: ~/.config/restic",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be backed up without making changes",
    )
    parser.add_argument(
        "--no-prune",
        action="store_true",
        help="Skip retention (restic forget --prune) after backup",
    )
    parser.add_argument(
        "--verify",
        choices=["always", "monthly", "never"],
        default=None,
        help="Override RESTIC_VERIFY from restic.env",
    )
    parser.add_argument(
        "--lenient-paths",
        action="store_true",
        help="Skip missing or unreadable backup paths instead of failing",
    )
    parser.add_argument(
        "--notify",
        action="store_true",
        help="Send a desktop notification (notify-send) on completion or failure",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Log level (default: RESTIC_B2_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to this file (default: RESTIC_B2_LOG_FILE)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=None,
        help="Write logs as JSON lines",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logger = create_logger(
        level=getattr(logging, args.log_level) if args.log_level else None,
        log_file=args.log_file,
        json_format=args.log_json,
    )
    options = RunOptions(
        dry_run=args.dry_run,
        prune=not args.no_prune,
        verify_mode=args.verify,
        strict_paths=not args.lenient_paths,
        notify=args.notify,
    )
    orchestrator = BackupOrchestrator(
        ConfigPaths.from_env(args.config_dir),
        options=options,
        logger=logger,
    )
    return orchestrator.run()


if __name__ == "__main__":
    sys.exit(main())
