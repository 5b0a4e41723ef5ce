"""Backup path list resolution

Reads ``backup-paths.conf``: one path per line, blank lines and ``#``
comments ignored. Each entry is tilde-expanded, made absolute and
symlink-normalized, then checked for existence and read permission.
"""

import errno
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from restic_b2.exceptions import BackupPermissionError, ConfigError

logger = logging.getLogger(__name__)

NOT_FOUND = "not found"
NOT_READABLE = "not readable"


@dataclass(frozen=True)
class PathEntry:
    """One resolved line of the path list"""

    raw: str
    path: Path
    line: int
    problem: Optional[str] = None

    @property
    def accessible(self) -> bool:
        return self.problem is None

    def describe(self) -> str:
        if self.problem:
            return f"{self.path} ({self.problem})"
        return str(self.path)


def iter_path_lines(lines: Iterable[str]) -> Iterable[Tuple[int, str]]:
    """Yield (line number, entry) for every non-blank, non-comment line"""
    for number, line in enumerate(lines, start=1):
        entry = line.strip()
        if not entry or entry.startswith("#"):
            continue
        yield number, entry


def resolve_entry(raw: str) -> Path:
    """Expand a leading ``~`` and resolve to an absolute, symlink-free path

    Raises:
        ConfigError: If the entry cannot be turned into a path (unknown
            ``~user``, embedded NUL byte, ...)
    """
    try:
        return Path(raw).expanduser().resolve()
    except (RuntimeError, ValueError, OSError) as exc:
        raise ConfigError(
            f"Cannot resolve backup path {raw!r}: {exc}",
            code="UNRESOLVABLE_PATH",
            details={"path": raw},
            phase="Path resolution",
        ) from exc


def classify(path: Path) -> Optional[str]:
    """Return None when the path can be backed up, else the reason it cannot

    A path whose existence cannot even be checked (an unsearchable parent
    directory) is reported as not readable; an over-long name as not found.
    """
    try:
        if not path.exists():
            return NOT_FOUND
    except OSError as exc:
        if exc.errno == errno.ENAMETOOLONG:
            return NOT_FOUND
        return NOT_READABLE
    if not os.access(path, os.R_OK):
        return NOT_READABLE
    return None


class PathResolver:
    """Turns the path list file into the ordered list restic receives

    Args:
        paths_file: The ``backup-paths.conf`` file
        strict: Fail on inaccessible entries (default). When False they are
            skipped with a warning.
    """

    def __init__(self, paths_file: Path, strict: bool = True):
        self.paths_file = Path(paths_file)
        self.strict = strict

    def read_entries(self) -> List[PathEntry]:
        try:
            text = self.paths_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(
                f"Cannot read path list {self.paths_file}: {exc}",
                code="PATH_LIST_UNREADABLE",
                details={"paths_file": str(self.paths_file)},
                phase="Path resolution",
            ) from exc

        entries = []
        for number, raw in iter_path_lines(text.splitlines()):
            path = resolve_entry(raw)
            entries.append(PathEntry(raw=raw, path=path, line=number, problem=classify(path)))
        return entries

    def resolve(self) -> Tuple[Path, ...]:
        """Resolve the path list

        Returns:
            Deduplicated absolute paths, in file order

        Raises:
            ConfigError: The list is empty, an entry is unresolvable, or (lenient
                mode) no entry is accessible
            BackupPermissionError: Strict mode and at least one entry is
                missing or unreadable; every offending entry is listed
        """
        entries = self.read_entries()
        if not entries:
            raise ConfigError(
                f"No backup paths configured in {self.paths_file}",
                code="NO_BACKUP_PATHS",
                details={"paths_file": str(self.paths_file)},
                phase="Path resolution",
            )

        inaccessible = [entry for entry in entries if not entry.accessible]
        if inaccessible and self.strict:
            descriptions = [entry.describe() for entry in inaccessible]
            raise BackupPermissionError(
                "Inaccessible backup paths:\n" + "\n".join(descriptions),
                code="INACCESSIBLE_PATHS",
                details={"inaccessible": descriptions},
                phase="Permission check",
            )
        for entry in inaccessible:
            logger.warning(f"Path is not accessible, skipping: {entry.describe()}")

        resolved: List[Path] = []
        for entry in entries:
            if entry.accessible and entry.path not in resolved:
                resolved.append(entry.path)

        if not resolved:
            raise ConfigError(
                "No backup paths exist!",
                code="NO_BACKUP_PATHS",
                details={"paths_file": str(self.paths_file)},
                phase="Path resolution",
            )

        logger.info(f"Resolved {len(resolved)} backup paths from {self.paths_file}")
        return tuple(resolved)
