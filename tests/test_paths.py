"""Tests for backup path list resolution."""

import os
from pathlib import Path

import pytest

from restic_b2.backup.paths import (
    NOT_FOUND,
    NOT_READABLE,
    PathEntry,
    PathResolver,
    classify,
    iter_path_lines,
)
from restic_b2.exceptions import BackupPermissionError, ConfigError

running_as_root = hasattr(os, "geteuid") and os.geteuid() == 0


def write_paths(tmp_path: Path, text: str) -> Path:
    paths_file = tmp_path / "backup-paths.conf"
    paths_file.write_text(text)
    return paths_file


@pytest.fixture
def home(tmp_path, monkeypatch):
    home_dir = tmp_path / "home"
    (home_dir / "Documents").mkdir(parents=True)
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir


class TestPathLines:
    """Comment and blank line handling."""

    def test_skips_blanks_and_comments(self):
        lines = ["# header", "", "   ", "/etc", "  # indented comment", "  ~/Documents  "]

        assert list(iter_path_lines(lines)) == [(4, "/etc"), (6, "~/Documents")]

    def test_entry_describe(self):
        entry = PathEntry(raw="/x", path=Path("/x"), line=1, problem=NOT_FOUND)

        assert not entry.accessible
        assert entry.describe() == "/x (not found)"


class TestPathResolver:
    """Resolution, accessibility checks and deduplication."""

    def test_tilde_expanded_and_absolute(self, tmp_path, home):
        paths_file = write_paths(tmp_path, "~/Documents\n")

        resolved = PathResolver(paths_file).resolve()

        assert resolved == ((home / "Documents").resolve(),)
        assert all(p.is_absolute() for p in resolved)

    def test_missing_path_strict(self, tmp_path, home):
        paths_file = write_paths(tmp_path, "~/Documents\n/nonexistent/dir\n")

        with pytest.raises(BackupPermissionError) as exc_info:
            PathResolver(paths_file).resolve()

        error = exc_info.value
        assert error.exit_code == 11
        assert error.code == "INACCESSIBLE_PATHS"
        assert error.message.count("(not found)") == 1
        assert "/nonexistent/dir (not found)" in error.message
        assert error.details["inaccessible"] == ["/nonexistent/dir (not found)"]

    def test_every_inaccessible_path_listed(self, tmp_path, home):
        paths_file = write_paths(tmp_path, "/nonexistent/a\n~/Documents\n/nonexistent/b\n")

        with pytest.raises(BackupPermissionError) as exc_info:
            PathResolver(paths_file).resolve()

        assert exc_info.value.details["inaccessible"] == [
            "/nonexistent/a (not found)",
            "/nonexistent/b (not found)",
        ]

    def test_missing_path_lenient(self, tmp_path, home, caplog):
        paths_file = write_paths(tmp_path, "~/Documents\n/nonexistent/dir\n")

        with caplog.at_level("WARNING", logger="restic_b2"):
            resolved = PathResolver(paths_file, strict=False).resolve()

        assert resolved == ((home / "Documents").resolve(),)
        assert "/nonexistent/dir (not found)" in caplog.text

    def test_lenient_with_nothing_left(self, tmp_path):
        paths_file = write_paths(tmp_path, "/nonexistent/dir\n")

        with pytest.raises(ConfigError) as exc_info:
            PathResolver(paths_file, strict=False).resolve()

        assert exc_info.value.message == "No backup paths exist!"
        assert exc_info.value.exit_code == 10

    @pytest.mark.skipif(running_as_root, reason="root can read any file")
    def test_unreadable_path(self, tmp_path):
        secret = tmp_path / "secret"
        secret.mkdir()
        secret.chmod(0o000)
        paths_file = write_paths(tmp_path, f"{secret}\n")

        try:
            with pytest.raises(BackupPermissionError) as exc_info:
                PathResolver(paths_file).resolve()
        finally:
            secret.chmod(0o700)

        assert exc_info.value.details["inaccessible"] == [f"{secret.resolve()} ({NOT_READABLE})"]

    def test_duplicates_removed_in_order(self, tmp_path, home):
        other = tmp_path / "other"
        other.mkdir()
        paths_file = write_paths(
            tmp_path, f"{other}\n~/Documents\n{home}/Documents\n{other}/../other\n"
        )

        resolved = PathResolver(paths_file).resolve()

        assert resolved == (other.resolve(), (home / "Documents").resolve())

    def test_symlinks_normalised(self, tmp_path, home):
        link = tmp_path / "docs-link"
        link.symlink_to(home / "Documents")
        paths_file = write_paths(tmp_path, f"{link}\n~/Documents\n")

        assert PathResolver(paths_file).resolve() == ((home / "Documents").resolve(),)

    def test_resolution_is_idempotent(self, tmp_path, home):
        paths_file = write_paths(tmp_path, "~/Documents\n")
        first = PathResolver(paths_file).resolve()

        again = write_paths(tmp_path, "\n".join(str(p) for p in first) + "\n")

        assert PathResolver(again).resolve() == first

    def test_empty_list(self, tmp_path):
        paths_file = write_paths(tmp_path, "# nothing yet\n\n")

        with pytest.raises(ConfigError) as exc_info:
            PathResolver(paths_file).resolve()

        assert exc_info.value.code == "NO_BACKUP_PATHS"

    def test_unreadable_list_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            PathResolver(tmp_path / "absent.conf").resolve()

        assert exc_info.value.code == "PATH_LIST_UNREADABLE"

    def test_unknown_user_home(self, tmp_path):
        paths_file = write_paths(tmp_path, "~no-such-user-restic-b2/data\n")

        with pytest.raises(ConfigError) as exc_info:
            PathResolver(paths_file).resolve()

        assert exc_info.value.code == "UNRESOLVABLE_PATH"


class TestClassify:
    """Accessibility checks that cannot stat the path."""

    def test_over_long_name_is_not_found(self, tmp_path):
        assert classify(tmp_path / ("x" * 300) / "data") == NOT_FOUND

    def test_permission_denied_is_not_readable(self, tmp_path, monkeypatch):
        target = tmp_path / "locked-home" / "data"

        def exists(self):
            raise PermissionError(13, "Permission denied", str(self))

        monkeypatch.setattr(Path, "exists", exists)

        assert classify(target) == NOT_READABLE

    def test_over_long_entry_listed_with_others(self, tmp_path, home):
        too_long = tmp_path / ("x" * 300) / "data"
        paths_file = write_paths(tmp_path, f"~/Documents\n{too_long}\n/nonexistent/dir\n")

        with pytest.raises(BackupPermissionError) as exc_info:
            PathResolver(paths_file).resolve()

        inaccessible = exc_info.value.details["inaccessible"]
        assert len(inaccessible) == 2
        assert inaccessible[0].endswith(f"data ({NOT_FOUND})")
        assert inaccessible[1] == "/nonexistent/dir (not found)"
