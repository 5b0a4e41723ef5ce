"""Console reports for a backup run

Both reports have a fixed shape so operators and log scrapers can rely on it:
a 60-column banner, field-aligned lines and a closing separator.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from restic_b2.backup.summary import BackupSummary
from restic_b2.exceptions import ResticB2Error

WIDTH = 60
FIELD_WIDTH = 17
EXCERPT_LINES = 20
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def banner(title: str) -> List[str]:
    rule = "=" * WIDTH
    return [rule, title.center(WIDTH).rstrip(), rule]


def section(title: str) -> str:
    return f" {title} ".center(WIDTH - 2, "-")


def separator() -> str:
    return "-" * WIDTH


def field_line(label: str, value: object) -> str:
    return f"{label + ':':<{FIELD_WIDTH}}{value}"


def excerpt(text: str, max_lines: int = EXCERPT_LINES) -> List[str]:
    """First ``max_lines`` lines of ``text``, with a marker when lines were dropped"""
    lines = text.strip().splitlines()
    if len(lines) <= max_lines:
        return lines
    return lines[:max_lines] + [f"... ({len(lines) - max_lines} more lines)"]


def render_success(
    summary: BackupSummary,
    repository: str,
    source_paths: Sequence[Path],
    timestamp: Optional[datetime] = None,
) -> str:
    timestamp = timestamp or datetime.now()
    title = "BACKUP SUCCESSFUL (DRY RUN)" if summary.dry_run else "BACKUP SUCCESSFUL"
    lines = banner(title)
    lines += [
        field_line("Timestamp", timestamp.strftime(TIMESTAMP_FORMAT)),
        field_line("Repository", repository),
        field_line("Source Dirs", " ".join(str(p) for p in source_paths)),
        "",
        section("Restic Summary"),
        field_line(
            "Files",
            f"{summary.files_new} new, {summary.files_changed} changed, "
            f"{summary.files_unmodified} unmodified",
        ),
        field_line(
            "Dirs",
            f"{summary.dirs_new} new, {summary.dirs_changed} changed, "
            f"{summary.dirs_unmodified} unmodified",
        ),
        field_line("Data Added", summary.data_added_formatted),
        field_line("Total Processed", summary.total_processed_formatted),
        field_line("Duration", summary.duration_formatted),
    ]
    if summary.short_id:
        lines.append(field_line("Snapshot ID", summary.short_id))
    lines += ["", separator()]
    return "\n".join(lines)


def render_failure(error: ResticB2Error, timestamp: Optional[datetime] = None) -> str:
    timestamp = timestamp or datetime.now()
    lines = banner("BACKUP FAILED")
    lines += [
        field_line("Timestamp", timestamp.strftime(TIMESTAMP_FORMAT)),
        field_line("Task", error.phase),
        field_line("Exit Code", error.exit_code),
        "",
        section("ERROR"),
        *excerpt(error.message),
    ]
    if error.output:
        lines += excerpt(error.output)
    lines += ["", separator()]
    return "\n".join(lines)
