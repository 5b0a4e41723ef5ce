"""Parsing and formatting of the restic backup summary

``restic backup --json`` prints status records followed by one record with
``"message_type": "summary"``. Only the summary is used; when it lacks a
message type the last JSON record of the output is taken instead.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from restic_b2.backup.restic import parse_json_lines

IEC_UNITS = ["", "Ki", "Mi", "Gi", "Ti", "Pi", "Ei"]


class BackupSummary(BaseModel):
    """Final statistics of a ``restic backup`` run"""

    snapshot_id: Optional[str] = None
    files_new: int = Field(default=0, ge=0)
    files_changed: int = Field(default=0, ge=0)
    files_unmodified: int = Field(default=0, ge=0)
    dirs_new: int = Field(default=0, ge=0)
    dirs_changed: int = Field(default=0, ge=0)
    dirs_unmodified: int = Field(default=0, ge=0)
    data_added: int = Field(default=0, ge=0)
    total_files_processed: int = Field(default=0, ge=0)
    total_bytes_processed: int = Field(default=0, ge=0)
    total_duration: float = Field(default=0.0, ge=0)
    dry_run: bool = False

    @property
    def short_id(self) -> str:
        return (self.snapshot_id or "")[:8]

    @property
    def data_added_formatted(self) -> str:
        return format_iec_bytes(self.data_added)

    @property
    def total_processed_formatted(self) -> str:
        return format_iec_bytes(self.total_bytes_processed)

    @property
    def duration_formatted(self) -> str:
        return format_duration(self.total_duration)

    @classmethod
    def from_records(cls, records: List[Dict[str, Any]]) -> "BackupSummary":
        """Pick the summary record out of parsed restic JSON output

        Returns an all-zero summary when the output holds no usable record.
        """
        if not records:
            return cls()
        summaries = [r for r in records if r.get("message_type") == "summary"]
        record = summaries[-1] if summaries else records[-1]
        try:
            return cls.model_validate(record)
        except ValidationError:
            return cls()

    @classmethod
    def from_output(cls, stdout: str) -> "BackupSummary":
        return cls.from_records(parse_json_lines(stdout))


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def format_iec_bytes(size: int) -> str:
    """Format a byte count like ``numfmt --to=iec-i --suffix=B``

    Values below 10 units keep one decimal; everything rounds away from zero.

    Examples:
        512 -> "512B", 1536 -> "1.5KiB", 18432 -> "18KiB", 1048576 -> "1.0MiB"
    """
    size = max(int(size), 0)
    if size < 1024:
        return f"{size}B"

    power = 0
    while power < len(IEC_UNITS) - 1 and size >= 1024 ** (power + 1):
        power += 1

    divisor = 1024 ** power
    tenths = _ceil_div(size * 10, divisor)
    if tenths < 100:
        value = tenths / 10
    else:
        value = float(_ceil_div(size, divisor))

    if value >= 1024 and power < len(IEC_UNITS) - 1:
        value /= 1024
        power += 1

    if value < 10:
        return f"{value:.1f}{IEC_UNITS[power]}B"
    return f"{value:.0f}{IEC_UNITS[power]}B"


def format_duration(seconds: float) -> str:
    """``"M minutes S seconds"``, or ``"N/A"`` when restic reported no duration"""
    if not seconds:
        return "N/A"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes} minutes {secs} seconds"
