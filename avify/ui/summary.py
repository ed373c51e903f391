from typing import List
from avify.domain.models import BatchStats

_UNITS = ["KB", "MB", "GB", "TB", "PB", "EB"]


def format_bytes(size: int) -> str:
    """Human readable size in binary units, e.g. ``1536 -> '1.5KB'``."""
    if size < 0:
        return "-" + format_bytes(-size)
    if size < 1024:
        return f"{size} B"

    value = size / 1024.0
    for unit in _UNITS[:-1]:
        if value < 1024.0:
            return f"{value:.1f}{unit}"
        value /= 1024.0
    return f"{value:.1f}{_UNITS[-1]}"


def summary_lines(stats: BatchStats) -> List[str]:
    """Final report: totals over succeeded files, then every failed path."""
    lines: List[str] = []
    if stats.success_count > 0:
        lines.append(f"Total size before: {format_bytes(stats.total_bytes_before)}")
        lines.append(f"Total size after: {format_bytes(stats.total_bytes_after)}")
        lines.append(f"Saved size: {format_bytes(stats.saved_bytes)} ({stats.saved_percent:.2f}%)")

    if stats.failures:
        lines.append("Following files are failed:")
        for failure in stats.failures:
            lines.append(f"\t{failure.path}")
    return lines
