"""
Process Snapshot.

Lists the top CPU-consuming processes by parsing ``ps aux`` output.
"""

import logging
from typing import List, Optional

from ..core.models import ProcessInfo
from .sources import DataSourceError, SystemDataSource


logger = logging.getLogger(__name__)

DEFAULT_PROCESS_LIMIT = 50
MIN_FIELDS = 11
COMMAND_MAX_LENGTH = 80

_SIZE_UNITS = ["B", "K", "M", "G", "T"]


def format_bytes(size: int) -> str:
    """Format bytes as a compact human-readable string, e.g. ``1.5K``."""
    if size == 0:
        return "0 B"

    value = float(size)
    unit = 0
    while abs(value) >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1

    text = f"{value:.1f}"
    if text.endswith(".0"):
        text = text[:-2]
    return f"{text}{_SIZE_UNITS[unit]}"


def parse_process_line(line: str) -> Optional[ProcessInfo]:
    """Parse one ``ps aux`` row. Returns None for malformed rows."""
    parts = line.split()
    if len(parts) < MIN_FIELDS:
        return None

    try:
        pid = int(parts[1])
        cpu = float(parts[2])
        mem = float(parts[3])
        vsz_kb = int(parts[4])
        rss_kb = int(parts[5])
    except ValueError:
        return None

    return ProcessInfo(
        pid=pid,
        user=parts[0],
        cpu=cpu,
        mem=mem,
        vsz=format_bytes(vsz_kb * 1024),
        rss=format_bytes(rss_kb * 1024),
        tty=parts[6],
        stat=parts[7],
        start=parts[8],
        time=parts[9],
        command=" ".join(parts[10:])[:COMMAND_MAX_LENGTH],
    )


def parse_process_table(output: str, limit: int = DEFAULT_PROCESS_LIMIT) -> List[ProcessInfo]:
    """
    Parse ``ps aux`` output into at most ``limit`` processes.

    The header line is skipped and the order of the input is kept.
    """
    processes: List[ProcessInfo] = []
    lines = output.strip().splitlines()

    # Skip header line
    for line in lines[1:]:
        if len(processes) >= limit:
            break
        process = parse_process_line(line)
        if process is None:
            logger.debug(f"Dropping malformed process row: {line!r}")
            continue
        processes.append(process)

    return processes


class ProcessSnapshot:
    """Top processes by CPU, as sorted by the OS listing utility."""

    def __init__(self, source: SystemDataSource, limit: int = DEFAULT_PROCESS_LIMIT):
        self._source = source
        self.limit = limit

    def list(self) -> List[ProcessInfo]:
        """Get the process list. Returns an empty list if ``ps`` fails."""
        try:
            output = self._source.raw_process_list()
        except DataSourceError as e:
            logger.warning(f"Error getting processes: {e}")
            return []

        return parse_process_table(output, self.limit)
