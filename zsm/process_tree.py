"""Process table parsing and per-session memory/uptime aggregation.

Reads the output of ``ps -eo pid,ppid,rss,etime`` (RSS in KiB) into a
ProcessTable, then sums resident memory over each session's process tree.
"""

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Process trees are DAGs rooted at pid 1; this only guards malformed input
# such as pid 0 listing itself as its own parent.
MAX_TREE_DEPTH = 256


def parse_elapsed_time(value: str) -> int:
    """Parse ps etime ("ss", "mm:ss", "hh:mm:ss", "d-hh:mm:ss") into seconds.

    Unparsable components count as 0.
    """
    days = 0
    if "-" in value:
        day_part, value = value.split("-", 1)
        days = _to_int(day_part)
    total = 0
    for part in value.split(":"):
        total = total * 60 + _to_int(part)
    return total + days * 86400


def _to_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


@dataclass
class ProcessTable:
    """Snapshot of the OS process table."""

    rss: dict[int, int] = field(default_factory=dict)  # pid -> bytes
    children: dict[int, list[int]] = field(default_factory=dict)  # ppid -> pids
    elapsed: dict[int, int] = field(default_factory=dict)  # pid -> seconds

    @classmethod
    def parse(cls, output: str) -> "ProcessTable":
        """Build a table from ps output, skipping the header and malformed rows."""
        table = cls()
        for line in output.splitlines():
            parts = line.split()
            if len(parts) != 4:
                continue
            try:
                pid = int(parts[0])
                ppid = int(parts[1])
                kib = int(parts[2])
            except ValueError:
                continue
            if kib < 0:
                continue
            table.rss[pid] = kib * 1024
            table.children.setdefault(ppid, []).append(pid)
            table.elapsed[pid] = parse_elapsed_time(parts[3])
        return table

    def sum_subtree_memory(self, pid: int, _depth: int = 0) -> int:
        """Resident memory of pid plus all of its descendants; 0 for unknown pids."""
        total = self.rss.get(pid, 0)
        if _depth >= MAX_TREE_DEPTH:
            logger.warning(f"Process tree under pid {pid} exceeds depth {MAX_TREE_DEPTH}, truncating")
            return total
        for child in self.children.get(pid, []):
            total += self.sum_subtree_memory(child, _depth + 1)
        return total


def format_bytes(value: int) -> str:
    """Compact size label: 1023B, 1K, 142M, 1.0G, 15G."""
    if value >= 1 << 30:
        gib = value / (1 << 30)
        if gib >= 10:
            return f"{gib:.0f}G"
        return f"{gib:.1f}G"
    if value >= 1 << 20:
        return f"{value >> 20}M"
    if value >= 1 << 10:
        return f"{value >> 10}K"
    return f"{value}B"


def format_uptime(seconds: int) -> str:
    """Compact single-unit duration: 59s, 1m, 23h, 3d."""
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"
