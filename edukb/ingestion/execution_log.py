"""Per-row timing log appended to a CSV file."""

from __future__ import annotations

import csv
import time
from pathlib import Path

HEADER = ("timestamp_ms", "duration_ms", "rows_read")


class ExecutionLog:
    """Appends ``timestamp_ms,duration_ms,rows_read`` lines to *path*.

    The header is written only when the file is new or empty.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.entries = 0

    def record(self, duration_ms: int, rows_read: int, timestamp_ms: int | None = None) -> None:
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)

        write_header = not self.path.exists() or self.path.stat().st_size == 0
        if write_header:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            if write_header:
                writer.writerow(HEADER)
            writer.writerow((timestamp_ms, duration_ms, rows_read))
        self.entries += 1
