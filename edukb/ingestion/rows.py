"""Row source: semicolon-delimited files decoded into cleaned cell lists."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import IO

from edukb.ingestion.columns import clean_cell

logger = logging.getLogger(__name__)


class RowSource:
    """Iterator over the cleaned rows of an open file.

    The file is closed when the rows run out or on ``close``, whichever
    comes first, so a run that stops early can release it.
    """

    def __init__(self, handle: IO[str], delimiter: str) -> None:
        self._handle = handle
        self._reader = csv.reader(handle, delimiter=delimiter)

    def __iter__(self) -> "RowSource":
        return self

    def __next__(self) -> list[str]:
        if self._handle.closed:
            raise StopIteration
        try:
            row = next(self._reader)
        except StopIteration:
            self.close()
            raise
        return [clean_cell(cell) for cell in row]

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def close(self) -> None:
        self._handle.close()

    def __enter__(self) -> "RowSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def read_rows(
    path: str | Path,
    encoding: str = "utf-8-sig",
    delimiter: str = ";",
) -> RowSource:
    """Rows of *path*, header first.

    The file is opened before this returns, so a missing or unreadable file
    raises ``OSError`` here rather than on first iteration. Undecodable bytes
    are replaced.
    """
    path = Path(path)
    handle = path.open("r", encoding=encoding, errors="replace", newline="")
    logger.info("Reading rows from %s", path)
    return RowSource(handle, delimiter)
