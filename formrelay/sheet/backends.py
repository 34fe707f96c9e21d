"""Storage backends for the local spreadsheet append handler.

This module provides CSV-file and in-memory sheets. Both keep the header
row as row 1, so the first appended submission lands on row 2.
"""

import asyncio
import csv
import io
from pathlib import Path
from typing import Protocol

import aiofiles

from formrelay.models import SHEET_HEADERS


class SheetBackend(Protocol):
    """Protocol for append-only sheet backends."""

    async def last_row(self) -> int:
        """Index of the last written row, 0 when the sheet is empty.

        Returns:
            1-based row index including the header row
        """
        ...

    async def append_row(self, values: list[str]) -> int:
        """Append one row, writing the header row first if the sheet is empty.

        Args:
            values: Cell values, one per column in ``SHEET_HEADERS`` order

        Returns:
            1-based index of the appended row
        """
        ...

    async def rows(self) -> list[list[str]]:
        """All rows including the header row.

        Returns:
            List of rows in insertion order
        """
        ...

    async def setup(self) -> None:
        """Clear the sheet and write the header row."""
        ...


def _encode_row(values: list[str]) -> str:
    buffer = io.StringIO()
    csv.writer(buffer).writerow(values)
    return buffer.getvalue()


class CsvSheetBackend:
    """CSV file backed sheet.

    Appends are serialized with a lock so concurrent requests never
    interleave partial rows.

    Attributes:
        path: CSV file holding the sheet
    """

    def __init__(self, path: Path | str = "submissions.csv") -> None:
        """Initialize the CSV sheet backend.

        Args:
            path: CSV file path, created on first append
        """
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def rows(self) -> list[list[str]]:
        """Read every row from the CSV file.

        Returns:
            List of rows including the header row
        """
        if not self.path.exists():
            return []
        async with aiofiles.open(self.path, mode="r", encoding="utf-8", newline="") as f:
            content = await f.read()
        return [row for row in csv.reader(io.StringIO(content)) if row]

    async def last_row(self) -> int:
        return len(await self.rows())

    async def append_row(self, values: list[str]) -> int:
        """Append a row to the CSV file.

        Args:
            values: Cell values in column order

        Returns:
            1-based index of the appended row
        """
        async with self._lock:
            count = await self.last_row()
            chunks = []
            if count == 0:
                chunks.append(_encode_row(SHEET_HEADERS))
                count = 1
            chunks.append(_encode_row(values))
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.path, mode="a", encoding="utf-8", newline="") as f:
                await f.write("".join(chunks))
            return count + 1

    async def setup(self) -> None:
        async with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.path, mode="w", encoding="utf-8", newline="") as f:
                await f.write(_encode_row(SHEET_HEADERS))


class InMemorySheetBackend:
    """In-memory sheet.

    Useful for testing or temporary storage. Data is lost on process restart.
    """

    def __init__(self) -> None:
        """Initialize the in-memory sheet backend."""
        self._rows: list[list[str]] = []

    async def rows(self) -> list[list[str]]:
        return [list(row) for row in self._rows]

    async def last_row(self) -> int:
        return len(self._rows)

    async def append_row(self, values: list[str]) -> int:
        if not self._rows:
            self._rows.append(list(SHEET_HEADERS))
        self._rows.append(list(values))
        return len(self._rows)

    async def setup(self) -> None:
        self._rows = [list(SHEET_HEADERS)]
