"""Local spreadsheet append handler.

This package plays the destination role: it appends submissions to a sheet
and answers health probes.
"""

from formrelay.sheet.backends import CsvSheetBackend, InMemorySheetBackend, SheetBackend
from formrelay.sheet.handler import create_sheet_app

__all__ = ["CsvSheetBackend", "InMemorySheetBackend", "SheetBackend", "create_sheet_app"]
