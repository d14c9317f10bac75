"""
Excel 97-2003 (``.xls``) workbooks for the spreadsheet source.

openpyxl reads OOXML only, so legacy BIFF workbooks are parsed with
``xlrd`` and wrapped in the small part of the openpyxl interface that
``SpreadsheetSource`` uses: ``sheetnames``, ``worksheets``, item lookup
by title and ``close()`` on the workbook; ``title``, the
``min_/max_row`` and ``min_/max_column`` bounds and ``cell(row=, column=)``
on each sheet. Rows and columns are 1-based here as in openpyxl; xlrd
itself counts from 0.

Cell values are converted the way openpyxl would report them with
``data_only=True``: whole numbers as ``int``, date cells as ``datetime``,
error cells as their ``#DIV/0!``-style text, empty cells as ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Any

import xlrd
from xlrd.biffh import error_text_from_code

# Compound document signature every BIFF8 workbook starts with
OLE2_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def is_xls_file(path: str | Path) -> bool:
    """True when *path* starts with the OLE2 signature of a ``.xls`` workbook."""
    with open(path, "rb") as f:
        return f.read(len(OLE2_SIGNATURE)) == OLE2_SIGNATURE


@dataclass(frozen=True)
class XlsCell:
    value: Any = None


class XlsWorksheet:
    """One ``xlrd`` sheet seen through openpyxl-style accessors."""

    def __init__(self, sheet: xlrd.sheet.Sheet, datemode: int) -> None:
        self._sheet = sheet
        self._datemode = datemode
        self.title: str = sheet.name

    @cached_property
    def _first_populated(self) -> tuple[int, int]:
        first_row = first_column = None
        for rowx in range(self._sheet.nrows):
            for colx, ctype in enumerate(self._sheet.row_types(rowx)):
                if ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
                    continue
                if first_row is None:
                    first_row = rowx + 1
                if first_column is None or colx + 1 < first_column:
                    first_column = colx + 1
                break
        return first_row or 1, first_column or 1

    @property
    def min_row(self) -> int:
        return self._first_populated[0]

    @property
    def max_row(self) -> int:
        return max(self._sheet.nrows, 1)

    @property
    def min_column(self) -> int:
        return self._first_populated[1]

    @property
    def max_column(self) -> int:
        return max(self._sheet.ncols, 1)

    def cell(self, row: int, column: int) -> XlsCell:
        rowx, colx = row - 1, column - 1
        if not (0 <= rowx < self._sheet.nrows and 0 <= colx < self._sheet.ncols):
            return XlsCell()
        return XlsCell(self._convert(self._sheet.cell(rowx, colx)))

    def _convert(self, cell: xlrd.sheet.Cell) -> Any:
        ctype, value = cell.ctype, cell.value
        if ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
            return None
        if ctype == xlrd.XL_CELL_NUMBER:
            return int(value) if float(value).is_integer() else value
        if ctype == xlrd.XL_CELL_DATE:
            return xlrd.xldate.xldate_as_datetime(value, self._datemode)
        if ctype == xlrd.XL_CELL_BOOLEAN:
            return bool(value)
        if ctype == xlrd.XL_CELL_ERROR:
            return error_text_from_code.get(value, f"#ERR{value}")
        return value


class XlsWorkbook:
    """An ``xlrd`` book exposing the openpyxl workbook calls the adapter needs."""

    def __init__(self, book: xlrd.book.Book) -> None:
        self._book = book
        self.worksheets: list[XlsWorksheet] = [
            XlsWorksheet(sheet, book.datemode) for sheet in book.sheets()
        ]

    @classmethod
    def load(cls, path: str | Path) -> XlsWorkbook:
        """Parse *path* with xlrd.

        Raises:
            xlrd.XLRDError: If the file is not a readable BIFF workbook.
        """
        return cls(xlrd.open_workbook(str(path)))

    @property
    def sheetnames(self) -> list[str]:
        return [sheet.title for sheet in self.worksheets]

    def __getitem__(self, title: str) -> XlsWorksheet:
        for sheet in self.worksheets:
            if sheet.title == title:
                return sheet
        raise KeyError(f"Worksheet {title} does not exist.")

    def close(self) -> None:
        self._book.release_resources()

