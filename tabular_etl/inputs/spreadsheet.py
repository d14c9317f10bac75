"""
Spreadsheet input source for Excel workbooks (XLSX / XLSM / XLS).

Rather than re-invent the wheel, the workbook is parsed by ``openpyxl``, or
by ``xlrd`` (see ``tabular_etl.inputs.xls``) when the file is a legacy BIFF
workbook, recognised by its content rather than its extension. This
adapter only tracks which worksheet is current and which row comes next.

Index conventions:
- ``position`` is the 1-based row number shown on screen. openpyxl counts
  rows and columns from 1 as well, so no conversion happens when reading.
- Worksheets are selected by title or by 0-based index, like
  ``Workbook.worksheets[index]``.
- ``column_name_on_screen()`` takes a 0-based column index, matching the
  ordering of values in a row before they become 1-based record keys.

Missing cells are read as ``""``: spreadsheets routinely have sparse rows.
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet
from xlrd import XLRDError
from xlrd.compdoc import CompDocError

from tabular_etl.exceptions import SourceUnreadableError
from tabular_etl.inputs.base import PositionalSource
from tabular_etl.inputs.xls import XlsWorkbook, XlsWorksheet, is_xls_file

logger = logging.getLogger(__name__)


def column_name_on_screen(index: int) -> str:
    """Convert a 0-based column index to its spreadsheet label.

    Bijective base 26: ``0 -> "A"``, ``25 -> "Z"``, ``26 -> "AA"``,
    ``701 -> "ZZ"``, ``702 -> "AAA"``.

    Raises:
        ValueError: If *index* is negative.
    """
    if index < 0:
        raise ValueError(f"Column index cannot be negative: {index}")
    letters: list[str] = []
    number = index + 1
    while number > 0:
        number, remainder = divmod(number - 1, 26)
        letters.append(chr(ord("A") + remainder))
    return "".join(reversed(letters))


def sheet_row_range(sheet: Worksheet | XlsWorksheet) -> tuple[int, int]:
    """Inclusive ``(first, last)`` populated rows; ``last < first`` if empty.

    openpyxl reports an empty worksheet as the single cell ``A1``, so a
    sheet whose only cell holds nothing is treated as having no rows.
    """
    if _sheet_is_empty(sheet):
        return 1, 0
    return sheet.min_row, sheet.max_row


def sheet_col_range(sheet: Worksheet | XlsWorksheet) -> tuple[int, int]:
    """Inclusive ``(first, last)`` populated columns, 1-based."""
    if _sheet_is_empty(sheet):
        return 1, 0
    return sheet.min_column, sheet.max_column


def _sheet_is_empty(sheet: Worksheet | XlsWorksheet) -> bool:
    if sheet.max_row > 1 or sheet.max_column > 1:
        return False
    return sheet.cell(row=1, column=1).value is None


class SpreadsheetSource(PositionalSource):
    """Reads an Excel worksheet one row at a time.

    Args:
        worksheet: Title or 0-based index of the worksheet selected by
            ``open()``. Defaults to the first worksheet.
        log: Logger for diagnostics. Defaults to this module's logger.
    """

    source_kind = "Excel"
    # The workbook stays loaded so another worksheet can be read afterwards.
    release_on_exhaustion = False

    def __init__(
        self,
        worksheet: str | int = 0,
        *,
        log: logging.Logger | None = None,
    ) -> None:
        super().__init__(log=log or logger)
        self.initial_worksheet = worksheet
        self.workbook: Workbook | XlsWorkbook | None = None
        self._worksheet: Worksheet | XlsWorksheet | None = None

    # -- Worksheet selection -------------------------------------------------

    @property
    def worksheet(self) -> Worksheet | XlsWorksheet | None:
        """The current worksheet, or ``None`` if none is selected.

        Assigning a title or 0-based index switches sheets and moves back
        to the first populated row of the new sheet. An unknown sheet is
        logged, leaves no sheet selected and resets ``position`` to 0;
        reads then return end of data until a valid sheet is chosen.
        """
        return self._worksheet

    @worksheet.setter
    def worksheet(self, name: str | int) -> None:
        self.select_worksheet(name)

    def select_worksheet(self, name: str | int) -> Worksheet | XlsWorksheet | None:
        self._worksheet = self._lookup_worksheet(name)
        self._exhausted = False

        if self._worksheet is None:
            self.log.error("Worksheet '%s' does not exist in %s", name, self.path)
            self.position = 0
            return None

        first_row, _last_row = sheet_row_range(self._worksheet)
        self.log.debug("Worksheet '%s' first row: %d", self._worksheet.title, first_row)
        self.position = first_row
        return self._worksheet

    @property
    def worksheet_names(self) -> list[str]:
        if self.workbook is None:
            return []
        return list(self.workbook.sheetnames)

    def _lookup_worksheet(self, name: str | int) -> Worksheet | XlsWorksheet | None:
        if self.workbook is None:
            return None
        sheets = self.workbook.worksheets
        if isinstance(name, bool):
            return None
        if isinstance(name, int):
            return sheets[name] if 0 <= name < len(sheets) else None
        # Chartsheets have no cells and are not in ``worksheets``
        return next((sheet for sheet in sheets if sheet.title == name), None)

    # -- Hooks --------------------------------------------------------------

    def _open_source(self, path: Path) -> None:
        try:
            if is_xls_file(path):
                self.workbook = XlsWorkbook.load(path)
            else:
                self.workbook = load_workbook(path, data_only=True)
        except (
            OSError, InvalidFileException, zipfile.BadZipFile, KeyError, ValueError,
            XLRDError, CompDocError,
        ) as exc:
            raise SourceUnreadableError(
                f"Unable to read any data from the Excel spreadsheet {path}: {exc}",
                str(path),
            ) from exc

        # Selecting the worksheet also sets our position in the file.
        self.select_worksheet(self.initial_worksheet)

    def _read_values(self) -> tuple[list[Any], str] | None:
        sheet = self._worksheet
        if sheet is None:
            return None

        first_row, last_row = sheet_row_range(sheet)
        self.log.debug("Rows %d to %d", first_row, last_row)
        if self.position > last_row:
            self.log.debug("No data past the last row: %d < %d", last_row, self.position)
            return None

        first_column, last_column = sheet_col_range(sheet)
        self.log.debug("Columns %d to %d", first_column, last_column)

        row = self.position
        values: list[Any] = []
        for column in range(first_column, last_column + 1):
            self.log.debug("Cell %s%d", column_name_on_screen(column - 1), row)
            value = sheet.cell(row=row, column=column).value
            values.append("" if value is None else value)

        self.position += 1
        return values, f"Excel file '{self.path}', sheet '{sheet.title}', row {row}"

    def _release(self) -> None:
        workbook = getattr(self, "workbook", None)
        if workbook is not None:
            workbook.close()
            self.workbook = None
            self._worksheet = None
