"""
Input sources sub-package for tabular-etl.

Every input adapter implements the positional source contract defined in
``base.py``: ``open(path)`` then repeated ``read_one_record()`` calls until
``None``.

- base.py defines the PositionalSource ABC.
- spreadsheet.py implements SpreadsheetSource (Excel workbooks via openpyxl).
- delimited.py implements DelimitedTextSource (CSV/TSV/pipe files).
- tokenizer.py wraps the csv parser with line numbers and diagnostics.

``tabular_etl.detect`` picks the adapter class for a file at runtime.
"""

from tabular_etl.inputs.base import PositionalSource, RecordSink
from tabular_etl.inputs.delimited import DelimitedTextOptions, DelimitedTextSource
from tabular_etl.inputs.spreadsheet import SpreadsheetSource, column_name_on_screen

__all__ = [
    "PositionalSource",
    "RecordSink",
    "DelimitedTextOptions",
    "DelimitedTextSource",
    "SpreadsheetSource",
    "column_name_on_screen",
]
