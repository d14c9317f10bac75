"""
Input format detection for tabular-etl.

Maps a file to the input source class that reads it. Detection is by file
extension only; the adapters themselves fail fast with
``SourceUnreadableError`` if the content turns out not to match.

- ``detect_format(path)`` returns a format name (``"delimited"`` or
  ``"spreadsheet"``).
- ``source_class(format_name)`` returns the adapter class.
- ``default_options(path)`` returns extension-implied delimited options
  (``.tsv`` -> tab separator, ``.psv`` -> pipe separator).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from tabular_etl.exceptions import ConfigValidationError
from tabular_etl.inputs.base import PositionalSource

logger = logging.getLogger(__name__)

_EXTENSIONS: dict[str, str] = {
    ".csv": "delimited",
    ".tsv": "delimited",
    ".tab": "delimited",
    ".psv": "delimited",
    ".txt": "delimited",
    ".dat": "delimited",
    ".xlsx": "spreadsheet",
    ".xlsm": "spreadsheet",
    ".xltx": "spreadsheet",
    ".xltm": "spreadsheet",
    ".xls": "spreadsheet",
}

_SEPARATORS: dict[str, str] = {
    ".tsv": "\t",
    ".tab": "\t",
    ".psv": "|",
}

# Maps format name to adapter class
_SOURCE_MAP: dict[str, type[PositionalSource]] = {}


def _get_source_map() -> dict[str, type[PositionalSource]]:
    """Lazily build the source map to avoid circular imports."""
    if not _SOURCE_MAP:
        from tabular_etl.inputs.delimited import DelimitedTextSource
        from tabular_etl.inputs.spreadsheet import SpreadsheetSource

        _SOURCE_MAP["delimited"] = DelimitedTextSource
        _SOURCE_MAP["spreadsheet"] = SpreadsheetSource
    return _SOURCE_MAP


def detect_format(path: str | Path) -> str:
    """Return the input format name for *path*.

    Raises:
        ConfigValidationError: If the extension is not recognised.
    """
    suffix = Path(path).suffix.lower()
    try:
        format_name = _EXTENSIONS[suffix]
    except KeyError:
        raise ConfigValidationError(
            f"Cannot tell the input format of '{path}' from its extension. "
            f"Known extensions: {sorted(_EXTENSIONS)}. "
            "Set 'format' explicitly."
        ) from None
    logger.debug("Detected format '%s' for %s", format_name, path)
    return format_name


def source_class(format_name: str) -> type[PositionalSource]:
    """Return the adapter class for a format name.

    Raises:
        ConfigValidationError: If the format name is unknown.
    """
    source_map = _get_source_map()
    if format_name not in source_map:
        raise ConfigValidationError(
            f"Unknown input format '{format_name}'. "
            f"Supported formats: {sorted(source_map)}"
        )
    return source_map[format_name]


def default_options(path: str | Path) -> dict[str, Any]:
    """Delimited-text options implied by the file extension."""
    separator = _SEPARATORS.get(Path(path).suffix.lower())
    return {"sep_char": separator} if separator else {}
