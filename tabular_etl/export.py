"""
Exporter for tabular-etl.

Writes the rows collected by a ``Pipeline`` to the output directory as
``{table_name}.{format}``, e.g. ``members.parquet`` or ``members.csv``.

Parquet keeps the column dtypes the source produced (numbers and dates from
a workbook stay typed). CSV is written with ``utf-8-sig`` so non-ASCII
headers display correctly when the file is opened in Excel.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Literal

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from tabular_etl.exceptions import ExportError

logger = logging.getLogger(__name__)


def _write_csv(df: pd.DataFrame, path: Path) -> None:
    # BOM so Excel detects UTF-8
    df.to_csv(path, index=False, encoding="utf-8-sig")


def _write_parquet(df: pd.DataFrame, path: Path) -> None:
    table = pa.Table.from_pandas(_stringify_mixed_columns(df), preserve_index=False)
    pq.write_table(table, str(path))


_WRITERS: dict[str, Callable[[pd.DataFrame, Path], None]] = {
    "csv": _write_csv,
    "parquet": _write_parquet,
}

# Failures from the file system or from converting column values
_WRITE_ERRORS = (OSError, ValueError, TypeError, pa.ArrowException)


def export_table(
    df: pd.DataFrame,
    output_dir: str | Path,
    table_name: str,
    output_format: Literal["csv", "parquet"] = "parquet",
) -> str:
    """Write *df* to ``{output_dir}/{table_name}.{output_format}``.

    The output directory is created if it does not exist. Columns holding
    a mix of text and numbers (common in spreadsheets) are written as text
    for Parquet, which needs one type per column.

    Returns:
        The path written, as a string.

    Raises:
        ExportError: If *output_format* is unsupported, or the write fails.
    """
    writer = _WRITERS.get(output_format)
    if writer is None:
        raise ExportError(
            f"Unsupported output format: '{output_format}'. "
            f"Supported formats: {sorted(_WRITERS)}"
        )

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    file_path = out / f"{table_name}.{output_format}"

    try:
        writer(df, file_path)
    except _WRITE_ERRORS as exc:
        raise ExportError(f"Failed to write {file_path.name}: {exc}") from exc
    logger.info(
        "Exported table '%s' -> %s (%d rows, %d cols)",
        table_name,
        file_path.name,
        len(df),
        len(df.columns),
    )
    return str(file_path)


def _stringify_mixed_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Cast object columns holding more than one value type to text."""
    df = df.copy()
    for col in df.columns:
        if df[col].dtype != object:
            continue
        kinds = {type(v) for v in df[col] if v is not None and not pd.isna(v)}
        if len(kinds) > 1:
            df[col] = df[col].map(lambda v: None if v is None or pd.isna(v) else str(v))
    return df
