"""
tabular-etl: read spreadsheets and delimited text record by record.

Public API surface:

- ``open_source(path, ...)`` -- open a file with the right input source
  (``SpreadsheetSource`` or ``DelimitedTextSource``) and return it,
  positioned at the first data row. Call ``read_one_record()`` until it
  returns ``None``, or iterate over it.

- ``run(config)`` -- run a whole pipeline described by a ``PipelineConfig``
  or the path to its YAML file: read the input, apply the mapping, and
  export the result. Returns ``(DataFrame, written_path)``.

- ``Record``, ``Pipeline`` and the exception classes are re-exported for
  convenience.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pandas as pd

from tabular_etl.config import PipelineConfig, load_config, validate_input
from tabular_etl.detect import default_options, detect_format, source_class
from tabular_etl.exceptions import (
    ConfigValidationError,
    ExportError,
    MappingError,
    RowParseError,
    SourceUnreadableError,
    TabularEtlError,
)
from tabular_etl.export import export_table
from tabular_etl.inputs import (
    DelimitedTextOptions,
    DelimitedTextSource,
    PositionalSource,
    SpreadsheetSource,
)
from tabular_etl.pipeline import Pipeline
from tabular_etl.record import Record

__all__ = [
    "open_source",
    "run",
    "Record",
    "Pipeline",
    "PositionalSource",
    "SpreadsheetSource",
    "DelimitedTextSource",
    "DelimitedTextOptions",
    "TabularEtlError",
    "SourceUnreadableError",
    "RowParseError",
    "ConfigValidationError",
    "MappingError",
    "ExportError",
]

logger = logging.getLogger(__name__)


def open_source(
    path: str | Path,
    format: str | None = None,
    *,
    worksheet: str | int | None = None,
    log: logging.Logger | None = None,
    **options: Any,
) -> PositionalSource:
    """Open *path* with the input source for its format.

    Args:
        path: Spreadsheet or delimited text file.
        format: ``"spreadsheet"`` or ``"delimited"``. Inferred from the
            extension when ``None``.
        worksheet: Worksheet title or 0-based index (spreadsheets only).
        log: Logger handed to the source.
        **options: ``DelimitedTextOptions`` fields (delimited only), e.g.
            ``sep_char="|"`` or ``skipping=3``.

    Returns:
        The opened source.

    Raises:
        ConfigValidationError: If the format cannot be determined, or
            options do not apply to it.
        SourceUnreadableError: If the file cannot be read.

    Examples::

        with tabular_etl.open_source("inputs/members.csv") as source:
            for record in source:
                print(record.provenance, record.get(1))
    """
    format_name = format or detect_format(path)
    cls = source_class(format_name)

    if cls is SpreadsheetSource:
        if options:
            raise ConfigValidationError(
                f"Options {sorted(options)} only apply to delimited text, "
                f"but {path} is read as a spreadsheet."
            )
        source: PositionalSource = SpreadsheetSource(
            worksheet if worksheet is not None else 0, log=log
        )
    else:
        if worksheet is not None:
            raise ConfigValidationError(
                f"'worksheet' is only valid for spreadsheets, but {path} "
                "is read as delimited text."
            )
        source = DelimitedTextSource(log=log, **{**default_options(path), **options})

    return source.open(path)


def run(config: PipelineConfig | str | Path) -> tuple[pd.DataFrame, str]:
    """Run a complete pipeline: read, map, export.

    Orchestration:
      1. Load the config (when given a path) and validate the input section.
      2. Build the input source for the resolved format.
      3. ``Pipeline.process()`` reads every record and applies the mapping.
      4. ``export_table()`` writes the rows.

    Returns:
        ``(DataFrame of mapped rows, path of the written file)``.

    Raises:
        SourceUnreadableError: If the input file cannot be read.
        RowParseError: If a delimited line is malformed.
        MappingError: If the mapping names an unknown header.
        ExportError: If the output cannot be written.
    """
    if not isinstance(config, PipelineConfig):
        config = load_config(config)
    else:
        validate_input(config.input)

    inp = config.input
    logger.info("run() -- input=%s, format=%s", inp.path, inp.resolved_format)

    if inp.resolved_format == "spreadsheet":
        source: PositionalSource = SpreadsheetSource(
            inp.worksheet if inp.worksheet is not None else 0
        )
    else:
        source = DelimitedTextSource(inp.options)

    pipeline = Pipeline(config.mapping, skip_blank=config.skip_blank)
    pipeline.process(source, inp.path)

    df = pipeline.to_frame()
    written = export_table(
        df,
        output_dir=config.output.output_dir,
        table_name=config.output.table_name,
        output_format=config.output.output_format,
    )
    logger.info("Pipeline complete: %d rows -> %s", len(df), written)
    return df, written
