"""
Downstream stage that receives records from an input source.

``Pipeline`` is the ``RecordSink`` an input source feeds through
``PositionalSource.run()``:

- ``add_alias(name, index)`` learns header names during the header phase.
- ``record(data, provenance)`` maps one record to an output row.

Mapping rules (output column -> source field):
- ``str``: a header name published through ``add_alias``. Naming a header
  the source never published raises ``MappingError`` with the record's
  provenance, so the user can find the file and line.
- ``int``: a 1-based column position. A position the record does not have
  maps to ``None``; short rows are common in hand-made files.

Without a mapping every field is kept, keyed by its header name when the
source published one, otherwise by its position as text.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Mapping
from pathlib import Path
from typing import Any

import pandas as pd

from tabular_etl.exceptions import MappingError
from tabular_etl.inputs.base import PositionalSource

logger = logging.getLogger(__name__)


class Pipeline:
    """Collects mapped rows from one or more input sources.

    Args:
        mapping: Output column -> header name or 1-based position.
        skip_blank: Drop records the source flagged as blank.
        log: Logger for diagnostics. Defaults to this module's logger.
    """

    def __init__(
        self,
        mapping: Mapping[str, str | int] | None = None,
        skip_blank: bool = True,
        log: logging.Logger | None = None,
    ) -> None:
        self.mapping = dict(mapping or {})
        self.skip_blank = skip_blank
        self.log = log or logger
        self.aliases: dict[str, int] = {}
        self.rows: list[dict[str, Any]] = []
        self.provenance: list[str] = []
        self.skipped_count = 0

    @property
    def record_count(self) -> int:
        return len(self.rows)

    # -- RecordSink ---------------------------------------------------------

    def add_alias(self, name: str, index: int) -> None:
        """Let *name* stand for column *index*. The first alias wins."""
        if name in self.aliases and self.aliases[name] != index:
            self.log.warning(
                "Alias '%s' already points to column %d; ignoring column %d",
                name, self.aliases[name], index,
            )
            return
        self.aliases[name] = index

    def record(
        self,
        data: Mapping[Hashable, Any],
        provenance: str,
        is_blank: bool = False,
    ) -> None:
        """Map one record and keep the resulting row."""
        if is_blank and self.skip_blank:
            self.log.debug("Skipping blank record: %s", provenance)
            self.skipped_count += 1
            return

        if self.mapping:
            row = {
                column: data.get(self._resolve(source, provenance))
                for column, source in self.mapping.items()
            }
        else:
            names = {index: name for name, index in self.aliases.items()}
            row = {str(names.get(key, key)): value for key, value in data.items()}

        self.rows.append(row)
        self.provenance.append(provenance)

    # -- Driving a source ----------------------------------------------------

    def process(self, source: PositionalSource, path: str | Path) -> int:
        """Open *path* with *source* and feed every record through this pipeline.

        Returns:
            Number of records the source delivered (blank ones included).
        """
        rows_before = self.record_count
        source.open(path)
        count = source.run(self)
        self.log.info(
            "Processed %s: %d records, %d kept", path, count, self.record_count - rows_before
        )
        return count

    def to_frame(self) -> pd.DataFrame:
        """Collected rows as a DataFrame, columns in mapping order."""
        if self.mapping:
            return pd.DataFrame(self.rows, columns=list(self.mapping))
        return pd.DataFrame(self.rows)

    # -- Internals ----------------------------------------------------------

    def _resolve(self, source: str | int, provenance: str) -> int:
        if isinstance(source, int):
            return source
        try:
            return self.aliases[source]
        except KeyError:
            raise MappingError(
                f"{provenance}: no column named '{source}'. "
                f"Known columns: {sorted(self.aliases)}"
            ) from None
