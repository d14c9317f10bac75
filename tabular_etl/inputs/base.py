"""
Positional source contract shared by every input adapter.

The contract is:
1. ``open(path)`` binds the adapter to one file and positions it at the
   first data row. A file the underlying library cannot read raises
   ``SourceUnreadableError``.
2. ``read_one_record()`` returns the next ``Record`` and advances by
   exactly one row/line, or ``None`` once the data runs out. Further calls
   keep returning ``None``.
3. Each record carries a provenance string built from the position at the
   time of the read.

Subclasses implement two hooks, ``_open_source()`` and ``_read_values()``.
The base class owns the surrounding bookkeeping (state reset, blank
detection, exhaustion, releasing the handle) and always runs it in the
same order, so adapters never need to call ``super()``.

State machine::

    UNOPENED --open() ok------------------> POSITIONED
    UNOPENED --open() fails---------------> SourceUnreadableError
    POSITIONED --read, rows remain--------> POSITIONED (+1), Record
    POSITIONED --read, no rows remain-----> EXHAUSTED, None
    EXHAUSTED --read----------------------> EXHAUSTED, None
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Protocol

from tabular_etl.record import Record, values_are_blank

logger = logging.getLogger(__name__)


class RecordSink(Protocol):
    """What ``PositionalSource.run()`` hands records and aliases to."""

    def add_alias(self, name: str, index: int) -> None: ...

    def record(self, data: Any, provenance: str, is_blank: bool = False) -> None: ...


class PositionalSource(ABC):
    """Abstract base class for record-by-record input adapters.

    Attributes:
        path: The file currently bound, or ``None`` before ``open()``.
        position: Adapter-defined pointer to the next unread row/line.
            Both built-in adapters use 1-based numbers that match what a
            user sees (worksheet row, text line).
        field_aliases: Header text -> 1-based column position, filled by
            adapters that read a header line.
        log: Logger used for all diagnostics from this adapter.
    """

    #: Short label used in log messages ("CSV", "Excel", ...).
    source_kind: str = "source"
    #: Drop the handle as soon as the data runs out.
    release_on_exhaustion: bool = True

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger
        self.path: Path | None = None
        self.position = 0
        self.field_aliases: dict[str, int] = {}
        self._opened = False
        self._exhausted = False

    # -- Public API ---------------------------------------------------------

    def open(self, path: str | Path) -> PositionalSource:
        """Bind the adapter to *path* and position it at the first data row.

        Returns the adapter so ``with source.open(path):`` reads naturally.

        Raises:
            SourceUnreadableError: If the file cannot be opened or parsed.
        """
        self.close()
        self.path = Path(path)
        self.position = 0
        self.field_aliases = {}
        self._exhausted = False
        self.log.debug("Opening %s file %s", self.source_kind, self.path)

        try:
            self._open_source(self.path)
        except Exception:
            self._release()
            raise

        self._opened = True
        self.log.info("Opened %s file %s", self.source_kind, self.path)
        return self

    def read_one_record(self) -> Record | None:
        """Return the next record, or ``None`` at end of data."""
        if not self._opened or self._exhausted:
            return None

        try:
            result = self._read_values()
        except Exception:
            self.close()
            raise

        if result is None:
            self.log.debug("End of data in %s", self.path)
            self._exhausted = True
            if self.release_on_exhaustion:
                self._release()
            return None

        values, provenance = result
        record = Record.from_ordered_values(list(values))
        record.provenance = provenance
        record.is_blank = values_are_blank(values)
        return record

    def __iter__(self) -> Iterator[Record]:
        while True:
            record = self.read_one_record()
            if record is None:
                return
            yield record

    def run(self, pipeline: RecordSink) -> int:
        """Send aliases and every remaining record to *pipeline*.

        The source is released when the loop ends, including when the
        pipeline or the adapter raises.

        Returns:
            Number of records delivered.
        """
        count = 0
        try:
            for name, index in self.field_aliases.items():
                pipeline.add_alias(name, index)
            for record in self:
                pipeline.record(record.fields, record.provenance, is_blank=record.is_blank)
                count += 1
        finally:
            self.close()
        self.log.info("Read %d records from %s", count, self.path)
        return count

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def close(self) -> None:
        """Release the underlying handle. Safe to call more than once."""
        self._opened = False
        self._release()

    def __enter__(self) -> PositionalSource:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:
        try:
            self._release()
        except Exception:  # pragma: no cover - interpreter shutdown
            pass

    # -- Adapter hooks ------------------------------------------------------

    @abstractmethod
    def _open_source(self, path: Path) -> None:
        """Acquire the underlying parser and position at the first data row.

        Raises:
            SourceUnreadableError: If the file cannot be read at all.
        """

    @abstractmethod
    def _read_values(self) -> tuple[list[Any], str] | None:
        """Read one row/line.

        Returns:
            ``(ordered values, provenance)``, or ``None`` at end of data.
        """

    def _release(self) -> None:
        """Drop the underlying handle. Adapters holding files override this."""
