"""
Delimited-text input source (CSV, tab, pipe, ...).

Reading happens in three phases, all driven from ``open()`` except the last:

1. **Skipping**: discard report headers that are not data. ``skipping`` is
   either a fixed line count (lines discarded unconditionally, whether or
   not they are valid CSV), a predicate called with each raw line, or a
   regular expression matched against each raw line. With a predicate or
   pattern, lines are discarded while it matches; the first line that does
   not match is kept, unparsed, for the next phase.
2. **Header**: unless ``no_column_names`` is set, the next record names the
   columns. Each name is published as an alias for its 1-based position,
   the same key used in ``Record.fields``. The header never becomes a
   record.
3. **Data**: ``read_one_record()`` returns one record per logical line with
   provenance ``"CSV file '<path>', line <n>"``, ``n`` being the physical
   line on which the record started.

A line that fails to tokenize raises ``RowParseError``; the file is closed
before the error propagates.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any, BinaryIO

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tabular_etl.exceptions import RowParseError, SourceUnreadableError
from tabular_etl.inputs.base import PositionalSource
from tabular_etl.inputs.tokenizer import CsvSyntaxError, LineTokenizer

logger = logging.getLogger(__name__)

SkipPredicate = Callable[[str], bool]


class DelimitedTextOptions(BaseModel):
    """Tokenizer and layout options for a delimited-text source.

    ``skipping`` accepts an ``int`` (fixed count), a callable taking the raw
    line and returning ``True`` while lines should be skipped, or a regex
    string (the YAML-friendly form of the predicate). A string of digits
    such as ``"3"``, as a hand-edited config or command line may give, is
    read as a count, not a pattern.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    sep_char: str = Field(",", description="Field separator (one character)")
    quote_char: str | None = Field('"', description="Quote character, null disables quoting")
    escape_char: str | None = None
    double_quote: bool = True
    skip_initial_space: bool = False
    allow_embedded_newlines: bool = Field(
        True, description="Quoted fields may continue onto the next line"
    )
    strict: bool = Field(True, description="Fail on malformed quoting")
    encoding: str = "utf-8-sig"
    skipping: int | str | SkipPredicate = Field(
        0, description="Lines to skip: count, regex, or predicate"
    )
    no_column_names: bool = Field(
        False, description="First retained line is data, not a header"
    )

    @field_validator("sep_char", "quote_char", "escape_char")
    @classmethod
    def _single_character(cls, value: str | None) -> str | None:
        if value is not None and len(value) != 1:
            raise ValueError(f"must be a single character, got {value!r}")
        return value

    @field_validator("skipping", mode="before")
    @classmethod
    def _digits_are_a_count(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().isdigit():
            return int(value)
        return value

    @field_validator("skipping")
    @classmethod
    def _non_negative_count(cls, value: Any) -> Any:
        if isinstance(value, int) and value < 0:
            raise ValueError("skip count cannot be negative")
        if isinstance(value, str):
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(f"invalid skip pattern {value!r}: {exc}") from exc
        return value


class DelimitedTextSource(PositionalSource):
    """Reads a delimited text file one record at a time.

    ``position`` is the 1-based physical line number of the next unread
    line.

    Args:
        options: Tokenizer/layout options. Keyword arguments override
            individual fields, so ``DelimitedTextSource(sep_char="|")``
            works without building the model by hand.
        log: Logger for diagnostics. Defaults to this module's logger.
    """

    source_kind = "CSV"

    def __init__(
        self,
        options: DelimitedTextOptions | None = None,
        *,
        log: logging.Logger | None = None,
        **overrides: Any,
    ) -> None:
        super().__init__(log=log or logger)
        options = options or DelimitedTextOptions()
        if overrides:
            options = DelimitedTextOptions.model_validate({**options.model_dump(), **overrides})
        self.options = options
        self._handle: BinaryIO | None = None
        self._tokenizer: LineTokenizer | None = None

    # -- Hooks --------------------------------------------------------------

    def _open_source(self, path: Path) -> None:
        opts = self.options
        try:
            self._handle = open(path, "rb")
            self._tokenizer = LineTokenizer(
                self._handle,
                encoding=opts.encoding,
                delimiter=opts.sep_char,
                quotechar=opts.quote_char,
                escapechar=opts.escape_char,
                doublequote=opts.double_quote,
                skipinitialspace=opts.skip_initial_space,
                allow_embedded_newlines=opts.allow_embedded_newlines,
                strict=opts.strict,
            )
        except (OSError, LookupError) as exc:
            raise SourceUnreadableError(f"Cannot read '{path}': {exc}", str(path)) from exc

        self._skip_report_header()
        if not opts.no_column_names:
            self._load_field_names()
        self.position = self._tokenizer.input_line_number + 1

    def _read_values(self) -> tuple[list[Any], str] | None:
        fields = self._getline()
        if fields is None:
            return None
        at = self._tokenizer.record_start_line
        self.position = self._tokenizer.input_line_number + 1
        return fields, f"CSV file '{self.path}', line {at}"

    def _release(self) -> None:
        handle = getattr(self, "_handle", None)
        if handle is not None:
            handle.close()
            self._handle = None

    # -- Phases -------------------------------------------------------------

    def _skip_report_header(self) -> None:
        skip = self.options.skipping
        tokenizer = self._tokenizer

        if isinstance(skip, int):
            for _ in range(skip):
                if self._read_raw_line() is None:
                    break
            if tokenizer.eof():
                self.log.debug("File %s ended within the %d skipped line(s)", self.path, skip)
            self.log.debug("Skipped %d leading line(s) in %s", tokenizer.input_line_number, self.path)
            return

        predicate = re.compile(skip).search if isinstance(skip, str) else skip

        while not tokenizer.eof():
            line = self._read_raw_line()
            if line is None:
                break
            if not predicate(line):
                tokenizer.unread(line)
                break
        if tokenizer.eof():
            self.log.debug("Skip predicate consumed all of %s", self.path)
            return
        self.log.debug("Skipped %d leading line(s) in %s", tokenizer.input_line_number, self.path)

    def _load_field_names(self) -> None:
        fields = self._getline()
        if fields is None:
            return

        for index, name in enumerate(fields, start=1):
            if name is None or not name.strip():
                continue
            if name in self.field_aliases:
                self.log.warning(
                    "Duplicate column name '%s' in %s (columns %d and %d); keeping %d",
                    name, self.path, self.field_aliases[name], index, self.field_aliases[name],
                )
                continue
            self.field_aliases[name] = index
        self.log.debug("Column names in %s: %s", self.path, list(self.field_aliases))

    # -- Helpers ------------------------------------------------------------

    def _read_raw_line(self) -> str | None:
        try:
            return self._tokenizer.read_raw_line()
        except CsvSyntaxError as exc:
            raise self._row_error() from exc

    def _getline(self) -> list[str] | None:
        try:
            return self._tokenizer.getline()
        except CsvSyntaxError as exc:
            raise self._row_error() from exc

    def _row_error(self) -> RowParseError:
        diag = self._tokenizer.error_diag()
        return RowParseError(
            path=str(self.path),
            line=self._tokenizer.record_start_line,
            code=diag.code,
            message=diag.message,
            position=diag.position,
        )
