"""
Line tokenizer for delimited text.

Wraps the standard-library ``csv`` parser behind a line-oriented API so the
delimited-text adapter can mix raw-line access (for skipping report
headers) with parsed access (for the header and data lines) on the same
handle, and still know the physical line number of every record.

``csv.reader`` on a whole file hides line boundaries and reports no
character position on failure; this wrapper feeds it one logical record at
a time instead. A record spans several physical lines only while a quoted
field is open and embedded newlines are allowed. Continuation lines are
scanned once for the closing quote, and the joined record is parsed once.

Given an ``encoding``, the handle is read as bytes and each physical line
is decoded on its own, so undecodable input is reported on the line that
holds it, after every earlier record has been delivered.

Diagnostic codes follow the Text::CSV numbering so messages look the same
as other CSV tooling:

- ``2027``: quoted field not terminated
- ``2034``: bad character after a closing quote / loose quote
- ``2110``: input is not valid in the configured encoding
"""

from __future__ import annotations

import codecs
import csv
import io
import logging
from dataclasses import dataclass
from typing import BinaryIO, TextIO

logger = logging.getLogger(__name__)

EIQ_UNTERMINATED = 2027
EIQ_LOOSE_QUOTE = 2034
EIF_BAD_ENCODING = 2110

# csv's message when input ends inside a quoted field (strict mode)
_END_OF_DATA = "unexpected end of data"

# Field states while looking for the end of a quoted field
_START_FIELD, _IN_FIELD, _IN_QUOTED, _QUOTE_IN_QUOTED = range(4)


@dataclass(frozen=True)
class ErrorDiag:
    """Last tokenizer failure. ``code == 0`` means no error."""
    code: int = 0
    message: str = ""
    position: int = 0


class CsvSyntaxError(ValueError):
    """Raised by ``LineTokenizer`` when a record cannot be tokenized."""

    def __init__(self, diag: ErrorDiag) -> None:
        super().__init__(f"error {diag.code}: {diag.message} at character {diag.position}")
        self.diag = diag


class LineTokenizer:
    """Reads logical CSV records from a file handle, one at a time.

    Args:
        handle: A binary handle when *encoding* is given, otherwise a text
            handle opened with ``newline=""`` so line terminators reach the
            parser unchanged.
        encoding: Codec used to decode each line of a binary handle.
            ``utf-8-sig`` drops a leading byte order mark.
        delimiter: Field separator.
        quotechar: Quote character, or ``None`` to disable quoting.
        escapechar: Escape character, or ``None``.
        doublequote: Whether ``""`` inside a quoted field means one quote.
        skipinitialspace: Ignore whitespace right after a delimiter.
        allow_embedded_newlines: Let a quoted field continue onto the
            next physical line.
        strict: Fail on malformed quoting instead of guessing.

    Raises:
        LookupError: If *encoding* is not a known codec.
    """

    def __init__(
        self,
        handle: BinaryIO | TextIO,
        *,
        encoding: str | None = None,
        delimiter: str = ",",
        quotechar: str | None = '"',
        escapechar: str | None = None,
        doublequote: bool = True,
        skipinitialspace: bool = False,
        allow_embedded_newlines: bool = True,
        strict: bool = True,
    ) -> None:
        self._handle = handle
        self._encoding = encoding
        self._decoder = codecs.getincrementaldecoder(encoding)() if encoding else None
        self._allow_newlines = allow_embedded_newlines
        self._dialect: dict[str, object] = {
            "delimiter": delimiter,
            "quotechar": quotechar,
            "escapechar": escapechar,
            "doublequote": doublequote,
            "skipinitialspace": skipinitialspace,
            "strict": strict,
            "quoting": csv.QUOTE_MINIMAL if quotechar else csv.QUOTE_NONE,
        }
        self._pushed_back: list[str] = []
        self._eof = False
        self._diag = ErrorDiag()
        self.input_line_number = 0
        self.record_start_line = 0

    # -- Raw line access ----------------------------------------------------

    def _next_physical_line(self) -> str | None:
        """Next line including its terminator, or ``None`` at end of input."""
        if self._pushed_back:
            self.input_line_number += 1
            return self._pushed_back.pop()
        if self._eof:
            return None
        raw = self._handle.readline()
        if not raw:
            self._eof = True
            return None
        self.input_line_number += 1
        if self._decoder is None:
            return raw
        try:
            return self._decoder.decode(raw)
        except UnicodeDecodeError as exc:
            # 1-based character position of the bad byte within the line
            prefix = raw[:exc.start].decode(self._encoding, errors="replace")
            self._fail(EIF_BAD_ENCODING, f"cannot decode input: {exc.reason}", len(prefix) + 1)

    def read_raw_line(self) -> str | None:
        """Next physical line without its terminator, or ``None``."""
        self.record_start_line = self.input_line_number + 1
        line = self._next_physical_line()
        if line is None:
            return None
        return line.rstrip("\r\n")

    def unread(self, line: str) -> None:
        """Push one raw line back; the next read returns it again."""
        self._pushed_back.append(line + "\n")
        self.input_line_number -= 1

    def eof(self) -> bool:
        if self._pushed_back:
            return False
        return self._eof

    # -- Parsed access ------------------------------------------------------

    def getline(self) -> list[str] | None:
        """Next logical record as a list of fields, or ``None`` at end.

        Raises:
            CsvSyntaxError: If the record is malformed.
        """
        self.record_start_line = self.input_line_number + 1
        text = self._next_physical_line()
        if text is None:
            return None

        try:
            return self._tokenize(text, final=not self._allow_newlines)
        except _NeedMoreInput:
            pass

        parts = [text]
        while True:
            more = self._next_physical_line()
            if more is None:
                # End of file inside a quoted field
                break
            parts.append(more)
            if not self._still_quoted(more):
                break
        return self._tokenize("".join(parts), final=True)

    def error_diag(self) -> ErrorDiag:
        return self._diag

    # -- Internals ----------------------------------------------------------

    def _tokenize(self, text: str, final: bool) -> list[str]:
        # Always look for an open quote strictly; the user's strictness only
        # decides what happens afterwards.
        try:
            fields = self._read_first(text, strict=True)
        except csv.Error as exc:
            message = str(exc)
            if message == _END_OF_DATA and not final:
                raise _NeedMoreInput from exc
            if self._dialect["strict"]:
                if message == _END_OF_DATA:
                    self._fail(EIQ_UNTERMINATED, "quoted field not terminated", len(text.rstrip("\r\n")))
                self._fail(EIQ_LOOSE_QUOTE, message, len(text.rstrip("\r\n")))
            fields = self._read_first(text, strict=False)
        self._diag = ErrorDiag()
        return fields

    def _read_first(self, text: str, strict: bool) -> list[str]:
        dialect = dict(self._dialect, strict=strict)
        reader = csv.reader(io.StringIO(text, newline=""), **dialect)
        return next(reader, [])

    def _still_quoted(self, line: str) -> bool:
        """Whether a quoted field open at the start of *line* is still open at its end."""
        quote = self._dialect["quotechar"]
        escape = self._dialect["escapechar"]
        delimiter = self._dialect["delimiter"]
        doublequote = self._dialect["doublequote"]
        skip_space = self._dialect["skipinitialspace"]

        state = _IN_QUOTED
        chars = iter(line)
        for ch in chars:
            if state == _IN_QUOTED:
                if ch == escape:
                    next(chars, None)
                elif ch == quote:
                    state = _QUOTE_IN_QUOTED
            elif state == _QUOTE_IN_QUOTED:
                if ch == quote and doublequote:
                    state = _IN_QUOTED
                elif ch == delimiter or ch in "\r\n":
                    state = _START_FIELD
                else:
                    state = _IN_FIELD
            elif state == _START_FIELD:
                if ch == quote:
                    state = _IN_QUOTED
                elif ch == delimiter or ch in "\r\n" or (ch == " " and skip_space):
                    continue
                else:
                    state = _IN_FIELD
            elif ch == escape:
                next(chars, None)
            elif ch == delimiter or ch in "\r\n":
                state = _START_FIELD
        return state == _IN_QUOTED

    def _fail(self, code: int, message: str, position: int) -> None:
        self._diag = ErrorDiag(code=code, message=message, position=position)
        logger.debug("Tokenizer error %d at line %d: %s", code, self.input_line_number, message)
        raise CsvSyntaxError(self._diag)


class _NeedMoreInput(Exception):
    """The record continues on the next physical line."""
