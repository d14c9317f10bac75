"""
Custom exception hierarchy for tabular-etl.

Callers can tell a source that could not be read at all
(``SourceUnreadableError``) apart from one that broke part way through
(``RowParseError``), and both apart from configuration or export problems.
A missing worksheet is deliberately not an exception: the spreadsheet
adapter logs it and degrades to an empty read.
"""

from __future__ import annotations


class TabularEtlError(Exception):
    """Base exception for all tabular-etl errors."""


class SourceUnreadableError(TabularEtlError):
    """Raised when a source file cannot be opened or parsed at all.

    Fatal for that source: no records are produced.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class RowParseError(TabularEtlError):
    """Raised when a delimited-text line fails to tokenize.

    Unbalanced quotes or undecodable bytes corrupt the field count of
    every following line, so the read stops here. Records delivered
    before the failure remain valid.

    Attributes:
        path: The source file.
        line: 1-based line number where the bad record started.
        code: Numeric diagnostic code from the tokenizer.
        message: Tokenizer diagnostic text.
        position: Approximate character position inside the record.
    """

    def __init__(
        self,
        path: str,
        line: int,
        code: int,
        message: str,
        position: int,
    ) -> None:
        self.path = path
        self.line = line
        self.code = code
        self.message = message
        self.position = position
        super().__init__(
            f"CSV file '{path}', error {code}: {message} "
            f"at character {position} (line {line})"
        )


class ConfigValidationError(TabularEtlError):
    """Raised when a pipeline config file is empty or inconsistent.

    For example an unknown input file extension with no explicit
    ``format``, or a ``worksheet`` given for a delimited source.
    """


class MappingError(TabularEtlError):
    """Raised when a mapping names a header the source never published."""


class ExportError(TabularEtlError):
    """Raised when the exporter fails to write output files.

    For example, permission errors, disk full, or unsupported format.
    """
