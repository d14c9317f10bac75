"""
Unit tests for the positional source contract (tabular_etl.inputs.base).

Uses a small in-memory adapter so the state machine can be checked
without touching any file format.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pytest

from tabular_etl.exceptions import SourceUnreadableError
from tabular_etl.inputs.base import PositionalSource


class ListSource(PositionalSource):
    """Adapter over a dict of ``path name -> rows`` held in memory."""

    source_kind = "list"

    def __init__(self, files: dict[str, list[list[Any]]], fail_at: int | None = None, **kwargs):
        super().__init__(**kwargs)
        self.files = files
        self.fail_at = fail_at
        self.rows: list[list[Any]] | None = None
        self.released = 0

    def _open_source(self, path: Path) -> None:
        if path.name not in self.files:
            raise SourceUnreadableError(f"no such list: {path}", str(path))
        self.rows = self.files[path.name]
        self.position = 1

    def _read_values(self):
        if self.position > len(self.rows):
            return None
        if self.fail_at == self.position:
            raise ValueError("boom")
        row = self.rows[self.position - 1]
        at = self.position
        self.position += 1
        return row, f"list '{self.path}', row {at}"

    def _release(self) -> None:
        if getattr(self, "rows", None) is not None:
            self.released += 1
            self.rows = None


class RecordingSink:
    def __init__(self) -> None:
        self.aliases: list[tuple[str, int]] = []
        self.records: list[tuple[dict, str, bool]] = []

    def add_alias(self, name: str, index: int) -> None:
        self.aliases.append((name, index))

    def record(self, data, provenance: str, is_blank: bool = False) -> None:
        self.records.append((dict(data), provenance, is_blank))


FILES = {"two.txt": [["a", 1], ["", None]], "empty.txt": []}


class TestStateMachine:
    """UNOPENED -> POSITIONED -> EXHAUSTED."""

    def test_read_before_open_returns_none(self):
        assert ListSource(FILES).read_one_record() is None

    def test_reads_then_exhausts(self):
        source = ListSource(FILES).open("two.txt")
        first = source.read_one_record()
        second = source.read_one_record()
        assert dict(first.fields) == {1: "a", 2: 1}
        assert first.provenance == "list 'two.txt', row 1"
        assert first.is_blank is False
        assert second.is_blank is True
        assert source.read_one_record() is None
        assert source.exhausted is True

    def test_end_of_data_is_repeatable(self):
        source = ListSource(FILES).open("empty.txt")
        for _ in range(3):
            assert source.read_one_record() is None

    def test_exhaustion_releases_handle(self):
        source = ListSource(FILES).open("two.txt")
        list(source)
        assert source.released == 1

    def test_open_failure_raises(self):
        source = ListSource(FILES)
        with pytest.raises(SourceUnreadableError, match="no such list"):
            source.open("missing.txt")
        assert source.read_one_record() is None

    def test_reopen_resets_state(self):
        source = ListSource(FILES).open("two.txt")
        list(source)
        source.open("two.txt")
        assert source.exhausted is False
        assert source.read_one_record().get(1) == "a"

    def test_iteration(self):
        records = list(ListSource(FILES).open("two.txt"))
        assert [r.provenance for r in records] == [
            "list 'two.txt', row 1",
            "list 'two.txt', row 2",
        ]

    def test_error_during_read_closes_source(self):
        source = ListSource(FILES, fail_at=2).open("two.txt")
        assert source.read_one_record() is not None
        with pytest.raises(ValueError, match="boom"):
            source.read_one_record()
        assert source.released == 1
        assert source.read_one_record() is None


class TestRun:
    """Tests for PositionalSource.run()."""

    def test_delivers_aliases_and_records(self):
        source = ListSource(FILES).open("two.txt")
        source.field_aliases = {"letter": 1, "number": 2}
        sink = RecordingSink()

        count = source.run(sink)

        assert count == 2
        assert sink.aliases == [("letter", 1), ("number", 2)]
        assert sink.records[0] == ({1: "a", 2: 1}, "list 'two.txt', row 1", False)
        assert sink.records[1][2] is True

    def test_releases_on_error(self):
        source = ListSource(FILES, fail_at=2).open("two.txt")
        with pytest.raises(ValueError):
            source.run(RecordingSink())
        assert source.released == 1

    def test_context_manager_closes(self):
        with ListSource(FILES).open("two.txt") as source:
            source.read_one_record()
        assert source.released == 1
        assert source.read_one_record() is None


class TestLoggerInjection:
    def test_uses_given_logger(self, caplog):
        custom = logging.getLogger("tests.custom_source")
        source = ListSource(FILES, log=custom)
        assert source.log is custom
        with caplog.at_level(logging.INFO, logger="tests.custom_source"):
            source.open("two.txt")
        assert any(r.name == "tests.custom_source" for r in caplog.records)
