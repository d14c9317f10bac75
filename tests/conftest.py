"""
Shared test fixtures for tabular-etl tests.

Input files are built on the fly in ``tmp_path``: workbooks with openpyxl,
delimited text with plain writes. No real input files are required.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook


# ---------------------------------------------------------------------------
# File builders
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_workbook(tmp_path: Path) -> Callable[..., Path]:
    """Build an ``.xlsx`` file from ``{sheet title: rows}``.

    Rows are lists of values appended from row 1; use ``cells`` for sparse
    placement: ``{sheet title: {"C3": value}}``.
    """
    def _make(
        sheets: dict[str, Sequence[Sequence[Any]]],
        name: str = "book.xlsx",
        cells: dict[str, dict[str, Any]] | None = None,
    ) -> Path:
        wb = Workbook()
        wb.remove(wb.active)
        for title, rows in sheets.items():
            ws = wb.create_sheet(title)
            for row in rows:
                ws.append(list(row))
        for title, placed in (cells or {}).items():
            ws = wb[title] if title in wb.sheetnames else wb.create_sheet(title)
            for coord, value in placed.items():
                ws[coord] = value
        path = tmp_path / name
        wb.save(path)
        return path

    return _make


@pytest.fixture()
def write_text(tmp_path: Path) -> Callable[..., Path]:
    """Write *content* to ``tmp_path / name`` exactly as given (no newline translation)."""
    def _write(content: str, name: str = "data.csv", encoding: str = "utf-8") -> Path:
        path = tmp_path / name
        path.write_bytes(content.encode(encoding))
        return path

    return _write


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------
def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (full read -> map -> export runs)",
    )
