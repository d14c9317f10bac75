"""
Integration tests: full read -> map -> export runs through ``tabular_etl.run``.

Inputs are generated in ``tmp_path``; configs are written as YAML so the
loader, detection, source, pipeline and exporter are all exercised.
"""

from __future__ import annotations

import pandas as pd
import pytest

import tabular_etl
from tabular_etl.config import InputConfig, OutputConfig, PipelineConfig
from tabular_etl.exceptions import MappingError, RowParseError, SourceUnreadableError


def _write_yaml(path, body: str):
    path.write_text(body, encoding="utf-8")
    return path


@pytest.mark.integration
class TestRunDelimited:
    def test_csv_to_parquet(self, write_text, tmp_path):
        src = write_text(
            "# members export\n"
            "# generated nightly\n"
            "Name,Age,City\n"
            "Alice,30,Oslo\n"
            "\n"
            "Bob,40,\"Bergen, Norway\"\n",
            name="members.csv",
        )
        out = tmp_path / "out"
        cfg = _write_yaml(
            tmp_path / "pipeline.yaml",
            f"input:\n"
            f"  path: {src.as_posix()}\n"
            f"  options:\n"
            f"    skipping: '^#'\n"
            f"mapping:\n"
            f"  name: Name\n"
            f"  city: 3\n"
            f"output:\n"
            f"  output_dir: {out.as_posix()}\n"
            f"  table_name: members\n",
        )

        df, written = tabular_etl.run(cfg)

        assert written == str(out / "members.parquet")
        assert df.to_dict("records") == [
            {"name": "Alice", "city": "Oslo"},
            {"name": "Bob", "city": "Bergen, Norway"},
        ]
        pd.testing.assert_frame_equal(pd.read_parquet(written), df)

    def test_tsv_separator_from_extension(self, write_text, tmp_path):
        src = write_text("a\tb\n1\t2\n", name="pairs.tsv")
        config = PipelineConfig(
            input=InputConfig(path=str(src)),
            output=OutputConfig(output_dir=str(tmp_path / "out"), output_format="csv"),
        )
        df, written = tabular_etl.run(config)
        assert df.to_dict("records") == [{"a": "1", "b": "2"}]
        assert written.endswith("records.csv")

    def test_malformed_line_stops_run(self, write_text, tmp_path):
        src = write_text('Name\nAlice\n"Bob\n', name="bad.csv")
        config = PipelineConfig(
            input=InputConfig(path=str(src)),
            output=OutputConfig(output_dir=str(tmp_path / "out")),
        )
        with pytest.raises(RowParseError, match="line 3"):
            tabular_etl.run(config)
        assert not (tmp_path / "out").exists()

    def test_unknown_header_in_mapping(self, write_text, tmp_path):
        src = write_text("Name\nAlice\n", name="m.csv")
        config = PipelineConfig(
            input=InputConfig(path=str(src)),
            mapping={"email": "Email"},
            output=OutputConfig(output_dir=str(tmp_path / "out")),
        )
        with pytest.raises(MappingError, match="line 2"):
            tabular_etl.run(config)


@pytest.mark.integration
class TestRunSpreadsheet:
    def test_xlsx_to_csv(self, make_workbook, tmp_path):
        src = make_workbook(
            {
                "Summary": [["ignore me"]],
                "Members": [["Name", "Age"], ["Alice", 30], [None, None], ["Bob", 40]],
            },
            name="members.xlsx",
        )
        config = PipelineConfig(
            input=InputConfig(path=str(src), worksheet="Members"),
            mapping={"name": 1, "age": 2},
            output=OutputConfig(
                output_dir=str(tmp_path / "out"), output_format="csv", table_name="members"
            ),
        )

        df, written = tabular_etl.run(config)

        assert df["name"].tolist() == ["Name", "Alice", "Bob"]
        back = pd.read_csv(written, encoding="utf-8-sig")
        assert back["name"].tolist() == ["Name", "Alice", "Bob"]

    def test_missing_worksheet_exports_nothing(self, make_workbook, tmp_path):
        src = make_workbook({"Data": [["x"]]}, name="book.xlsx")
        config = PipelineConfig(
            input=InputConfig(path=str(src), worksheet="Missing"),
            mapping={"x": 1},
            output=OutputConfig(output_dir=str(tmp_path / "out"), output_format="csv"),
        )
        df, written = tabular_etl.run(config)
        assert len(df) == 0
        assert list(df.columns) == ["x"]

    def test_unreadable_workbook(self, write_text, tmp_path):
        src = write_text("not a zip", name="broken.xlsx")
        config = PipelineConfig(
            input=InputConfig(path=str(src)),
            output=OutputConfig(output_dir=str(tmp_path / "out")),
        )
        with pytest.raises(SourceUnreadableError):
            tabular_etl.run(config)
