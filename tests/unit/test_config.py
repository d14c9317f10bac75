"""
Unit tests for config models and YAML I/O (tabular_etl.config).

Tests Pydantic model validation, extension-implied options, YAML
round-trip and input cross-validation.
"""

import pytest
from pydantic import ValidationError

from tabular_etl.config import (
    InputConfig,
    OutputConfig,
    PipelineConfig,
    load_config,
    save_config,
    validate_input,
)
from tabular_etl.exceptions import ConfigValidationError


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def _make_config(**overrides) -> PipelineConfig:
    defaults = {
        "input": {"path": "inputs/members.csv"},
        "mapping": {"name": "Name", "age": 2},
    }
    defaults.update(overrides)
    return PipelineConfig(**defaults)


# ---------------------------------------------------------------------------
# InputConfig
# ---------------------------------------------------------------------------

class TestInputConfig:
    """Tests for InputConfig validation."""

    def test_format_inferred(self):
        assert InputConfig(path="a.csv").resolved_format == "delimited"
        assert InputConfig(path="a.xlsx").resolved_format == "spreadsheet"

    def test_explicit_format_wins(self):
        cfg = InputConfig(path="export.dump", format="delimited")
        assert cfg.resolved_format == "delimited"

    def test_unknown_extension_without_format(self):
        cfg = InputConfig(path="export.dump")
        with pytest.raises(ConfigValidationError):
            cfg.resolved_format

    def test_tsv_implies_tab(self):
        cfg = InputConfig(path="a.tsv")
        assert cfg.options.sep_char == "\t"

    def test_explicit_separator_kept(self):
        cfg = InputConfig(path="a.tsv", options={"sep_char": ";"})
        assert cfg.options.sep_char == ";"

    def test_invalid_format(self):
        with pytest.raises(ValidationError, match="format"):
            InputConfig(path="a.csv", format="json")

    def test_missing_path(self):
        with pytest.raises(ValidationError, match="path"):
            InputConfig()


# ---------------------------------------------------------------------------
# OutputConfig / PipelineConfig
# ---------------------------------------------------------------------------

class TestOutputConfig:
    def test_defaults(self):
        cfg = OutputConfig()
        assert cfg.output_dir == "outputs/"
        assert cfg.output_format == "parquet"
        assert cfg.table_name == "records"

    def test_invalid_format(self):
        with pytest.raises(ValidationError):
            OutputConfig(output_format="xlsx")


class TestPipelineConfig:
    def test_mapping_types_kept(self):
        cfg = _make_config()
        assert cfg.mapping == {"name": "Name", "age": 2}
        assert cfg.skip_blank is True

    def test_position_below_one(self):
        with pytest.raises(ValidationError, match="positions start at 1"):
            _make_config(mapping={"first": 0})


# ---------------------------------------------------------------------------
# validate_input
# ---------------------------------------------------------------------------

class TestValidateInput:
    def test_worksheet_with_delimited(self):
        with pytest.raises(ConfigValidationError, match="only valid for spreadsheets"):
            validate_input(InputConfig(path="a.csv", worksheet="Sheet1"))

    def test_worksheet_with_spreadsheet(self):
        validate_input(InputConfig(path="a.xlsx", worksheet=1))


# ---------------------------------------------------------------------------
# YAML I/O
# ---------------------------------------------------------------------------

class TestYamlIO:
    def test_roundtrip(self, tmp_path):
        cfg = _make_config(
            input={"path": "in/a.csv", "options": {"skipping": "^#", "strict": False}},
            output={"output_format": "csv", "table_name": "members"},
        )
        path = tmp_path / "cfg" / "pipeline.yaml"
        save_config(cfg, path)

        assert path.read_text(encoding="utf-8").startswith("# tabular-etl")
        loaded = load_config(path)
        assert loaded == cfg
        assert loaded.input.options.skipping == "^#"
        assert loaded.mapping["age"] == 2

    def test_load_hand_written(self, tmp_path):
        path = tmp_path / "pipeline.yaml"
        path.write_text(
            "input:\n"
            "  path: inputs/members.tsv\n"
            "  options:\n"
            "    skipping: 2\n"
            "mapping:\n"
            "  name: Name\n"
            "  third: 3\n",
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert cfg.input.options.sep_char == "\t"
        assert cfg.input.options.skipping == 2
        assert cfg.mapping == {"name": "Name", "third": 3}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="empty"):
            load_config(path)

    def test_load_rejects_worksheet_for_csv(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("input:\n  path: a.csv\n  worksheet: Data\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError):
            load_config(path)

    def test_callable_skipping_cannot_be_saved(self, tmp_path):
        cfg = _make_config()
        cfg.input.options.skipping = lambda line: line.startswith("#")
        with pytest.raises(ConfigValidationError, match="callable"):
            save_config(cfg, tmp_path / "x.yaml")
