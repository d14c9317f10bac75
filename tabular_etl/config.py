"""
Configuration models and YAML I/O for tabular-etl.

A pipeline config names one input file, how to read it, how to map its
fields to output columns, and where to write the result::

    input:
      path: inputs/members.csv
      options:
        skipping: "^#"
    mapping:
      name: Name
      age: Age
      third_column: 3
    output:
      output_dir: outputs/
      output_format: parquet
      table_name: members

Key models:
- PipelineConfig: Top-level config (input + mapping + output).
- InputConfig: Source path, format, worksheet, delimited-text options.
- OutputConfig: Output directory, format and table name.

Key functions:
- load_config(path) -> PipelineConfig: Load and validate from YAML.
- save_config(config, path): Serialize to YAML.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from tabular_etl.detect import default_options, detect_format
from tabular_etl.exceptions import ConfigValidationError
from tabular_etl.inputs.delimited import DelimitedTextOptions

logger = logging.getLogger(__name__)


class InputConfig(BaseModel):
    """Source file and how to read it."""

    path: str = Field(..., description="Path to the input file")
    format: Literal["delimited", "spreadsheet"] | None = Field(
        None, description="Input format; inferred from the extension when omitted"
    )
    worksheet: str | int | None = Field(
        None, description="Worksheet title or 0-based index (spreadsheets only)"
    )
    options: DelimitedTextOptions = Field(default_factory=DelimitedTextOptions)

    @model_validator(mode="before")
    @classmethod
    def _apply_extension_defaults(cls, data: object) -> object:
        """Fill separators implied by the extension (``.tsv`` -> tab)."""
        if isinstance(data, dict) and "path" in data:
            implied = default_options(data["path"])
            options = data.get("options")
            if implied and (options is None or isinstance(options, dict)):
                options = dict(options or {})
                for key, value in implied.items():
                    options.setdefault(key, value)
                data = {**data, "options": options}
        return data

    @property
    def resolved_format(self) -> str:
        return self.format or detect_format(self.path)


class OutputConfig(BaseModel):
    """Output settings."""

    output_dir: str = Field("outputs/", description="Directory for output files")
    output_format: Literal["csv", "parquet"] = Field(
        "parquet", description="Output format"
    )
    table_name: str = Field("records", description="Output file name without extension")


class PipelineConfig(BaseModel):
    """Top-level configuration for one tabular-etl run.

    ``mapping`` maps output column -> source field. A string names a header
    published by the source; an integer is a 1-based column position. An
    empty mapping keeps every column under its header name.
    """

    input: InputConfig
    mapping: dict[str, str | int] = Field(default_factory=dict)
    output: OutputConfig = Field(default_factory=OutputConfig)
    skip_blank: bool = Field(True, description="Drop records with no data")

    @model_validator(mode="after")
    def _check_consistency(self) -> PipelineConfig:
        for column, source in self.mapping.items():
            if isinstance(source, int) and source < 1:
                raise ValueError(
                    f"Mapping for '{column}' uses position {source}; positions start at 1."
                )
        return self


def load_config(path: str | Path) -> PipelineConfig:
    """Load and validate a pipeline YAML file into a PipelineConfig.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ConfigValidationError: If the file is empty or names a worksheet
            for a delimited source.
        pydantic.ValidationError: If the YAML content fails schema validation.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is None:
        raise ConfigValidationError(f"Config file is empty: {path}")
    config = PipelineConfig.model_validate(raw)
    validate_input(config.input)
    logger.info("Loaded config from %s", path)
    return config


def save_config(config: PipelineConfig, path: str | Path) -> None:
    """Serialize a PipelineConfig to YAML.

    Predicate-style ``skipping`` cannot be written to YAML; use a regex
    string instead.
    """
    if callable(config.input.options.skipping):
        raise ConfigValidationError(
            "Cannot save a config whose 'skipping' is a Python callable; "
            "use a regular expression string instead."
        )
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json")
    with open(path, "w", encoding="utf-8") as f:
        f.write("# tabular-etl pipeline configuration\n\n")
        yaml.dump(
            data,
            f,
            allow_unicode=True,
            default_flow_style=False,
            sort_keys=False,
        )
    logger.info("Saved config to %s", path)


def validate_input(input_config: InputConfig) -> None:
    """Cross-check the input section against the resolved format.

    Raises:
        ConfigValidationError: If the format is unknown or a worksheet is
            set for a delimited source.
    """
    fmt = input_config.resolved_format
    if fmt == "delimited" and input_config.worksheet is not None:
        raise ConfigValidationError(
            f"'worksheet' is only valid for spreadsheets, but {input_config.path} "
            "is read as delimited text."
        )
