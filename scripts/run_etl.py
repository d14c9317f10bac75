"""
Demo script: run tabular-etl pipelines from YAML configs.

Usage:
    python scripts/run_etl.py configs/members.yaml            # one pipeline
    python scripts/run_etl.py configs/*.yaml                  # several
    python scripts/run_etl.py --peek inputs/members.xlsx      # print records

Each config describes one input file, its mapping and its output (see
``tabular_etl.config``). With ``--peek`` the script opens the file
directly and prints every record with its provenance instead.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("run_etl")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _peek(path: str) -> None:
    import tabular_etl

    with tabular_etl.open_source(path) as source:
        if source.field_aliases:
            log.info("Columns: %s", source.field_aliases)
        for record in source:
            flag = " (blank)" if record.is_blank else ""
            log.info("%s%s: %s", record.provenance, flag, dict(record.fields))


def _run(config_path: str) -> None:
    import tabular_etl

    log.info("=" * 70)
    log.info("Processing: %s", config_path)
    log.info("=" * 70)

    df, written = tabular_etl.run(config_path)
    log.info("  %s rows x %d cols -> %s", f"{len(df):,}", len(df.columns), written)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> int:
    from tabular_etl import TabularEtlError

    args = sys.argv[1:]
    if not args:
        print(__doc__)
        return 2

    peek = args[0] == "--peek"
    paths = args[1:] if peek else args

    failures = 0
    for path in paths:
        if not Path(path).exists():
            log.warning("SKIP  %s  (file not found)", path)
            continue
        try:
            _peek(path) if peek else _run(path)
        except TabularEtlError as exc:
            log.error("FAILED  %s: %s", path, exc)
            failures += 1

    log.info("All files processed (%d failed).", failures)
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
