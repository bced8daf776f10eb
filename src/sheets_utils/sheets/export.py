"""CSV export of rows, one file per sheet title."""

from __future__ import annotations

import csv
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

from sheets_utils.sheets.models import Row

logger = logging.getLogger(__name__)


def export_csv(
    output_dir: str | Path,
    data: Mapping[str, Sequence[Row]],
    prefix: str = "",
) -> list[Path]:
    """Write each non-empty title's rows to `<output_dir>/<prefix><title>.csv`.

    Args:
        output_dir: Directory to write into. Created if missing.
        data: Sheet title -> rows.
        prefix: Prepended to every file name.

    Returns:
        Paths written, in input order.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = []
    for title, rows in data.items():
        if not rows:
            continue
        path = output_dir / f"{prefix}{title}.csv"
        with open(path, "w", newline="") as f:
            writer = csv.writer(f)
            for row in rows:
                writer.writerow(row.to_cells())
        paths.append(path)

    for path in paths:
        logger.info(f"Wrote output to {path}")
    return paths


def load_csv(path: str | Path, bold_header: bool = True) -> list[Row]:
    """Read a CSV file into rows, optionally bolding the first one."""
    with open(path, newline="") as f:
        records = list(csv.reader(f))
    return [
        Row.from_values(record, bold_text=bold_header and i == 0)
        for i, record in enumerate(records)
    ]
