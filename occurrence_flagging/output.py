"""
Output module for managing file paths and writing result files.

This module centralizes output directory management and file naming so that
every taxon writes to its own path and every file is written in one piece.
"""

import datetime
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Union

import polars as pl

from occurrence_flagging import defaults
from occurrence_flagging.constants import NULL_VALUES
from occurrence_flagging.types import TaxonFile

logger = logging.getLogger(__name__)

SUMMARY_DATE_PATTERN = re.compile(r"(\d{4})[-_](\d{2})[-_](\d{2})")

CSV_NULL_VALUE = NULL_VALUES[0]


def ensure_output_dir(output_dir: Union[str, Path]) -> Path:
    """
    Create the output directory if it doesn't exist.
    """
    path = Path(output_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


def prepare_file_path(path: Union[str, Path]) -> Path:
    """
    Prepare a file path for writing by ensuring its directory exists.

    Args:
        path: The path to prepare

    Returns:
        The same path after ensuring its directory exists
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def get_taxon_output_path(
    taxon_file: TaxonFile, input_dir: Union[str, Path], output_dir: Union[str, Path]
) -> Path:
    """
    Get the path of the flagged file for a taxon. The path mirrors the
    input file's location under input_dir, so no two taxa share one.
    """
    relative = taxon_file.path.relative_to(input_dir)
    return Path(output_dir) / relative.with_suffix(".csv")


def get_summary_path(
    summary_dir: Union[str, Path], date: Optional[datetime.date] = None
) -> Path:
    """
    Get the date-stamped path of the summary table.

    Returns:
        e.g. summary_dir/summary_of_occurrences_2023-06-01.csv
    """
    date = date or datetime.date.today()
    return Path(summary_dir) / f"{defaults.SUMMARY_FILE_PREFIX}_{date.isoformat()}.csv"


def _summary_date(path: Path) -> datetime.date:
    """The date stamped in a summary file name, or date.min when it has none."""
    match = SUMMARY_DATE_PATTERN.search(path.stem)
    if match is None:
        return datetime.date.min
    try:
        return datetime.date(*(int(part) for part in match.groups()))
    except ValueError:
        return datetime.date.min


def find_existing_summary(summary_dir: Union[str, Path]) -> Optional[Path]:
    """
    Find the most recent summary table in summary_dir, if any.

    Files are ordered by the date in their name, then by modification time.
    """
    summary_dir = Path(summary_dir)
    if not summary_dir.is_dir():
        return None
    candidates = sorted(
        summary_dir.glob(f"{defaults.SUMMARY_FILE_PREFIX}*.csv"),
        key=lambda path: (_summary_date(path), path.stat().st_mtime),
    )
    if not candidates:
        return None
    if len(candidates) > 1:
        logger.info(
            f"Found {len(candidates)} summary files, using the most recent: {candidates[-1]}"
        )
    return candidates[-1]


def write_csv_atomic(df: pl.DataFrame, path: Union[str, Path]) -> Path:
    """
    Write a CSV so that readers see either the complete file or no file.

    The data is written to a temporary file in the destination directory and
    then renamed over the destination.
    """
    path = prepare_file_path(path)
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp"
    )
    os.close(fd)
    try:
        df.write_csv(tmp_name, null_value=CSV_NULL_VALUE)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise
    return path
