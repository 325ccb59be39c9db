"""Per-taxon occurrence input files.

Each file holds the compiled occurrence records of one target taxon and is
named after it (e.g. ``Asimina_triloba.csv``). All fields are read as
strings so that records are written back exactly as they were read.
"""

import logging
from pathlib import Path
from typing import Union

import polars as pl

from occurrence_flagging.constants import NULL_VALUES, REQUIRED_INPUT_COLUMNS
from occurrence_flagging.exceptions import MissingColumnsError
from occurrence_flagging.types import TaxonFile

logger = logging.getLogger(__name__)

# Infraspecific rank markers written without their trailing period in file names
RANK_MARKERS: dict[str, str] = {
    " var ": " var. ",
    " subsp ": " subsp. ",
}


def taxon_name_from_stem(stem: str) -> str:
    """
    Turn a file name stem back into a taxon name.

    >>> taxon_name_from_stem("Quercus_alba_var_alba")
    'Quercus alba var. alba'
    """
    name = stem.replace("_", " ")
    for marker, replacement in RANK_MARKERS.items():
        name = name.replace(marker, replacement)
    return name


def list_taxon_files(input_dir: Union[str, Path]) -> list[TaxonFile]:
    """List the taxon CSV files under input_dir in a deterministic order."""
    input_dir = Path(input_dir)
    if not input_dir.is_dir():
        raise FileNotFoundError(f"Input directory not found: {input_dir}")
    paths = sorted(input_dir.rglob("*.csv"), key=lambda p: p.relative_to(input_dir).as_posix())
    return [TaxonFile(path=path, taxon_name=taxon_name_from_stem(path.stem)) for path in paths]


def read_occurrences(path: Union[str, Path]) -> pl.DataFrame:
    """Read one taxon's occurrence records with every column as a string.

    Raises:
        MissingColumnsError: If a column the flag tests need is absent.
    """
    df = pl.read_csv(
        path,
        has_header=True,
        infer_schema=False,
        null_values=NULL_VALUES,
    )
    missing = [col for col in REQUIRED_INPUT_COLUMNS if col not in df.columns]
    if missing:
        raise MissingColumnsError(str(path), missing)
    logger.debug(f"Read {df.height} records from {path}")
    return df
