from pathlib import Path
from typing import NamedTuple, TypeAlias

from occurrence_flagging import defaults

TaxonName: TypeAlias = str
FlagColumn: TypeAlias = str


class TaxonFile(NamedTuple):
    """An input occurrence file and the taxon it holds."""

    path: Path
    taxon_name: TaxonName


class FlaggingConfig(NamedTuple):
    """Tunable parameters of the flagging tests and the filtered views."""

    centroid_radius_m: float = defaults.CENTROID_RADIUS_M
    institution_radius_m: float = defaults.INSTITUTION_RADIUS_M
    urban_min_records: int = defaults.URBAN_MIN_RECORDS
    outlier_method: str = defaults.OUTLIER_METHOD
    outlier_multiplier: float = defaults.OUTLIER_MULTIPLIER
    outlier_min_occurrences: int = defaults.OUTLIER_MIN_OCCURRENCES
    selected_flags: tuple[FlagColumn, ...] = tuple(defaults.SELECTED_FLAGS)
    excluded_basis_of_record: tuple[str, ...] = tuple(
        defaults.EXCLUDED_BASIS_OF_RECORD
    )
    excluded_establishment_means: tuple[str, ...] = tuple(
        defaults.EXCLUDED_ESTABLISHMENT_MEANS
    )


class RunPaths(NamedTuple):
    """Directories a batch run reads from and writes to."""

    input_dir: Path
    output_dir: Path
    summary_dir: Path
