import argparse
import logging
from typing import Optional, Sequence

from occurrence_flagging import defaults
from occurrence_flagging.constants import (
    BASIS_OF_RECORD_VALUES,
    ESTABLISHMENT_MEANS_VALUES,
    UNFLAGGED_REQUIRED_FLAGS,
)
from occurrence_flagging.exceptions import ConfigurationError
from occurrence_flagging.types import FlaggingConfig

logger = logging.getLogger(__name__)


def _comma_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_cli_input(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Flag potentially suspect occurrence records for each taxon file."
    )

    # Add required options
    parser.add_argument(
        "--input-dir",
        type=str,
        required=True,
        help="Directory of per-taxon occurrence CSV files",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        required=True,
        help="Directory to write the flagged per-taxon CSV files to",
    )
    parser.add_argument(
        "--summary-dir",
        type=str,
        required=True,
        help="Directory holding the summary_of_occurrences tables",
    )
    parser.add_argument(
        "--countries", type=str, required=True, help="World country boundaries layer"
    )
    parser.add_argument(
        "--urban-areas", type=str, required=True, help="Urban area boundaries layer"
    )
    parser.add_argument(
        "--institutions",
        type=str,
        required=True,
        help="CSV of biodiversity institution coordinates",
    )

    # Add optional arguments
    parser.add_argument(
        "--centroids",
        type=str,
        default=None,
        help="CSV of country and province centroids",
    )
    parser.add_argument(
        "--provinces",
        type=str,
        default=None,
        help="Province boundaries layer, used with --countries for centroids when --centroids is not given",
    )
    parser.add_argument(
        "--centroid-radius",
        type=float,
        default=defaults.CENTROID_RADIUS_M,
        help="Radius around centroids in meters",
    )
    parser.add_argument(
        "--institution-radius",
        type=float,
        default=defaults.INSTITUTION_RADIUS_M,
        help="Radius around institutions in meters",
    )
    parser.add_argument(
        "--outlier-multiplier",
        type=float,
        default=defaults.OUTLIER_MULTIPLIER,
        help="Interquartile range multiplier of the outlier test",
    )
    parser.add_argument(
        "--outlier-min-occurrences",
        type=int,
        default=defaults.OUTLIER_MIN_OCCURRENCES,
        help="Minimum records per taxon for the outlier test",
    )
    parser.add_argument(
        "--selected-flags",
        type=_comma_list,
        default=list(defaults.SELECTED_FLAGS),
        help="Comma-separated flags required by the selected subset (e.g. '.cen,.inst,.outl')",
    )
    parser.add_argument(
        "--excluded-basis",
        type=_comma_list,
        default=list(defaults.EXCLUDED_BASIS_OF_RECORD),
        help="Comma-separated basisOfRecord values never counted as unflagged",
    )
    parser.add_argument(
        "--excluded-establishment",
        type=_comma_list,
        default=list(defaults.EXCLUDED_ESTABLISHMENT_MEANS),
        help="Comma-separated establishmentMeans values never counted as unflagged",
    )
    parser.add_argument(
        "--log-file", type=str, default=defaults.LOG_FILE, help="Path to the log file"
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> FlaggingConfig:
    """Collect the flagging parameters from parsed CLI arguments."""
    unknown = [flag for flag in args.selected_flags if flag not in UNFLAGGED_REQUIRED_FLAGS]
    if unknown:
        raise ConfigurationError(
            f"Unknown selected flags: {', '.join(unknown)} "
            f"(expected any of {', '.join(UNFLAGGED_REQUIRED_FLAGS)})"
        )
    if args.centroid_radius < 0 or args.institution_radius < 0:
        raise ConfigurationError("Radii must not be negative")
    if args.outlier_multiplier <= 0:
        raise ConfigurationError("Outlier multiplier must be positive")

    for option, values, known in [
        ("--excluded-basis", args.excluded_basis, BASIS_OF_RECORD_VALUES),
        ("--excluded-establishment", args.excluded_establishment, ESTABLISHMENT_MEANS_VALUES),
    ]:
        unrecognized = [value for value in values if value not in known]
        if unrecognized:
            # Still applied; the input files may use other vocabularies
            logger.warning(f"{option}: unrecognized values {', '.join(unrecognized)}")

    return FlaggingConfig(
        centroid_radius_m=args.centroid_radius,
        institution_radius_m=args.institution_radius,
        outlier_multiplier=args.outlier_multiplier,
        outlier_min_occurrences=args.outlier_min_occurrences,
        selected_flags=tuple(args.selected_flags),
        excluded_basis_of_record=tuple(args.excluded_basis),
        excluded_establishment_means=tuple(args.excluded_establishment),
    )
