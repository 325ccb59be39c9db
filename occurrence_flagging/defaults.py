"""Centralized default configuration values for the flagging pipeline.

These defaults are used by the CLI argument parsing (as fallbacks when args
aren't provided) and by FlaggingConfig.
"""

LOG_FILE = None

# Year cutoffs; a record passes when its year is strictly greater
YEAR_CUTOFFS: dict[str, int] = {
    ".yr1950": 1950,
    ".yr1980": 1980,
}

# Proximity radii (meters)
CENTROID_RADIUS_M = 500.0
INSTITUTION_RADIUS_M = 100.0

# Urban overlay needs at least this many records per taxon
URBAN_MIN_RECORDS = 2

# Spatial outlier test
OUTLIER_METHOD = "quantile"
OUTLIER_MULTIPLIER = 4.0
OUTLIER_MIN_OCCURRENCES = 7

# Flags required by the selectively-unflagged subset
SELECTED_FLAGS: list[str] = [".cen", ".inst", ".outl"]

# Records with these values never count as unflagged
EXCLUDED_BASIS_OF_RECORD: list[str] = ["FOSSIL_SPECIMEN", "LIVING_SPECIMEN"]
EXCLUDED_ESTABLISHMENT_MEANS: list[str] = ["INTRODUCED", "MANAGED", "CULTIVATED"]

# File naming
SUMMARY_FILE_PREFIX = "summary_of_occurrences"
