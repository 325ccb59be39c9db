"""Constants for occurrence record flagging.

This module defines the column layout of the flagged occurrence files and
the summary table, and the Darwin Core category values the filters refer to.
"""

# Flag columns in output order. TRUE = passes, FALSE = flagged, null = untested
FLAG_COLUMNS: list[str] = [
    ".cen",
    ".urb",
    ".inst",
    ".con",
    ".outl",
    ".nativectry",
    ".yr1950",
    ".yr1980",
    ".yrna",
]

# Flags that must all be TRUE for a record to be fully unflagged.
# .nativectry is handled separately since null also passes
UNFLAGGED_REQUIRED_FLAGS: list[str] = [
    ".cen",
    ".urb",
    ".inst",
    ".con",
    ".outl",
    ".yr1950",
    ".yr1980",
    ".yrna",
]

# Record columns of the flagged output, in output order
RECORD_COLUMNS: list[str] = [
    # data source and unique ID
    "UID",
    "database",
    "all_source_databases",
    # taxon
    "taxon_name_accepted",
    "taxon_name_status",
    "taxon_name",
    "scientificName",
    "genus",
    "specificEpithet",
    "taxonRank",
    "infraspecificEpithet",
    "taxonIdentificationNotes",
    # event
    "year",
    "basisOfRecord",
    # record-level
    "nativeDatabaseID",
    "institutionCode",
    "datasetName",
    "publisher",
    "rightsHolder",
    "license",
    "references",
    "informationWithheld",
    "issue",
    "recordedBy",
    # occurrence
    "establishmentMeans",
    "individualCount",
    # location
    "decimalLatitude",
    "decimalLongitude",
    "coordinateUncertaintyInMeters",
    "geolocationNotes",
    "localityDescription",
    "locality",
    "verbatimLocality",
    "locationNotes",
    "municipality",
    "higherGeography",
    "county",
    "stateProvince",
    "country",
    "countryCode",
    "countryCode_standard",
    "latlong_countryCode",
    # additional optional data from the target taxa list
    "rl_category",
    "ns_rank",
]

OUTPUT_COLUMNS: list[str] = RECORD_COLUMNS + FLAG_COLUMNS

# Columns an input file must carry; the other record columns are optional
REQUIRED_INPUT_COLUMNS: list[str] = [
    "UID",
    "taxon_name_accepted",
    "year",
    "basisOfRecord",
    "establishmentMeans",
    "decimalLatitude",
    "decimalLongitude",
    "countryCode_standard",
    "latlong_countryCode",
    "all_native_dist_iso2",
]

NATIVE_COUNTRIES_COLUMN = "all_native_dist_iso2"
NATIVE_COUNTRIES_SEPARATOR = ";"

SUMMARY_KEY_COLUMN = "taxon_name_accepted"
SUMMARY_COLUMNS: list[str] = [
    SUMMARY_KEY_COLUMN,
    "unflagged_pts",
    "selected_pts",
] + FLAG_COLUMNS

# Strings read as missing values; written missing values use the first one
NULL_VALUES: list[str] = ["NA", ""]

# Valid basisOfRecord values in Darwin Core
BASIS_OF_RECORD_VALUES: list[str] = [
    "PRESERVED_SPECIMEN",
    "FOSSIL_SPECIMEN",
    "LIVING_SPECIMEN",
    "MATERIAL_SAMPLE",
    "MATERIAL_CITATION",
    "HUMAN_OBSERVATION",
    "MACHINE_OBSERVATION",
    "OBSERVATION",
    "OCCURRENCE",
]

# Valid establishmentMeans values after standardization
ESTABLISHMENT_MEANS_VALUES: list[str] = [
    "NATIVE",
    "INTRODUCED",
    "MANAGED",
    "CULTIVATED",
    "UNKNOWN",
]

# Mean earth radius in meters, used for haversine distances
EARTH_RADIUS_M = 6_371_008.8
