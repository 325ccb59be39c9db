"""Occurrence records annotated with quality flag columns.

This module defines the schema of the flagged occurrence files, the
procedure that adds every flag to one taxon's records, and the two filtered
views (fully unflagged and selectively unflagged) derived from them.
"""

import logging
from pathlib import Path
from typing import Union

import dataframely as dy
import polars as pl

from occurrence_flagging import defaults
from occurrence_flagging.boundary_layers import BoundaryLayers
from occurrence_flagging.constants import (
    FLAG_COLUMNS,
    NULL_VALUES,
    OUTPUT_COLUMNS,
    RECORD_COLUMNS,
    UNFLAGGED_REQUIRED_FLAGS,
)
from occurrence_flagging.flags import (
    country_consistency_flag,
    native_countries,
    native_country_flag,
    not_in_values,
    year_cutoff_flag,
    year_present_flag,
)
from occurrence_flagging.geospatial import (
    flag_centroid_institution,
    flag_outliers,
    flag_urban_overlay,
)
from occurrence_flagging.output import write_csv_atomic
from occurrence_flagging.types import FlaggingConfig

logger = logging.getLogger(__name__)


class FlaggedOccurrenceSchema(dy.Schema):
    """
    One row per occurrence record, in input order. Record fields are the
    verbatim input strings; flag columns are True when the record passes,
    False when it is flagged and null when the test was not run.
    """

    # data source and unique ID
    UID = dy.String(nullable=False)
    database = dy.String(nullable=True)
    all_source_databases = dy.String(nullable=True)
    # taxon
    taxon_name_accepted = dy.String(nullable=True)
    taxon_name_status = dy.String(nullable=True)
    taxon_name = dy.String(nullable=True)
    scientificName = dy.String(nullable=True)
    genus = dy.String(nullable=True)
    specificEpithet = dy.String(nullable=True)
    taxonRank = dy.String(nullable=True)
    infraspecificEpithet = dy.String(nullable=True)
    taxonIdentificationNotes = dy.String(nullable=True)
    # event
    year = dy.String(nullable=True)
    basisOfRecord = dy.String(nullable=True)
    # record-level
    nativeDatabaseID = dy.String(nullable=True)
    institutionCode = dy.String(nullable=True)
    datasetName = dy.String(nullable=True)
    publisher = dy.String(nullable=True)
    rightsHolder = dy.String(nullable=True)
    license = dy.String(nullable=True)
    references = dy.String(nullable=True)
    informationWithheld = dy.String(nullable=True)
    issue = dy.String(nullable=True)
    recordedBy = dy.String(nullable=True)
    # occurrence
    establishmentMeans = dy.String(nullable=True)
    individualCount = dy.String(nullable=True)
    # location
    decimalLatitude = dy.String(nullable=True)
    decimalLongitude = dy.String(nullable=True)
    coordinateUncertaintyInMeters = dy.String(nullable=True)
    geolocationNotes = dy.String(nullable=True)
    localityDescription = dy.String(nullable=True)
    locality = dy.String(nullable=True)
    verbatimLocality = dy.String(nullable=True)
    locationNotes = dy.String(nullable=True)
    municipality = dy.String(nullable=True)
    higherGeography = dy.String(nullable=True)
    county = dy.String(nullable=True)
    stateProvince = dy.String(nullable=True)
    country = dy.String(nullable=True)
    countryCode = dy.String(nullable=True)
    countryCode_standard = dy.String(nullable=True)
    latlong_countryCode = dy.String(nullable=True)
    # additional optional data from the target taxa list
    rl_category = dy.String(nullable=True)
    ns_rank = dy.String(nullable=True)
    # flags
    cen = dy.Bool(nullable=True, alias=".cen")
    urb = dy.Bool(nullable=True, alias=".urb")
    inst = dy.Bool(nullable=True, alias=".inst")
    con = dy.Bool(nullable=False, alias=".con")
    outl = dy.Bool(nullable=True, alias=".outl")
    nativectry = dy.Bool(nullable=True, alias=".nativectry")
    yr1950 = dy.Bool(nullable=False, alias=".yr1950")
    yr1980 = dy.Bool(nullable=False, alias=".yr1980")
    yrna = dy.Bool(nullable=False, alias=".yrna")

    @dy.rule()
    def year_cutoffs_monotonic(cls) -> pl.Expr:
        """A record passing the 1980 cutoff also passes the 1950 cutoff."""
        return ~pl.col(".yr1980") | pl.col(".yr1950")

    @dy.rule()
    def missing_year_passes_cutoffs(cls) -> pl.Expr:
        """Records without a year pass both cutoffs vacuously."""
        return pl.col(".yrna") | (pl.col(".yr1950") & pl.col(".yr1980"))

    @classmethod
    def build(
        cls,
        occurrences: pl.DataFrame,
        boundary_layers: BoundaryLayers,
        config: FlaggingConfig,
        taxon_name: str = "",
    ) -> dy.DataFrame["FlaggedOccurrenceSchema"]:
        """Run every flag test on one taxon's records.

        Args:
            occurrences: The taxon's records as read from its input file.
            boundary_layers: Urban polygons and reference points of the run.
            config: Radii, outlier parameters and the urban minimum.
            taxon_name: Used in diagnostics only.

        Returns:
            A validated DataFrame with exactly the output columns, in order.
        """
        native = native_countries(occurrences)
        if not native:
            logger.info(
                f"No native countries listed for {taxon_name}; .nativectry set to NA"
            )

        df = occurrences.with_columns(
            native_country_flag(native),
            country_consistency_flag(),
            *[
                year_cutoff_flag(cutoff, name)
                for name, cutoff in defaults.YEAR_CUTOFFS.items()
            ],
            year_present_flag(),
        )

        lat, lng = (
            df[col].cast(pl.Float64, strict=False).fill_null(float("nan")).to_numpy()
            for col in ("decimalLatitude", "decimalLongitude")
        )

        cen, inst = flag_centroid_institution(
            lat,
            lng,
            centroids=boundary_layers.centroids,
            institutions=boundary_layers.institutions,
            centroid_radius_m=config.centroid_radius_m,
            institution_radius_m=config.institution_radius_m,
        )

        if df.height < config.urban_min_records:
            logger.info(
                f"{taxon_name} has fewer than {config.urban_min_records} records "
                "and will not be tested for urban areas"
            )
            urb = pl.Series(".urb", [None] * df.height, dtype=pl.Boolean)
        else:
            urb = flag_urban_overlay(lat, lng, boundary_layers.urban_areas)

        outl = flag_outliers(
            lat,
            lng,
            groups=df["taxon_name_accepted"].to_list(),
            method=config.outlier_method,
            multiplier=config.outlier_multiplier,
            min_occurrences=config.outlier_min_occurrences,
        )

        df = df.with_columns(cen, urb, inst, outl)

        # Optional record columns absent from the input are written as NA
        absent = [col for col in RECORD_COLUMNS if col not in df.columns]
        if absent:
            logger.debug(f"Adding empty columns for {taxon_name}: {', '.join(absent)}")
            df = df.with_columns(
                [pl.lit(None, dtype=pl.String).alias(col) for col in absent]
            )

        df = df.select(OUTPUT_COLUMNS)
        return cls.validate(df)


def _exclusions(config: FlaggingConfig) -> pl.Expr:
    return (
        (pl.col(".nativectry") | pl.col(".nativectry").is_null())
        & not_in_values("basisOfRecord", config.excluded_basis_of_record)
        & not_in_values("establishmentMeans", config.excluded_establishment_means)
    )


def _all_pass(flags: list[str]) -> pl.Expr:
    if not flags:
        return pl.lit(True)
    return pl.all_horizontal(flags)


def fully_unflagged(df: pl.DataFrame, config: FlaggingConfig) -> pl.DataFrame:
    """Records that pass every test and are neither non-native nor excluded by category."""
    return df.filter(_all_pass(UNFLAGGED_REQUIRED_FLAGS) & _exclusions(config))


def selectively_unflagged(df: pl.DataFrame, config: FlaggingConfig) -> pl.DataFrame:
    """Like fully_unflagged, but only the configured selected flags must pass."""
    return df.filter(_all_pass(list(config.selected_flags)) & _exclusions(config))


def write_flagged_occurrences(
    df: dy.DataFrame[FlaggedOccurrenceSchema], path: Union[str, Path]
) -> Path:
    """Write a flagged table with TRUE/FALSE flags and NA for missing values."""
    out = df.with_columns(
        [
            pl.when(pl.col(col).is_null())
            .then(pl.lit(None, dtype=pl.String))
            .when(pl.col(col))
            .then(pl.lit("TRUE"))
            .otherwise(pl.lit("FALSE"))
            .alias(col)
            for col in FLAG_COLUMNS
        ]
    )
    return write_csv_atomic(out, path)


def read_flagged_occurrences(
    path: Union[str, Path],
) -> dy.DataFrame[FlaggedOccurrenceSchema]:
    """Read a file written by write_flagged_occurrences back into the schema."""
    df = pl.read_csv(path, infer_schema=False, null_values=NULL_VALUES)
    df = df.with_columns(
        [(pl.col(col).str.to_uppercase() == "TRUE").alias(col) for col in FLAG_COLUMNS]
    )
    return FlaggedOccurrenceSchema.validate(df.select(OUTPUT_COLUMNS))
