"""Record-level flag expressions that need no geometry.

Every function returns a Polars expression producing a nullable Boolean
column, where True means the record passes the test.
"""

from typing import Iterable, Optional

import polars as pl

from occurrence_flagging.constants import (
    NATIVE_COUNTRIES_COLUMN,
    NATIVE_COUNTRIES_SEPARATOR,
)


def numeric_year() -> pl.Expr:
    """The year column as a float; non-numeric and non-finite values become null."""
    year = pl.col("year").str.strip_chars().cast(pl.Float64, strict=False)
    return pl.when(year.is_finite()).then(year)


def _present(column: str) -> pl.Expr:
    return pl.col(column).is_not_null() & (pl.col(column).str.strip_chars() != "")


def native_countries(df: pl.DataFrame) -> set[str]:
    """Union of the taxon's native country codes over all of its records."""
    if NATIVE_COUNTRIES_COLUMN not in df.columns:
        return set()
    codes = (
        df.select(
            pl.col(NATIVE_COUNTRIES_COLUMN)
            .cast(pl.String)
            .str.split(NATIVE_COUNTRIES_SEPARATOR)
            .explode()
            .str.strip_chars()
        )
        .to_series()
        .drop_nulls()
        .to_list()
    )
    return {code for code in codes if code}


def native_country_flag(native_set: Optional[Iterable[str]]) -> pl.Expr:
    """
    True when the coordinate country is one of the taxon's native countries.

    When the native set is empty the test is skipped and the flag is null
    for every record.
    """
    native = sorted(set(native_set or []))
    if not native:
        return pl.lit(None, dtype=pl.Boolean).alias(".nativectry")
    return (
        pl.col("latlong_countryCode")
        .is_in(native)
        .fill_null(False)
        .alias(".nativectry")
    )


def country_consistency_flag() -> pl.Expr:
    """False only when the reported and coordinate countries are both present and differ."""
    reported = pl.col("countryCode_standard").str.strip_chars()
    derived = pl.col("latlong_countryCode").str.strip_chars()
    both_present = _present("countryCode_standard") & _present("latlong_countryCode")
    return (~both_present | (reported == derived)).alias(".con")


def year_cutoff_flag(cutoff: int, name: str) -> pl.Expr:
    """True when the year is missing or strictly after cutoff."""
    year = numeric_year()
    return (year.is_null() | (year > cutoff)).fill_null(True).alias(name)


def year_present_flag() -> pl.Expr:
    return numeric_year().is_not_null().alias(".yrna")


def not_in_values(column: str, values: Iterable[str]) -> pl.Expr:
    """True when column is not one of values; missing values are not excluded."""
    excluded = list(values)
    if not excluded:
        return pl.lit(True)
    return ~pl.col(column).is_in(excluded).fill_null(False)
