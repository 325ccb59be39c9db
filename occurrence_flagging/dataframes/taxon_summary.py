import logging
from pathlib import Path
from typing import Iterable, Optional, Union

import dataframely as dy
import polars as pl

from occurrence_flagging.constants import FLAG_COLUMNS, NULL_VALUES, SUMMARY_KEY_COLUMN
from occurrence_flagging.dataframes.flagged_occurrence import (
    FlaggedOccurrenceSchema,
    fully_unflagged,
    selectively_unflagged,
)
from occurrence_flagging.types import FlaggingConfig

logger = logging.getLogger(__name__)

SUMMARY_POLARS_SCHEMA: dict[str, pl.DataType] = {
    SUMMARY_KEY_COLUMN: pl.String(),
    "unflagged_pts": pl.UInt32(),
    "selected_pts": pl.UInt32(),
    **{col: pl.UInt32() for col in FLAG_COLUMNS},
}


class TaxonSummarySchema(dy.Schema):
    """
    One row per taxon. Flag columns hold the number of records that failed
    the test (records where the test was not run are not counted).
    """

    taxon_name_accepted = dy.String(nullable=False)
    unflagged_pts = dy.UInt32(nullable=False)
    selected_pts = dy.UInt32(nullable=False)
    cen = dy.UInt32(nullable=False, alias=".cen")
    urb = dy.UInt32(nullable=False, alias=".urb")
    inst = dy.UInt32(nullable=False, alias=".inst")
    con = dy.UInt32(nullable=False, alias=".con")
    outl = dy.UInt32(nullable=False, alias=".outl")
    nativectry = dy.UInt32(nullable=False, alias=".nativectry")
    yr1950 = dy.UInt32(nullable=False, alias=".yr1950")
    yr1980 = dy.UInt32(nullable=False, alias=".yr1980")
    yrna = dy.UInt32(nullable=False, alias=".yrna")

    @dy.rule()
    def selected_at_least_unflagged(cls) -> pl.Expr:
        """The selective view checks fewer flags, so it never holds fewer records."""
        return pl.col("selected_pts") >= pl.col("unflagged_pts")

    @classmethod
    def build_row(
        cls,
        taxon_name: str,
        flagged_df: dy.DataFrame[FlaggedOccurrenceSchema],
        config: FlaggingConfig,
    ) -> dy.DataFrame["TaxonSummarySchema"]:
        """Summarize one taxon's flagged records."""
        unflagged_pts = fully_unflagged(flagged_df, config).height
        selected_pts = selectively_unflagged(flagged_df, config).height

        df = flagged_df.select(
            pl.lit(taxon_name, dtype=pl.String).alias(SUMMARY_KEY_COLUMN),
            pl.lit(unflagged_pts, dtype=pl.UInt32).alias("unflagged_pts"),
            pl.lit(selected_pts, dtype=pl.UInt32).alias("selected_pts"),
            *[(~pl.col(col)).sum().cast(pl.UInt32).alias(col) for col in FLAG_COLUMNS],
        )
        return cls.validate(df)

    @classmethod
    def combine(
        cls, rows: Iterable[dy.DataFrame["TaxonSummarySchema"]]
    ) -> dy.DataFrame["TaxonSummarySchema"]:
        """Fold per-taxon summary rows into one table, keeping their order."""
        frames = list(rows)
        if not frames:
            return cls.validate(pl.DataFrame(schema=SUMMARY_POLARS_SCHEMA))
        return cls.validate(pl.concat(frames, how="vertical"))


def read_existing_summary(path: Union[str, Path]) -> pl.DataFrame:
    """Read a summary table from an earlier step or run, inferring column types."""
    header = pl.read_csv(path, n_rows=0).columns
    # Taxon names stay strings even when they look numeric
    overrides = {SUMMARY_KEY_COLUMN: pl.String} if SUMMARY_KEY_COLUMN in header else None
    return pl.read_csv(
        path,
        null_values=NULL_VALUES,
        infer_schema_length=None,
        schema_overrides=overrides,
    )


def merge_summaries(
    existing: Optional[pl.DataFrame], new: pl.DataFrame
) -> pl.DataFrame:
    """
    Full outer join of an existing summary with a newly computed one on the
    taxon name. Columns present on only one side are kept; for columns on
    both sides the new value is used where there is one.

    Args:
        existing: The earlier summary, or None if there is none.
        new: The summary computed by this run.

    Returns:
        The merged table sorted by taxon name.
    """
    if existing is None:
        return new.sort(SUMMARY_KEY_COLUMN, nulls_last=True, maintain_order=True)

    if SUMMARY_KEY_COLUMN not in existing.columns:
        raise ValueError(f"Existing summary has no {SUMMARY_KEY_COLUMN} column")

    shared = [
        col for col in new.columns if col in existing.columns and col != SUMMARY_KEY_COLUMN
    ]
    existing = existing.with_columns(
        [pl.col(col).cast(new.schema[col], strict=False) for col in shared]
    )

    merged = existing.join(
        new,
        on=SUMMARY_KEY_COLUMN,
        how="full",
        coalesce=True,
        suffix="_new",
    )
    merged = merged.with_columns(
        [pl.coalesce(f"{col}_new", col).alias(col) for col in shared]
    ).drop([f"{col}_new" for col in shared])

    return merged.sort(SUMMARY_KEY_COLUMN, nulls_last=True, maintain_order=True)
