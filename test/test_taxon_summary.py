import os
import tempfile
import unittest

import polars as pl

from occurrence_flagging.constants import FLAG_COLUMNS, SUMMARY_COLUMNS
from occurrence_flagging.dataframes.flagged_occurrence import FlaggedOccurrenceSchema
from occurrence_flagging.dataframes.taxon_summary import (
    TaxonSummarySchema,
    merge_summaries,
    read_existing_summary,
)
from occurrence_flagging.types import FlaggingConfig
from test.fixtures.boundary_layers import mock_boundary_layers
from test.fixtures.occurrences import TAXON_NAME, mock_occurrences_df


def mock_summary_df(rows: list[dict]) -> pl.DataFrame:
    """Summary rows with every count defaulting to 0."""
    return TaxonSummarySchema.validate(
        pl.DataFrame(
            [
                {col: row.get(col, 0) for col in SUMMARY_COLUMNS}
                for row in rows
            ],
            schema={
                col: (pl.String if col == "taxon_name_accepted" else pl.UInt32)
                for col in SUMMARY_COLUMNS
            },
        )
    )


class TestBuildRow(unittest.TestCase):
    def setUp(self):
        self.config = FlaggingConfig()

    def test_year_scenario_counts(self):
        df = mock_occurrences_df(
            [
                {"year": "1960", "all_native_dist_iso2": None},
                {"year": None, "all_native_dist_iso2": None},
                {"year": "1990", "all_native_dist_iso2": None},
            ]
        )
        flagged = FlaggedOccurrenceSchema.build(df, mock_boundary_layers(), self.config)

        summary = TaxonSummarySchema.build_row(TAXON_NAME, flagged, self.config)

        self.assertEqual(summary.columns, SUMMARY_COLUMNS)
        self.assertEqual(summary.height, 1)
        row = summary.row(0, named=True)
        self.assertEqual(row["taxon_name_accepted"], TAXON_NAME)
        self.assertEqual(row[".yr1950"], 0)
        self.assertEqual(row[".yr1980"], 1)
        self.assertEqual(row[".yrna"], 1)
        self.assertEqual(row[".nativectry"], 0)
        self.assertEqual(row[".con"], 0)
        # Only the 1990 record passes every required flag
        self.assertEqual(row["unflagged_pts"], 1)
        self.assertEqual(row["selected_pts"], 3)

    def test_untested_records_not_counted(self):
        """A single record is not tested for urban areas, so .urb counts no failures"""
        flagged = FlaggedOccurrenceSchema.build(
            mock_occurrences_df([{}]),
            mock_boundary_layers(),
            self.config,
        )

        summary = TaxonSummarySchema.build_row(TAXON_NAME, flagged, self.config)

        row = summary.row(0, named=True)
        self.assertEqual(row[".urb"], 0)
        # .urb is NA, so the record is not fully unflagged; .urb is not selected
        self.assertEqual(row["unflagged_pts"], 0)
        self.assertEqual(row["selected_pts"], 1)

    def test_failure_counts(self):
        df = mock_occurrences_df(
            [
                {"latlong_countryCode": "MX"},
                {"latlong_countryCode": "MX"},
                {"decimalLatitude": "40.0", "decimalLongitude": "-89.5"},
                {},
            ]
        )
        flagged = FlaggedOccurrenceSchema.build(df, mock_boundary_layers(), self.config)

        row = TaxonSummarySchema.build_row(TAXON_NAME, flagged, self.config).row(
            0, named=True
        )

        self.assertEqual(row[".con"], 2)
        self.assertEqual(row[".nativectry"], 2)
        self.assertEqual(row[".cen"], 1)
        self.assertEqual(row["unflagged_pts"], 1)
        self.assertEqual(row["selected_pts"], 1)


class TestCombine(unittest.TestCase):
    def test_empty(self):
        summary = TaxonSummarySchema.combine([])
        self.assertEqual(summary.height, 0)
        self.assertEqual(summary.columns, SUMMARY_COLUMNS)

    def test_keeps_order(self):
        rows = [
            mock_summary_df([{"taxon_name_accepted": "Quercus alba"}]),
            mock_summary_df([{"taxon_name_accepted": "Asimina triloba"}]),
        ]
        summary = TaxonSummarySchema.combine(rows)
        self.assertEqual(
            summary["taxon_name_accepted"].to_list(),
            ["Quercus alba", "Asimina triloba"],
        )


class TestMergeSummaries(unittest.TestCase):
    def test_no_existing(self):
        new = mock_summary_df(
            [
                {"taxon_name_accepted": "Quercus alba"},
                {"taxon_name_accepted": "Asimina triloba"},
            ]
        )
        merged = merge_summaries(None, new)
        self.assertEqual(
            merged["taxon_name_accepted"].to_list(),
            ["Asimina triloba", "Quercus alba"],
        )

    def test_full_join(self):
        existing = pl.DataFrame(
            {
                "taxon_name_accepted": ["Asimina triloba", "Carya ovata"],
                "total_pts": [12, 40],
                "unflagged_pts": [3, 30],
            }
        )
        new = mock_summary_df(
            [
                {
                    "taxon_name_accepted": "Asimina triloba",
                    "unflagged_pts": 5,
                    "selected_pts": 5,
                    ".con": 2,
                },
                {
                    "taxon_name_accepted": "Quercus alba",
                    "unflagged_pts": 7,
                    "selected_pts": 7,
                },
            ]
        )

        merged = merge_summaries(existing, new)

        self.assertEqual(
            merged["taxon_name_accepted"].to_list(),
            ["Asimina triloba", "Carya ovata", "Quercus alba"],
        )
        # Columns from either side are kept
        self.assertEqual(merged["total_pts"].to_list(), [12, 40, None])
        self.assertEqual(merged[".con"].to_list(), [2, None, 0])
        # The new value wins where both sides have one
        self.assertEqual(merged["unflagged_pts"].to_list(), [5, 30, 7])
        self.assertFalse(any(col.endswith("_new") for col in merged.columns))

    def test_one_row_per_taxon(self):
        existing = mock_summary_df([{"taxon_name_accepted": "Asimina triloba"}])
        new = mock_summary_df([{"taxon_name_accepted": "Asimina triloba", ".yrna": 4}])

        merged = merge_summaries(existing, new)

        self.assertEqual(merged.height, 1)
        self.assertEqual(merged[".yrna"].to_list(), [4])
        self.assertEqual(set(merged.columns), set(SUMMARY_COLUMNS))

    def test_existing_without_key(self):
        existing = pl.DataFrame({"species": ["Asimina triloba"]})
        new = mock_summary_df([{"taxon_name_accepted": "Asimina triloba"}])
        with self.assertRaises(ValueError):
            merge_summaries(existing, new)


class TestReadExistingSummary(unittest.TestCase):
    def test_read(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = os.path.join(tmp_dir, "summary_of_occurrences_2023-06-01.csv")
            with open(path, "w") as f:
                f.write("taxon_name_accepted,total_pts,.cen\n")
                f.write("1234,10,NA\n")
                f.write("Asimina triloba,8,2\n")

            df = read_existing_summary(path)

        self.assertEqual(df.schema["taxon_name_accepted"], pl.String)
        self.assertEqual(df["taxon_name_accepted"].to_list(), ["1234", "Asimina triloba"])
        self.assertEqual(df["total_pts"].to_list(), [10, 8])
        self.assertEqual(df[".cen"].to_list(), [None, 2])
        self.assertTrue(all(col in FLAG_COLUMNS for col in df.columns[2:]))


if __name__ == "__main__":
    unittest.main()
