import os
import shutil
import tempfile
import unittest
from pathlib import Path

from occurrence_flagging.dataframes.occurrence import (
    list_taxon_files,
    read_occurrences,
    taxon_name_from_stem,
)
from occurrence_flagging.exceptions import MissingColumnsError
from test.fixtures.occurrences import mock_occurrences_df, write_occurrences_csv


class TestTaxonNameFromStem(unittest.TestCase):
    def test_species(self):
        self.assertEqual(taxon_name_from_stem("Asimina_triloba"), "Asimina triloba")

    def test_infraspecific_markers(self):
        self.assertEqual(
            taxon_name_from_stem("Quercus_alba_var_alba"), "Quercus alba var. alba"
        )
        self.assertEqual(
            taxon_name_from_stem("Carya_ovata_subsp_australis"),
            "Carya ovata subsp. australis",
        )


class TestListTaxonFiles(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def test_sorted_recursive(self):
        for name in ["Quercus_alba.csv", "Asimina_triloba.csv", "notes.txt"]:
            Path(self.tmp_dir, name).write_text("UID\n")
        os.makedirs(os.path.join(self.tmp_dir, "Carya"))
        Path(self.tmp_dir, "Carya", "Carya_ovata.csv").write_text("UID\n")

        taxon_files = list_taxon_files(self.tmp_dir)

        self.assertEqual(
            [t.taxon_name for t in taxon_files],
            ["Asimina triloba", "Carya ovata", "Quercus alba"],
        )
        self.assertEqual(
            taxon_files[1].path, Path(self.tmp_dir, "Carya", "Carya_ovata.csv")
        )

    def test_missing_directory(self):
        with self.assertRaises(FileNotFoundError):
            list_taxon_files(os.path.join(self.tmp_dir, "missing"))


class TestReadOccurrences(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def test_all_columns_are_strings(self):
        df = mock_occurrences_df([{"year": "1990"}, {"year": None}])
        path = write_occurrences_csv(
            df, os.path.join(self.tmp_dir, "Asimina_triloba.csv")
        )

        result = read_occurrences(path)

        self.assertEqual(result.height, 2)
        self.assertTrue(all(dtype == df.schema[col] for col, dtype in result.schema.items()))
        self.assertEqual(result["year"].to_list(), ["1990", None])
        self.assertEqual(result["decimalLatitude"].to_list(), ["40.0", "40.0"])

    def test_missing_required_columns(self):
        df = mock_occurrences_df([{}]).drop("year", "latlong_countryCode")
        path = write_occurrences_csv(df, os.path.join(self.tmp_dir, "taxon.csv"))

        with self.assertRaises(MissingColumnsError) as context:
            read_occurrences(path)

        self.assertEqual(context.exception.missing, ["year", "latlong_countryCode"])

    def test_header_only(self):
        df = mock_occurrences_df([])
        path = write_occurrences_csv(df, os.path.join(self.tmp_dir, "taxon.csv"))

        result = read_occurrences(path)

        self.assertEqual(result.height, 0)


if __name__ == "__main__":
    unittest.main()
