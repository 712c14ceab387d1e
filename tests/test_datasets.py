"""Tests for load_dataset."""

import pandas as pd
import pytest

from resampling_models import InvalidInputError, load_dataset


class TestLoadDataset:
    def test_reads_csv(self, tmp_path):
        path = tmp_path / "data.csv"
        path.write_text("x,y\n1,2.5\n2,4.5\n3,6.5\n")
        df = load_dataset(path)
        assert list(df.columns) == ["x", "y"]
        assert len(df) == 3
        assert df["y"].tolist() == [2.5, 4.5, 6.5]
        pd.testing.assert_index_equal(df.index, pd.RangeIndex(3))

    def test_passes_read_csv_options(self, tmp_path):
        path = tmp_path / "data.tsv"
        path.write_text("x\ty\tnote\n1\t2\ta\n")
        df = load_dataset(path, sep="\t", usecols=["x", "y"])
        assert list(df.columns) == ["x", "y"]

    def test_index_col_is_reset(self, tmp_path):
        path = tmp_path / "data.csv"
        path.write_text("id,x\n10,1\n20,2\n")
        df = load_dataset(path, index_col="id")
        assert list(df.index) == [0, 1]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("")
        with pytest.raises(InvalidInputError, match="no data"):
            load_dataset(path)

    def test_header_only(self, tmp_path):
        path = tmp_path / "header.csv"
        path.write_text("x,y\n")
        with pytest.raises(InvalidInputError, match="empty table"):
            load_dataset(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_dataset(tmp_path / "nope.csv")
