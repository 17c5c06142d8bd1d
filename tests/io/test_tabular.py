"""Tests for df_multi_annual / df_annual export."""

import numpy as np
import pandas as pd
import pytest
import xarray as xr

pytestmark = pytest.mark.unit

from rainseason.contracts import ContractViolation
from rainseason.io.tabular import (
    REQUIRED_ANNUAL_COLUMNS,
    build_annual_table,
    build_multi_annual_table,
    required_multi_annual_columns,
    write_table,
)


@pytest.fixture
def full_mask(season_dataset):
    return xr.ones_like(season_dataset["onset_1"], dtype=bool)


def test_required_columns_by_mode():
    assert "season_length_sd" in required_multi_annual_columns("full")
    assert "season_length_sd" not in required_multi_annual_columns("climatology")


class TestMultiAnnualTable:

    def test_dry_pixels_dropped(self, season_dataset, full_mask):
        df = build_multi_annual_table(season_dataset, full_mask,
                                      required_multi_annual_columns())

        assert list(df.columns[:2]) == ["y", "x"]
        assert len(df) == 4
        assert sorted(df["n_seasons"].unique().tolist()) == [1, 2]
        assert df["n_seasons"].dtype == int
        assert df.loc[df["n_seasons"] == 1, "onset_1"].tolist() == [101.0, 101.0]

    def test_mask_excludes_pixels(self, season_dataset, full_mask):
        mask = full_mask.copy()
        mask[:, 0] = False

        df = build_multi_annual_table(season_dataset, mask, required_multi_annual_columns())

        assert len(df) == 2
        assert (df["n_seasons"] == 2).all()


class TestAnnualTable:

    def test_one_row_per_retained_year(self, season_dataset, full_mask):
        df = build_annual_table(season_dataset, full_mask)

        assert list(df.columns[:3]) == ["y", "x", "year"]
        # Two wet pixels per row, four complete hydrological years each
        assert len(df) == 16
        assert sorted(df["year"].unique().tolist()) == [2001, 2002, 2003, 2004]
        assert not df[REQUIRED_ANNUAL_COLUMNS].isna().any().any()


class TestWriteTable:

    def test_csv(self, tmp_path, season_dataset, full_mask):
        required = required_multi_annual_columns()
        df = build_multi_annual_table(season_dataset, full_mask, required)

        path = write_table(df, tmp_path / "tables" / "df_multi_annual.csv", "csv",
                           required=required)

        back = pd.read_csv(path)
        assert list(back.columns) == list(df.columns)
        assert len(back) == len(df)

    def test_parquet(self, tmp_path, season_dataset, full_mask):
        df = build_annual_table(season_dataset, full_mask)

        path = write_table(df, tmp_path / "df_annual.parquet", "parquet",
                           required=REQUIRED_ANNUAL_COLUMNS)

        back = pd.read_parquet(path)
        pd.testing.assert_frame_equal(back, df)

    def test_incomplete_rows_rejected(self, tmp_path):
        df = pd.DataFrame({"onset_anomaly": [0.0, np.nan]})
        with pytest.raises(ContractViolation):
            write_table(df, tmp_path / "bad.csv", required=["onset_anomaly"])
        assert not (tmp_path / "bad.csv").exists()
