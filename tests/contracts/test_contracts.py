"""Tests for pipeline contracts.

These tests verify that contracts are enforced at stage boundaries.
They test contract violations directly, without defensive logic downstream.
"""

import pytest
import xarray as xr
import pandas as pd
import numpy as np

pytestmark = pytest.mark.unit

from rainseason.contracts import (
    ContractViolation,
    FailurePolicy,
    require,
    assert_daily_series,
    assert_classified,
    assert_season_dates,
    assert_study_mask,
    assert_tabular_output,
)

from rainseason.contracts.invariants import PIPELINE_INVARIANTS, STAGE_REQUIREMENTS

from helpers.synthetic import leap_free_times


def _series(times, values=None):
    values = np.ones(len(times)) if values is None else values
    return xr.DataArray(values, dims=("time",), coords={"time": times})


def _seasons(onset_1, cessation_1, onset_2=np.nan, cessation_2=np.nan, n_seasons=1,
             start=71.0):
    def v(x, dtype=float):
        return (("y", "x"), np.array([[x]], dtype=dtype))
    return xr.Dataset({
        "onset_1": v(onset_1), "cessation_1": v(cessation_1),
        "onset_2": v(onset_2), "cessation_2": v(cessation_2),
        "hydro_year_start": v(start), "n_seasons": v(n_seasons, np.int8),
    })


def test_require():
    require(True, "fine")
    with pytest.raises(ContractViolation, match="broken"):
        require(False, "broken")


def test_every_stage_documents_its_invariants():
    assert set(PIPELINE_INVARIANTS) == set(STAGE_REQUIREMENTS)
    assert all(PIPELINE_INVARIANTS.values())


def test_failure_policy_values():
    assert FailurePolicy("fail_fast") is FailurePolicy.FAIL_FAST
    assert FailurePolicy("skip_tile") is FailurePolicy.SKIP_TILE


class TestSeriesContract:
    """Test daily series contract."""

    def test_passes_with_leap_free_years(self):
        assert_daily_series(_series(leap_free_times(2000, 2)))

    def test_fails_without_time(self):
        da = xr.DataArray(np.ones(365), dims=("day",))
        with pytest.raises(ContractViolation, match="missing 'time'"):
            assert_daily_series(da)

    def test_fails_with_partial_year(self):
        times = leap_free_times(2001, 2)[:-10]
        with pytest.raises(ContractViolation, match="whole number"):
            assert_daily_series(_series(times))

    def test_fails_when_not_starting_in_january(self):
        times = pd.date_range("2001-07-01", periods=365, freq="D")
        with pytest.raises(ContractViolation, match="1 January"):
            assert_daily_series(_series(times))

    def test_fails_with_leap_day(self):
        times = pd.date_range("2000-01-01", periods=365, freq="D")
        with pytest.raises(ContractViolation, match="gaps or leap days"):
            assert_daily_series(_series(times))

    def test_fails_with_gap(self):
        times = leap_free_times(2001, 2)
        times = times.delete(100).append(pd.DatetimeIndex(["2003-01-01"]))
        with pytest.raises(ContractViolation, match="gaps"):
            assert_daily_series(_series(times))

    def test_fails_with_negative_rain(self):
        values = np.ones(365)
        values[3] = -1.0
        with pytest.raises(ContractViolation, match="negative"):
            assert_daily_series(_series(leap_free_times(2001, 1), values))

    def test_missing_values_allowed(self):
        assert_daily_series(_series(leap_free_times(2001, 1), np.full(365, np.nan)))


class TestClassificationContract:
    """Test classification stage contract."""

    def _classes(self, n_seasons, amplitude_1):
        grid = lambda v, dtype=float: (("x",), np.array(v, dtype=dtype))
        return xr.Dataset({
            "seasonality_ratio": grid([0.2] * len(n_seasons)),
            "amplitude_1": grid(amplitude_1),
            "amplitude_2": grid([0.1] * len(n_seasons)),
            "n_seasons": grid(n_seasons, np.int8),
        })

    def test_passes(self):
        assert_classified(self._classes([1, 2, 0], [1.0, 1.0, np.nan]))

    def test_fails_without_ratio(self):
        ds = self._classes([1], [1.0]).drop_vars("seasonality_ratio")
        with pytest.raises(ContractViolation, match="seasonality_ratio"):
            assert_classified(ds)

    def test_fails_with_float_counts(self):
        ds = self._classes([1], [1.0])
        ds["n_seasons"] = ds["n_seasons"].astype(float)
        with pytest.raises(ContractViolation, match="integer"):
            assert_classified(ds)

    def test_fails_with_three_seasons(self):
        with pytest.raises(ContractViolation, match="outside"):
            assert_classified(self._classes([3], [1.0]))

    def test_fails_when_fitted_pixel_unrouted(self):
        with pytest.raises(ContractViolation, match="unrouted"):
            assert_classified(self._classes([0], [1.0]))


class TestSeasonContract:
    """Test season date contract."""

    def test_passes_single(self):
        assert_season_dates(_seasons(101.0, 260.0))

    def test_passes_across_year_end(self):
        assert_season_dates(_seasons(301.0, 425.0, start=271.0))

    def test_passes_double(self):
        assert_season_dates(_seasons(56.0, 125.0, 216.0, 285.0, n_seasons=2, start=26.0))

    def test_passes_all_missing(self):
        assert_season_dates(_seasons(np.nan, np.nan, start=np.nan, n_seasons=0))

    def test_fails_cessation_before_onset(self):
        with pytest.raises(ContractViolation, match="within a year"):
            assert_season_dates(_seasons(200.0, 100.0))

    def test_fails_onset_out_of_range(self):
        with pytest.raises(ContractViolation, match="outside 1..365"):
            assert_season_dates(_seasons(366.0, 400.0))

    def test_fails_half_missing_pair(self):
        with pytest.raises(ContractViolation, match="different pixels"):
            assert_season_dates(_seasons(101.0, np.nan))

    def test_fails_second_season_on_single_pixel(self):
        with pytest.raises(ContractViolation, match="single-season"):
            assert_season_dates(_seasons(56.0, 125.0, 216.0, 285.0, n_seasons=1))

    def test_fails_bad_hydro_year_start(self):
        with pytest.raises(ContractViolation, match="hydro_year_start"):
            assert_season_dates(_seasons(101.0, 260.0, start=0.0))


class TestMaskContract:
    """Test study-area mask contract."""

    def test_passes(self):
        ref = xr.DataArray(np.zeros((2, 3)), dims=("y", "x"))
        assert_study_mask(xr.ones_like(ref, dtype=bool), ref)

    def test_fails_non_boolean(self):
        ref = xr.DataArray(np.zeros((2, 3)), dims=("y", "x"))
        with pytest.raises(ContractViolation, match="expected bool"):
            assert_study_mask(xr.ones_like(ref), ref)

    def test_fails_shape_mismatch(self):
        ref = xr.DataArray(np.zeros((2, 3)), dims=("y", "x"))
        mask = xr.DataArray(np.ones((3, 2), dtype=bool), dims=("y", "x"))
        with pytest.raises(ContractViolation, match="does not match"):
            assert_study_mask(mask, ref)


class TestTabularContract:
    """Test tabular export contract."""

    def test_passes(self):
        df = pd.DataFrame({"y": [1.0], "onset_1": [101.0]})
        assert_tabular_output(df, ["onset_1"])

    def test_empty_table_passes(self):
        assert_tabular_output(pd.DataFrame({"onset_1": []}), ["onset_1"])

    def test_fails_missing_column(self):
        df = pd.DataFrame({"y": [1.0]})
        with pytest.raises(ContractViolation, match="missing columns"):
            assert_tabular_output(df, ["onset_1"])

    def test_fails_missing_values(self):
        df = pd.DataFrame({"onset_1": [101.0, np.nan]})
        with pytest.raises(ContractViolation, match="missing values"):
            assert_tabular_output(df, ["onset_1"])

    def test_fails_non_dataframe(self):
        with pytest.raises(ContractViolation, match="expected DataFrame"):
            assert_tabular_output({"onset_1": [1]}, ["onset_1"])
