"""Tests for precipitation and static layer loading."""

import numpy as np
import pytest
import xarray as xr

pytestmark = pytest.mark.unit

from rainseason.io.loader import (
    PrecipitationLoader,
    load_annual_bands,
    load_static_layer,
    read_geotiff,
)
from rainseason.io.writer import write_bands

from helpers.synthetic import box_series, make_precip_grid, write_precip_netcdf


@pytest.fixture
def precip_netcdf(tmp_path):
    da = make_precip_grid([box_series(3, [(101, 260)]), box_series(3, [(61, 120)])],
                          n_rows=2, start_year=2000)
    return write_precip_netcdf(tmp_path / "chirps.nc", da)


class TestPrecipitationLoader:

    def test_load_netcdf_drops_leap_days(self, make_config, precip_netcdf):
        config = make_config(PRECIP_PATH=str(precip_netcdf), START_YEAR=2000, END_YEAR=2002)

        da = PrecipitationLoader(config).load()

        assert da.dims == ("time", "y", "x")
        assert da.sizes["time"] == 3 * 365
        feb29 = (da.time.dt.month == 2) & (da.time.dt.day == 29)
        assert not bool(feb29.any())
        assert da.name == "precip"

    def test_load_subsets_period(self, make_config, precip_netcdf):
        config = make_config(PRECIP_PATH=str(precip_netcdf), START_YEAR=2001, END_YEAR=2001)

        da = PrecipitationLoader(config).load()

        assert da.sizes["time"] == 365
        assert str(da.time.values[0])[:10] == "2001-01-01"

    def test_explicit_path_wins(self, make_config, precip_netcdf):
        config = make_config(PRECIP_PATH="/does/not/exist.nc", START_YEAR=2000, END_YEAR=2000)
        da = PrecipitationLoader(config).load(precip_netcdf)
        assert da.sizes["time"] == 365

    def test_dataset_crs_carried(self, make_config, tmp_path):
        path = tmp_path / "utm.nc"
        da = make_precip_grid([box_series(1, [(101, 260)])], n_rows=1, start_year=2001)
        da.to_dataset().assign_attrs(crs="EPSG:32637").to_netcdf(path)
        config = make_config(PRECIP_PATH=str(path), START_YEAR=2001, END_YEAR=2001)

        loaded = PrecipitationLoader(config).load()

        assert loaded.attrs["crs"] == "EPSG:32637"

    def test_missing_file(self, make_config, tmp_path):
        config = make_config(PRECIP_PATH=str(tmp_path / "missing.nc"))
        with pytest.raises(FileNotFoundError):
            PrecipitationLoader(config).load()

    def test_no_path_configured(self, internal_config):
        with pytest.raises(ValueError, match="PRECIP_PATH"):
            PrecipitationLoader(internal_config).load()

    def test_wrong_variable(self, make_config, precip_netcdf):
        config = make_config(PRECIP_PATH=str(precip_netcdf), PRECIP_VAR="rain",
                             START_YEAR=2000, END_YEAR=2002)
        with pytest.raises(KeyError, match="rain"):
            PrecipitationLoader(config).load()

    def test_load_daily_geotiff(self, make_config, tmp_path):
        series = box_series(1, [(101, 260)])
        y = np.array([10.0, 9.95])
        x = np.array([35.0, 35.05, 35.1])
        bands = {f"day_{d}": np.full((2, 3), series[d]) for d in range(365)}
        path = write_bands(tmp_path / "daily.tif", bands, y, x)
        config = make_config(PRECIP_PATH=str(path), PRECIP_START_DATE="2003-01-01",
                             START_YEAR=2003, END_YEAR=2003)

        da = PrecipitationLoader(config).load()

        assert da.dims == ("time", "y", "x")
        assert da.sizes["time"] == 365
        np.testing.assert_allclose(da.isel(y=0, x=0).values, series)
        np.testing.assert_allclose(da["y"].values, y)


class TestStaticLayers:

    def test_geotiff_round_trip_descending_y(self, tmp_path):
        y = np.array([10.0, 9.95, 9.9])
        x = np.array([35.0, 35.05])
        values = np.arange(6, dtype=float).reshape(3, 2)
        path = write_bands(tmp_path / "lc.tif", {"landcover": values}, y, x)

        layer = load_static_layer(path)

        assert layer.dims == ("y", "x")
        np.testing.assert_allclose(layer["y"].values, y)
        np.testing.assert_allclose(layer["x"].values, x)
        np.testing.assert_array_equal(layer.values, values)

    def test_geotiff_ascending_y_is_flipped_north_up(self, tmp_path):
        y = np.array([9.9, 9.95, 10.0])
        x = np.array([35.0, 35.05])
        values = np.arange(6, dtype=float).reshape(3, 2)
        path = write_bands(tmp_path / "ai.tif", {"aridity": values}, y, x)

        layer = load_static_layer(path)

        assert layer["y"].values[0] > layer["y"].values[-1]
        np.testing.assert_array_equal(layer.sortby("y").values, values)

    def test_nodata_becomes_nan(self, tmp_path):
        values = np.array([[1.0, np.nan]])
        path = write_bands(tmp_path / "f.tif", {"fraction": values}, np.array([0.0]),
                           np.array([0.0, 1.0]))
        da, descriptions = read_geotiff(path)
        assert descriptions == ["fraction"]
        assert np.isnan(da.values[0, 0, 1])

    def test_aligned_to_reference(self, tmp_path):
        y = np.array([10.0, 9.9])
        x = np.array([35.0, 35.1])
        path = write_bands(tmp_path / "lc.tif", {"lc": np.array([[7.0, 8.0], [9.0, 10.0]])}, y, x)
        reference = xr.DataArray(np.zeros((2, 4)), dims=("y", "x"),
                                 coords={"y": y, "x": [35.0, 35.04, 35.06, 35.1]})

        layer = load_static_layer(path, reference=reference)

        assert layer.values.tolist() == [[7.0, 7.0, 8.0, 8.0], [9.0, 9.0, 10.0, 10.0]]

    def test_netcdf_layer(self, tmp_path):
        path = tmp_path / "aridity.nc"
        xr.Dataset({"ai": (("y", "x"), np.array([[0.1, 0.7]]))},
                   coords={"y": [0.0], "x": [0.0, 1.0]}).to_netcdf(path)

        layer = load_static_layer(path, variable="ai")

        assert layer.name == "ai"
        assert layer.values.tolist() == [[0.1, 0.7]]

    def test_netcdf_layer_keeps_single_row_grid(self, tmp_path):
        path = tmp_path / "landcover.nc"
        xr.Dataset({"lc": (("time", "lat", "lon"), np.array([[[30.0, 40.0]]]))},
                   coords={"time": [0], "lat": [10.0], "lon": [35.0, 35.05]}).to_netcdf(path)

        layer = load_static_layer(path, variable="lc")

        assert layer.dims == ("y", "x")
        assert layer.shape == (1, 2)
        np.testing.assert_allclose(layer["x"].values, [35.0, 35.05])

    def test_netcdf_layer_must_be_2d(self, tmp_path):
        path = tmp_path / "stack.nc"
        xr.Dataset({"lc": (("band", "y", "x"), np.zeros((2, 1, 2)))},
                   coords={"y": [0.0], "x": [0.0, 1.0]}).to_netcdf(path)

        with pytest.raises(ValueError, match="not 2-D"):
            load_static_layer(path, variable="lc")

    def test_missing_layer(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_static_layer(tmp_path / "missing.tif")


class TestAnnualBands:

    def test_load_annual_bands(self, tmp_path):
        y = np.array([0.0])
        x = np.array([0.0, 1.0])
        bands = {
            "gpp_2001": np.array([[1.0, 0.0]]),
            "gpp_2002": np.array([[2.0, 0.0]]),
            "quality": np.array([[9.0, 9.0]]),
        }
        path = write_bands(tmp_path / "gpp.tif", bands, y, x)

        stack = load_annual_bands(path, "gpp")

        assert stack.dims == ("year", "y", "x")
        assert stack["year"].values.tolist() == [2001, 2002]
        assert stack.isel(x=0).values.ravel().tolist() == [1.0, 2.0]

    def test_no_matching_bands(self, tmp_path):
        path = write_bands(tmp_path / "gpp.tif", {"other": np.zeros((1, 2))},
                           np.array([0.0]), np.array([0.0, 1.0]))
        with pytest.raises(ValueError, match="gpp_<year>"):
            load_annual_bands(path, "gpp")
