"""Read daily precipitation and static layers into xarray.

Precipitation may come as a NetCDF file (CHIRPS daily product, or any
file with a (time, y, x) variable) or as a multi-band GeoTIFF holding one
band per day from ``input.start_date``. The loader cuts the configured
period, drops 29 February and returns a (time, y, x) DataArray named and
dimensioned per ``global.var_names`` / ``global.coord_names``.

Static layers are single-band GeoTIFF or NetCDF. Annual layers such as GPP
are multi-band GeoTIFFs with band descriptions ``<variable>_<year>``.
"""

import logging
import re
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd
import rasterio
import xarray as xr

from rainseason.season.cumulative import drop_leap_days

__all__ = ['PrecipitationLoader', 'read_geotiff', 'load_static_layer', 'load_annual_bands']

logger = logging.getLogger(__name__)

GEOTIFF_SUFFIXES = {".tif", ".tiff"}


def _require_file(path) -> Path:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    return path


def read_geotiff(path, y_name: str = "y", x_name: str = "x") -> tuple[xr.DataArray, list]:
    """All bands of a GeoTIFF as (band, y, x) with pixel-centre coordinates.

    Nodata values become NaN. Returns the array and the band descriptions.
    """
    path = _require_file(path)
    with rasterio.open(path) as src:
        data = src.read().astype("float32")
        nodata = src.nodata
        trans = src.transform
        descriptions = list(src.descriptions)
        crs = src.crs.to_string() if src.crs else None
    if nodata is not None:
        data[data == nodata] = np.nan

    nb, ny, nx = data.shape
    xs = trans.c + (np.arange(nx) + 0.5) * trans.a
    ys = trans.f + (np.arange(ny) + 0.5) * trans.e
    da = xr.DataArray(
        data,
        dims=("band", y_name, x_name),
        coords={"band": np.arange(1, nb + 1), x_name: (x_name, xs), y_name: (y_name, ys)},
    )
    if crs:
        da.attrs["crs"] = crs
    return da, descriptions


def _align(layer: xr.DataArray, reference: Optional[xr.DataArray]) -> xr.DataArray:
    if reference is None:
        return layer
    spatial = [d for d in layer.dims if d in reference.dims]
    return layer.reindex({d: reference[d] for d in spatial}, method="nearest")


def load_static_layer(path, y_name: str = "y", x_name: str = "x",
                      variable: Optional[str] = None,
                      reference: Optional[xr.DataArray] = None) -> xr.DataArray:
    """Single 2-D layer from a GeoTIFF (band 1) or NetCDF (``variable``).

    When ``reference`` is given the layer is matched to its grid by nearest
    neighbour.
    """
    path = _require_file(path)
    if path.suffix.lower() in GEOTIFF_SUFFIXES:
        da, _ = read_geotiff(path, y_name, x_name)
        layer = da.isel(band=0, drop=True)
    else:
        with xr.open_dataset(path, engine="netcdf4") as ds:
            name = variable or list(ds.data_vars)[0]
            layer = ds[name].load()
        # Leading length-1 dims (time, band) go; the trailing two are the grid
        extra = [d for d in layer.dims[:-2] if layer.sizes[d] == 1]
        layer = layer.squeeze(extra, drop=True)
        if layer.ndim != 2:
            raise ValueError(f"Static layer '{name}' in {path} is not 2-D: {dict(layer.sizes)}")
        layer = layer.rename({old: new for old, new in zip(layer.dims, (y_name, x_name))
                              if old != new})
    layer.name = variable or path.stem
    logger.debug("Loaded static layer %s %s", path.name, dict(layer.sizes))
    return _align(layer, reference)


def load_annual_bands(path, variable: str, y_name: str = "y", x_name: str = "x",
                      reference: Optional[xr.DataArray] = None) -> xr.DataArray:
    """(year, y, x) stack from a GeoTIFF whose bands are named ``<variable>_<year>``."""
    da, descriptions = read_geotiff(path, y_name, x_name)
    pattern = re.compile(rf"^{re.escape(variable)}_(\d{{4}})$")
    years, bands = [], []
    for index, description in enumerate(descriptions):
        match = pattern.match(description or "")
        if match:
            years.append(int(match.group(1)))
            bands.append(index)
    if not bands:
        raise ValueError(f"No bands named '{variable}_<year>' in {path}")

    stack = da.isel(band=bands).rename(band="year").assign_coords(year=years)
    stack.name = variable
    logger.debug("Loaded %d annual bands of %s from %s", len(years), variable, path)
    return _align(stack, reference)


class PrecipitationLoader:
    """Load a leap-free daily precipitation cube for the analysis period.

    Example usage::

        loader = PrecipitationLoader(config)
        precip = loader.load()          # (time, y, x), 365 days per year
    """

    def __init__(self, config):
        self.path = config.input.precipitation_path
        self.start_date = config.input.start_date
        self.start_year = config.period.start_year
        self.end_year = config.period.end_year
        self.var_name = config.global_.var_names.precipitation
        self.time_name = config.global_.coord_names.time
        self.y_name = config.global_.coord_names.y
        self.x_name = config.global_.coord_names.x

        logger.info("PrecipitationLoader initialized: %s (%d-%d)", self.path,
                    self.start_year, self.end_year)

    def _read_netcdf(self, path: Path) -> xr.DataArray:
        with xr.open_dataset(path, engine="netcdf4") as ds:
            if self.var_name not in ds:
                raise KeyError(f"Variable '{self.var_name}' not in {path}: {list(ds.data_vars)}")
            da = ds[self.var_name].load()
            if "crs" not in da.attrs and "crs" in ds.attrs:
                da.attrs["crs"] = ds.attrs["crs"]
            return da

    def _read_daily_geotiff(self, path: Path) -> xr.DataArray:
        da, _ = read_geotiff(path, self.y_name, self.x_name)
        start = self.start_date or f"{self.start_year}-01-01"
        times = pd.date_range(start, periods=da.sizes["band"], freq="D")
        return da.rename(band=self.time_name).assign_coords({self.time_name: times})

    def load(self, path=None) -> xr.DataArray:
        """Read, subset to whole years of the period and drop leap days.

        Raises
        ------
        FileNotFoundError
            If the precipitation file does not exist.
        ValueError
            If no path is configured.
        """
        path = path or self.path
        if path is None:
            raise ValueError("No precipitation input configured (PRECIP_PATH)")
        path = _require_file(path)

        if path.suffix.lower() in GEOTIFF_SUFFIXES:
            da = self._read_daily_geotiff(path)
        else:
            da = self._read_netcdf(path)

        period = slice(f"{self.start_year}-01-01", f"{self.end_year}-12-31")
        da = da.sel({self.time_name: period})
        da = drop_leap_days(da, self.time_name)
        da = da.transpose(self.time_name, self.y_name, self.x_name)
        da.name = self.var_name

        logger.info("Loaded precipitation %s: %s", path.name, dict(da.sizes))
        return da
