"""GeoTIFF export of season and covariate layers.

Long-term layers go to one multi-band file with one band per variable;
annual layers go to another with one band per ``<variable>_<year>``. Band
names are stored as band descriptions so that they survive a round trip
through GDAL-based readers.
"""

import logging
from pathlib import Path
from typing import Optional

import numpy as np
import rasterio
from rasterio.transform import from_origin
import xarray as xr

__all__ = ['grid_transform', 'write_bands', 'write_longterm_raster', 'write_annual_raster']

logger = logging.getLogger(__name__)

DEFAULT_CRS = "EPSG:4326"


def grid_transform(y: np.ndarray, x: np.ndarray):
    """Affine transform of a regular grid given pixel-centre coordinates.

    Returns the transform and whether rows must be flipped to put north up.
    """
    y = np.asarray(y, dtype=float)
    x = np.asarray(x, dtype=float)
    dx = float(x[1] - x[0]) if x.size > 1 else 1.0
    dy = float(abs(y[1] - y[0])) if y.size > 1 else 1.0
    flip = y.size > 1 and y[1] > y[0]
    top = float(y.max()) + dy / 2
    left = float(x[0]) - dx / 2
    return from_origin(left, top, dx, dy), flip


def write_bands(path, bands: dict, y: np.ndarray, x: np.ndarray, crs: str = DEFAULT_CRS,
                nodata: float = np.nan) -> Path:
    """Write named 2-D float arrays as one band each.

    Parameters
    ----------
    path : str or Path
        Output GeoTIFF.
    bands : dict
        Band name -> (ny, nx) array, written in insertion order.
    y, x : np.ndarray
        Pixel-centre coordinates.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    transform, flip = grid_transform(y, x)
    ny, nx = len(y), len(x)

    profile = {
        "driver": "GTiff",
        "height": ny,
        "width": nx,
        "count": len(bands),
        "dtype": "float32",
        "crs": crs,
        "transform": transform,
        "nodata": nodata,
        "compress": "deflate",
    }
    with rasterio.open(path, "w", **profile) as dst:
        for index, (name, values) in enumerate(bands.items(), start=1):
            values = np.asarray(values, dtype="float32")
            if flip:
                values = values[::-1, :]
            dst.write(values, index)
            dst.set_band_description(index, name)

    logger.info("Saved GeoTIFF %s (%d bands)", path, len(bands))
    return path


def write_longterm_raster(ds: xr.Dataset, variables, path, y_name: str = "y",
                          x_name: str = "x", crs: Optional[str] = None) -> Path:
    """One band per long-term variable.

    ``crs`` falls back to ``ds.attrs["crs"]``, then EPSG:4326.
    """
    bands = {name: ds[name].transpose(y_name, x_name).values for name in variables}
    crs = crs or ds.attrs.get("crs", DEFAULT_CRS)
    return write_bands(path, bands, ds[y_name].values, ds[x_name].values, crs)


def write_annual_raster(ds: xr.Dataset, variables, path, y_name: str = "y",
                        x_name: str = "x", year_dim: str = "year",
                        crs: Optional[str] = None) -> Path:
    """One band per (variable, year), named ``<variable>_<year>``."""
    bands = {}
    for name in variables:
        da = ds[name].transpose(year_dim, y_name, x_name)
        for year in da[year_dim].values:
            bands[f"{name}_{int(year)}"] = da.sel({year_dim: year}).values
    crs = crs or ds.attrs.get("crs", DEFAULT_CRS)
    return write_bands(path, bands, ds[y_name].values, ds[x_name].values, crs)
