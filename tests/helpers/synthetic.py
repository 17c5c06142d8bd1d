import numpy as np
import pandas as pd
import xarray as xr

DAYS = 365


def box_series(n_years, segments, rate=10.0):
    """
    Leap-free daily series raining ``rate`` mm/day on the given
    (first_day, last_day) 1-based inclusive segments, identical every year.
    A segment with first_day > last_day wraps across 31 December.
    """
    year = np.zeros(DAYS)
    for first, last in segments:
        if first <= last:
            year[first - 1:last] = rate
        else:
            year[first - 1:] = rate
            year[:last] = rate
    return np.tile(year, n_years)


def triangle_series(n_years, first, last, peak=20.0):
    """Tent-shaped rainy season rising from ``first`` to mid-season and back."""
    year = np.zeros(DAYS)
    days = np.arange(first, last + 1)
    mid = (first + last) / 2.0
    year[first - 1:last] = peak * (1.0 - np.abs(days - mid) / (mid - first + 1))
    return np.tile(year, n_years)


def leap_free_times(start_year, n_years):
    times = pd.date_range(f"{start_year}-01-01", f"{start_year + n_years - 1}-12-31", freq="D")
    return times[~((times.month == 2) & (times.day == 29))]


def make_precip_grid(columns, n_rows=2, start_year=2001, var_name="precip"):
    """
    (time, y, x) DataArray whose column j repeats series ``columns[j]`` on
    every row. Coordinates look like a 0.05 degree lat/lon grid with
    latitude descending.
    """
    columns = [np.asarray(c, dtype=float) for c in columns]
    n_days = columns[0].size
    n_years = n_days // DAYS
    data = np.stack(columns, axis=-1)[:, np.newaxis, :].repeat(n_rows, axis=1)
    return xr.DataArray(
        data,
        dims=("time", "y", "x"),
        coords={
            "time": leap_free_times(start_year, n_years),
            "y": 10.0 - 0.05 * np.arange(n_rows),
            "x": 35.0 + 0.05 * np.arange(len(columns)),
        },
        name=var_name,
    )


def write_precip_netcdf(path, da, with_leap_days=True):
    """
    Write ``da`` as a NetCDF file. With ``with_leap_days`` a 29 February is
    inserted in leap years (a copy of 28 February) so the loader has
    something to drop.
    """
    if with_leap_days:
        full = pd.date_range(pd.Timestamp(da.time.values[0]), pd.Timestamp(da.time.values[-1]),
                             freq="D")
        da = da.reindex(time=full, method="ffill")
    path.parent.mkdir(parents=True, exist_ok=True)
    da.to_dataset().to_netcdf(path)
    return path
