"""Daily climatology and cumulative-anomaly curves.

The cumulative anomaly of a 365-day cycle is the running sum of daily
rainfall minus the cycle's own mean rate. Its trough marks the point after
which rain accumulates faster than average (onset) and its peak the point
after which it accumulates slower (cessation).
"""

import numpy as np
import xarray as xr

DAYS_PER_YEAR = 365


def drop_leap_days(da: xr.DataArray, time_name: str = "time") -> xr.DataArray:
    """Remove 29 February so every year has exactly 365 days."""
    time = da[time_name].dt
    return da.sel({time_name: ~((time.month == 2) & (time.day == 29))})


def reshape_years(series: np.ndarray) -> np.ndarray:
    """(n_years * 365,) -> (n_years, 365)."""
    series = np.asarray(series, dtype=float)
    n_years = series.shape[-1] // DAYS_PER_YEAR
    return series[..., :n_years * DAYS_PER_YEAR].reshape(*series.shape[:-1], n_years, DAYS_PER_YEAR)


def daily_climatology(series: np.ndarray) -> np.ndarray:
    """Mean of each calendar day across years (365 values).

    Days missing in every year stay missing.
    """
    years = reshape_years(series)
    with np.errstate(invalid="ignore"):
        counts = np.isfinite(years).sum(axis=-2)
        totals = np.nansum(years, axis=-2)
        return np.where(counts > 0, totals / np.maximum(counts, 1), np.nan)


def cumulative_anomaly(values: np.ndarray, reference_rate=None) -> np.ndarray:
    """Running sum of ``values - reference_rate``.

    Parameters
    ----------
    values : np.ndarray
        Daily rainfall for one window (a climatological cycle or one year).
    reference_rate : float, optional
        Expected daily rate; defaults to the window's own mean, which makes
        the curve return to zero on the last day.

    Returns
    -------
    np.ndarray
        Curve of the same length as ``values``; all-NaN if any value is missing.
    """
    values = np.asarray(values, dtype=float)
    if values.size == 0 or not np.isfinite(values).all():
        return np.full(values.shape, np.nan)
    if reference_rate is None:
        reference_rate = values.mean()
    return np.cumsum(values - reference_rate)


def longterm_curve(series: np.ndarray) -> np.ndarray:
    """Cumulative anomaly of the mean annual cycle."""
    return cumulative_anomaly(daily_climatology(series))
