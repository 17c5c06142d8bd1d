"""Per-year re-detection of onset and cessation.

Every hydrological year is re-analysed with its own mean daily rate, so a
drought year is still centred on its own wettest stretch rather than
being judged against long-term average rainfall.

Single-season pixels use the full 365-day hydrological year. Double-season
pixels use one window per season: the long-term season padded by a margin
on both sides, which may reach into the neighbouring years.

All dates here are hydrological days (1 = hydro_year_start).
"""

import numpy as np

from rainseason.season.cumulative import cumulative_anomaly
from rainseason.season.hydro_year import hydro_year_offsets

DAYS_PER_YEAR = 365


def window_dates(window: np.ndarray, first_hday: int, onset_lag_days: int = 1):
    """Onset and cessation inside one window, in hydrological days.

    The window's own mean is the reference rate. A dry or incomplete window
    yields NaNs.
    """
    curve = cumulative_anomaly(window)
    if not np.isfinite(curve).all() or float(np.ptp(curve)) <= 0.0:
        return np.nan, np.nan
    onset = first_hday + int(np.argmin(curve)) + onset_lag_days
    cessation = first_hday + int(np.argmax(curve))
    return float(onset), float(cessation)


def annual_single_dates(series: np.ndarray, start: float,
                        onset_lag_days: int = 1) -> np.ndarray:
    """(n_years, 2) annual onset/cessation for a single-season pixel.

    Row y is the hydrological year beginning in calendar year y; rows that
    do not fit in the series are NaN.
    """
    series = np.asarray(series, dtype=float)
    offsets = hydro_year_offsets(series.size, start)
    out = np.full((offsets.size, 2), np.nan)
    for y, offset in enumerate(offsets):
        if offset < 0:
            continue
        out[y] = window_dates(series[offset:offset + DAYS_PER_YEAR], 1, onset_lag_days)
    return out


def annual_double_dates(series: np.ndarray, start: float, longterm_hdays: np.ndarray,
                        margin_days: int = 45, onset_lag_days: int = 1) -> np.ndarray:
    """(n_years, 4) annual dates for a double-season pixel.

    Parameters
    ----------
    series : np.ndarray
        Leap-free daily series.
    start : float
        Hydrological year start (day-of-year).
    longterm_hdays : np.ndarray
        Long-term (onset1, cessation1, onset2, cessation2) in hydrological days.
    margin_days : int
        Padding on both sides of each long-term season.
    """
    series = np.asarray(series, dtype=float)
    offsets = hydro_year_offsets(series.size, start)
    n_years = series.size // DAYS_PER_YEAR
    out = np.full((n_years, 4), np.nan)

    # Windows may start before hydro day 1 and end after hydro day 365, so
    # they are placed from the year base rather than the year offset.
    bases = np.arange(n_years) * DAYS_PER_YEAR + int(start) - 1
    for season in range(2):
        onset_h, cessation_h = longterm_hdays[2 * season], longterm_hdays[2 * season + 1]
        if not (np.isfinite(onset_h) and np.isfinite(cessation_h)):
            continue
        first_hday = int(onset_h) - margin_days
        last_hday = int(cessation_h) + margin_days
        for y, base in enumerate(bases):
            lo = base + first_hday - 1
            hi = base + last_hday
            if offsets[y] < 0 or lo < 0 or hi > series.size:
                continue
            out[y, 2 * season:2 * season + 2] = window_dates(
                series[lo:hi], first_hday, onset_lag_days
            )
    return out
