"""Hydrological year anchoring.

Each pixel's analysis year starts ``lead_days`` before its long-term mean
onset (for two seasons, the onset after the longer dry gap), so that the
year boundary sits in the dry season and no rainy season is split across it.
"""

import numpy as np

DAYS_PER_YEAR = 365


def hydro_year_start(onset, lead_days: int = 30):
    """(onset + 365 - lead_days) mod 365, with 0 mapped to 365.

    Accepts scalars or arrays; missing onsets stay missing.
    """
    onset = np.asarray(onset, dtype=float)
    start = np.mod(onset + DAYS_PER_YEAR - lead_days, DAYS_PER_YEAR)
    start = np.where(start == 0, DAYS_PER_YEAR, start)
    return start if start.ndim else float(start)


def season_anchor(dates) -> float:
    """Onset the hydrological year is anchored on.

    ``dates`` is (onset1, cessation1, onset2, cessation2) with cessations
    unwrapped. A single season anchors on its onset. With two seasons the
    anchor is the onset that ends the longer dry gap, so the year boundary
    falls in the main dry season and neither season is split; ties keep
    onset1.
    """
    dates = np.asarray(dates, dtype=float)
    if dates.size < 4 or not np.all(np.isfinite(dates[:4])):
        return float(dates[0])
    onset1, cessation1, onset2, cessation2 = dates[:4]
    gap_before_first = onset1 + DAYS_PER_YEAR - cessation2
    gap_before_second = onset2 - cessation1
    return float(onset2 if gap_before_second > gap_before_first else onset1)


def to_hydro_day(doy, start):
    """Day-of-year (1..365) -> day of the hydrological year (1..365).

    Unwrapped dates beyond 365 are first folded back onto the calendar.
    """
    doy = np.asarray(doy, dtype=float)
    start = np.asarray(start, dtype=float)
    hday = np.mod(doy - start, DAYS_PER_YEAR) + 1
    return hday if hday.ndim else float(hday)


def from_hydro_day(hday, start):
    """Day of the hydrological year -> day-of-year (1..365)."""
    hday = np.asarray(hday, dtype=float)
    start = np.asarray(start, dtype=float)
    doy = np.mod(hday - 1 + start - 1, DAYS_PER_YEAR) + 1
    return doy if doy.ndim else float(doy)


def longterm_dates_in_hydro_days(dates: np.ndarray, start: float) -> np.ndarray:
    """Express (onset, cessation, ...) pairs relative to the hydrological year.

    Onsets are mapped with to_hydro_day(); cessations keep their distance
    from the paired onset so season length is preserved.
    """
    dates = np.asarray(dates, dtype=float)
    out = np.full(dates.shape, np.nan)
    for k in range(0, dates.size, 2):
        onset, cessation = dates[k], dates[k + 1]
        if np.isfinite(onset) and np.isfinite(cessation):
            out[k] = to_hydro_day(onset, start)
            out[k + 1] = out[k] + (cessation - onset)
    return out


def hydro_year_offsets(n_days: int, start: float) -> np.ndarray:
    """Series index of hydrological day 1 for each calendar year.

    Element y is the 0-based index in a leap-free series of the first day
    of the hydrological year starting in calendar year y, or -1 when that
    year does not fit entirely inside the series.
    """
    n_years = n_days // DAYS_PER_YEAR
    offsets = np.arange(n_years) * DAYS_PER_YEAR + int(start) - 1
    return np.where(offsets + DAYS_PER_YEAR <= n_days, offsets, -1)
