"""Onset/cessation extraction from cumulative-anomaly curves.

Single-season pixels take the global trough and peak of the curve.
Double-season pixels smooth the curve cyclically, look for local extrema
with progressively narrower sliding windows, and pair each trough with the
next peak around the cycle.

Dates are 1-based day-of-year. Onset lies in 1..365; cessation is
"unwrapped" so that onset <= cessation < onset + 365 even when a season
crosses 31 December.
"""

import logging
from typing import Sequence

import numpy as np
from scipy.ndimage import maximum_filter1d, minimum_filter1d, uniform_filter1d

__all__ = [
    'single_season_dates',
    'cyclic_smooth',
    'local_extrema',
    'pair_seasons',
    'double_season_dates',
]

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365


def _is_flat(curve: np.ndarray) -> bool:
    return (not np.isfinite(curve).all()) or float(np.ptp(curve)) <= 0.0


def _unwrap_cessation(onset: float, cessation: float) -> float:
    while cessation < onset:
        cessation += DAYS_PER_YEAR
    return cessation


def single_season_dates(curve: np.ndarray, onset_lag_days: int = 1) -> tuple[float, float]:
    """Onset and cessation of a unimodal cycle.

    Onset is the day after the curve's minimum and cessation the day of its
    maximum. A flat or incomplete curve has no season and returns NaNs.
    """
    curve = np.asarray(curve, dtype=float)
    if _is_flat(curve):
        return np.nan, np.nan

    onset = float(np.argmin(curve) + 1 + onset_lag_days)
    if onset > DAYS_PER_YEAR:
        onset -= DAYS_PER_YEAR
    cessation = _unwrap_cessation(onset, float(np.argmax(curve) + 1))
    return onset, cessation


def cyclic_smooth(curve: np.ndarray, half_width: int) -> np.ndarray:
    """Centered moving average over ±half_width days, wrapping at the ends."""
    curve = np.asarray(curve, dtype=float)
    if half_width <= 0:
        return curve.copy()
    return uniform_filter1d(curve, size=2 * half_width + 1, mode="wrap")


def _collapse_runs(flags: np.ndarray) -> np.ndarray:
    """Indices where a cyclic run of True starts (ties on a plateau count once)."""
    if flags.all():
        return np.array([], dtype=int)
    starts = flags & ~np.roll(flags, 1)
    return np.flatnonzero(starts)


def local_extrema(curve: np.ndarray, half_width: int) -> tuple[np.ndarray, np.ndarray]:
    """Days that equal the min (max) of the cyclic window of ±half_width days.

    Returns
    -------
    minima, maxima : np.ndarray
        0-based indices, ascending.
    """
    size = 2 * half_width + 1
    is_min = curve == minimum_filter1d(curve, size=size, mode="wrap")
    is_max = curve == maximum_filter1d(curve, size=size, mode="wrap")
    return _collapse_runs(is_min), _collapse_runs(is_max)


def _alternates(minima: np.ndarray, maxima: np.ndarray) -> bool:
    """True when troughs and peaks interleave around the cycle."""
    events = sorted([(int(i), "min") for i in minima] + [(int(i), "max") for i in maxima])
    kinds = [kind for _, kind in events]
    return all(kinds[k] != kinds[(k + 1) % len(kinds)] for k in range(len(kinds)))


def pair_seasons(minima: Sequence[int], maxima: Sequence[int],
                 onset_lag_days: int = 1) -> np.ndarray:
    """Pair two troughs with two peaks into (onset1, cessation1, onset2, cessation2).

    Each trough is paired with the first peak that follows it around the
    cycle. When the earlier peak precedes the earlier trough, one season
    wraps the year boundary and its peak is carried into the next year
    (+365) before the pairs are ordered by onset.

    Parameters
    ----------
    minima, maxima : sequence of int
        0-based day indices of the two troughs and the two peaks.
    onset_lag_days : int
        Days between trough and onset.

    Returns
    -------
    np.ndarray
        Four dates; season 1 is the one with the earlier onset.
    """
    troughs = np.sort(np.asarray(minima, dtype=float)) + 1
    peaks = np.sort(np.asarray(maxima, dtype=float)) + 1

    if peaks[0] < troughs[0]:
        # Season ending early in the year started late in the previous one
        peaks = np.array([peaks[1], peaks[0] + DAYS_PER_YEAR])

    pairs = []
    for trough, peak in zip(troughs, peaks):
        onset = trough + onset_lag_days
        cessation = peak
        if onset > DAYS_PER_YEAR:
            onset -= DAYS_PER_YEAR
            cessation -= DAYS_PER_YEAR
        pairs.append((onset, _unwrap_cessation(onset, cessation)))

    pairs.sort(key=lambda p: p[0])
    return np.array([pairs[0][0], pairs[0][1], pairs[1][0], pairs[1][1]])


def double_season_dates(curve: np.ndarray, smoothing_half_width: int = 15,
                        half_widths: Sequence[int] = (45, 30, 15),
                        onset_lag_days: int = 1) -> np.ndarray:
    """Two onset/cessation pairs from a bimodal cumulative-anomaly curve.

    Windows are tried widest first; the first one yielding exactly two
    alternating troughs and two peaks wins. If none does the four dates are
    missing.

    Returns
    -------
    np.ndarray
        (onset1, cessation1, onset2, cessation2)
    """
    missing = np.full(4, np.nan)
    curve = np.asarray(curve, dtype=float)
    if _is_flat(curve):
        return missing

    smoothed = cyclic_smooth(curve, smoothing_half_width)
    for half_width in half_widths:
        minima, maxima = local_extrema(smoothed, half_width)
        if len(minima) == 2 and len(maxima) == 2 and _alternates(minima, maxima):
            return pair_seasons(minima, maxima, onset_lag_days)
        logger.debug("Half-width %d gave %d minima and %d maxima", half_width,
                     len(minima), len(maxima))
    return missing
