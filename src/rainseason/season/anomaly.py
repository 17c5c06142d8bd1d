"""Annual date anomalies, plausibility filter and aggregation.

Anomalies are long-term minus annual dates, both in hydrological days, so
a positive onset anomaly means the season started early that year.
"""

import numpy as np

__all__ = [
    'date_anomalies',
    'valid_years',
    'apply_quorum',
    'season_length',
    'nan_std',
    'aggregate_pixel',
]


def date_anomalies(longterm_hdays: np.ndarray, annual_hdays: np.ndarray) -> np.ndarray:
    """(n_years, 2k) long-term minus annual date, per column."""
    return np.asarray(longterm_hdays, dtype=float)[np.newaxis, :] - np.asarray(annual_hdays, dtype=float)


def valid_years(anomalies: np.ndarray, longterm_hdays: np.ndarray,
                tolerance_days: float = 60) -> np.ndarray:
    """Plausibility of each year's detection.

    A season passes when its onset anomaly lies in [-tolerance, length),
    its cessation anomaly plus the long-term length is positive, and its
    cessation anomaly is at most the tolerance. A year passes only when
    every season passes; missing detections fail.

    Parameters
    ----------
    anomalies : np.ndarray
        (n_years, 2k) output of date_anomalies().
    longterm_hdays : np.ndarray
        (2k,) long-term dates, used for season lengths.
    tolerance_days : float
        Allowed early onset / late cessation, in days.

    Returns
    -------
    np.ndarray
        (n_years,) bool.
    """
    anomalies = np.atleast_2d(np.asarray(anomalies, dtype=float))
    longterm_hdays = np.asarray(longterm_hdays, dtype=float)
    ok = np.ones(anomalies.shape[0], dtype=bool)
    with np.errstate(invalid="ignore"):
        for k in range(0, longterm_hdays.size, 2):
            length = longterm_hdays[k + 1] - longterm_hdays[k]
            onset_anom = anomalies[:, k]
            cessation_anom = anomalies[:, k + 1]
            season_ok = (
                (onset_anom >= -tolerance_days)
                & (onset_anom < length)
                & (cessation_anom + length > 0)
                & (cessation_anom <= tolerance_days)
            )
            ok &= season_ok & np.isfinite(onset_anom) & np.isfinite(cessation_anom)
    return ok


def apply_quorum(valid: np.ndarray, available: np.ndarray, quorum: float = 0.75) -> np.ndarray:
    """Keep the valid years only if they make up ``quorum`` of the available ones.

    ``available`` marks hydrological years that fit inside the series; a
    year that fits but produced no detection counts against the pixel.
    """
    valid = np.asarray(valid, dtype=bool)
    available = np.asarray(available, dtype=bool)
    n_available = int(available.sum())
    if n_available == 0:
        return np.zeros_like(valid)
    fraction = (valid & available).sum() / n_available
    if fraction >= quorum:
        return valid & available
    return np.zeros_like(valid)


def season_length(dates: np.ndarray) -> np.ndarray:
    """Total season length, summed over the (onset, cessation) pairs present.

    Works on a (2k,) vector or on (n_years, 2k) rows. Missing when no pair
    is present.
    """
    dates = np.asarray(dates, dtype=float)
    lengths = dates[..., 1::2] - dates[..., 0::2]
    present = np.isfinite(lengths)
    total = np.where(present, lengths, 0.0).sum(axis=-1)
    return np.where(present.any(axis=-1), total, np.nan)


def nan_std(values: np.ndarray, keep: np.ndarray) -> float:
    """Population standard deviation over the kept entries, missing if none."""
    values = np.asarray(values, dtype=float)[np.asarray(keep, dtype=bool)]
    values = values[np.isfinite(values)]
    if values.size == 0:
        return np.nan
    return float(values.std(ddof=0))


def aggregate_pixel(longterm_hdays: np.ndarray, annual_hdays: np.ndarray,
                    available: np.ndarray, tolerance_days: float = 60,
                    quorum: float = 0.75) -> dict:
    """Filter one pixel's annual detections and summarise the retained years.

    Returns
    -------
    dict
        ``retained`` (n_years bool), ``onset_anomaly`` (n_years, first
        season), ``annual_length`` (n_years, NaN where not retained), plus
        scalars ``season_length``, ``mean_annual_length``,
        ``season_length_sd``, ``onset_anomaly_sd`` and ``n_valid_years``.
    """
    anomalies = date_anomalies(longterm_hdays, annual_hdays)
    valid = valid_years(anomalies, longterm_hdays, tolerance_days)
    retained = apply_quorum(valid, available, quorum)

    annual_length = np.where(retained, season_length(annual_hdays), np.nan)
    onset_anomaly = np.where(retained, anomalies[:, 0], np.nan)
    n_valid = int(retained.sum())

    return {
        "retained": retained,
        "onset_anomaly": onset_anomaly,
        "annual_length": annual_length,
        "season_length": float(season_length(longterm_hdays)),
        "mean_annual_length": float(np.nanmean(annual_length)) if n_valid else np.nan,
        "season_length_sd": nan_std(annual_length, retained),
        "onset_anomaly_sd": nan_std(onset_anomaly, retained),
        "n_valid_years": n_valid,
    }
