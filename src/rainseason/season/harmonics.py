"""Harmonic-regression seasonality classifier.

Fits daily precipitation to an intercept, a linear trend and the first two
annual harmonics. The ratio of the semi-annual to the annual harmonic
amplitude separates unimodal (one rainy season) from bimodal (two rainy
seasons) regimes.

One design matrix is shared by every pixel, so the whole tile is fitted in
a single multi-target least-squares solve.
"""

import logging

import numpy as np
import xarray as xr

__all__ = [
    'harmonic_design_matrix',
    'fit_harmonics',
    'harmonic_amplitudes',
    'seasonality_ratio',
    'route_seasons',
    'SeasonalityClassifier',
]

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365
COEFFICIENT_NAMES = ("intercept", "trend", "cos_1", "sin_1", "cos_2", "sin_2")


def harmonic_design_matrix(n_days: int) -> np.ndarray:
    """Regressors [1, t, cos 2πt, sin 2πt, cos 4πt, sin 4πt].

    t is in years since the first day, with 365 days per year (leap days
    are removed upstream).
    """
    t = np.arange(n_days, dtype=float) / DAYS_PER_YEAR
    omega = 2.0 * np.pi * t
    return np.column_stack([
        np.ones(n_days),
        t,
        np.cos(omega),
        np.sin(omega),
        np.cos(2.0 * omega),
        np.sin(2.0 * omega),
    ])


def fit_harmonics(values: np.ndarray) -> np.ndarray:
    """Least-squares harmonic coefficients for every column of ``values``.

    Parameters
    ----------
    values : np.ndarray
        (n_days, n_pixels) daily precipitation.

    Returns
    -------
    np.ndarray
        (6, n_pixels) coefficients in COEFFICIENT_NAMES order. Pixels with no
        finite value get NaN. Pixels with scattered gaps are fitted on their
        finite days only, provided at least one full year remains.
    """
    values = np.asarray(values, dtype=float)
    if values.ndim == 1:
        values = values[:, np.newaxis]
    n_days, n_pixels = values.shape
    design = harmonic_design_matrix(n_days)
    coefs = np.full((design.shape[1], n_pixels), np.nan)

    finite = np.isfinite(values)
    complete = finite.all(axis=0)
    if complete.any():
        coefs[:, complete], *_ = np.linalg.lstsq(design, values[:, complete], rcond=None)

    for col in np.flatnonzero(~complete & (finite.sum(axis=0) >= DAYS_PER_YEAR)):
        rows = finite[:, col]
        coefs[:, col], *_ = np.linalg.lstsq(design[rows], values[rows, col], rcond=None)

    return coefs


def harmonic_amplitudes(coefs: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Amplitudes of the annual and semi-annual harmonics."""
    amplitude_1 = np.hypot(coefs[2], coefs[3])
    amplitude_2 = np.hypot(coefs[4], coefs[5])
    return amplitude_1, amplitude_2


def seasonality_ratio(amplitude_1, amplitude_2, min_amplitude: float = 1e-6) -> np.ndarray:
    """A2 / A1, missing where A1 is below ``min_amplitude``.

    A flat (or rainless) pixel has no annual cycle to speak of; its ratio is
    left missing rather than infinite.
    """
    amplitude_1 = np.asarray(amplitude_1, dtype=float)
    amplitude_2 = np.asarray(amplitude_2, dtype=float)
    ratio = np.full(amplitude_1.shape, np.nan)
    ok = np.isfinite(amplitude_1) & (amplitude_1 >= min_amplitude) & (amplitude_1 > 0)
    ratio[ok] = amplitude_2[ok] / amplitude_1[ok]
    return ratio


def route_seasons(ratio, amplitude_1, ratio_threshold: float = 1.0) -> np.ndarray:
    """Number of rainy seasons per pixel.

    Returns 2 where ratio >= ratio_threshold, 0 where the pixel could not be
    fitted at all, and 1 otherwise (including a missing ratio on a fitted
    pixel).
    """
    ratio = np.asarray(ratio, dtype=float)
    fitted = np.isfinite(np.asarray(amplitude_1, dtype=float))
    n_seasons = np.where(fitted, 1, 0).astype(np.int8)
    n_seasons[fitted & np.isfinite(ratio) & (ratio >= ratio_threshold)] = 2
    return n_seasons


class SeasonalityClassifier:
    """Config-driven harmonic seasonality classifier.

    Example usage::

        classifier = SeasonalityClassifier(config)
        classes = classifier.classify(precip)   # precip: (time, y, x)
        classes.n_seasons                       # 0, 1 or 2 per pixel
    """

    def __init__(self, config):
        """Store classifier thresholds.

        Parameters
        ----------
        config : InternalConfig
            Uses classifier.ratio_threshold, classifier.min_amplitude and
            global_.coord_names.time.
        """
        self.ratio_threshold = config.classifier.ratio_threshold
        self.min_amplitude = config.classifier.min_amplitude
        self.time_name = config.global_.coord_names.time

        logger.info("SeasonalityClassifier initialized: ratio_threshold=%s, min_amplitude=%s",
                    self.ratio_threshold, self.min_amplitude)

    def classify(self, da: xr.DataArray) -> xr.Dataset:
        """Fit harmonics per pixel and route to one or two seasons.

        Parameters
        ----------
        da : xr.DataArray
            Leap-free daily precipitation with the time dimension.

        Returns
        -------
        xr.Dataset
            seasonality_ratio, amplitude_1, amplitude_2 (float) and
            n_seasons (int8) on the spatial dims of ``da``.
        """
        spatial_dims = [d for d in da.dims if d != self.time_name]
        stacked = da.transpose(self.time_name, *spatial_dims).values
        spatial_shape = stacked.shape[1:]
        flat = stacked.reshape(stacked.shape[0], -1)

        coefs = fit_harmonics(flat)
        amplitude_1, amplitude_2 = harmonic_amplitudes(coefs)
        ratio = seasonality_ratio(amplitude_1, amplitude_2, self.min_amplitude)
        n_seasons = route_seasons(ratio, amplitude_1, self.ratio_threshold)

        coords = {d: da[d] for d in spatial_dims if d in da.coords}

        def _grid(values, attrs):
            return xr.DataArray(values.reshape(spatial_shape), dims=spatial_dims,
                                coords=coords, attrs=attrs)

        ds = xr.Dataset({
            "seasonality_ratio": _grid(ratio, {"long_name": "Second to first harmonic amplitude ratio",
                                               "units": "1"}),
            "amplitude_1": _grid(amplitude_1, {"long_name": "Annual harmonic amplitude",
                                               "units": "mm day-1"}),
            "amplitude_2": _grid(amplitude_2, {"long_name": "Semi-annual harmonic amplitude",
                                               "units": "mm day-1"}),
            "n_seasons": _grid(n_seasons, {"long_name": "Number of rainy seasons",
                                           "ratio_threshold": self.ratio_threshold}),
        })

        n_double = int((n_seasons == 2).sum())
        n_single = int((n_seasons == 1).sum())
        logger.debug("Classified %d single-season and %d double-season pixels", n_single, n_double)
        return ds
