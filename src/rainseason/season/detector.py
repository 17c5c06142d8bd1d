"""Per-pixel rainy-season detector.

``detect_pixel`` is a pure function of one pixel's leap-free daily series
and its season count. ``SeasonDetector`` maps it over a grid with
``xarray.apply_ufunc``.

Long-term dates are day-of-year (cessation unwrapped past 365 when the
season crosses the year end). Annual dates and anomalies are in
hydrological days.
"""

import logging

import numpy as np
import xarray as xr

from rainseason.season.annual import annual_double_dates, annual_single_dates
from rainseason.season.anomaly import aggregate_pixel, season_length
from rainseason.season.covariates import (
    ANNUAL_COVARIATES,
    annual_covariates,
    longterm_covariates,
)
from rainseason.season.cumulative import DAYS_PER_YEAR, longterm_curve
from rainseason.season.extract import double_season_dates, single_season_dates
from rainseason.season.hydro_year import (
    hydro_year_offsets,
    hydro_year_start,
    longterm_dates_in_hydro_days,
    season_anchor,
)

__all__ = [
    'LONGTERM_FIELDS',
    'ANNUAL_FIELDS',
    'pixel_settings',
    'detect_pixel',
    'SeasonDetector',
]

logger = logging.getLogger(__name__)

LONGTERM_FIELDS = (
    "onset_1", "cessation_1", "onset_2", "cessation_2",
    "hydro_year_start",
    "season_length", "mean_annual_length", "season_length_sd", "onset_anomaly_sd",
    "n_valid_years",
    "map", "precipitation_cv",
    "mean_ugi", "mean_pci", "mean_sdii", "mean_rain_days", "mean_cdd",
)

ANNUAL_FIELDS = (
    "annual_onset_1", "annual_cessation_1", "annual_onset_2", "annual_cessation_2",
    "onset_anomaly", "annual_season_length", "valid_year",
) + ANNUAL_COVARIATES

FIELD_ATTRS = {
    "onset_1": {"long_name": "Long-term onset of season 1", "units": "day of year"},
    "cessation_1": {"long_name": "Long-term cessation of season 1", "units": "day of year"},
    "onset_2": {"long_name": "Long-term onset of season 2", "units": "day of year"},
    "cessation_2": {"long_name": "Long-term cessation of season 2", "units": "day of year"},
    "hydro_year_start": {"long_name": "First day of the hydrological year", "units": "day of year"},
    "season_length": {"long_name": "Long-term rainy season length", "units": "days"},
    "season_length_sd": {"long_name": "SD of annual season length", "units": "days"},
    "onset_anomaly_sd": {"long_name": "SD of annual onset anomaly", "units": "days"},
    "map": {"long_name": "Mean annual precipitation", "units": "mm"},
    "onset_anomaly": {"long_name": "Long-term minus annual onset", "units": "days"},
}


def pixel_settings(config) -> dict:
    """Keyword arguments for detect_pixel() taken from an InternalConfig."""
    return {
        "onset_lag_days": config.detector.onset_lag_days,
        "smoothing_half_width": config.detector.smoothing_half_width,
        "extrema_half_widths": tuple(config.detector.extrema_half_widths),
        "margin_days": config.detector.double_season_margin_days,
        "lead_days": config.hydro_year.lead_days,
        "tolerance_days": config.anomaly.tolerance_days,
        "quorum": config.anomaly.valid_year_quorum,
        "rain_day_threshold": config.covariates.rain_day_threshold,
        "dry_day_threshold": config.covariates.dry_day_threshold,
        "pci_blocks": config.covariates.pci_blocks,
        "annual": config.mode == "full",
    }


def detect_pixel(series, n_seasons, onset_lag_days=1, smoothing_half_width=15,
                 extrema_half_widths=(45, 30, 15), margin_days=45, lead_days=30,
                 tolerance_days=60, quorum=0.75, rain_day_threshold=1.0,
                 dry_day_threshold=1.0, pci_blocks=12, annual=True):
    """Long-term and annual season variables for one pixel.

    Parameters
    ----------
    series : np.ndarray
        Leap-free daily precipitation, a whole number of 365-day years.
    n_seasons : int
        0 (no data), 1 or 2, from the seasonality classifier.
    annual : bool
        Re-detect each hydrological year and apply the validity filter.
        When False only the long-term dates and covariates are filled.

    Returns
    -------
    longterm : np.ndarray
        (len(LONGTERM_FIELDS),)
    annual_values : np.ndarray
        (n_years, len(ANNUAL_FIELDS))
    """
    series = np.asarray(series, dtype=float)
    n_years = series.size // DAYS_PER_YEAR
    longterm = np.full(len(LONGTERM_FIELDS), np.nan)
    annual_values = np.full((n_years, len(ANNUAL_FIELDS)), np.nan)

    n_seasons = int(n_seasons)
    if n_seasons == 0:
        return longterm, annual_values

    curve = longterm_curve(series)
    if n_seasons == 2:
        dates = double_season_dates(curve, smoothing_half_width, extrema_half_widths,
                                    onset_lag_days)
    else:
        onset, cessation = single_season_dates(curve, onset_lag_days)
        dates = np.array([onset, cessation, np.nan, np.nan])
    longterm[0:4] = dates
    if not np.isfinite(dates[0]):
        return longterm, annual_values

    start = float(hydro_year_start(season_anchor(dates), lead_days))
    longterm[4] = start

    covariates = annual_covariates(series, start, rain_day_threshold,
                                   dry_day_threshold, pci_blocks)
    annual_values[:, 7:] = covariates
    summary = longterm_covariates(covariates)
    longterm[10:] = [summary[name] for name in LONGTERM_FIELDS[10:]]

    if not annual:
        longterm[5] = float(season_length(dates))
        return longterm, annual_values

    lt_hdays = longterm_dates_in_hydro_days(dates[:2 * n_seasons], start)

    if n_seasons == 2:
        annual_hdays = annual_double_dates(series, start, lt_hdays, margin_days, onset_lag_days)
    else:
        annual_hdays = annual_single_dates(series, start, onset_lag_days)
    available = hydro_year_offsets(series.size, start) >= 0

    agg = aggregate_pixel(lt_hdays, annual_hdays, available, tolerance_days, quorum)
    annual_values[:, :annual_hdays.shape[1]] = annual_hdays
    annual_values[:, 4] = agg["onset_anomaly"]
    annual_values[:, 5] = agg["annual_length"]
    annual_values[:, 6] = np.where(available, agg["retained"].astype(float), np.nan)

    longterm[5] = agg["season_length"]
    longterm[6] = agg["mean_annual_length"]
    longterm[7] = agg["season_length_sd"]
    longterm[8] = agg["onset_anomaly_sd"]
    longterm[9] = agg["n_valid_years"]
    return longterm, annual_values


class SeasonDetector:
    """Map detect_pixel() over a (time, y, x) grid.

    Example usage::

        detector = SeasonDetector(config)
        seasons = detector.detect(precip, classes.n_seasons)
        seasons.onset_1          # (y, x)
        seasons.onset_anomaly    # (year, y, x)
    """

    def __init__(self, config):
        self.settings = pixel_settings(config)
        self.time_name = config.global_.coord_names.time

        logger.info("SeasonDetector initialized: mode=%s, lead=%sd, tolerance=%sd, quorum=%s",
                    config.mode, self.settings["lead_days"], self.settings["tolerance_days"],
                    self.settings["quorum"])

    def detect(self, precip: xr.DataArray, n_seasons: xr.DataArray) -> xr.Dataset:
        """Season variables for every pixel of ``precip``.

        Parameters
        ----------
        precip : xr.DataArray
            Leap-free daily precipitation (time, y, x).
        n_seasons : xr.DataArray
            Season count per pixel from SeasonalityClassifier.

        Returns
        -------
        xr.Dataset
            LONGTERM_FIELDS on (y, x) and ANNUAL_FIELDS on (year, y, x).
        """
        n_years = precip.sizes[self.time_name] // DAYS_PER_YEAR
        longterm, annual = xr.apply_ufunc(
            detect_pixel,
            precip,
            n_seasons,
            input_core_dims=[[self.time_name], []],
            output_core_dims=[["field"], ["year", "annual_field"]],
            kwargs=self.settings,
            vectorize=True,
        )

        first_year = int(precip[self.time_name].dt.year.values[0])
        years = np.arange(first_year, first_year + n_years)
        ds_long = longterm.assign_coords(field=list(LONGTERM_FIELDS)).to_dataset(dim="field")
        ds_annual = (annual.assign_coords(year=years, annual_field=list(ANNUAL_FIELDS))
                     .to_dataset(dim="annual_field"))
        ds = xr.merge([ds_long, ds_annual])
        ds = ds.transpose("year", ...)

        for name, attrs in FIELD_ATTRS.items():
            ds[name].attrs.update(attrs)
        ds.attrs["annual_dates"] = "hydrological day (1 = hydro_year_start)"

        n_dated = int(ds["onset_1"].notnull().sum())
        logger.debug("Detected seasons for %d of %d pixels", n_dated, ds["onset_1"].size)
        return ds
