"""Tabular export for statistical modelling.

``df_multi_annual`` has one row per study-area pixel with the long-term
season variables and covariates. ``df_annual`` has one row per (pixel,
hydrological year) with that year's anomalies and covariates. Rows missing
any required covariate are dropped before writing.
"""

import logging
from pathlib import Path

import pandas as pd
import xarray as xr

from rainseason.contracts import assert_tabular_output

__all__ = [
    'MULTI_ANNUAL_COLUMNS',
    'ANNUAL_COLUMNS',
    'required_multi_annual_columns',
    'REQUIRED_ANNUAL_COLUMNS',
    'build_multi_annual_table',
    'build_annual_table',
    'write_table',
]

logger = logging.getLogger(__name__)

MULTI_ANNUAL_COLUMNS = [
    "n_seasons", "seasonality_ratio",
    "onset_1", "cessation_1", "onset_2", "cessation_2", "hydro_year_start",
    "season_length", "mean_annual_length", "season_length_sd", "onset_anomaly_sd",
    "n_valid_years",
    "map", "precipitation_cv", "mean_ugi", "mean_pci", "mean_sdii",
    "mean_rain_days", "mean_cdd",
]

ANNUAL_COLUMNS = [
    "n_seasons", "annual_onset_1", "annual_cessation_1", "annual_onset_2",
    "annual_cessation_2", "onset_anomaly", "annual_season_length", "valid_year",
    "annual_precipitation", "ugi", "pci", "sdii", "rain_days", "cdd",
]

REQUIRED_ANNUAL_COLUMNS = [
    "onset_anomaly", "annual_season_length",
    "annual_precipitation", "ugi", "pci", "sdii", "rain_days", "cdd",
]


def required_multi_annual_columns(mode: str = "full") -> list[str]:
    """Columns a df_multi_annual row must have; the SDs need annual re-detection."""
    required = ["n_seasons", "onset_1", "cessation_1", "season_length",
                "map", "precipitation_cv", "mean_ugi", "mean_pci",
                "mean_rain_days", "mean_cdd"]
    if mode == "full":
        required += ["season_length_sd", "onset_anomaly_sd"]
    return required


def build_multi_annual_table(ds: xr.Dataset, mask: xr.DataArray, required,
                             y_name: str = "y", x_name: str = "x") -> pd.DataFrame:
    """Long-term variables of the masked-in pixels, one row each."""
    columns = [c for c in MULTI_ANNUAL_COLUMNS if c in ds]
    df = ds[columns].where(mask).to_dataframe().reset_index()
    df = df[[y_name, x_name] + columns]
    n_before = len(df)
    df = df.dropna(subset=list(required)).reset_index(drop=True)
    df["n_seasons"] = df["n_seasons"].astype(int)
    logger.info("df_multi_annual: %d of %d pixels complete", len(df), n_before)
    return df


def build_annual_table(ds: xr.Dataset, mask: xr.DataArray,
                       y_name: str = "y", x_name: str = "x",
                       year_dim: str = "year") -> pd.DataFrame:
    """Annual variables of the masked-in pixels, one row per retained year."""
    columns = [c for c in ANNUAL_COLUMNS if c in ds]
    df = ds[columns].where(mask).to_dataframe().reset_index()
    df = df[[y_name, x_name, year_dim] + columns]
    n_before = len(df)
    df = df.dropna(subset=REQUIRED_ANNUAL_COLUMNS).reset_index(drop=True)
    df["n_seasons"] = df["n_seasons"].astype(int)
    df[year_dim] = df[year_dim].astype(int)
    logger.info("df_annual: %d of %d pixel-years complete", len(df), n_before)
    return df


def write_table(df: pd.DataFrame, path, table_format: str = "csv",
                compression: str = "snappy", required=()) -> Path:
    """Write ``df`` as CSV or Parquet after checking the required columns."""
    assert_tabular_output(df, list(required))
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if table_format == "parquet":
        df.to_parquet(path, engine='pyarrow',
                      compression=None if compression == "none" else compression,
                      index=False)
    else:
        df.to_csv(path, index=False)

    logger.info("Exported %d rows to: %s", len(df), path)
    return path
