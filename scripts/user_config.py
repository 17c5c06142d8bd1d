"""Rainseason User Configuration.

This is the user-facing configuration file. Modify settings here to customize
the pipeline behavior. Advanced settings are in src/rainseason/schemas/param.py

Usage:
    python scripts/run_season_pipeline.py scripts/user_config.py
    python scripts/run_season_pipeline.py scripts/user_config.py --mode climatology
    python scripts/run_season_pipeline.py scripts/user_config.py --n-workers 8
"""

CONFIG = {
    # ========================================================================
    # PIPELINE MODE & OUTPUT
    # ========================================================================
    "MODE": "full",           # "full" or "climatology"
    "BASE_DIR": "/data/rainseason/output",  # All outputs go here

    # ========================================================================
    # PRECIPITATION INPUT
    # ========================================================================
    "PRECIP_PATH": "/data/chirps/chirps_daily_2001_2019.nc",
    "PRECIP_VAR": "precip",
    "PRECIP_START_DATE": None,  # Needed only for daily GeoTIFF stacks: "2001-01-01"

    # ========================================================================
    # ANALYSIS PERIOD
    # ========================================================================
    "START_YEAR": 2001,
    "END_YEAR": 2019,

    # ========================================================================
    # STUDY-AREA MASK LAYERS (None = layer not applied)
    # ========================================================================
    "LANDCOVER_PATH": None,
    "ARIDITY_PATH": None,
    "RANGELAND_FRACTION_PATH": None,
    "GPP_PATH": None,
    "LANDCOVER_CLASSES": [7, 8, 9, 10],
    "MIN_RANGELAND_FRACTION": 0.75,  # 0.9 for the strict mask

    # ========================================================================
    # DETECTION THRESHOLDS
    # ========================================================================
    "RATIO_THRESHOLD": 1.0,         # A2/A1 at or above this is double-season
    "HYDRO_YEAR_LEAD_DAYS": 30,     # Hydrological year starts this long before onset
    "ANOMALY_TOLERANCE_DAYS": 60,
    "VALID_YEAR_QUORUM": 0.75,

    # ========================================================================
    # PROCESSING & OUTPUT
    # ========================================================================
    "TILE_ROWS": 64,
    "N_WORKERS": 1,
    "TABLE_FORMAT": "parquet",      # "csv" or "parquet"

    # Note: Advanced settings (extrema windows, covariate thresholds,
    # plotting, cache) are configured in src/rainseason/schemas/param.py
    "visualization": {
        "enabled": True,
        "diagnostic_pixels": [],    # [(row, col), ...] for cumulative-anomaly plots
    },
}
