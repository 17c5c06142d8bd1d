"""Formal pipeline invariants.

This file documents what each stage MUST produce. Use it as a reviewer
anchor and system reference.
"""

PIPELINE_INVARIANTS = {
    "series": [
        "Precipitation has a 'time' dimension of daily steps without gaps",
        "Feb 29 removed; length is a whole number of 365-day years",
        "Series starts on 1 January",
        "Values are non-negative (mm/day); missing allowed only as whole-pixel no-data",
    ],

    "classification": [
        "seasonality_ratio, amplitude_1, amplitude_2, n_seasons exist",
        "n_seasons is integer in {0, 1, 2}; 0 only for no-data pixels",
        "Every fitted pixel is routed to exactly one extractor",
        "seasonality_ratio is missing where amplitude_1 < min_amplitude",
    ],

    "seasons": [
        "onset in 1..365; onset <= cessation < onset + 365",
        "Second season present only where n_seasons == 2",
        "hydro_year_start in 1..365",
        "SDs are missing, never zero, when no year is retained",
    ],

    "mask": [
        "Boolean, same dims and shape as the precipitation grid",
        "Equals the AND of land-cover, aridity, land-cover fraction and zero-productivity masks",
    ],

    "tables": [
        "df_multi_annual: one row per masked-in pixel",
        "df_annual: one row per masked-in pixel and retained year",
        "No missing values in required covariate columns",
    ],
}

# Which stages are optional vs required
STAGE_REQUIREMENTS = {
    "series": "REQUIRED",
    "classification": "REQUIRED",
    "seasons": "REQUIRED",
    "mask": "REQUIRED",      # All-True when no static layers are configured
    "tables": "REQUIRED",
}
