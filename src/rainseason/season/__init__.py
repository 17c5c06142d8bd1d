"""Rainy-season detection modules.

- harmonics: Seasonality classifier (one or two seasons)
- cumulative: Daily climatology and cumulative-anomaly curves
- extract: Single and double season onset/cessation
- hydro_year: Hydrological year anchoring
- annual: Per-year re-detection
- anomaly: Validity filter and aggregation
- covariates: Precipitation-pattern indices
- masks: Study-area mask
- detector: Per-pixel driver
"""

from rainseason.season.harmonics import SeasonalityClassifier
from rainseason.season.masks import StudyAreaMasker
from rainseason.season.detector import SeasonDetector, detect_pixel

__all__ = [
    "SeasonalityClassifier",
    "StudyAreaMasker",
    "SeasonDetector",
    "detect_pixel",
]
