"""`rainseason` - rainy-season onset/cessation and precipitation covariates.

Subpackages:
- season: Seasonality classification, onset/cessation detection, covariates
- io: GeoTIFF/NetCDF loading, raster and tabular export
- pipeline: Orchestrator, tile processor, stage cache
- visualization: Season maps and diagnostic plots
"""

__version__ = "0.1.0"
