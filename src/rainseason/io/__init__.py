"""Input and output.

- loader: Daily precipitation and static/annual layers
- writer: GeoTIFF export
- tabular: df_multi_annual / df_annual export
"""

from rainseason.io.loader import PrecipitationLoader, load_annual_bands, load_static_layer
from rainseason.io.writer import write_annual_raster, write_longterm_raster
from rainseason.io.tabular import build_annual_table, build_multi_annual_table, write_table

__all__ = [
    "PrecipitationLoader",
    "load_static_layer",
    "load_annual_bands",
    "write_longterm_raster",
    "write_annual_raster",
    "build_multi_annual_table",
    "build_annual_table",
    "write_table",
]
