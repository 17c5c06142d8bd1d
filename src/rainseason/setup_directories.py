"""
Directory setup for the rainseason pipeline.

Layout under the base directory:
- cache/    stage cache NetCDF files and the SQLite tracker
- rasters/  GeoTIFF covariate layers
- tables/   df_multi_annual / df_annual exports
- figures/  season maps and diagnostic curves
- logs/     pipeline logs
"""

from pathlib import Path
from datetime import datetime, timezone


def setup_output_directories(base_output_dir):
    """
    Set up organized output directory structure.

    Parameters
    ----------
    base_output_dir : str or Path
        Base output directory.

    Returns
    -------
    dict
        Dictionary with paths: 'base', 'cache', 'rasters', 'tables', 'figures', 'logs'
    """
    base_output_dir = Path(base_output_dir).expanduser().resolve()

    directories = {
        "base": base_output_dir,
        "cache": base_output_dir / "cache",
        "rasters": base_output_dir / "rasters",
        "tables": base_output_dir / "tables",
        "figures": base_output_dir / "figures",
        "logs": base_output_dir / "logs",
    }

    for path in directories.values():
        path.mkdir(parents=True, exist_ok=True)

    return directories


def get_table_path(output_dirs, name, table_format="csv"):
    """
    Get tabular export path.

    Example
    -------
    >>> get_table_path(dirs, "df_annual", "parquet")
    Path('output/tables/df_annual.parquet')
    """
    ext = table_format if not table_format.startswith('.') else table_format[1:]
    table_dir = Path(output_dirs["tables"])
    table_dir.mkdir(parents=True, exist_ok=True)
    return table_dir / f"{name}.{ext}"


def get_raster_path(output_dirs, name):
    """Get GeoTIFF export path: rasters/<name>.tif"""
    raster_dir = Path(output_dirs["rasters"])
    raster_dir.mkdir(parents=True, exist_ok=True)
    return raster_dir / f"{name}.tif"


def get_figure_path(output_dirs, plot_type, output_format="png"):
    """
    Get figure path.

    Example
    -------
    >>> get_figure_path(dirs, "season_maps")
    Path('output/figures/season_maps.png')
    """
    figure_dir = Path(output_dirs["figures"])
    figure_dir.mkdir(parents=True, exist_ok=True)
    return figure_dir / f"{plot_type}.{output_format}"


def get_log_path(output_dirs, run_id=None):
    """
    Get organized log file path.

    Parameters
    ----------
    output_dirs : dict
        Output directories from setup_output_directories()
    run_id : str, optional
        Run identifier. If None, a timestamped name is used.

    Returns
    -------
    Path
        Full path to log file
    """
    log_dir = Path(output_dirs["logs"])
    log_dir.mkdir(parents=True, exist_ok=True)

    if run_id is None:
        run_id = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")

    return log_dir / f"pipeline_{run_id}.log"
