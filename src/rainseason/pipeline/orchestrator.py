"""Pipeline orchestration.

Loads the inputs, splits the grid into row tiles, runs them through the
season processor (optionally in worker processes), builds the study-area
mask and writes tables, rasters and figures.
"""

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import numpy as np
import xarray as xr

from rainseason.contracts import assert_daily_series, assert_study_mask
from rainseason.io.loader import PrecipitationLoader, load_annual_bands, load_static_layer
from rainseason.io.tabular import (
    REQUIRED_ANNUAL_COLUMNS,
    build_annual_table,
    build_multi_annual_table,
    required_multi_annual_columns,
    write_table,
)
from rainseason.io.writer import DEFAULT_CRS, write_annual_raster, write_longterm_raster
from rainseason.pipeline.processor import SeasonProcessor
from rainseason.pipeline.stage_cache import StageCache, file_fingerprint
from rainseason.season.covariates import ANNUAL_COVARIATES
from rainseason.season.cumulative import longterm_curve
from rainseason.season.extract import cyclic_smooth
from rainseason.season.masks import StudyAreaMasker
from rainseason.setup_directories import (
    get_figure_path,
    get_log_path,
    get_raster_path,
    get_table_path,
    setup_output_directories,
)

if TYPE_CHECKING:
    from rainseason.schemas import InternalConfig

__all__ = ['PipelineOrchestrator']

logger = logging.getLogger(__name__)

LONGTERM_RASTER_VARIABLES = (
    "n_seasons", "seasonality_ratio", "onset_1", "cessation_1", "onset_2", "cessation_2",
    "hydro_year_start", "season_length", "season_length_sd", "onset_anomaly_sd",
    "map", "precipitation_cv", "mean_ugi", "mean_pci", "mean_sdii", "mean_rain_days",
    "mean_cdd",
)
ANNUAL_RASTER_VARIABLES = ("onset_anomaly", "annual_season_length") + ANNUAL_COVARIATES


class PipelineOrchestrator:
    """Runs the rainy-season pipeline end to end.

    This is the main entry point for running ``rainseason``.

    **Stages:**

    1. **Load**: Daily precipitation for the configured period, leap days
       removed.
    2. **Tiles**: The grid is cut into blocks of ``processor.tile_rows``
       rows. Each tile is classified (one or two seasons) and its season
       dates, annual anomalies and covariates are detected. With
       ``processor.n_workers > 1`` tiles run in worker processes.
    3. **Mask**: Study-area mask from the optional static layers.
    4. **Export**: df_multi_annual / df_annual tables, GeoTIFF layers and
       figures.

    **Caching:**

    With ``cache.enabled`` every tile result and the mask are stored under
    ``cache/`` and tracked in SQLite, so an interrupted or repeated run only
    recomputes what changed.

    **Logging:**

    All output goes to both console and ``logs/pipeline_<run_id>.log`` at
    the level in ``config.logging.level``.

    Example usage::

        from rainseason.schemas.initialization import init_runtime_config
        from rainseason.pipeline.orchestrator import PipelineOrchestrator

        config = init_runtime_config(args)
        orch = PipelineOrchestrator(config)
        outputs = orch.run()
    """

    def __init__(self, config: "InternalConfig"):
        """Initialize orchestrator.

        Parameters
        ----------
        config : InternalConfig
            Runtime configuration. If ``output_dirs`` is not set, the
            directories are created under ``base_dir``.
        """
        self.config = config
        if config.output_dirs is not None:
            self.output_dirs = {k: Path(v) for k, v in config.output_dirs.items()}
        elif config.base_dir is not None:
            self.output_dirs = setup_output_directories(config.base_dir)
        else:
            raise ValueError("Output directory required: set BASE_DIR or pass --base-dir")

        self.time_name = config.global_.coord_names.time
        self.y_name = config.global_.coord_names.y
        self.x_name = config.global_.coord_names.x

        self.stage_cache: Optional[StageCache] = None
        self.precip: Optional[xr.DataArray] = None
        self.crs: str = DEFAULT_CRS
        self.result: Optional[xr.Dataset] = None
        self.mask: Optional[xr.DataArray] = None
        self._start_time = None

    def _setup_logging(self):
        """Configure root logger with file and console handlers."""
        log_level = getattr(logging, self.config.logging.level.upper(), logging.INFO)
        log_path = get_log_path(self.output_dirs, self.config.run_id)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Clear existing handlers and add new ones
        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)

        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.info("Logging: level=%s, file=%s", self.config.logging.level, log_path)

        if self.config.cache.enabled:
            self.stage_cache = StageCache(self.output_dirs["cache"],
                                          stage_version=self.config.cache.stage_version,
                                          db_filename=self.config.processor.tracker_filename)
            logger.info("Stage cache: %s", self.stage_cache.db_path)

    def _make_tiles(self, precip: xr.DataArray) -> List[Tuple[int, xr.DataArray]]:
        """Blocks of ``processor.tile_rows`` rows."""
        n_rows = precip.sizes[self.y_name]
        step = self.config.processor.tile_rows
        return [
            (index, precip.isel({self.y_name: slice(start, start + step)}))
            for index, start in enumerate(range(0, n_rows, step))
        ]

    def _merge_tiles(self, results: Dict[int, xr.Dataset], reference: xr.DataArray) -> xr.Dataset:
        """Concatenate tile results in row order on the full grid.

        Rows of skipped tiles are filled with missing values (n_seasons 0).
        """
        if not results:
            raise RuntimeError("No tile produced a result")
        merged = xr.concat([results[k] for k in sorted(results)], dim=self.y_name,
                           data_vars="minimal", coords="minimal", compat="override")
        merged = merged.reindex({self.y_name: reference[self.y_name]},
                                fill_value={"n_seasons": 0})
        merged["n_seasons"] = merged["n_seasons"].astype(np.int8)
        for name in merged.data_vars:
            dims = [d for d in ("year", self.y_name, self.x_name) if d in merged[name].dims]
            merged[name] = merged[name].transpose(*dims)
        return merged

    def _build_mask(self, reference: xr.DataArray) -> xr.DataArray:
        """Study-area mask from the configured static layers."""
        inputs = self.config.input
        masker = StudyAreaMasker(self.config)

        def compute():
            layers = {}
            if inputs.landcover_path:
                layers["landcover"] = load_static_layer(inputs.landcover_path, self.y_name,
                                                        self.x_name, reference=reference)
            if inputs.aridity_path:
                layers["aridity"] = load_static_layer(inputs.aridity_path, self.y_name,
                                                      self.x_name, reference=reference)
            if inputs.rangeland_fraction_path:
                layers["rangeland_fraction"] = load_static_layer(
                    inputs.rangeland_fraction_path, self.y_name, self.x_name, reference=reference)
            if inputs.gpp_path:
                layers["gpp"] = load_annual_bands(inputs.gpp_path,
                                                  self.config.global_.var_names.gpp,
                                                  self.y_name, self.x_name, reference=reference)
            return masker.build(reference, **layers).to_dataset(name="study_mask")

        if self.stage_cache is None:
            mask = compute()["study_mask"]
        else:
            params = self.config.model_dump(mode="json", include={"mask", "global_"})
            params["grid"] = [int(s) for s in reference.shape]
            fingerprint = "|".join(file_fingerprint(p) for p in (
                inputs.landcover_path, inputs.aridity_path,
                inputs.rangeland_fraction_path, inputs.gpp_path))
            mask = self.stage_cache.compute_or_load("study_mask", params, compute,
                                                    fingerprint)["study_mask"]

        mask = mask.astype(bool)
        assert_study_mask(mask, reference)
        return mask

    def _export_tables(self, ds: xr.Dataset, mask: xr.DataArray) -> Dict[str, Path]:
        out = self.config.output
        paths = {}
        required = required_multi_annual_columns(self.config.mode)
        df_multi = build_multi_annual_table(ds, mask, required, self.y_name, self.x_name)
        paths["df_multi_annual"] = write_table(
            df_multi, get_table_path(self.output_dirs, "df_multi_annual", out.table_format),
            out.table_format, out.compression, required)

        if self.config.mode == "full":
            df_annual = build_annual_table(ds, mask, self.y_name, self.x_name)
            paths["df_annual"] = write_table(
                df_annual, get_table_path(self.output_dirs, "df_annual", out.table_format),
                out.table_format, out.compression, REQUIRED_ANNUAL_COLUMNS)
        return paths

    def _export_rasters(self, ds: xr.Dataset, mask: xr.DataArray) -> Dict[str, Path]:
        masked = ds.where(mask)
        paths = {
            "season_variables": write_longterm_raster(
                masked, LONGTERM_RASTER_VARIABLES,
                get_raster_path(self.output_dirs, "season_variables"), self.y_name, self.x_name,
                crs=self.crs),
        }
        if self.config.mode == "full":
            paths["annual_variables"] = write_annual_raster(
                masked, ANNUAL_RASTER_VARIABLES,
                get_raster_path(self.output_dirs, "annual_variables"), self.y_name, self.x_name,
                crs=self.crs)
        return paths

    def _export_figures(self, ds: xr.Dataset, mask: xr.DataArray,
                        precip: xr.DataArray) -> Dict[str, str]:
        from rainseason.visualization.plotter import SeasonPlotter

        viz = self.config.visualization
        plotter = SeasonPlotter(self.config)
        paths = {
            "season_maps": plotter.plot_season_maps(
                ds, get_figure_path(self.output_dirs, "season_maps", viz.output_format), mask),
        }

        ny, nx = precip.sizes[self.y_name], precip.sizes[self.x_name]
        for iy, ix in viz.diagnostic_pixels:
            if not (0 <= iy < ny and 0 <= ix < nx):
                logger.warning("Diagnostic pixel (%d, %d) outside %dx%d grid", iy, ix, ny, nx)
                continue
            series = precip.isel({self.y_name: iy, self.x_name: ix}).values
            curve = longterm_curve(series)
            pixel = ds.isel({self.y_name: iy, self.x_name: ix})
            dates = [float(pixel[name]) for name in ("onset_1", "cessation_1",
                                                      "onset_2", "cessation_2")]
            smoothed = None
            if int(pixel["n_seasons"]) == 2:
                smoothed = cyclic_smooth(curve, self.config.detector.smoothing_half_width)
            title, stem = plotter.pixel_title(ds, iy, ix)
            paths[stem] = plotter.plot_pixel_curve(
                curve, dates, get_figure_path(self.output_dirs, stem, viz.output_format),
                title=title, smoothed=smoothed)
        return paths

    def _log_summary(self, ds: xr.Dataset, mask: xr.DataArray):
        n_seasons = ds["n_seasons"].values
        logger.info("Pixels: total=%d, single=%d, double=%d, no-data=%d, in study area=%d",
                    n_seasons.size, int((n_seasons == 1).sum()), int((n_seasons == 2).sum()),
                    int((n_seasons == 0).sum()), int(mask.sum()))
        if "n_valid_years" in ds:
            retained = ds["n_valid_years"].where(mask)
            logger.info("Pixels passing the year quorum: %d",
                        int((retained > 0).sum()))
        if self.stage_cache:
            stats = self.stage_cache.get_statistics()
            logger.info("Stage cache: total=%d, completed=%d, failed=%d",
                        stats.get('total', 0), stats.get('completed', 0), stats.get('failed', 0))

    def run(self, precip: Optional[xr.DataArray] = None) -> Dict[str, object]:
        """Run the pipeline to completion.

        Parameters
        ----------
        precip : xr.DataArray, optional
            Pre-loaded leap-free precipitation; loaded from
            ``input.precipitation_path`` when omitted.

        Returns
        -------
        dict
            Output name -> path of every table, raster and figure written.

        Raises
        ------
        ContractViolation
            On a broken stage contract under the fail_fast policy.
        FileNotFoundError
            If an input file is missing.
        """
        self._setup_logging()
        self._start_time = time.time()

        logger.info("=" * 60)
        logger.info("Starting Rainy Season Pipeline (mode=%s, run_id=%s)",
                    self.config.mode, self.config.run_id)
        logger.info("=" * 60)

        try:
            if precip is None:
                precip = PrecipitationLoader(self.config).load()
            assert_daily_series(precip, self.time_name)
            self.precip = precip
            self.crs = precip.attrs.get("crs") or DEFAULT_CRS

            reference = precip.isel({self.time_name: 0}, drop=True)
            tiles = self._make_tiles(precip)
            logger.info("Processing %d tile(s) of up to %d rows", len(tiles),
                        self.config.processor.tile_rows)

            processor = SeasonProcessor(self.config, stage_cache=self.stage_cache,
                                        input_fingerprint=file_fingerprint(
                                            self.config.input.precipitation_path))
            results = processor.process_tiles(tiles)
            self.result = self._merge_tiles(results, reference)
            self.result.attrs["crs"] = self.crs
            self.mask = self._build_mask(reference)

            outputs: Dict[str, object] = {}
            outputs.update(self._export_tables(self.result, self.mask))
            if self.config.output.write_rasters:
                outputs.update(self._export_rasters(self.result, self.mask))
            if self.config.visualization.enabled:
                outputs.update(self._export_figures(self.result, self.mask, precip))

            self._log_summary(self.result, self.mask)
            return outputs
        finally:
            self.stop()

    def stop(self):
        """Close the stage cache and log the runtime. Safe to call multiple times."""
        elapsed = time.time() - self._start_time if self._start_time else 0
        if self.stage_cache:
            self.stage_cache.close()
            self.stage_cache = None
        logger.info("=" * 60)
        logger.info("Pipeline finished. Runtime: %.1f seconds", elapsed)
        logger.info("=" * 60)
