"""Tile processing: classify and detect seasons for a block of rows.

``compute_tile`` is a pure function of the runtime config and one
precipitation tile, so it can run in worker processes. ``SeasonProcessor``
wraps it with the stage cache and the failure policy and maps it over
tiles, serially or through a ``ProcessPoolExecutor``.
"""

import hashlib
import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import numpy as np
import xarray as xr

from rainseason.contracts import (
    ContractViolation,
    FailurePolicy,
    assert_classified,
    assert_daily_series,
    assert_season_dates,
)
from rainseason.season.detector import SeasonDetector
from rainseason.season.harmonics import SeasonalityClassifier

if TYPE_CHECKING:
    from rainseason.pipeline.stage_cache import StageCache
    from rainseason.schemas import InternalConfig

__all__ = ['compute_tile', 'tile_fingerprint', 'SeasonProcessor']

logger = logging.getLogger(__name__)

# Config sections a tile result depends on
TILE_PARAM_SECTIONS = ("mode", "period", "classifier", "detector", "hydro_year",
                       "anomaly", "covariates")


def tile_fingerprint(precip: xr.DataArray) -> str:
    """sha256 of a tile's values and coordinates.

    Keys cached results on the data itself, so tiles passed in memory (or
    rewritten in place on disk) never collide with an earlier run.
    """
    digest = hashlib.sha256()
    digest.update(np.ascontiguousarray(precip.values).tobytes())
    for dim in precip.dims:
        if dim in precip.coords:
            digest.update(np.ascontiguousarray(precip[dim].values).tobytes())
    return digest.hexdigest()

def compute_tile(config: "InternalConfig", precip: xr.DataArray) -> xr.Dataset:
    """Classify and detect seasons for one tile, enforcing stage contracts.

    Returns
    -------
    xr.Dataset
        Classification variables merged with the detector output.

    Raises
    ------
    ContractViolation
        If the input series or a stage output breaks its contract.
    """
    time_name = config.global_.coord_names.time
    assert_daily_series(precip, time_name)

    classes = SeasonalityClassifier(config).classify(precip)
    assert_classified(classes)

    seasons = SeasonDetector(config).detect(precip, classes["n_seasons"])
    ds = xr.merge([classes, seasons])
    assert_season_dates(ds)
    return ds


class SeasonProcessor:
    """Runs tiles through compute_tile() with caching and failure handling.

    **Failure policy:**

    - ``fail_fast``: a failing tile is recorded in the stage cache and the
      exception propagates, stopping the pipeline.
    - ``skip_tile``: the failure is recorded and logged, and the tile is
      left out of the result (its pixels stay missing after the merge).

    Contract violations are logged at CRITICAL; anything else is logged
    with its traceback.

    Example usage (typically called by orchestrator)::

        processor = SeasonProcessor(config, stage_cache=cache,
                                    input_fingerprint=fingerprint)
        results = processor.process_tiles(tiles)   # {tile_index: Dataset}
    """

    def __init__(self, config: "InternalConfig", stage_cache: Optional["StageCache"] = None,
                 input_fingerprint: str = ""):
        self.config = config
        self.stage_cache = stage_cache
        self.input_fingerprint = input_fingerprint
        self.n_workers = config.processor.n_workers
        self.failure_policy = FailurePolicy(config.processor.failure_policy)
        self.y_name = config.global_.coord_names.y

        logger.info("SeasonProcessor initialized: n_workers=%d, failure_policy=%s, cache=%s",
                    self.n_workers, self.failure_policy.value, stage_cache is not None)

    @staticmethod
    def stage_name(tile_index: int) -> str:
        return f"tile_{tile_index:04d}"

    def tile_params(self, precip: xr.DataArray) -> Dict:
        """Everything a tile result depends on, as plain JSON-able values."""
        params = self.config.model_dump(mode="json", include=set(TILE_PARAM_SECTIONS))
        y = precip[self.y_name].values
        params["rows"] = [float(y[0]), float(y[-1]), int(y.size)] if y.size else []
        params["shape"] = [int(s) for s in precip.shape]
        params["content"] = tile_fingerprint(precip)
        return params

    def _handle_failure(self, tile_index: int, error: Exception):
        """Log a tile failure and apply the failure policy."""
        stage = self.stage_name(tile_index)
        if isinstance(error, ContractViolation):
            logger.critical("Pipeline contract violated in %s: %s", stage, error)
        else:
            logger.exception("Error processing %s", stage)

        if self.failure_policy == FailurePolicy.FAIL_FAST:
            raise error
        logger.warning("Skipping %s (failure_policy=skip_tile)", stage)

    def process_tile(self, tile_index: int, precip: xr.DataArray) -> Optional[xr.Dataset]:
        """Process one tile in this process.

        Returns
        -------
        xr.Dataset or None
            None when the tile failed under the skip_tile policy.
        """
        stage = self.stage_name(tile_index)
        logger.info("Processing %s: %s", stage, dict(precip.sizes))
        try:
            if self.stage_cache is None:
                return compute_tile(self.config, precip)
            return self.stage_cache.compute_or_load(
                stage, self.tile_params(precip),
                lambda: compute_tile(self.config, precip),
                self.input_fingerprint,
            )
        except Exception as e:
            self._handle_failure(tile_index, e)
            return None

    def process_tiles(self, tiles: List[Tuple[int, xr.DataArray]]) -> Dict[int, xr.Dataset]:
        """Process all tiles; parallel when processor.n_workers > 1.

        Parameters
        ----------
        tiles : list of (int, xr.DataArray)
            Tile index and precipitation tile.

        Returns
        -------
        dict
            tile_index -> Dataset for every tile that succeeded.
        """
        if self.n_workers <= 1 or len(tiles) <= 1:
            results = {}
            for tile_index, precip in tiles:
                ds = self.process_tile(tile_index, precip)
                if ds is not None:
                    results[tile_index] = ds
            return results
        return self._process_parallel(tiles)

    def _process_parallel(self, tiles):
        results = {}
        pending = {}

        # Cache lookups and bookkeeping stay in this process
        for tile_index, precip in tiles:
            stage = self.stage_name(tile_index)
            if self.stage_cache is None:
                pending[tile_index] = (None, precip)
                continue
            params = self.tile_params(precip)
            key = self.stage_cache.make_key(stage, params, self.input_fingerprint)
            self.stage_cache.register(key, stage, params, self.input_fingerprint)
            if self.stage_cache.should_compute(key):
                pending[tile_index] = (key, precip)
            else:
                logger.debug("Cache hit: %s", stage)
                results[tile_index] = self.stage_cache.load(key)

        if not pending:
            return results

        logger.info("Submitting %d tile(s) to %d worker processes", len(pending), self.n_workers)
        with ProcessPoolExecutor(max_workers=self.n_workers) as executor:
            futures = {
                executor.submit(compute_tile, self.config, precip): tile_index
                for tile_index, (_, precip) in pending.items()
            }
            for future in as_completed(futures):
                tile_index = futures[future]
                key = pending[tile_index][0]
                try:
                    ds = future.result()
                except Exception as e:
                    if key is not None:
                        self.stage_cache.mark_stage_failed(key, f"{type(e).__name__}: {e}")
                    if self.failure_policy == FailurePolicy.FAIL_FAST:
                        for other in futures:
                            other.cancel()
                    self._handle_failure(tile_index, e)
                    continue
                if key is not None:
                    self.stage_cache.store(key, self.stage_name(tile_index), ds)
                logger.info("Finished %s", self.stage_name(tile_index))
                results[tile_index] = ds
        return results
