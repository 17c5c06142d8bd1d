import pytest
import xarray as xr
import numpy as np

from rainseason.pipeline.stage_cache import StageCache
from rainseason.setup_directories import setup_output_directories

from helpers.synthetic import write_precip_netcdf


@pytest.fixture
def stage_cache(temp_dir):
    cache = StageCache(temp_dir / "cache")
    yield cache
    cache.close()


@pytest.fixture
def tiny_dataset():
    """Small stage result for cache round trips."""
    return xr.Dataset(
        {"onset_1": (("y", "x"), np.array([[101.0, np.nan]]))},
        coords={"y": [10.0], "x": [35.0, 35.05]},
    )


@pytest.fixture
def pipeline_output_dirs(temp_dir):
    """Output directories for pipeline tests."""
    return setup_output_directories(temp_dir / "output")


@pytest.fixture
def precip_file(temp_dir, synthetic_precip):
    """``synthetic_precip`` on disk with leap days, as CHIRPS ships it."""
    return write_precip_netcdf(temp_dir / "chirps_daily.nc", synthetic_precip)


@pytest.fixture
def pipeline_config(make_config, temp_dir, precip_file):
    """InternalConfig for end-to-end runs on ``precip_file``."""
    def _make(**overrides):
        settings = {
            "BASE_DIR": str(temp_dir / "output"),
            "PRECIP_PATH": str(precip_file),
            "START_YEAR": 2001,
            "END_YEAR": 2005,
            "TILE_ROWS": 1,
            "visualization": {"dpi": 50, "figsize": [4, 4]},
        }
        settings.update(overrides)
        return make_config(**settings)
    return _make
