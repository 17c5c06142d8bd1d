"""Root-level pytest fixtures for rainseason test suite.

Provides shared configuration fixtures following Pydantic-based architecture.
All tests must use these fixtures instead of creating raw dict configs.
"""

import numpy as np
import pytest
from pathlib import Path
import tempfile
import shutil

from rainseason.schemas import ParamConfig, UserConfig, resolve_config

from helpers.synthetic import box_series, make_precip_grid


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults.

    Use this as the base for all test configs. Override specific values
    using user_config or by creating custom UserConfig instances.
    """
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides).

    Use this when tests don't care about specific config values and just
    need a valid InternalConfig to pass to constructors.

    Examples
    --------
    >>> def test_classifier_init(internal_config):
    ...     clf = SeasonalityClassifier(internal_config)
    ...     assert clf.ratio_threshold == 1.0
    """
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Use this when you need to override specific values for a test.
    Returns a callable that accepts UserConfig-compatible kwargs.

    Examples
    --------
    >>> def test_custom_tolerance(make_config):
    ...     config = make_config(anomaly_tolerance_days=30)
    ...     assert config.anomaly.tolerance_days == 30
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user, None)
        else:
            return resolve_config(param_config, None, None)

    return _make


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


# =============================================================================
# Synthetic Precipitation Fixtures
# =============================================================================

@pytest.fixture
def single_season_series():
    """Five identical years raining 10 mm/day on days 101-260."""
    return box_series(5, [(101, 260)])


@pytest.fixture
def double_season_series():
    """Five identical years raining on days 61-120 and 221-280."""
    return box_series(5, [(61, 120), (221, 280)])


@pytest.fixture
def synthetic_precip():
    """(time, y, x) grid 2001-2005: single-season, double-season and dry columns."""
    return make_precip_grid([
        box_series(5, [(101, 260)]),
        box_series(5, [(61, 120), (221, 280)]),
        np.zeros(5 * 365),
    ], n_rows=2, start_year=2001)


@pytest.fixture
def season_dataset(make_config, synthetic_precip):
    """Merged classification and detection of ``synthetic_precip``."""
    from rainseason.pipeline.processor import compute_tile

    config = make_config(START_YEAR=2001, END_YEAR=2005)
    return compute_tile(config, synthetic_precip)
