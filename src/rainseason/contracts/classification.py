"""Seasonality classification contract.

Every pixel with data is routed to exactly one of the single-season and
double-season extractors.
"""

import numpy as np
import xarray as xr
from rainseason.contracts.base import require


def assert_classified(ds: xr.Dataset) -> None:
    """Enforce classification stage contract.

    Parameters
    ----------
    ds : xr.Dataset
        Output of SeasonalityClassifier.classify()

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    for name in ("seasonality_ratio", "n_seasons", "amplitude_1", "amplitude_2"):
        require(
            name in ds.data_vars,
            f"Classification contract violated: '{name}' not found"
        )

    n_seasons = ds["n_seasons"]
    require(
        n_seasons.dtype.kind in {"i", "u"},
        f"Classification contract violated: n_seasons dtype is {n_seasons.dtype}, expected integer"
    )

    values = np.unique(n_seasons.values)
    require(
        set(values.tolist()) <= {0, 1, 2},
        f"Classification contract violated: n_seasons values {values.tolist()} outside {{0, 1, 2}}"
    )

    # A pixel with a fitted amplitude must be routed
    fitted = np.isfinite(ds["amplitude_1"].values)
    require(
        bool((n_seasons.values[fitted] > 0).all()),
        "Classification contract violated: fitted pixel left unrouted"
    )
