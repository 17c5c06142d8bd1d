"""Season date contract.

Enforces that detected long-term dates are well formed: onset is a
day-of-year, cessation follows onset by less than a year, the second
season exists only for double-season pixels, and the hydrological year
start is a valid day-of-year.
"""

import numpy as np
import xarray as xr
from rainseason.contracts.base import require


def _check_pair(onset: np.ndarray, cessation: np.ndarray, label: str) -> None:
    present = np.isfinite(onset)
    require(
        bool((np.isfinite(cessation) == present).all()),
        f"Season contract violated: {label} onset and cessation missing at different pixels"
    )
    on = onset[present]
    off = cessation[present]
    require(
        bool(((on >= 1) & (on <= 365)).all()),
        f"Season contract violated: {label} onset outside 1..365"
    )
    require(
        bool(((off >= on) & (off < on + 365)).all()),
        f"Season contract violated: {label} cessation not within a year after onset"
    )


def assert_season_dates(ds: xr.Dataset) -> None:
    """Enforce season detection contract.

    Parameters
    ----------
    ds : xr.Dataset
        Output of SeasonDetector.detect(), merged with the classification.

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    for name in ("onset_1", "cessation_1", "onset_2", "cessation_2",
                 "hydro_year_start", "n_seasons"):
        require(name in ds.data_vars, f"Season contract violated: '{name}' not found")

    _check_pair(ds["onset_1"].values, ds["cessation_1"].values, "season 1")
    _check_pair(ds["onset_2"].values, ds["cessation_2"].values, "season 2")

    single = ds["n_seasons"].values == 1
    require(
        bool(np.isnan(ds["onset_2"].values[single]).all()),
        "Season contract violated: single-season pixel carries a second season"
    )

    start = ds["hydro_year_start"].values
    start = start[np.isfinite(start)]
    require(
        bool(((start >= 1) & (start <= 365)).all()),
        "Season contract violated: hydro_year_start outside 1..365"
    )
