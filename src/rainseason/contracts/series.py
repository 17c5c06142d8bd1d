"""Daily precipitation series contract.

Enforces the guarantee that the precipitation cube handed to the detector
is a gap-free daily series of whole 365-day years (Feb 29 removed) with
non-negative values.
"""

import numpy as np
import pandas as pd
import xarray as xr
from rainseason.contracts.base import require


def assert_daily_series(da: xr.DataArray, time_name: str = "time") -> None:
    """Enforce daily series contract.

    Called after loading and leap-day removal, before classification.

    Parameters
    ----------
    da : xr.DataArray
        Precipitation with a time dimension (mm/day).
    time_name : str
        Name of the time dimension (from config).

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(
        time_name in da.dims,
        f"Series contract violated: missing '{time_name}' dimension"
    )

    times = pd.DatetimeIndex(da[time_name].values)
    require(
        len(times) > 0 and len(times) % 365 == 0,
        f"Series contract violated: {len(times)} days is not a whole number of 365-day years"
    )
    require(
        times[0].month == 1 and times[0].day == 1,
        f"Series contract violated: series starts on {times[0].date()}, expected 1 January"
    )

    expected = pd.date_range(times[0], times[-1], freq="D")
    expected = expected[~((expected.month == 2) & (expected.day == 29))]
    require(
        len(expected) == len(times) and bool((expected == times.normalize()).all()),
        "Series contract violated: daily steps have gaps or leap days remain"
    )

    values = np.asarray(da.values)
    finite = values[np.isfinite(values)]
    require(
        finite.size == 0 or float(finite.min()) >= 0.0,
        f"Series contract violated: negative precipitation (min={finite.min() if finite.size else 'n/a'})"
    )
