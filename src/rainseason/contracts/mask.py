"""Study-area mask contract."""

import xarray as xr
from rainseason.contracts.base import require


def assert_study_mask(mask: xr.DataArray, reference: xr.DataArray) -> None:
    """Enforce that the mask is boolean and lies on the precipitation grid.

    Parameters
    ----------
    mask : xr.DataArray
        Combined study-area mask.
    reference : xr.DataArray
        Any 2D layer on the analysis grid.

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(
        mask.dtype == bool,
        f"Mask contract violated: dtype is {mask.dtype}, expected bool"
    )
    require(
        mask.dims == reference.dims and mask.shape == reference.shape,
        f"Mask contract violated: mask {dict(mask.sizes)} does not match grid {dict(reference.sizes)}"
    )
