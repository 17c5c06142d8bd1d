"""Study-area mask.

A pixel is in the study area when it is rangeland by land cover, sits in
the dryland aridity band, is mostly rangeland at sub-pixel scale, and is
productive in most years. Missing input values exclude the pixel; a layer
that is not supplied does not restrict anything.
"""

import logging
from typing import Optional

import xarray as xr

__all__ = [
    'landcover_mask',
    'aridity_mask',
    'rangeland_fraction_mask',
    'zero_productivity_mask',
    'combine_masks',
    'StudyAreaMasker',
]

logger = logging.getLogger(__name__)


def landcover_mask(landcover: xr.DataArray, classes) -> xr.DataArray:
    """True where the land-cover class is one of ``classes``."""
    return landcover.isin(list(classes)).fillna(False).astype(bool)


def aridity_mask(aridity: xr.DataArray, aridity_min: float, aridity_max: float) -> xr.DataArray:
    """True where aridity_min <= AI < aridity_max."""
    return ((aridity >= aridity_min) & (aridity < aridity_max)).fillna(False).astype(bool)


def rangeland_fraction_mask(fraction: xr.DataArray, min_fraction: float) -> xr.DataArray:
    return (fraction >= min_fraction).fillna(False).astype(bool)


def zero_productivity_mask(gpp: xr.DataArray, max_fraction: float,
                           year_dim: str = "year") -> xr.DataArray:
    """True where fewer than ``max_fraction`` of the years have GPP <= 0.

    Years without a GPP value are left out of the fraction; a pixel with no
    GPP at all is excluded.
    """
    observed = gpp.notnull().sum(year_dim)
    zero_years = (gpp <= 0).where(gpp.notnull()).sum(year_dim)
    fraction = zero_years / observed.where(observed > 0)
    return (fraction < max_fraction).fillna(False).astype(bool)


def combine_masks(*masks: xr.DataArray) -> xr.DataArray:
    """Logical AND of the given masks (all True when given only one)."""
    if not masks:
        raise ValueError("combine_masks needs at least one mask")
    combined = masks[0]
    for mask in masks[1:]:
        combined = combined & mask
    return combined.astype(bool)


class StudyAreaMasker:
    """Build the study-area mask from optional static layers.

    Example usage::

        masker = StudyAreaMasker(config)
        mask = masker.build(reference=precip.isel(time=0),
                            landcover=lc, aridity=ai)
    """

    def __init__(self, config):
        self.landcover_classes = list(config.mask.landcover_classes)
        self.aridity_min = config.mask.aridity_min
        self.aridity_max = config.mask.aridity_max
        self.min_rangeland_fraction = config.mask.min_rangeland_fraction
        self.zero_productivity_fraction = config.mask.zero_productivity_fraction

        logger.info("StudyAreaMasker initialized: classes=%s, aridity=[%s, %s), "
                    "rangeland>=%s, zero-GPP<%s", self.landcover_classes, self.aridity_min,
                    self.aridity_max, self.min_rangeland_fraction,
                    self.zero_productivity_fraction)

    def build(self, reference: xr.DataArray,
              landcover: Optional[xr.DataArray] = None,
              aridity: Optional[xr.DataArray] = None,
              rangeland_fraction: Optional[xr.DataArray] = None,
              gpp: Optional[xr.DataArray] = None) -> xr.DataArray:
        """AND of the component masks on the grid of ``reference``.

        Parameters
        ----------
        reference : xr.DataArray
            2-D array on the analysis grid; only its dims and coords are used.
        landcover, aridity, rangeland_fraction : xr.DataArray, optional
            Static layers aligned to ``reference``.
        gpp : xr.DataArray, optional
            Annual GPP with a ``year`` dimension.
        """
        everywhere = xr.ones_like(reference, dtype=bool)
        layers = {
            "landcover": everywhere if landcover is None
            else landcover_mask(landcover, self.landcover_classes),
            "aridity": everywhere if aridity is None
            else aridity_mask(aridity, self.aridity_min, self.aridity_max),
            "rangeland_fraction": everywhere if rangeland_fraction is None
            else rangeland_fraction_mask(rangeland_fraction, self.min_rangeland_fraction),
            "zero_productivity": everywhere if gpp is None
            else zero_productivity_mask(gpp, self.zero_productivity_fraction),
        }
        for name, layer in layers.items():
            logger.debug("Mask layer %s keeps %d of %d pixels", name,
                         int(layer.sum()), layer.size)

        mask = combine_masks(*[layer.reindex_like(reference, fill_value=False)
                               for layer in layers.values()])
        mask.name = "study_mask"
        logger.info("Study-area mask keeps %d of %d pixels", int(mask.sum()), mask.size)
        return mask
