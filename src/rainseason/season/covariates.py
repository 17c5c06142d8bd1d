"""Precipitation-pattern covariates per hydrological year.

Each index is computed on the 365 days starting at the pixel's
hydrological year start:

- annual_precipitation: total rain (mm)
- ugi: unranked Gini index of the chronological cumulative distribution
- pci: precipitation concentration index (Oliver, 1980) over ~monthly blocks
- sdii: simple daily intensity index, mean rain on rain days
- rain_days: number of days at or above the rain-day threshold
- cdd: longest run of consecutive dry days
"""

import numpy as np

from rainseason.season.hydro_year import hydro_year_offsets

DAYS_PER_YEAR = 365
ANNUAL_COVARIATES = ("annual_precipitation", "ugi", "pci", "sdii", "rain_days", "cdd")


def unranked_gini(year: np.ndarray) -> float:
    """(2/n) Σ |i/n - Q_i| with Q_i the cumulative fraction of the total.

    0 for perfectly even rain; missing for a rainless year.
    """
    year = np.asarray(year, dtype=float)
    total = year.sum()
    if not np.isfinite(total) or total <= 0:
        return np.nan
    n = year.size
    uniform = np.arange(1, n + 1) / n
    observed = np.cumsum(year) / total
    return float(2.0 / n * np.abs(uniform - observed).sum())


def _block_edges(n_days: int, n_blocks: int) -> np.ndarray:
    # 30-day blocks, the last one absorbing the remainder (331-365)
    width = n_days // n_blocks
    edges = np.arange(n_blocks + 1) * width
    edges[-1] = n_days
    return edges


def precipitation_concentration(year: np.ndarray, n_blocks: int = 12) -> float:
    """100 Σ p_m² / (Σ p_m)² over ``n_blocks`` blocks; missing for a dry year."""
    year = np.asarray(year, dtype=float)
    total = year.sum()
    if not np.isfinite(total) or total <= 0:
        return np.nan
    edges = _block_edges(year.size, n_blocks)
    blocks = np.add.reduceat(year, edges[:-1])
    return float(100.0 * (blocks ** 2).sum() / total ** 2)


def daily_intensity(year: np.ndarray, rain_day_threshold: float = 1.0) -> float:
    wet = np.asarray(year, dtype=float)
    wet = wet[wet >= rain_day_threshold]
    if wet.size == 0:
        return np.nan
    return float(wet.mean())


def longest_dry_spell(year: np.ndarray, dry_day_threshold: float = 1.0) -> int:
    """Longest run of consecutive days below ``dry_day_threshold``."""
    dry = np.asarray(year, dtype=float) < dry_day_threshold
    if not dry.any():
        return 0
    # Run lengths from the positions where dryness switches on and off
    padded = np.concatenate(([False], dry, [False])).astype(np.int8)
    changes = np.flatnonzero(np.diff(padded))
    return int((changes[1::2] - changes[0::2]).max())


def year_covariates(year: np.ndarray, rain_day_threshold: float = 1.0,
                    dry_day_threshold: float = 1.0, pci_blocks: int = 12) -> np.ndarray:
    """All ANNUAL_COVARIATES for one 365-day window, in that order."""
    year = np.asarray(year, dtype=float)
    if not np.isfinite(year).all():
        return np.full(len(ANNUAL_COVARIATES), np.nan)
    return np.array([
        year.sum(),
        unranked_gini(year),
        precipitation_concentration(year, pci_blocks),
        daily_intensity(year, rain_day_threshold),
        float((year >= rain_day_threshold).sum()),
        float(longest_dry_spell(year, dry_day_threshold)),
    ])


def annual_covariates(series: np.ndarray, start: float, rain_day_threshold: float = 1.0,
                      dry_day_threshold: float = 1.0, pci_blocks: int = 12) -> np.ndarray:
    """(n_years, 6) covariates per hydrological year; incomplete years are NaN."""
    series = np.asarray(series, dtype=float)
    offsets = hydro_year_offsets(series.size, start)
    out = np.full((offsets.size, len(ANNUAL_COVARIATES)), np.nan)
    for y, offset in enumerate(offsets):
        if offset < 0:
            continue
        out[y] = year_covariates(series[offset:offset + DAYS_PER_YEAR],
                                 rain_day_threshold, dry_day_threshold, pci_blocks)
    return out


def longterm_covariates(annual: np.ndarray) -> dict:
    """Long-term summaries of annual_covariates() output.

    ``map`` is the mean annual precipitation and ``precipitation_cv`` its
    population coefficient of variation; the other covariates are averaged
    over the years where they are defined.
    """
    annual = np.asarray(annual, dtype=float)
    totals = annual[:, 0]
    totals = totals[np.isfinite(totals)]
    out = {"map": np.nan, "precipitation_cv": np.nan}
    if totals.size:
        out["map"] = float(totals.mean())
        if out["map"] > 0:
            out["precipitation_cv"] = float(totals.std(ddof=0) / out["map"])
    for k, name in enumerate(ANNUAL_COVARIATES[1:], start=1):
        column = annual[:, k]
        column = column[np.isfinite(column)]
        out[f"mean_{name}"] = float(column.mean()) if column.size else np.nan
    return out
