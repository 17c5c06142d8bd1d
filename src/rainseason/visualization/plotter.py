"""Season map and diagnostic curve figures.

Renders the long-term season variables as a 2x2 map panel and, for
selected pixels, the cumulative-anomaly curve with its detected onset and
cessation marked.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence, Tuple

import numpy as np
import xarray as xr
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

__all__ = ['SeasonPlotter']

logger = logging.getLogger(__name__)

# (variable, title, colorbar label, cyclic day-of-year colour map)
MAP_PANELS = (
    ("seasonality_ratio", "Seasonality ratio (A2/A1)", "ratio", False),
    ("onset_1", "Onset of season 1", "day of year", True),
    ("season_length", "Rainy season length", "days", False),
    ("onset_anomaly_sd", "SD of onset anomaly", "days", False),
)


class SeasonPlotter:
    """Generates season maps and per-pixel diagnostic curves.

    **Season maps:** 2x2 panel of seasonality ratio, onset of the first
    season, total season length and the inter-annual SD of onset. Onset
    uses a cyclic colour map so that 31 December and 1 January look alike.

    **Pixel curves:** long-term cumulative anomaly of one pixel with
    vertical markers at each onset (trough) and cessation (peak).

    **Configuration:** dpi, figsize, output_format, cmap and doy_cmap come
    from ``config.visualization``.

    Example usage::

        plotter = SeasonPlotter(config)
        plotter.plot_season_maps(seasons, output_path=figures / "season_maps.png")
        plotter.plot_pixel_curve(curve, dates, output_path=figures / "pixel_3_4_curve.png")
    """

    def __init__(self, config):
        """Initialize plotter.

        Parameters
        ----------
        config : InternalConfig
            Uses the visualization section and global coordinate names.
        """
        viz = config.visualization
        self.dpi = viz.dpi
        self.figsize = tuple(viz.figsize)
        self.output_format = viz.output_format
        self.cmap = viz.cmap
        self.doy_cmap = viz.doy_cmap
        self.y_name = config.global_.coord_names.y
        self.x_name = config.global_.coord_names.x

        logger.info("SeasonPlotter initialized (format=%s, dpi=%d)", self.output_format, self.dpi)

    def _plot_field(self, ax: plt.Axes, da: xr.DataArray, title: str, label: str,
                    cyclic: bool) -> None:
        values = da.transpose(self.y_name, self.x_name).values.astype(float)
        masked = np.ma.masked_invalid(values)
        kwargs = {"cmap": self.doy_cmap, "vmin": 1, "vmax": 365} if cyclic else {"cmap": self.cmap}
        im = ax.pcolormesh(da[self.x_name].values, da[self.y_name].values, masked,
                           shading='auto', **kwargs)
        plt.colorbar(im, ax=ax, label=label, fraction=0.046, pad=0.04)
        ax.set_title(title, fontsize=12, fontweight='bold', pad=10)
        ax.set_xlabel(self.x_name, fontsize=11)
        ax.set_ylabel(self.y_name, fontsize=11)
        ax.set_aspect('equal', adjustable='box')

    def _save_figure(self, fig: plt.Figure, output_path: Path) -> str:
        """Save figure in configured format."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_file = output_path.with_suffix(f'.{self.output_format}')

        fig.savefig(
            output_file,
            dpi=self.dpi,
            bbox_inches='tight',
            format=self.output_format
        )

        plt.close(fig)
        logger.info("Plot saved: %s", output_file)
        return str(output_file)

    def plot_season_maps(self, ds: xr.Dataset, output_path: Path,
                         mask: Optional[xr.DataArray] = None) -> str:
        """2x2 map panel of the long-term season variables.

        Parameters
        ----------
        ds : xr.Dataset
            Merged classification and detector output.
        output_path : Path
            Figure path; the suffix is replaced by the configured format.
        mask : xr.DataArray, optional
            Study-area mask; pixels outside it are blanked.

        Returns
        -------
        str
            Path of the saved figure.
        """
        fig, axes = plt.subplots(2, 2, figsize=self.figsize, dpi=self.dpi)
        for ax, (name, title, label, cyclic) in zip(axes.ravel(), MAP_PANELS):
            if name not in ds:
                ax.set_visible(False)
                continue
            da = ds[name] if mask is None else ds[name].where(mask)
            self._plot_field(ax, da, title, label, cyclic)
        fig.tight_layout()
        return self._save_figure(fig, output_path)

    def plot_pixel_curve(self, curve: np.ndarray, dates: Sequence[float], output_path: Path,
                         title: str = "Cumulative rainfall anomaly",
                         smoothed: Optional[np.ndarray] = None) -> str:
        """Cumulative-anomaly curve with onset/cessation markers.

        Parameters
        ----------
        curve : np.ndarray
            365-day cumulative anomaly.
        dates : sequence of float
            (onset1, cessation1[, onset2, cessation2]) as day-of-year;
            missing entries are skipped and unwrapped cessations folded
            back onto the calendar.
        smoothed : np.ndarray, optional
            Smoothed curve drawn on top (double-season pixels).
        """
        days = np.arange(1, len(curve) + 1)
        fig, ax = plt.subplots(figsize=(self.figsize[0], self.figsize[1] / 2), dpi=self.dpi)
        ax.plot(days, curve, color='#333333', linewidth=1.2, label='Cumulative anomaly')
        if smoothed is not None:
            ax.plot(days, smoothed, color='tab:blue', linewidth=1, alpha=0.7, label='Smoothed')

        dates = list(dates)
        for k, (marker_color, label) in enumerate([('tab:green', 'Onset'), ('tab:red', 'Cessation')]):
            for value in dates[k::2]:
                if value is None or not np.isfinite(value):
                    continue
                doy = ((int(value) - 1) % 365) + 1
                ax.axvline(doy, color=marker_color, linestyle='--', linewidth=1, label=label)
                label = None

        ax.axhline(0, color='grey', linewidth=0.5)
        ax.set_xlim(1, len(curve))
        ax.set_xlabel('Day of year', fontsize=11)
        ax.set_ylabel('mm', fontsize=11)
        ax.set_title(title, fontsize=12, fontweight='bold', pad=10)
        ax.grid(True, alpha=0.2, linestyle=':', linewidth=0.5)
        ax.legend(loc='upper right', fontsize=10, framealpha=0.9)
        return self._save_figure(fig, output_path)

    def pixel_title(self, ds: xr.Dataset, iy: int, ix: int) -> Tuple[str, str]:
        """Title and file stem for the diagnostic figure of pixel (iy, ix)."""
        n_seasons = int(ds["n_seasons"].isel({self.y_name: iy, self.x_name: ix}))
        y = float(ds[self.y_name].values[iy])
        x = float(ds[self.x_name].values[ix])
        title = f"Pixel ({iy}, {ix}) at {self.y_name}={y:.3f}, {self.x_name}={x:.3f}: {n_seasons} season(s)"
        return title, f"pixel_{iy}_{ix}_curve"
