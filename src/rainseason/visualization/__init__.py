"""Figures for season maps and pixel diagnostics."""

from rainseason.visualization.plotter import SeasonPlotter

__all__ = ["SeasonPlotter"]
