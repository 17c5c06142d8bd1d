"""Command-line interface modules for rainseason pipeline execution.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from rainseason.cli.run_seasons import run_season_pipeline

__all__ = ['run_season_pipeline']
