"""CLIConfig: Command-line operational overrides.

Minimal configuration for operational parameters that commonly change
between runs: mode, input/output paths, worker count, verbosity.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional
from pydantic import Field, model_validator
from rainseason.schemas.base import RainseasonBaseModel


class CLIConfig(RainseasonBaseModel):
    """Command-line configuration overrides.

    Operational-only settings that override user and param configs.
    Highest priority in config resolution.

    Notes
    -----
    When only one of start_year/end_year is given the other is left to
    lower-priority layers; giving both in reverse order is rejected here.

    Usage
    -----
        cli_cfg = CLIConfig(
            base_dir="/scratch/rainseason_output",
            n_workers=8,
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    mode: Optional[Literal["full", "climatology"]] = None
    base_dir: Optional[str] = None
    precipitation_path: Optional[str] = None
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    n_workers: Optional[int] = Field(None, ge=1)
    no_plots: bool = False
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    @model_validator(mode="after")
    def check_year_order(self):
        if self.start_year is not None and self.end_year is not None:
            if self.end_year < self.start_year:
                raise ValueError(
                    f"end_year ({self.end_year}) precedes start_year ({self.start_year})"
                )
        return self

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.mode is not None:
            overrides["mode"] = self.mode

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        if self.precipitation_path is not None:
            overrides["input"] = {"precipitation_path": str(self.precipitation_path)}

        period = {}
        if self.start_year is not None:
            period["start_year"] = self.start_year
        if self.end_year is not None:
            period["end_year"] = self.end_year
        if period:
            overrides["period"] = period

        if self.n_workers is not None:
            overrides["processor"] = {"n_workers": self.n_workers}

        if self.no_plots:
            overrides["visualization"] = {"enabled": False}

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        # base_dir handled separately by setup_output_directories

        return overrides
