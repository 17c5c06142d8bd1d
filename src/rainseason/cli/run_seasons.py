"""Core rainy-season pipeline execution logic.

This module contains the actual pipeline runner, separated from argument parsing.
Scripts are thin wrappers; this is the real implementation.
"""

import argparse
import json
import logging
from typing import Optional, Sequence

from rainseason.pipeline.orchestrator import PipelineOrchestrator
from rainseason.schemas.initialization import init_runtime_config

__all__ = ['build_parser', 'run_season_pipeline', 'main']

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Detect rainy-season onset and cessation from daily precipitation"
    )
    parser.add_argument("config", help="Path to user config file")
    parser.add_argument("--mode", choices=["full", "climatology"], help="Override mode")
    parser.add_argument("--base-dir", help="Output directory")
    parser.add_argument("--precipitation", help="Daily precipitation NetCDF or GeoTIFF")
    parser.add_argument("--start-year", type=int, help="First calendar year")
    parser.add_argument("--end-year", type=int, help="Last calendar year")
    parser.add_argument("--n-workers", type=int, help="Worker processes for tiles")
    parser.add_argument("--no-plots", action="store_true", help="Skip figures")
    parser.add_argument("--rerun", action="store_true", help="Delete output directories before running")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def run_season_pipeline(args: argparse.Namespace) -> dict:
    """Execute the rainy-season pipeline.

    1. Resolves configuration (Param < User < CLI), handles --rerun, creates
       output directories and persists the runtime config
    2. Runs the orchestrator to completion

    Parameters
    ----------
    args : argparse.Namespace
        Parsed arguments from build_parser().

    Returns
    -------
    dict
        Output name -> path of every file written.

    Raises
    ------
    FileNotFoundError
        If the user config or an input file does not exist.
    pydantic.ValidationError
        If configuration validation fails.
    ContractViolation
        If a stage contract is broken under the fail_fast policy.
    """
    config = init_runtime_config(args)

    print(f"\n{'='*60}")
    print("Rainy Season Pipeline")
    print('='*60)
    print(f"Config: {args.config}")
    print(f"Input:  {config.input.precipitation_path}")
    print(f"Period: {config.period.start_year}-{config.period.end_year}")
    print(f"Mode:   {config.mode}")
    print(f"Output: {config.base_dir}")
    print('='*60)

    if args.verbose:
        print("\nFull Internal Configuration:")
        print(json.dumps(config.model_dump(by_alias=True), indent=2, default=str))
        print('='*60)

    orchestrator = PipelineOrchestrator(config)
    return orchestrator.run()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Console entry point (``rainseason-run``)."""
    args = build_parser().parse_args(argv)
    outputs = run_season_pipeline(args)
    for name, path in outputs.items():
        print(f"{name}: {path}")
    return 0
