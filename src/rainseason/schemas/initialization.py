"""Complete runtime initialization for the rainseason pipeline.

This module handles ALL initialization responsibilities:
- Configuration resolution (CLI > User > Param)
- Output directory setup
- Cleanup handling (--rerun)
- Configuration persistence with run ID
- Returns fully ready InternalConfig for orchestrator
"""

import importlib.util
import shutil
import json
import logging
import uuid
from pathlib import Path
from typing import Dict
from datetime import datetime, timezone

from rainseason.schemas.resolve import resolve_config
from rainseason.schemas.param import ParamConfig
from rainseason.schemas.user import UserConfig
from rainseason.schemas.cli import CLIConfig
from rainseason.schemas.internal import InternalConfig
from rainseason.setup_directories import setup_output_directories

logger = logging.getLogger(__name__)


def load_user_config_dict(config_path: str) -> dict:
    """Load user config dict from Python file.

    Returns the raw dict before Pydantic validation.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If no CONFIG dict found in file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    spec = importlib.util.spec_from_file_location("config_module", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Could not load config module from {path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    for name in dir(module):
        if name.startswith('CONFIG'):
            obj = getattr(module, name)
            if isinstance(obj, dict):
                return obj

    raise ValueError(f"No CONFIG dict found in {path}")


def generate_run_id() -> str:
    """Timestamped run identifier, e.g. ``20250305T120000_1a2b3c4d``."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    return f"{stamp}_{uuid.uuid4().hex[:8]}"


def _handle_rerun_cleanup(base_dir: str, rerun: bool) -> None:
    """Handle --rerun directory cleanup if requested."""
    if not rerun:
        return

    base_dir_path = Path(base_dir)
    if base_dir_path.exists():
        logger.info("Cleaning output directory: %s", base_dir_path)
        shutil.rmtree(base_dir_path)


def _persist_runtime_config(config: InternalConfig, run_id: str, output_dirs: Dict[str, Path]) -> Path:
    """Persist final runtime configuration to output directory with run ID."""
    config_output_dir = Path(output_dirs["base"])
    config_output_dir.mkdir(parents=True, exist_ok=True)

    config_file = config_output_dir / f"runtime_config_{run_id}.json"

    config_dict = config.model_dump(by_alias=True)
    config_dict["created_at"] = datetime.now(timezone.utc).isoformat()

    with open(config_file, 'w') as f:
        json.dump(config_dict, f, indent=2, default=str)

    logger.info("Runtime config saved: %s", config_file)
    return config_file


def init_runtime_config(args) -> InternalConfig:
    """Complete runtime initialization - single entry point for scripts.

    1. Configuration resolution (CLI > User > Param)
    2. Cleanup handling (--rerun)
    3. Output directory setup
    4. Configuration persistence with run ID

    Parameters
    ----------
    args : argparse.Namespace
        Command line arguments with config path and all overrides

    Returns
    -------
    InternalConfig
        Fully validated configuration with output_dirs and run_id set.

    Raises
    ------
    ValueError
        If no config path is given or no base directory is configured.
    """
    config_path = getattr(args, 'config', None)
    if not config_path:
        raise ValueError("Config path required in args.config")

    param_cfg = ParamConfig()
    user_cfg = UserConfig.model_validate(load_user_config_dict(config_path))

    cli_args = {
        k: v
        for k, v in {
            "mode": getattr(args, 'mode', None),
            "base_dir": getattr(args, 'base_dir', None),
            "precipitation_path": getattr(args, 'precipitation', None),
            "start_year": getattr(args, 'start_year', None),
            "end_year": getattr(args, 'end_year', None),
            "n_workers": getattr(args, 'n_workers', None),
            "no_plots": getattr(args, 'no_plots', None) or None,
            "log_level": "DEBUG" if getattr(args, 'verbose', False) else None,
        }.items()
        if v is not None
    }
    cli_cfg = CLIConfig.model_validate(cli_args)

    internal_config_dict = resolve_config(param_cfg, user_cfg, cli_cfg).model_dump(by_alias=True)

    base_dir = internal_config_dict["base_dir"]
    if not base_dir:
        raise ValueError("BASE_DIR must be set in the user config or via --base-dir")

    _handle_rerun_cleanup(base_dir, getattr(args, 'rerun', False))

    output_dirs = setup_output_directories(base_dir)
    internal_config_dict["output_dirs"] = {k: str(v) for k, v in output_dirs.items()}

    run_id = generate_run_id()
    internal_config_dict["run_id"] = run_id

    config = InternalConfig.model_validate(internal_config_dict)

    _persist_runtime_config(config, run_id, output_dirs)
    logger.info("Runtime initialization complete. Run ID: %s", run_id)

    return config


__all__ = ['init_runtime_config', 'load_user_config_dict', 'generate_run_id']
