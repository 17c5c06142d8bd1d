"""Pydantic configuration schemas for the rainseason pipeline.

All configuration validation, coercion, and normalization happens at
schema validation time via Pydantic. Every scientific threshold used by
the detector (seasonality ratio cutoff, anomaly tolerance, validity quorum,
land-cover fraction cutoffs) lives in ParamConfig as a named default.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
"""

from rainseason.schemas.resolve import resolve_config
from rainseason.schemas.internal import InternalConfig
from rainseason.schemas.param import ParamConfig
from rainseason.schemas.user import UserConfig
from rainseason.schemas.cli import CLIConfig

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
]
