"""Merge the configuration layers into one InternalConfig.

``resolve_config()`` is the only place where defaults, the user's file and
command-line flags meet. Later layers win:

    ParamConfig  <  UserConfig  <  CLIConfig

After merging, a few values are put in canonical form (window half-widths
widest first, land-cover classes sorted and unique) so that two configs
meaning the same thing also hash to the same stage-cache key.
"""

from typing import Optional, Type, TypeVar, Union

from pydantic import BaseModel

from rainseason.schemas.param import ParamConfig
from rainseason.schemas.user import UserConfig
from rainseason.schemas.cli import CLIConfig
from rainseason.schemas.internal import InternalConfig

ModelT = TypeVar("ModelT", bound=BaseModel)


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Recursively merge ``overrides`` into a copy of ``base``.

    Nested dicts merge key by key; any other value (lists included) is
    replaced outright.

    Examples
    --------
    >>> base = {"anomaly": {"tolerance_days": 60, "valid_year_quorum": 0.75}}
    >>> deep_merge(base, {"anomaly": {"tolerance_days": 45}}, {"mode": "climatology"})
    {'anomaly': {'tolerance_days': 45, 'valid_year_quorum': 0.75}, 'mode': 'climatology'}
    """
    merged = dict(base)
    for override in overrides:
        for key, value in override.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = deep_merge(current, value)
            else:
                merged[key] = value
    return merged


def _as_model(cfg, model: Type[ModelT]) -> ModelT:
    """Accept a model instance, a plain dict, or None/{} for "no overrides"."""
    if isinstance(cfg, model):
        return cfg
    if not cfg:
        return model()
    return model.model_validate(cfg)


def _canonicalize(merged: dict) -> dict:
    detector = merged["detector"]
    detector["extrema_half_widths"] = tuple(sorted(set(detector["extrema_half_widths"]),
                                                   reverse=True))
    mask = merged["mask"]
    mask["landcover_classes"] = sorted(set(mask["landcover_classes"]))
    merged["logging"]["level"] = str(merged["logging"]["level"]).upper()
    return merged


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
) -> InternalConfig:
    """Build the frozen runtime configuration.

    Parameters
    ----------
    param_cfg : dict or ParamConfig
        Expert defaults; every runtime field must be present here.
    user_cfg : dict or UserConfig, optional
        Overrides from the user's CONFIG dict (flat aliases or nested).
    cli_cfg : dict or CLIConfig, optional
        Command-line overrides.

    Returns
    -------
    InternalConfig

    Raises
    ------
    pydantic.ValidationError
        If any layer, or the merged result, is invalid (e.g. END_YEAR
        before START_YEAR).

    Examples
    --------
    >>> user = UserConfig(ANOMALY_TOLERANCE_DAYS=45, PRECIP_PATH="chirps.nc")
    >>> config = resolve_config(ParamConfig(), user)
    >>> config.anomaly.tolerance_days
    45
    >>> config.input.precipitation_path
    'chirps.nc'
    """
    param = _as_model(param_cfg, ParamConfig)
    user = _as_model(user_cfg, UserConfig)
    cli = _as_model(cli_cfg, CLIConfig)

    # by_alias keeps the 'global' section name InternalConfig expects
    merged = deep_merge(
        param.model_dump(by_alias=True),
        user.to_internal_overrides(),
        cli.to_internal_overrides(),
    )
    return InternalConfig.model_validate(_canonicalize(merged))
