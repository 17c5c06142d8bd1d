"""Test config resolution and validation with Pydantic."""

import pytest
from pydantic import ValidationError

from rainseason.schemas import ParamConfig, UserConfig, CLIConfig, InternalConfig
from rainseason.schemas.resolve import deep_merge, resolve_config
from rainseason.schemas.user import UserAnomalyConfig, UserDetectorConfig


class TestConfigResolution:
    """Test resolve_config() precedence and merging."""

    def test_resolve_config_all_defaults(self):
        """Resolving with no user/CLI overrides uses all ParamConfig defaults."""
        config = resolve_config(ParamConfig(), None, None)

        assert isinstance(config, InternalConfig)
        assert config.mode == "full"
        assert config.classifier.ratio_threshold == 1.0
        assert config.hydro_year.lead_days == 30
        assert config.anomaly.tolerance_days == 60
        assert config.anomaly.valid_year_quorum == 0.75
        assert config.detector.extrema_half_widths == (45, 30, 15)
        assert config.mask.landcover_classes == [7, 8, 9, 10]
        assert config.input.precipitation_path is None

    def test_user_config_overrides_param_config(self):
        """UserConfig values override ParamConfig defaults."""
        user = UserConfig(anomaly_tolerance_days=45)
        config = resolve_config(ParamConfig(), user, None)

        assert config.anomaly.tolerance_days == 45

    def test_precedence_param_user_cli(self):
        """Full precedence: CLI > User > Param."""
        user = UserConfig(mode="full", n_workers=2, base_dir="/data/out")
        cli = CLIConfig(mode="climatology", n_workers=8)
        config = resolve_config(ParamConfig(), user, cli)

        assert config.mode == "climatology"
        assert config.processor.n_workers == 8
        assert config.base_dir == "/data/out"

    def test_cli_overrides_do_not_mutate_user(self):
        user = UserConfig.model_validate({"START_YEAR": 1990, "BASE_DIR": "/tmp"})
        cli = CLIConfig.model_validate({"start_year": 2001})

        internal = resolve_config(ParamConfig(), user, cli)

        assert internal.period.start_year == 2001
        assert user.start_year == 1990

    def test_empty_user_config_uses_all_param_defaults(self):
        """Empty UserConfig() doesn't override anything."""
        config = resolve_config(ParamConfig(), UserConfig(), None)

        assert config.anomaly.tolerance_days == 60
        assert config.processor.tile_rows == 64

    def test_internal_config_is_frozen(self):
        config = resolve_config(ParamConfig(), None, None)
        with pytest.raises(ValidationError):
            config.mode = "climatology"


class TestUserConfigAliases:
    """Test UserConfig flat aliases map correctly."""

    def test_precip_path_alias(self):
        user = UserConfig(PRECIP_PATH="/data/chirps.nc", PRECIP_START_DATE="2001-01-01")
        config = resolve_config(ParamConfig(), user, None)

        assert config.input.precipitation_path == "/data/chirps.nc"
        assert config.input.start_date == "2001-01-01"

    def test_precip_var_alias(self):
        """PRECIP_VAR maps to global var_names."""
        config = resolve_config(ParamConfig(), UserConfig(PRECIP_VAR="pr"), None)

        assert config.global_.var_names.precipitation == "pr"
        assert config.global_.var_names.gpp == "gpp"

    def test_period_alias(self):
        config = resolve_config(ParamConfig(), UserConfig(START_YEAR=1981, END_YEAR=2020), None)

        assert (config.period.start_year, config.period.end_year) == (1981, 2020)

    def test_hydro_year_lead_alias(self):
        config = resolve_config(ParamConfig(), UserConfig(HYDRO_YEAR_LEAD_DAYS=15), None)

        assert config.hydro_year.lead_days == 15

    def test_mask_aliases(self):
        user = UserConfig(LANDCOVER_CLASSES=[10], MIN_RANGELAND_FRACTION=0.9,
                          LANDCOVER_PATH="/data/lc.tif")
        config = resolve_config(ParamConfig(), user, None)

        assert config.mask.landcover_classes == [10]
        assert config.mask.min_rangeland_fraction == 0.9
        assert config.input.landcover_path == "/data/lc.tif"

    def test_nested_anomaly_override(self):
        """Nested anomaly config overrides flat alias."""
        user = UserConfig(
            anomaly_tolerance_days=30,
            anomaly=UserAnomalyConfig(tolerance_days=90),
        )
        config = resolve_config(ParamConfig(), user, None)

        # Nested should win
        assert config.anomaly.tolerance_days == 90

    def test_nested_detector_widths_sorted(self):
        user = UserConfig(detector=UserDetectorConfig(extrema_half_widths=(20, 60, 40)))
        config = resolve_config(ParamConfig(), user, None)

        assert config.detector.extrema_half_widths == (60, 40, 20)

    def test_section_dicts(self):
        user = UserConfig(visualization={"enabled": False, "diagnostic_pixels": [(1, 2)]},
                          cache={"enabled": False})
        config = resolve_config(ParamConfig(), user, None)

        assert config.visualization.enabled is False
        assert config.visualization.diagnostic_pixels == [(1, 2)]
        assert config.cache.enabled is False


class TestValidation:
    """Test config edge cases and error conditions."""

    def test_none_values_dont_override(self):
        """None values in UserConfig don't override ParamConfig."""
        user = UserConfig(ratio_threshold=None, base_dir="/tmp/out")
        config = resolve_config(ParamConfig(), user, None)

        assert config.classifier.ratio_threshold == 1.0
        assert config.base_dir == "/tmp/out"

    def test_dict_user_config_accepted(self):
        """Dict can be passed as UserConfig (converted by Pydantic)."""
        config = resolve_config(ParamConfig(), {"VALID_YEAR_QUORUM": 1}, None)

        assert config.anomaly.valid_year_quorum == 1.0

    def test_reversed_period_rejected(self):
        with pytest.raises(ValidationError):
            resolve_config(ParamConfig(), UserConfig(START_YEAR=2019, END_YEAR=2001), None)

    def test_quorum_above_one_rejected(self):
        with pytest.raises(ValidationError):
            resolve_config(ParamConfig(), UserConfig(VALID_YEAR_QUORUM=1.5), None)

    def test_aridity_window_rejected(self):
        with pytest.raises(ValidationError):
            ParamConfig(mask={"aridity_min": 0.7, "aridity_max": 0.65})

    def test_incomplete_param_config_dict_rejected(self):
        """Unknown keys raise validation error."""
        with pytest.raises(ValidationError):
            resolve_config({"incomplete": "dict"}, None, None)


def test_deep_merge():
    base = {"a": 1, "b": {"c": 2, "d": 3}}
    override = {"b": {"d": 4, "e": 5}, "f": 6}
    assert deep_merge(base, override) == {"a": 1, "b": {"c": 2, "d": 4, "e": 5}, "f": 6}
    assert base == {"a": 1, "b": {"c": 2, "d": 3}}


def test_equivalent_configs_are_canonical():
    a = resolve_config(ParamConfig(), UserConfig(LANDCOVER_CLASSES=[9, 7, 9],
                                                 detector={"extrema_half_widths": [15, 45, 30]}))
    b = resolve_config(ParamConfig(), UserConfig(LANDCOVER_CLASSES=[7, 9]))
    assert a.mask.landcover_classes == [7, 9]
    assert a.detector.extrema_half_widths == (45, 30, 15)
    assert a.model_dump() == b.model_dump()


def test_dict_layers_accepted():
    config = resolve_config({}, {"MODE": "climatology"}, {})
    assert config.mode == "climatology"
