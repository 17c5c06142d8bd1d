"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs in a variety of formats, with aliases
for common naming patterns (e.g., PRECIP_PATH → input.precipitation_path,
MODE → mode).

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults. Validation is lenient to accept
both uppercase and lowercase keys, integers where floats are expected, etc.
"""

from typing import Literal, Optional, Any
from pydantic import Field, field_validator
from rainseason.schemas.base import RainseasonBaseModel


class UserClassifierConfig(RainseasonBaseModel):
    """User-facing classifier config."""
    ratio_threshold: Optional[float] = None
    min_amplitude: Optional[float] = None

    @field_validator("ratio_threshold", "min_amplitude", mode="before")
    @classmethod
    def coerce_float(cls, v):
        """Accept int or float."""
        if v is not None:
            return float(v)
        return v


class UserDetectorConfig(RainseasonBaseModel):
    """User-facing detector config."""
    onset_lag_days: Optional[int] = None
    smoothing_half_width: Optional[int] = None
    extrema_half_widths: Optional[tuple[int, ...]] = None
    double_season_margin_days: Optional[int] = None


class UserAnomalyConfig(RainseasonBaseModel):
    """User-facing validity filter config."""
    tolerance_days: Optional[int] = None
    valid_year_quorum: Optional[float] = None


class UserMaskConfig(RainseasonBaseModel):
    """User-facing study-area mask config."""
    landcover_classes: Optional[list[int]] = None
    aridity_min: Optional[float] = None
    aridity_max: Optional[float] = None
    min_rangeland_fraction: Optional[float] = None
    zero_productivity_fraction: Optional[float] = None


class UserConfig(RainseasonBaseModel):
    """User-facing configuration schema.

    Minimal, forgiving, and uses common aliases. Users only specify
    what they want to override from ParamConfig defaults.

    This config is converted to internal overrides during resolution.

    Usage
    -----
        user_cfg = UserConfig(
            base_dir="/data/rangelands",
            precipitation_path="/data/chirps_daily_2001_2019.nc",
            anomaly_tolerance_days=45,
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    # Top-level operational settings
    mode: Optional[Literal["full", "climatology"]] = Field(None, alias="MODE")
    base_dir: Optional[str] = Field(None, alias="BASE_DIR")

    # Inputs (flat aliases)
    precipitation_path: Optional[str] = Field(None, alias="PRECIP_PATH")
    precipitation_start_date: Optional[str] = Field(None, alias="PRECIP_START_DATE")
    precipitation_var: Optional[str] = Field(None, alias="PRECIP_VAR")
    landcover_path: Optional[str] = Field(None, alias="LANDCOVER_PATH")
    aridity_path: Optional[str] = Field(None, alias="ARIDITY_PATH")
    rangeland_fraction_path: Optional[str] = Field(None, alias="RANGELAND_FRACTION_PATH")
    gpp_path: Optional[str] = Field(None, alias="GPP_PATH")

    # Period
    start_year: Optional[int] = Field(None, alias="START_YEAR")
    end_year: Optional[int] = Field(None, alias="END_YEAR")

    # Thresholds (flat aliases)
    ratio_threshold: Optional[float] = Field(None, alias="RATIO_THRESHOLD")
    hydro_year_lead_days: Optional[int] = Field(None, alias="HYDRO_YEAR_LEAD_DAYS")
    anomaly_tolerance_days: Optional[int] = Field(None, alias="ANOMALY_TOLERANCE_DAYS")
    valid_year_quorum: Optional[float] = Field(None, alias="VALID_YEAR_QUORUM")
    landcover_classes: Optional[list[int]] = Field(None, alias="LANDCOVER_CLASSES")
    min_rangeland_fraction: Optional[float] = Field(None, alias="MIN_RANGELAND_FRACTION")

    # Processing and output
    tile_rows: Optional[int] = Field(None, alias="TILE_ROWS")
    n_workers: Optional[int] = Field(None, alias="N_WORKERS")
    table_format: Optional[Literal["csv", "parquet"]] = Field(None, alias="TABLE_FORMAT")

    # Nested overrides (advanced users)
    classifier: Optional[UserClassifierConfig] = None
    detector: Optional[UserDetectorConfig] = None
    anomaly: Optional[UserAnomalyConfig] = None
    mask: Optional[UserMaskConfig] = None
    global_: Optional[dict[str, Any]] = Field(None, alias="global")
    covariates: Optional[dict[str, Any]] = None
    processor: Optional[dict[str, Any]] = None
    cache: Optional[dict[str, Any]] = None
    visualization: Optional[dict[str, Any]] = None
    output: Optional[dict[str, Any]] = None

    model_config = RainseasonBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("ratio_threshold", "valid_year_quorum", "min_rangeland_fraction",
                     mode="before")
    @classmethod
    def coerce_numeric_fields(cls, v):
        """Accept int or float for numeric fields."""
        if v is not None:
            return float(v)
        return v

    @field_validator("table_format", "mode", mode="before")
    @classmethod
    def normalize_names(cls, v):
        """Normalize option names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

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

        # Input section
        input_cfg = {}
        if self.precipitation_path is not None:
            input_cfg["precipitation_path"] = str(self.precipitation_path)
        if self.precipitation_start_date is not None:
            input_cfg["start_date"] = self.precipitation_start_date
        if self.landcover_path is not None:
            input_cfg["landcover_path"] = str(self.landcover_path)
        if self.aridity_path is not None:
            input_cfg["aridity_path"] = str(self.aridity_path)
        if self.rangeland_fraction_path is not None:
            input_cfg["rangeland_fraction_path"] = str(self.rangeland_fraction_path)
        if self.gpp_path is not None:
            input_cfg["gpp_path"] = str(self.gpp_path)
        if input_cfg:
            overrides["input"] = input_cfg

        # Period section
        period = {}
        if self.start_year is not None:
            period["start_year"] = self.start_year
        if self.end_year is not None:
            period["end_year"] = self.end_year
        if period:
            overrides["period"] = period

        # Global section
        global_cfg = {}
        if self.precipitation_var is not None:
            global_cfg["var_names"] = {"precipitation": self.precipitation_var}
        if self.global_ is not None:
            global_cfg.update(self.global_)
        if global_cfg:
            overrides["global"] = global_cfg

        # Classifier section
        classifier = {}
        if self.ratio_threshold is not None:
            classifier["ratio_threshold"] = self.ratio_threshold
        if self.classifier is not None:
            classifier.update(self.classifier.model_dump(exclude_none=True))
        if classifier:
            overrides["classifier"] = classifier

        if self.detector is not None:
            detector = self.detector.model_dump(exclude_none=True)
            if detector:
                overrides["detector"] = detector

        if self.hydro_year_lead_days is not None:
            overrides["hydro_year"] = {"lead_days": self.hydro_year_lead_days}

        # Anomaly section
        anomaly = {}
        if self.anomaly_tolerance_days is not None:
            anomaly["tolerance_days"] = self.anomaly_tolerance_days
        if self.valid_year_quorum is not None:
            anomaly["valid_year_quorum"] = self.valid_year_quorum
        if self.anomaly is not None:
            anomaly.update(self.anomaly.model_dump(exclude_none=True))
        if anomaly:
            overrides["anomaly"] = anomaly

        # Mask section
        mask = {}
        if self.landcover_classes is not None:
            mask["landcover_classes"] = list(self.landcover_classes)
        if self.min_rangeland_fraction is not None:
            mask["min_rangeland_fraction"] = self.min_rangeland_fraction
        if self.mask is not None:
            mask.update(self.mask.model_dump(exclude_none=True))
        if mask:
            overrides["mask"] = mask

        # Processor section
        processor = {}
        if self.tile_rows is not None:
            processor["tile_rows"] = self.tile_rows
        if self.n_workers is not None:
            processor["n_workers"] = self.n_workers
        if self.processor is not None:
            processor.update(self.processor)
        if processor:
            overrides["processor"] = processor

        # Output section
        output = {}
        if self.table_format is not None:
            output["table_format"] = self.table_format
        if self.output is not None:
            output.update(self.output)
        if output:
            overrides["output"] = output

        for section in ("covariates", "cache", "visualization"):
            value = getattr(self, section)
            if value:
                overrides[section] = dict(value)

        return overrides
